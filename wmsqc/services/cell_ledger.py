# wmsqc/services/cell_ledger.py
from __future__ import annotations

import logging
from decimal import Decimal

from wmsqc.domain.ports import CellRepo
from wmsqc.domain.ratios import Slice, to_decimal
from wmsqc.domain.records import StorageCell
from wmsqc.errors import NotFoundError

logger = logging.getLogger("wmsqc.cells")


class CellOccupancyLedger:
    """
    库位占用台账：

    - increment：首次入货把库位置为 OCCUPIED
    - decrement：只减不改状态；清空后也不会退回 AVAILABLE
    - adjust：带符号增量（体检修复用）

    所有写入都交给 CellRepo.apply_delta（SQL 层原子 +delta），不做读后写；
    体积只记录，不在这里校验容量。
    """

    def __init__(self, cells: CellRepo):
        self.cells = cells

    async def _apply(
        self, cell_id: int, packages: int, weight: Decimal, volume: Decimal, *, occupy: bool
    ) -> StorageCell:
        cell = await self.cells.apply_delta(
            cell_id,
            packages=int(packages),
            weight=to_decimal(weight),
            volume=to_decimal(volume),
            occupy=occupy,
        )
        if cell is None:
            raise NotFoundError(f"storage cell {cell_id} not found", detail={"cell_id": cell_id})
        logger.debug(
            "cell %s (%s) delta pkgs=%+d weight=%s volume=%s -> pkgs=%d weight=%s",
            cell.id,
            cell.reference,
            int(packages),
            weight,
            volume,
            cell.current_packages,
            cell.current_weight,
        )
        return cell

    async def increment(self, cell_id: int, moved: Slice) -> StorageCell:
        return await self._apply(cell_id, moved.packages, moved.weight, moved.volume, occupy=True)

    async def decrement(self, cell_id: int, moved: Slice) -> StorageCell:
        return await self._apply(
            cell_id, -moved.packages, -moved.weight, -moved.volume, occupy=False
        )

    async def adjust(
        self,
        cell_id: int,
        *,
        packages: int = 0,
        weight: Decimal = Decimal("0"),
        volume: Decimal = Decimal("0"),
    ) -> StorageCell:
        return await self._apply(cell_id, packages, weight, volume, occupy=False)
