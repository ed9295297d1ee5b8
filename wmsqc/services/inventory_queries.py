# wmsqc/services/inventory_queries.py
"""
只读查询：

- available_cells         可用库位（可按目标质检状态过滤角色）
- destination_cells       某质检状态可去的库位（不看占用）
- lot_summary             批次行：总量 / 已分配 / 剩余 / 按状态拆分
- inventory_by_quality_status
- transition_history      某分配的流转记录（新的在前）
- available_for_departure 可出库库存，效期先到先出
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional

from wmsqc.domain.records import (
    DepartureCandidate,
    InventoryRecord,
    QualityTransition,
    StorageCell,
    Totals,
)
from wmsqc.errors import NotFoundError
from wmsqc.models.enums import ALLOWED_CELL_ROLES, CellStatus, QualityStatus
from wmsqc.schemas.queries import LotSummaryOut, TotalsOut


def _totals_out(t: Totals) -> TotalsOut:
    return TotalsOut(quantity=t.quantity, packages=t.packages, weight=t.weight, volume=t.volume)


class InventoryQueries:
    def __init__(self, uow_factory: Callable[[], Any]):
        self._uow_factory = uow_factory

    async def available_cells(
        self, warehouse_id: int, *, for_status: Optional[QualityStatus] = None
    ) -> List[StorageCell]:
        roles = sorted(ALLOWED_CELL_ROLES[for_status]) if for_status in ALLOWED_CELL_ROLES else None
        async with self._uow_factory() as uow:
            return await uow.cells.list_for_roles(warehouse_id, roles, status=CellStatus.AVAILABLE)

    async def destination_cells(self, warehouse_id: int, to_status: QualityStatus) -> List[StorageCell]:
        roles = ALLOWED_CELL_ROLES.get(to_status)
        if not roles:
            return []
        async with self._uow_factory() as uow:
            return await uow.cells.list_for_roles(warehouse_id, sorted(roles))

    async def lot_summary(self, intake_line_id: int) -> LotSummaryOut:
        async with self._uow_factory() as uow:
            line = await uow.intake_lines.get(intake_line_id)
            if line is None:
                raise NotFoundError(
                    f"intake line {intake_line_id} not found",
                    detail={"intake_line_id": intake_line_id},
                )
            by_status = await uow.allocations.totals_by_line_status(line.id)

        allocated = Totals()
        for t in by_status.values():
            allocated.add(t.quantity, t.packages, t.weight, t.volume)
        remaining = line.totals.minus(allocated)

        return LotSummaryOut(
            intake_line_id=line.id,
            warehouse_id=line.warehouse_id,
            product_code=line.product_code,
            review_state=line.review_state,
            totals=_totals_out(line.totals),
            allocated=_totals_out(allocated),
            remaining=_totals_out(remaining),
            by_status={s: _totals_out(t) for s, t in by_status.items()},
            fully_allocated=remaining.quantity <= 0,
        )

    async def inventory_by_quality_status(
        self, status: QualityStatus, *, warehouse_id: Optional[int] = None
    ) -> List[InventoryRecord]:
        async with self._uow_factory() as uow:
            return await uow.inventory.list_by_quality_status(status, warehouse_id=warehouse_id)

    async def transition_history(self, allocation_id: int) -> List[QualityTransition]:
        async with self._uow_factory() as uow:
            return await uow.transitions.list_by_allocation(allocation_id)

    async def available_for_departure(
        self, *, warehouse_id: Optional[int] = None, product_code: Optional[str] = None
    ) -> List[DepartureCandidate]:
        async with self._uow_factory() as uow:
            return await uow.inventory.list_available_for_departure(
                warehouse_id=warehouse_id, product_code=product_code
            )
