# wmsqc/repositories/cells.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.ratios import to_decimal
from wmsqc.domain.records import StorageCell
from wmsqc.models.enums import CellRole, CellStatus
from wmsqc.models.storage_cell import StorageCell as StorageCellModel

_t = StorageCellModel.__table__


def _to_record(row: Mapping[str, Any]) -> StorageCell:
    capacity = row["capacity"]
    return StorageCell(
        id=int(row["id"]),
        warehouse_id=int(row["warehouse_id"]),
        row=row["row"],
        bay=int(row["bay"]),
        position=int(row["position"]),
        role=CellRole(row["role"]),
        status=CellStatus(row["status"]),
        capacity=to_decimal(capacity) if capacity is not None else None,
        current_packages=int(row["current_packages"] or 0),
        current_weight=to_decimal(row["current_weight"]),
        current_volume=to_decimal(row["current_volume"]),
    )


def _ordered(stmt):
    return stmt.order_by(_t.c.row.asc(), _t.c.bay.asc(), _t.c.position.asc(), _t.c.id.asc())


class SqlCellRepo:
    """
    库位聚合只走原子增量：

        UPDATE storage_cells
           SET current_packages = current_packages + :d_pkgs, ...
         WHERE id = :id
     RETURNING *

    不在应用层读后写，避免并发分配 / 流转丢更新。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, cell_id: int) -> Optional[StorageCell]:
        row = (await self.session.execute(select(_t).where(_t.c.id == cell_id))).mappings().first()
        return _to_record(row) if row else None

    async def apply_delta(
        self,
        cell_id: int,
        *,
        packages: int,
        weight: Decimal,
        volume: Decimal,
        occupy: bool = False,
    ) -> Optional[StorageCell]:
        values: Dict[str, Any] = {
            "current_packages": _t.c.current_packages + int(packages),
            "current_weight": _t.c.current_weight + to_decimal(weight),
            "current_volume": _t.c.current_volume + to_decimal(volume),
        }
        if occupy:
            values["status"] = CellStatus.OCCUPIED.value
        stmt = update(_t).where(_t.c.id == cell_id).values(**values).returning(*_t.c)
        row = (await self.session.execute(stmt)).mappings().first()
        return _to_record(row) if row else None

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[StorageCell]:
        stmt = select(_t).where(_t.c.id > after_id)
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        stmt = stmt.order_by(_t.c.id.asc()).limit(limit)
        rows = (await self.session.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]

    async def list_for_roles(
        self,
        warehouse_id: int,
        roles: Optional[Sequence[CellRole]] = None,
        *,
        status: Optional[CellStatus] = None,
    ) -> List[StorageCell]:
        stmt = select(_t).where(_t.c.warehouse_id == warehouse_id)
        if roles is not None:
            stmt = stmt.where(_t.c.role.in_([r.value for r in roles]))
        if status is not None:
            stmt = stmt.where(_t.c.status == status.value)
        rows = (await self.session.execute(_ordered(stmt))).mappings().all()
        return [_to_record(r) for r in rows]
