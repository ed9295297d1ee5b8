# wmsqc/repositories/allocations.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.ratios import to_decimal
from wmsqc.domain.records import Allocation, Totals
from wmsqc.errors import ConflictError
from wmsqc.models.allocation import Allocation as AllocationModel
from wmsqc.models.enums import Condition, Presentation, QualityStatus

_t = AllocationModel.__table__


def _to_record(row: Mapping[str, Any]) -> Allocation:
    return Allocation(
        id=int(row["id"]),
        intake_line_id=int(row["intake_line_id"]),
        warehouse_id=int(row["warehouse_id"]),
        cell_id=int(row["cell_id"]),
        quantity=int(row["quantity"]),
        packages=int(row["packages"]),
        weight=to_decimal(row["weight"]),
        volume=to_decimal(row["volume"]),
        quality_status=QualityStatus(row["quality_status"]),
        presentation=Presentation(row["presentation"]),
        condition=Condition(row["condition"]),
        status_code=int(row["status_code"]),
        observations=row["observations"],
        created_by=row["created_by"],
        updated_by=row["updated_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=int(row["version"]),
    )


def _values(alloc: Allocation) -> Dict[str, Any]:
    return {
        "intake_line_id": alloc.intake_line_id,
        "warehouse_id": alloc.warehouse_id,
        "cell_id": alloc.cell_id,
        "quantity": alloc.quantity,
        "packages": alloc.packages,
        "weight": alloc.weight,
        "volume": alloc.volume,
        "quality_status": alloc.quality_status.value,
        "presentation": alloc.presentation.value,
        "condition": alloc.condition.value,
        "status_code": alloc.status_code,
        "observations": alloc.observations,
        "created_by": alloc.created_by,
        "updated_by": alloc.updated_by,
        "created_at": alloc.created_at,
        "updated_at": alloc.updated_at,
    }


def _sum_columns():
    return (
        func.coalesce(func.sum(_t.c.quantity), 0).label("quantity"),
        func.coalesce(func.sum(_t.c.packages), 0).label("packages"),
        func.coalesce(func.sum(_t.c.weight), 0).label("weight"),
        func.coalesce(func.sum(_t.c.volume), 0).label("volume"),
    )


def _to_totals(row: Mapping[str, Any]) -> Totals:
    return Totals(
        quantity=int(row["quantity"] or 0),
        packages=int(row["packages"] or 0),
        weight=to_decimal(row["weight"]),
        volume=to_decimal(row["volume"]),
    )


class SqlAllocationRepo:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, allocation_id: int, *, for_update: bool = False) -> Optional[Allocation]:
        stmt = select(_t).where(_t.c.id == allocation_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.session.execute(stmt)).mappings().first()
        return _to_record(row) if row else None

    async def add(self, alloc: Allocation) -> Allocation:
        stmt = insert(_t).values(**_values(alloc), version=1).returning(*_t.c)
        row = (await self.session.execute(stmt)).mappings().one()
        return _to_record(row)

    async def save(self, alloc: Allocation, *, expected_version: int) -> Allocation:
        values = _values(alloc)
        # 不可变字段不参与改写
        for k in ("intake_line_id", "warehouse_id", "created_by", "created_at"):
            values.pop(k)
        stmt = (
            update(_t)
            .where(_t.c.id == alloc.id, _t.c.version == expected_version)
            .values(**values, version=_t.c.version + 1)
            .returning(*_t.c)
        )
        row = (await self.session.execute(stmt)).mappings().first()
        if row is None:
            raise ConflictError(
                f"allocation {alloc.id} was modified concurrently",
                detail={"allocation_id": alloc.id, "expected_version": expected_version},
            )
        return _to_record(row)

    async def totals_by_line(self, line_ids: Iterable[int]) -> Dict[int, Totals]:
        ids = sorted({int(i) for i in line_ids})
        if not ids:
            return {}
        stmt = (
            select(_t.c.intake_line_id, *_sum_columns())
            .where(_t.c.intake_line_id.in_(ids))
            .group_by(_t.c.intake_line_id)
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return {int(r["intake_line_id"]): _to_totals(r) for r in rows}

    async def totals_by_line_status(self, line_id: int) -> Dict[QualityStatus, Totals]:
        stmt = (
            select(_t.c.quality_status, *_sum_columns())
            .where(_t.c.intake_line_id == line_id)
            .group_by(_t.c.quality_status)
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return {QualityStatus(r["quality_status"]): _to_totals(r) for r in rows}

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[Allocation]:
        stmt = select(_t).where(_t.c.id > after_id)
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        stmt = stmt.order_by(_t.c.id.asc()).limit(limit)
        rows = (await self.session.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]
