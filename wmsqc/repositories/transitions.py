# wmsqc/repositories/transitions.py
from __future__ import annotations

from typing import Any, List, Mapping

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.ratios import to_decimal
from wmsqc.domain.records import QualityTransition
from wmsqc.models.enums import QualityStatus
from wmsqc.models.quality_transition import QualityTransition as QualityTransitionModel

_t = QualityTransitionModel.__table__


def _to_record(row: Mapping[str, Any]) -> QualityTransition:
    inv_id = row["inventory_id"]
    return QualityTransition(
        id=int(row["id"]),
        allocation_id=int(row["allocation_id"]),
        inventory_id=int(inv_id) if inv_id is not None else None,
        from_status=QualityStatus(row["from_status"]),
        to_status=QualityStatus(row["to_status"]),
        quantity=int(row["quantity"]),
        packages=int(row["packages"]),
        weight=to_decimal(row["weight"]),
        volume=to_decimal(row["volume"]),
        from_cell_id=int(row["from_cell_id"]),
        to_cell_id=int(row["to_cell_id"]),
        reason=row["reason"],
        notes=row["notes"],
        actor=row["actor"],
        created_at=row["created_at"],
    )


class SqlTransitionRepo:
    """流转记录只增不改。"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, transition: QualityTransition) -> QualityTransition:
        stmt = (
            insert(_t)
            .values(
                allocation_id=transition.allocation_id,
                inventory_id=transition.inventory_id,
                from_status=transition.from_status.value,
                to_status=transition.to_status.value,
                quantity=transition.quantity,
                packages=transition.packages,
                weight=transition.weight,
                volume=transition.volume,
                from_cell_id=transition.from_cell_id,
                to_cell_id=transition.to_cell_id,
                reason=transition.reason,
                notes=transition.notes,
                actor=transition.actor,
                created_at=transition.created_at,
            )
            .returning(*_t.c)
        )
        row = (await self.session.execute(stmt)).mappings().one()
        return _to_record(row)

    async def list_by_allocation(self, allocation_id: int) -> List[QualityTransition]:
        stmt = (
            select(_t)
            .where(_t.c.allocation_id == allocation_id)
            .order_by(_t.c.created_at.desc(), _t.c.id.desc())
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]
