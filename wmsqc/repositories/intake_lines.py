# wmsqc/repositories/intake_lines.py
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.ratios import to_decimal
from wmsqc.domain.records import IntakeLine
from wmsqc.models.enums import ReviewState
from wmsqc.models.intake_line import IntakeLine as IntakeLineModel

_t = IntakeLineModel.__table__


def _to_record(row: Mapping[str, Any]) -> IntakeLine:
    return IntakeLine(
        id=int(row["id"]),
        warehouse_id=int(row["warehouse_id"]),
        product_code=row["product_code"],
        lot_series=row["lot_series"],
        quantity=int(row["quantity"]),
        packages=int(row["packages"]),
        weight=to_decimal(row["weight"]),
        volume=to_decimal(row["volume"]),
        review_state=ReviewState(row["review_state"]),
        expiry_date=row["expiry_date"],
        entry_date=row["entry_date"],
    )


class SqlIntakeLineRepo:
    """批次行只读（审核由上游完成）；分配前 FOR UPDATE 锁行，串行化同一批次的并发分配。"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, line_id: int, *, for_update: bool = False) -> Optional[IntakeLine]:
        stmt = select(_t).where(_t.c.id == line_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.session.execute(stmt)).mappings().first()
        return _to_record(row) if row else None

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[IntakeLine]:
        stmt = select(_t).where(_t.c.id > after_id)
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        stmt = stmt.order_by(_t.c.id.asc()).limit(limit)
        rows = (await self.session.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]
