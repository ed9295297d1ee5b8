# wmsqc/models/quality_transition.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base


class QualityTransition(Base):
    """质检状态流转记录（只增不改）。"""

    __tablename__ = "quality_transitions"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    allocation_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)
    inventory_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)

    from_status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    to_status: Mapped[str] = mapped_column(sa.String(16), nullable=False)

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    packages: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    weight: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False)
    volume: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)

    from_cell_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    to_cell_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    actor: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<QualityTransition id={self.id} alloc={self.allocation_id} "
            f"{self.from_status}->{self.to_status} qty={self.quantity}>"
        )
