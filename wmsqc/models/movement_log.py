# wmsqc/models/movement_log.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base


class MovementLog(Base):
    """
    数量变动台账（只增不改）：
    每一次分配 / 流转 / 体检修复写一行，delta 为本次变动量。
    """

    __tablename__ = "movement_log"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    actor: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    kind: Mapped[str] = mapped_column(sa.String(16), nullable=False)

    quantity_delta: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    package_delta: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    weight_delta: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)
    volume_delta: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)

    intake_line_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    allocation_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    cell_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    warehouse_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)

    notes: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.Index("ix_movement_log_allocation", "allocation_id"),
        sa.Index("ix_movement_log_occurred_at", "occurred_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<MovementLog {self.kind} alloc={self.allocation_id} cell={self.cell_id} "
            f"qty={self.quantity_delta} pkgs={self.package_delta}>"
        )
