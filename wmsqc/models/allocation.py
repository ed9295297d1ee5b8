# wmsqc/models/allocation.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base
from wmsqc.models.enums import QualityStatus


class Allocation(Base):
    """
    分配：某个批次行的一部分放进某个库位，处于某个质检状态。

    - version：乐观锁，流转改写本行时带 WHERE version = :expected
    - 流转后本行代表“被移动的那一部分”（数量被改写为移动量）
    """

    __tablename__ = "allocations"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    intake_line_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("intake_lines.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    warehouse_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)
    cell_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("storage_cells.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    packages: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    weight: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False)
    volume: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)

    quality_status: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=QualityStatus.CUARENTENA.value
    )
    presentation: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    condition: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    status_code: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    observations: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    created_by: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    version: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)

    __table_args__ = (sa.Index("ix_allocations_status_wh", "quality_status", "warehouse_id"),)

    def __repr__(self) -> str:
        return (
            f"<Allocation id={self.id} line={self.intake_line_id} cell={self.cell_id} "
            f"qty={self.quantity} status={self.quality_status} v={self.version}>"
        )
