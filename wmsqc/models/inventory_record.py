# wmsqc/models/inventory_record.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base


class InventoryRecord(Base):
    """
    在库记录：分配在物理上的“活”镜像。

    - status 为作业状态（QUARANTINED / AVAILABLE / DAMAGED / RETURNED）
    - allocation_id 可空：分配被删掉后即成为孤儿，由一致性体检报告
    """

    __tablename__ = "inventory_records"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    allocation_id: Mapped[int | None] = mapped_column(
        sa.Integer,
        sa.ForeignKey("allocations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    intake_line_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)
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

    status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    quality_status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    status_code: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    created_by: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.Index("ix_inventory_quality_status", "quality_status", "status", "warehouse_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryRecord id={self.id} alloc={self.allocation_id} cell={self.cell_id} "
            f"qty={self.quantity} status={self.status}/{self.quality_status}>"
        )
