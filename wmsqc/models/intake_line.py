# wmsqc/models/intake_line.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base
from wmsqc.models.enums import ReviewState


class IntakeLine(Base):
    """
    入库批次行：一张供应商单据下某个商品的到货量。

    - 由上游 Intake Registry 写入 / 审核；本核心只对 APPROVED 行做分配
    - 已分配 / 剩余量不落库，读取时按 allocations 汇总
    """

    __tablename__ = "intake_lines"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    product_code: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    lot_series: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    packages: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    weight: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False)
    volume: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)

    review_state: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=ReviewState.PENDING.value
    )

    expiry_date: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    entry_date: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    __table_args__ = (sa.Index("ix_intake_lines_product_expiry", "product_code", "expiry_date"),)

    def __repr__(self) -> str:
        return (
            f"<IntakeLine id={self.id} product={self.product_code} qty={self.quantity} "
            f"pkgs={self.packages} weight={self.weight} state={self.review_state}>"
        )
