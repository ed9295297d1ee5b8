# wmsqc/models/storage_cell.py
from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wmsqc.db.base import Base
from wmsqc.models.enums import CellRole, CellStatus


class StorageCell(Base):
    """
    库位（row.bay.position）

    - current_packages / current_weight / current_volume：聚合占用，
      只允许通过 UPDATE ... SET x = x + :delta 原子增减
    - role：限制可放置的质检状态
    - status：首次入货 AVAILABLE → OCCUPIED，清空后不会自动回退
    """

    __tablename__ = "storage_cells"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    row: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    bay: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    role: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=CellRole.STANDARD.value)
    status: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=CellStatus.AVAILABLE.value
    )

    capacity: Mapped[Decimal | None] = mapped_column(sa.Numeric(14, 3), nullable=True)
    current_packages: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    current_weight: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)
    current_volume: Mapped[Decimal] = mapped_column(sa.Numeric(14, 3), nullable=False, default=0)

    __table_args__ = (
        sa.UniqueConstraint("warehouse_id", "row", "bay", "position", name="uq_cells_wh_row_bay_pos"),
        sa.Index("ix_cells_wh_status_role", "warehouse_id", "status", "role"),
    )

    warehouse = relationship("Warehouse", back_populates="cells", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<StorageCell id={self.id} {self.row}.{self.bay:02d}.{self.position:02d} "
            f"role={self.role} status={self.status} pkgs={self.current_packages}>"
        )
