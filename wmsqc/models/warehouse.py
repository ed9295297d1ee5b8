# wmsqc/models/warehouse.py
from __future__ import annotations

from typing import List

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wmsqc.db.base import Base


class Warehouse(Base):
    """
    仓库主档（最小字段集）：
    - cells: 一对多 -> StorageCell
    """

    __tablename__ = "warehouses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    cells: Mapped[List["StorageCell"]] = relationship(
        "StorageCell",
        back_populates="warehouse",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r}>"
