# wmsqc/repositories/inventory.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import case, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.ratios import to_decimal
from wmsqc.domain.records import DepartureCandidate, InventoryRecord, Totals, cell_reference
from wmsqc.models.allocation import Allocation as AllocationModel
from wmsqc.models.enums import InventoryStatus, QualityStatus
from wmsqc.models.intake_line import IntakeLine as IntakeLineModel
from wmsqc.models.inventory_record import InventoryRecord as InventoryRecordModel
from wmsqc.models.storage_cell import StorageCell as StorageCellModel

_t = InventoryRecordModel.__table__
_alloc = AllocationModel.__table__
_lines = IntakeLineModel.__table__
_cells = StorageCellModel.__table__


def _to_record(row: Mapping[str, Any]) -> InventoryRecord:
    alloc_id = row["allocation_id"]
    return InventoryRecord(
        id=int(row["id"]),
        allocation_id=int(alloc_id) if alloc_id is not None else None,
        intake_line_id=int(row["intake_line_id"]),
        warehouse_id=int(row["warehouse_id"]),
        cell_id=int(row["cell_id"]),
        quantity=int(row["quantity"]),
        packages=int(row["packages"]),
        weight=to_decimal(row["weight"]),
        volume=to_decimal(row["volume"]),
        status=InventoryStatus(row["status"]),
        quality_status=QualityStatus(row["quality_status"]),
        status_code=int(row["status_code"]),
        created_by=row["created_by"],
        updated_by=row["updated_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _values(record: InventoryRecord) -> Dict[str, Any]:
    return {
        "allocation_id": record.allocation_id,
        "intake_line_id": record.intake_line_id,
        "warehouse_id": record.warehouse_id,
        "cell_id": record.cell_id,
        "quantity": record.quantity,
        "packages": record.packages,
        "weight": record.weight,
        "volume": record.volume,
        "status": record.status.value,
        "quality_status": record.quality_status.value,
        "status_code": record.status_code,
        "created_by": record.created_by,
        "updated_by": record.updated_by,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


class SqlInventoryRepo:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, record: InventoryRecord) -> InventoryRecord:
        stmt = insert(_t).values(**_values(record)).returning(*_t.c)
        row = (await self.session.execute(stmt)).mappings().one()
        return _to_record(row)

    async def get_by_allocation(self, allocation_id: int) -> Optional[InventoryRecord]:
        stmt = (
            select(_t)
            .where(_t.c.allocation_id == allocation_id)
            .order_by(_t.c.id.asc())
            .limit(1)
            .with_for_update()
        )
        row = (await self.session.execute(stmt)).mappings().first()
        return _to_record(row) if row else None

    async def save(self, record: InventoryRecord) -> InventoryRecord:
        values = _values(record)
        for k in ("created_by", "created_at"):
            values.pop(k)
        stmt = update(_t).where(_t.c.id == record.id).values(**values).returning(*_t.c)
        row = (await self.session.execute(stmt)).mappings().one()
        return _to_record(row)

    async def totals_by_cell(self, cell_ids: Iterable[int]) -> Dict[int, Totals]:
        ids = sorted({int(i) for i in cell_ids})
        if not ids:
            return {}
        stmt = (
            select(
                _t.c.cell_id,
                func.coalesce(func.sum(_t.c.quantity), 0).label("quantity"),
                func.coalesce(func.sum(_t.c.packages), 0).label("packages"),
                func.coalesce(func.sum(_t.c.weight), 0).label("weight"),
                func.coalesce(func.sum(_t.c.volume), 0).label("volume"),
            )
            .where(_t.c.cell_id.in_(ids))
            .group_by(_t.c.cell_id)
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return {
            int(r["cell_id"]): Totals(
                quantity=int(r["quantity"] or 0),
                packages=int(r["packages"] or 0),
                weight=to_decimal(r["weight"]),
                volume=to_decimal(r["volume"]),
            )
            for r in rows
        }

    async def list_by_allocations(self, allocation_ids: Iterable[int]) -> List[InventoryRecord]:
        ids = sorted({int(i) for i in allocation_ids})
        if not ids:
            return []
        stmt = select(_t).where(_t.c.allocation_id.in_(ids)).order_by(_t.c.id.asc())
        rows = (await self.session.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]

    async def count_orphans(self, *, warehouse_id: Optional[int] = None) -> int:
        # allocation_id 为空，或指向已不存在的分配
        stmt = (
            select(func.count())
            .select_from(_t.outerjoin(_alloc, _alloc.c.id == _t.c.allocation_id))
            .where(_alloc.c.id.is_(None))
        )
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        return int((await self.session.execute(stmt)).scalar_one() or 0)

    async def list_by_quality_status(
        self, status: QualityStatus, *, warehouse_id: Optional[int] = None
    ) -> List[InventoryRecord]:
        stmt = select(_t).where(_t.c.quality_status == status.value, _t.c.quantity > 0)
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        rows = (await self.session.execute(stmt.order_by(_t.c.id.asc()))).mappings().all()
        return [_to_record(r) for r in rows]

    async def list_available_for_departure(
        self, *, warehouse_id: Optional[int] = None, product_code: Optional[str] = None
    ) -> List[DepartureCandidate]:
        """APROBADO + AVAILABLE + quantity > 0，按效期先到先出（无效期的排最后）。"""
        stmt = (
            select(
                _t.c.id,
                _t.c.allocation_id,
                _t.c.intake_line_id,
                _t.c.warehouse_id,
                _t.c.cell_id,
                _t.c.quantity,
                _t.c.packages,
                _t.c.weight,
                _t.c.volume,
                _lines.c.product_code,
                _lines.c.lot_series,
                _lines.c.expiry_date,
                _lines.c.entry_date,
                _cells.c.row,
                _cells.c.bay,
                _cells.c.position,
            )
            .select_from(
                _t.join(_lines, _lines.c.id == _t.c.intake_line_id).join(
                    _cells, _cells.c.id == _t.c.cell_id
                )
            )
            .where(
                _t.c.quality_status == QualityStatus.APROBADO.value,
                _t.c.status == InventoryStatus.AVAILABLE.value,
                _t.c.quantity > 0,
            )
        )
        if warehouse_id is not None:
            stmt = stmt.where(_t.c.warehouse_id == warehouse_id)
        if product_code:
            stmt = stmt.where(_lines.c.product_code == product_code)

        stmt = stmt.order_by(
            case((_lines.c.expiry_date.is_(None), 1), else_=0),
            _lines.c.expiry_date.asc(),
            case((_lines.c.entry_date.is_(None), 1), else_=0),
            _lines.c.entry_date.asc(),
            _cells.c.row.asc(),
            _cells.c.bay.asc(),
            _cells.c.position.asc(),
            _t.c.id.asc(),
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return [
            DepartureCandidate(
                inventory_id=int(r["id"]),
                allocation_id=int(r["allocation_id"]) if r["allocation_id"] is not None else None,
                intake_line_id=int(r["intake_line_id"]),
                product_code=r["product_code"],
                lot_series=r["lot_series"],
                warehouse_id=int(r["warehouse_id"]),
                cell_id=int(r["cell_id"]),
                cell_reference=cell_reference(r["row"], r["bay"], r["position"]),
                quantity=int(r["quantity"]),
                packages=int(r["packages"]),
                weight=to_decimal(r["weight"]),
                volume=to_decimal(r["volume"]),
                expiry_date=r["expiry_date"],
                entry_date=r["entry_date"],
            )
            for r in rows
        ]
