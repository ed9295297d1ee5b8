# wmsqc/domain/records.py
"""
领域记录（纯 dataclass，不绑 ORM）：

仓储端口读写的都是这些对象；SQLAlchemy 仓储与测试里的内存 fake
各自负责和存储层互转。
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from wmsqc.models.enums import (
    AuditAction,
    CellRole,
    CellStatus,
    Condition,
    InventoryStatus,
    MovementKind,
    Presentation,
    QualityStatus,
    ReviewState,
)

UTC = timezone.utc
ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(UTC)


def cell_reference(row: str, bay: int, position: int) -> str:
    """库位展示编码：A.01.02"""
    return f"{row}.{int(bay):02d}.{int(position):02d}"


@dataclass
class Totals:
    """数量四元组：件数 / 包装数 / 重量 / 体积。"""

    quantity: int = 0
    packages: int = 0
    weight: Decimal = ZERO
    volume: Decimal = ZERO

    def add(self, quantity: int, packages: int, weight: Decimal, volume: Decimal) -> "Totals":
        self.quantity += int(quantity)
        self.packages += int(packages)
        self.weight += Decimal(weight)
        self.volume += Decimal(volume)
        return self

    def minus(self, other: "Totals") -> "Totals":
        return Totals(
            quantity=self.quantity - other.quantity,
            packages=self.packages - other.packages,
            weight=self.weight - other.weight,
            volume=self.volume - other.volume,
        )


@dataclass
class IntakeLine:
    id: int
    warehouse_id: int
    product_code: str
    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal
    review_state: ReviewState
    lot_series: Optional[str] = None
    expiry_date: Optional[date] = None
    entry_date: Optional[datetime] = None

    @property
    def totals(self) -> Totals:
        return Totals(self.quantity, self.packages, self.weight, self.volume)


@dataclass
class StorageCell:
    id: int
    warehouse_id: int
    row: str
    bay: int
    position: int
    role: CellRole
    status: CellStatus
    capacity: Optional[Decimal] = None
    current_packages: int = 0
    current_weight: Decimal = ZERO
    current_volume: Decimal = ZERO

    @property
    def reference(self) -> str:
        return cell_reference(self.row, self.bay, self.position)


@dataclass
class Allocation:
    id: Optional[int]
    intake_line_id: int
    warehouse_id: int
    cell_id: int
    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal
    quality_status: QualityStatus
    presentation: Presentation
    condition: Condition
    status_code: int
    created_by: str
    created_at: datetime
    updated_at: datetime
    updated_by: Optional[str] = None
    observations: Optional[str] = None
    version: int = 1


@dataclass
class InventoryRecord:
    id: Optional[int]
    allocation_id: Optional[int]
    intake_line_id: int
    warehouse_id: int
    cell_id: int
    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal
    status: InventoryStatus
    quality_status: QualityStatus
    status_code: int
    created_by: str
    created_at: datetime
    updated_at: datetime
    updated_by: Optional[str] = None


@dataclass
class QualityTransition:
    id: Optional[int]
    allocation_id: int
    inventory_id: Optional[int]
    from_status: QualityStatus
    to_status: QualityStatus
    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal
    from_cell_id: int
    to_cell_id: int
    reason: str
    actor: str
    created_at: datetime
    notes: Optional[str] = None

    @property
    def cell_changed(self) -> bool:
        return self.from_cell_id != self.to_cell_id


@dataclass
class MovementLogEntry:
    actor: str
    kind: MovementKind
    quantity_delta: int = 0
    package_delta: int = 0
    weight_delta: Decimal = ZERO
    volume_delta: Decimal = ZERO
    lot_ref: Optional[int] = None
    allocation_ref: Optional[int] = None
    cell_ref: Optional[int] = None
    warehouse_ref: Optional[int] = None
    notes: Optional[str] = None
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass
class AuditRecord:
    actor: str
    action: AuditAction
    entity_type: str
    entity_id: str
    description: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class DepartureCandidate:
    """可出库库存（FIFO：效期早的在前）。"""

    inventory_id: int
    allocation_id: Optional[int]
    intake_line_id: int
    product_code: str
    lot_series: Optional[str]
    warehouse_id: int
    cell_id: int
    cell_reference: str
    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal
    expiry_date: Optional[date]
    entry_date: Optional[datetime]


def jsonable(value: Any) -> Any:
    """把记录 / Decimal / 枚举 / 时间转换成可以直接 json.dumps 的结构。"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [jsonable(v) for v in value]
    return str(value)


def snapshot(record: Any, *names: str) -> Dict[str, Any]:
    """取记录的部分字段做审计快照。"""
    return {n: jsonable(getattr(record, n)) for n in names}
