# wmsqc/models/enums.py
from __future__ import annotations

from enum import StrEnum


class ReviewState(StrEnum):
    """入库批次行的审核状态（由上游 Intake Registry 维护，本核心只读）。"""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class QualityStatus(StrEnum):
    """
    质检状态：

    - CUARENTENA      隔离（分配后的初始状态，待检验）
    - APROBADO        合格，可出库
    - DEVOLUCIONES    退货区
    - CONTRAMUESTRAS  留样
    - RECHAZADOS      拒收 / 不合格
    """

    CUARENTENA = "CUARENTENA"
    APROBADO = "APROBADO"
    DEVOLUCIONES = "DEVOLUCIONES"
    CONTRAMUESTRAS = "CONTRAMUESTRAS"
    RECHAZADOS = "RECHAZADOS"


class CellRole(StrEnum):
    """
    库位角色：限制该库位可以放哪些质检状态的货。

    EXPIRED 目前没有任何流转会指向它（保留枚举值，不做推断）。
    """

    STANDARD = "STANDARD"
    RETURNS = "RETURNS"
    SAMPLES = "SAMPLES"
    REJECTED = "REJECTED"
    DAMAGED = "DAMAGED"
    EXPIRED = "EXPIRED"


class CellStatus(StrEnum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"


class InventoryStatus(StrEnum):
    """库存记录的作业状态（区别于 quality_status）。"""

    QUARANTINED = "QUARANTINED"
    AVAILABLE = "AVAILABLE"
    DAMAGED = "DAMAGED"
    RETURNED = "RETURNED"


class Presentation(StrEnum):
    PALLET = "PALLET"
    BOX = "BOX"
    SACK = "SACK"
    UNIT = "UNIT"
    PACKAGE = "PACKAGE"
    DRUM = "DRUM"
    BUNDLE = "BUNDLE"
    OTHER = "OTHER"


class Condition(StrEnum):
    NORMAL = "NORMAL"
    DAMAGED = "DAMAGED"


class MovementKind(StrEnum):
    """台账动作类型（落 movement_log.kind）。"""

    ENTRY = "ENTRY"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    DEPARTURE = "DEPARTURE"


class AuditAction(StrEnum):
    ALLOCATION_CREATED = "ALLOCATION_CREATED"
    QUALITY_TRANSITION = "QUALITY_TRANSITION"
    CELL_AGGREGATE_REPAIRED = "CELL_AGGREGATE_REPAIRED"


class Severity(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# 质检状态 → 允许的库位角色
ALLOWED_CELL_ROLES: dict[QualityStatus, frozenset[CellRole]] = {
    QualityStatus.APROBADO: frozenset({CellRole.STANDARD}),
    QualityStatus.DEVOLUCIONES: frozenset({CellRole.RETURNS}),
    QualityStatus.CONTRAMUESTRAS: frozenset({CellRole.SAMPLES}),
    QualityStatus.RECHAZADOS: frozenset({CellRole.REJECTED, CellRole.DAMAGED}),
}

# 可作为流转目标的状态（隔离区本身不是目标）
TRANSITION_TARGETS: frozenset[QualityStatus] = frozenset(ALLOWED_CELL_ROLES)

# 必须显式给出目标库位的状态；APROBADO 缺省沿用原库位
DESTINATION_REQUIRED: frozenset[QualityStatus] = frozenset(
    {QualityStatus.DEVOLUCIONES, QualityStatus.CONTRAMUESTRAS, QualityStatus.RECHAZADOS}
)

# 质检状态 → 库存作业状态
INVENTORY_STATUS_FOR: dict[QualityStatus, InventoryStatus] = {
    QualityStatus.CUARENTENA: InventoryStatus.QUARANTINED,
    QualityStatus.APROBADO: InventoryStatus.AVAILABLE,
    QualityStatus.RECHAZADOS: InventoryStatus.DAMAGED,
    QualityStatus.DEVOLUCIONES: InventoryStatus.RETURNED,
    QualityStatus.CONTRAMUESTRAS: InventoryStatus.RETURNED,
}


__all__ = [
    "ReviewState",
    "QualityStatus",
    "CellRole",
    "CellStatus",
    "InventoryStatus",
    "Presentation",
    "Condition",
    "MovementKind",
    "AuditAction",
    "Severity",
    "ALLOWED_CELL_ROLES",
    "TRANSITION_TARGETS",
    "DESTINATION_REQUIRED",
    "INVENTORY_STATUS_FOR",
]
