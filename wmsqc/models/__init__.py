from wmsqc.models.allocation import Allocation
from wmsqc.models.audit_event import AuditEvent
from wmsqc.models.intake_line import IntakeLine
from wmsqc.models.inventory_record import InventoryRecord
from wmsqc.models.movement_log import MovementLog
from wmsqc.models.quality_transition import QualityTransition
from wmsqc.models.storage_cell import StorageCell
from wmsqc.models.warehouse import Warehouse

__all__ = [
    "Allocation",
    "AuditEvent",
    "IntakeLine",
    "InventoryRecord",
    "MovementLog",
    "QualityTransition",
    "StorageCell",
    "Warehouse",
]
