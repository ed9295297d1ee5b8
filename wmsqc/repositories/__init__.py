from wmsqc.repositories.allocations import SqlAllocationRepo
from wmsqc.repositories.cells import SqlCellRepo
from wmsqc.repositories.events import SqlEventSink
from wmsqc.repositories.intake_lines import SqlIntakeLineRepo
from wmsqc.repositories.inventory import SqlInventoryRepo
from wmsqc.repositories.transitions import SqlTransitionRepo

__all__ = [
    "SqlAllocationRepo",
    "SqlCellRepo",
    "SqlEventSink",
    "SqlIntakeLineRepo",
    "SqlInventoryRepo",
    "SqlTransitionRepo",
]
