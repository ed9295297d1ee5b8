# wmsqc/services/allocation_assigner.py
"""
分配（Assign）：把已审核批次行的一部分放进一个库位。

流程（同一事务内）：
  1) 锁批次行（FOR UPDATE），校验 APPROVED
  2) 校验库位存在、同仓、状态 AVAILABLE
  3) 剩余量校验（剩余 = 批次总量 - 已有分配之和）+ 比例校验
  4) 归一包装形态 → (condition, status_code)
  5) 写 Allocation（CUARENTENA）+ InventoryRecord（QUARANTINED）
  6) 库位聚合原子 +delta，状态置 OCCUPIED
  7) 台账 ENTRY + 审计 ALLOCATION_CREATED（尽力而为）
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional

from wmsqc.domain.ports import UnitOfWork
from wmsqc.domain.presentation import normalize
from wmsqc.domain.ratios import Slice, check_assign_ratios, check_remaining
from wmsqc.domain.records import (
    Allocation,
    AuditRecord,
    InventoryRecord,
    MovementLogEntry,
    StorageCell,
    Totals,
    snapshot,
    utc_now,
)
from wmsqc.errors import BizError, NotFoundError, StateError, ValidationError
from wmsqc.metrics import record_assigned, record_failure
from wmsqc.models.enums import (
    AuditAction,
    CellStatus,
    InventoryStatus,
    MovementKind,
    Presentation,
    QualityStatus,
    ReviewState,
)
from wmsqc.schemas.commands import AssignCommand, parse_command
from wmsqc.services.cell_ledger import CellOccupancyLedger
from wmsqc.services.event_emitter import EventEmitter

logger = logging.getLogger("wmsqc.assign")

ALLOCATION_FIELDS = (
    "id",
    "intake_line_id",
    "cell_id",
    "quantity",
    "packages",
    "weight",
    "volume",
    "quality_status",
    "presentation",
    "condition",
    "status_code",
)


@dataclass
class AssignResult:
    allocation: Allocation
    inventory: InventoryRecord
    cell: StorageCell


async def assign_allocation(uow: UnitOfWork, cmd: AssignCommand) -> AssignResult:
    """在调用方给定的 UoW 内执行分配；出错直接抛，由 UoW 整体回滚。"""
    lot = await uow.intake_lines.get(cmd.intake_line_id, for_update=True)
    if lot is None:
        raise NotFoundError(
            f"intake line {cmd.intake_line_id} not found",
            detail={"intake_line_id": cmd.intake_line_id},
        )
    if lot.review_state != ReviewState.APPROVED:
        raise StateError(
            f"intake line {lot.id} is {lot.review_state.value}, expected APPROVED",
            detail={"intake_line_id": lot.id, "review_state": lot.review_state.value},
        )

    cell = await uow.cells.get(cmd.cell_id)
    if cell is None:
        raise NotFoundError(f"storage cell {cmd.cell_id} not found", detail={"cell_id": cmd.cell_id})
    if cell.warehouse_id != lot.warehouse_id:
        raise ValidationError(
            f"cell {cell.reference} belongs to warehouse {cell.warehouse_id}, "
            f"intake line to {lot.warehouse_id}",
            detail={"cell_id": cell.id, "intake_line_id": lot.id},
        )
    if cell.status != CellStatus.AVAILABLE:
        raise StateError(
            f"cell {cell.reference} is {cell.status.value}, expected AVAILABLE",
            detail={"cell_id": cell.id, "status": cell.status.value},
        )

    allocated = (await uow.allocations.totals_by_line([lot.id])).get(lot.id, Totals())
    check_remaining(lot, allocated, cmd.quantity, cmd.packages, cmd.weight)
    check_assign_ratios(lot, cmd.quantity, cmd.packages, cmd.weight)

    condition, status_code = normalize(cmd.presentation, cmd.damaged)
    now = utc_now()

    alloc = await uow.allocations.add(
        Allocation(
            id=None,
            intake_line_id=lot.id,
            warehouse_id=lot.warehouse_id,
            cell_id=cell.id,
            quantity=cmd.quantity,
            packages=cmd.packages,
            weight=cmd.weight,
            volume=cmd.volume,
            quality_status=QualityStatus.CUARENTENA,
            presentation=cmd.presentation,
            condition=condition,
            status_code=status_code,
            observations=cmd.observations,
            created_by=cmd.actor,
            updated_by=cmd.actor,
            created_at=now,
            updated_at=now,
        )
    )
    inventory = await uow.inventory.add(
        InventoryRecord(
            id=None,
            allocation_id=alloc.id,
            intake_line_id=lot.id,
            warehouse_id=lot.warehouse_id,
            cell_id=cell.id,
            quantity=alloc.quantity,
            packages=alloc.packages,
            weight=alloc.weight,
            volume=alloc.volume,
            status=InventoryStatus.QUARANTINED,
            quality_status=QualityStatus.CUARENTENA,
            status_code=status_code,
            created_by=cmd.actor,
            updated_by=cmd.actor,
            created_at=now,
            updated_at=now,
        )
    )

    moved = Slice(alloc.quantity, alloc.packages, alloc.weight, alloc.volume)
    cell = await CellOccupancyLedger(uow.cells).increment(cell.id, moved)

    await EventEmitter(uow.events).emit(
        MovementLogEntry(
            actor=cmd.actor,
            kind=MovementKind.ENTRY,
            quantity_delta=moved.quantity,
            package_delta=moved.packages,
            weight_delta=moved.weight,
            volume_delta=moved.volume,
            lot_ref=lot.id,
            allocation_ref=alloc.id,
            cell_ref=cell.id,
            warehouse_ref=lot.warehouse_id,
            notes=f"{lot.product_code} -> {cell.reference}",
            occurred_at=now,
        ),
        AuditRecord(
            actor=cmd.actor,
            action=AuditAction.ALLOCATION_CREATED,
            entity_type="Allocation",
            entity_id=str(alloc.id),
            description=(
                f"allocated {alloc.quantity} of {lot.product_code} "
                f"(line {lot.id}) into {cell.reference}"
            ),
            old_values=None,
            new_values=snapshot(alloc, *ALLOCATION_FIELDS),
            metadata={
                "inventory_id": inventory.id,
                "cell_reference": cell.reference,
                "warehouse_id": lot.warehouse_id,
                "remaining_quantity": lot.quantity - allocated.quantity - alloc.quantity,
            },
            created_at=now,
        ),
    )

    logger.info(
        "allocation %s created: line=%s cell=%s qty=%s pkgs=%s weight=%s code=%s by %s",
        alloc.id,
        lot.id,
        cell.reference,
        alloc.quantity,
        alloc.packages,
        alloc.weight,
        status_code,
        cmd.actor,
    )
    return AssignResult(allocation=alloc, inventory=inventory, cell=cell)


class AllocationAssigner:
    """
    对外入口：每次调用一个独立 UoW（全部成功才提交）。

        assigner = AllocationAssigner(uow_factory)
        res = await assigner.assign(intake_line_id=1, cell_id=3, quantity=40, ...)
    """

    def __init__(self, uow_factory: Callable[[], Any]):
        self._uow_factory = uow_factory

    async def assign(
        self,
        *,
        intake_line_id: int,
        cell_id: int,
        quantity: int,
        packages: int,
        weight: Decimal,
        volume: Decimal = Decimal("0"),
        presentation: Presentation | str = Presentation.OTHER,
        damaged: bool = False,
        actor: str,
        observations: Optional[str] = None,
    ) -> AssignResult:
        try:
            cmd = parse_command(
                AssignCommand,
                intake_line_id=intake_line_id,
                cell_id=cell_id,
                quantity=quantity,
                packages=packages,
                weight=weight,
                volume=volume,
                presentation=presentation,
                damaged=damaged,
                observations=observations,
                actor=actor,
            )
            async with self._uow_factory() as uow:
                result = await assign_allocation(uow, cmd)
        except BizError as e:
            record_failure("assign", e.code)
            logger.info("assign rejected: line=%s cell=%s %s: %s", intake_line_id, cell_id, e.code, e)
            raise

        record_assigned(result.allocation.presentation.value)
        return result
