# wmsqc/services/quality_transition.py
"""
质检流转（Transition）：把隔离区（CUARENTENA）的一部分移到目标质检状态。

目标状态 → 允许的库位角色：
  APROBADO        STANDARD（不传目标库位时沿用原库位）
  DEVOLUCIONES    RETURNS          （必须指定目标库位）
  CONTRAMUESTRAS  SAMPLES          （必须指定目标库位）
  RECHAZADOS      REJECTED / DAMAGED（必须指定目标库位）

语义要点：
  - 分配行被“改写”为移动的那一部分（数量 / 状态 / 库位），不拆新行
  - 源库位 -delta、目标库位 +delta（同库位净变化为 0）
  - 不幂等：每次成功调用都追加一条流转记录并再次扣减源库位
  - 分配行带 version 乐观锁，并发改写抛 ConflictError
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from wmsqc.domain.ports import UnitOfWork
from wmsqc.domain.ratios import check_transition_ratios, derive_slice
from wmsqc.domain.records import (
    Allocation,
    AuditRecord,
    InventoryRecord,
    MovementLogEntry,
    QualityTransition,
    StorageCell,
    snapshot,
    utc_now,
)
from wmsqc.errors import BizError, NotFoundError, StateError, ValidationError
from wmsqc.metrics import record_failure, record_transition
from wmsqc.models.enums import (
    ALLOWED_CELL_ROLES,
    DESTINATION_REQUIRED,
    INVENTORY_STATUS_FOR,
    TRANSITION_TARGETS,
    AuditAction,
    MovementKind,
    QualityStatus,
)
from wmsqc.schemas.commands import TransitionCommand, parse_command
from wmsqc.services.cell_ledger import CellOccupancyLedger
from wmsqc.services.event_emitter import EventEmitter

logger = logging.getLogger("wmsqc.transition")

SNAPSHOT_FIELDS = (
    "quantity",
    "packages",
    "weight",
    "volume",
    "quality_status",
    "cell_id",
    "version",
)


@dataclass
class TransitionResult:
    transition: QualityTransition
    allocation: Allocation
    inventory: InventoryRecord
    cells: Dict[int, StorageCell] = field(default_factory=dict)

    @property
    def cell_changed(self) -> bool:
        return self.transition.cell_changed


async def _load_cell(uow: UnitOfWork, cell_id: int) -> StorageCell:
    cell = await uow.cells.get(cell_id)
    if cell is None:
        raise NotFoundError(f"storage cell {cell_id} not found", detail={"cell_id": cell_id})
    return cell


async def _resolve_destination(
    uow: UnitOfWork, cmd: TransitionCommand, source: StorageCell
) -> StorageCell:
    target = cmd.to_status
    if cmd.destination_cell_id is None:
        if target in DESTINATION_REQUIRED:
            raise ValidationError(
                f"destination cell is required for {target.value}",
                detail={"to_status": target.value},
            )
        dest = source
    elif cmd.destination_cell_id == source.id:
        dest = source
    else:
        dest = await _load_cell(uow, cmd.destination_cell_id)

    allowed = ALLOWED_CELL_ROLES[target]
    if dest.role not in allowed:
        raise ValidationError(
            f"cell {dest.reference} has role {dest.role.value}, "
            f"{target.value} requires {'/'.join(sorted(r.value for r in allowed))}",
            detail={
                "cell_id": dest.id,
                "role": dest.role.value,
                "allowed_roles": sorted(r.value for r in allowed),
            },
        )
    if dest.warehouse_id != source.warehouse_id:
        raise ValidationError(
            f"cell {dest.reference} is in warehouse {dest.warehouse_id}, "
            f"source cell in {source.warehouse_id}",
            detail={"cell_id": dest.id, "source_cell_id": source.id},
        )
    return dest


async def apply_transition(uow: UnitOfWork, cmd: TransitionCommand) -> TransitionResult:
    alloc = await uow.allocations.get(cmd.allocation_id, for_update=True)
    if alloc is None:
        raise NotFoundError(
            f"allocation {cmd.allocation_id} not found",
            detail={"allocation_id": cmd.allocation_id},
        )
    if alloc.quality_status != QualityStatus.CUARENTENA:
        raise StateError(
            f"allocation {alloc.id} is {alloc.quality_status.value}, "
            "only CUARENTENA can be transitioned",
            detail={"allocation_id": alloc.id, "quality_status": alloc.quality_status.value},
        )
    target = cmd.to_status
    if target not in TRANSITION_TARGETS:
        raise ValidationError(
            f"{target.value} is not a valid transition target",
            detail={"to_status": target.value},
        )

    source = await _load_cell(uow, alloc.cell_id)
    inventory = await uow.inventory.get_by_allocation(alloc.id)
    if inventory is None:
        raise NotFoundError(
            f"inventory record for allocation {alloc.id} not found",
            detail={"allocation_id": alloc.id},
        )
    dest = await _resolve_destination(uow, cmd, source)

    if cmd.quantity > alloc.quantity:
        raise ValidationError(
            f"quantity {cmd.quantity} exceeds allocation quantity {alloc.quantity}",
            detail={"allocation_id": alloc.id, "available": alloc.quantity},
        )
    moved = derive_slice(alloc, cmd.quantity, cmd.packages, cmd.weight, cmd.volume)
    check_transition_ratios(alloc, moved)

    now = utc_now()
    ledger = CellOccupancyLedger(uow.cells)
    cells: Dict[int, StorageCell] = {}
    cells[source.id] = await ledger.decrement(source.id, moved)
    cells[dest.id] = await ledger.increment(dest.id, moved)

    transition = await uow.transitions.add(
        QualityTransition(
            id=None,
            allocation_id=alloc.id,
            inventory_id=inventory.id,
            from_status=alloc.quality_status,
            to_status=target,
            quantity=moved.quantity,
            packages=moved.packages,
            weight=moved.weight,
            volume=moved.volume,
            from_cell_id=source.id,
            to_cell_id=dest.id,
            reason=cmd.reason,
            notes=cmd.notes,
            actor=cmd.actor,
            created_at=now,
        )
    )

    before = snapshot(alloc, *SNAPSHOT_FIELDS)
    updated = await uow.allocations.save(
        replace(
            alloc,
            quantity=moved.quantity,
            packages=moved.packages,
            weight=moved.weight,
            volume=moved.volume,
            quality_status=target,
            cell_id=dest.id,
            updated_by=cmd.actor,
            updated_at=now,
        ),
        expected_version=alloc.version,
    )
    inventory = await uow.inventory.save(
        replace(
            inventory,
            quantity=moved.quantity,
            packages=moved.packages,
            weight=moved.weight,
            volume=moved.volume,
            status=INVENTORY_STATUS_FOR[target],
            quality_status=target,
            cell_id=dest.id,
            updated_by=cmd.actor,
            updated_at=now,
        )
    )

    cell_changed = dest.id != source.id
    await EventEmitter(uow.events).emit(
        MovementLogEntry(
            actor=cmd.actor,
            kind=MovementKind.TRANSFER if cell_changed else MovementKind.ADJUSTMENT,
            quantity_delta=moved.quantity,
            package_delta=moved.packages,
            weight_delta=moved.weight,
            volume_delta=moved.volume,
            lot_ref=alloc.intake_line_id,
            allocation_ref=alloc.id,
            cell_ref=dest.id,
            warehouse_ref=alloc.warehouse_id,
            notes=f"{source.reference} -> {dest.reference}: {cmd.reason}",
            occurred_at=now,
        ),
        AuditRecord(
            actor=cmd.actor,
            action=AuditAction.QUALITY_TRANSITION,
            entity_type="Allocation",
            entity_id=str(alloc.id),
            description=(
                f"{alloc.quality_status.value} -> {target.value}: {moved.quantity} units "
                f"{source.reference} -> {dest.reference}"
            ),
            old_values=before,
            new_values=snapshot(updated, *SNAPSHOT_FIELDS),
            metadata={
                "transition_id": transition.id,
                "inventory_id": inventory.id,
                "reason": cmd.reason,
                "from_cell": source.reference,
                "to_cell": dest.reference,
                "remaining_in_quarantine": alloc.quantity - moved.quantity,
            },
            created_at=now,
        ),
    )

    logger.info(
        "allocation %s %s -> %s: qty=%s pkgs=%s weight=%s %s -> %s by %s",
        alloc.id,
        alloc.quality_status.value,
        target.value,
        moved.quantity,
        moved.packages,
        moved.weight,
        source.reference,
        dest.reference,
        cmd.actor,
    )
    return TransitionResult(transition=transition, allocation=updated, inventory=inventory, cells=cells)


class QualityTransitionEngine:
    def __init__(self, uow_factory: Callable[[], Any]):
        self._uow_factory = uow_factory

    async def transition(
        self,
        *,
        allocation_id: int,
        to_status: QualityStatus | str,
        quantity: int,
        reason: str,
        actor: str,
        packages: Optional[int] = None,
        weight: Optional[Decimal] = None,
        volume: Optional[Decimal] = None,
        destination_cell_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        try:
            cmd = parse_command(
                TransitionCommand,
                allocation_id=allocation_id,
                to_status=to_status,
                quantity=quantity,
                packages=packages,
                weight=weight,
                volume=volume,
                reason=reason,
                notes=notes,
                actor=actor,
                destination_cell_id=destination_cell_id,
            )
            async with self._uow_factory() as uow:
                result = await apply_transition(uow, cmd)
        except BizError as e:
            record_failure("transition", e.code)
            logger.info("transition rejected: alloc=%s %s: %s", allocation_id, e.code, e)
            raise

        record_transition(result.transition.to_status.value, result.cell_changed)
        return result
