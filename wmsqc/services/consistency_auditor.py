# wmsqc/services/consistency_auditor.py
"""
一致性体检：批次总量 / 分配 / 在库记录 / 库位聚合 四本账对账。

| check                        | severity | auto-fix |
|------------------------------|----------|----------|
| LOT_OVER_ALLOCATED           | HIGH     | 否       |
| INVENTORY_EXCEEDS_ALLOCATION | MEDIUM   | 否       |
| CELL_AGGREGATE_DRIFT         | LOW      | 是（仅 auto_fix=True）|
| ORPHAN_INVENTORY             | MEDIUM   | 否       |
| CELL_OVER_CAPACITY           | LOW      | 否       |

- 全部按主键 keyset 分页扫描，每页一个独立 UoW（短事务、内存有界）
- 修复只针对库位聚合，走与分配 / 流转相同的原子 +delta，不做覆盖写
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from wmsqc.core.config import get_settings
from wmsqc.domain.ratios import WEIGHT_EPSILON
from wmsqc.domain.records import (
    AuditRecord,
    MovementLogEntry,
    StorageCell,
    Totals,
    jsonable,
    utc_now,
)
from wmsqc.metrics import record_fix, record_issue
from wmsqc.models.enums import AuditAction, MovementKind, Severity
from wmsqc.services.cell_ledger import CellOccupancyLedger
from wmsqc.services.event_emitter import EventEmitter

logger = logging.getLogger("wmsqc.consistency")

LOT_OVER_ALLOCATED = "LOT_OVER_ALLOCATED"
INVENTORY_EXCEEDS_ALLOCATION = "INVENTORY_EXCEEDS_ALLOCATION"
CELL_AGGREGATE_DRIFT = "CELL_AGGREGATE_DRIFT"
ORPHAN_INVENTORY = "ORPHAN_INVENTORY"
CELL_OVER_CAPACITY = "CELL_OVER_CAPACITY"

# 库位聚合允许的漂移
PACKAGE_DRIFT_TOLERANCE = 1
WEIGHT_DRIFT_TOLERANCE = Decimal("0.1")


@dataclass
class AuditIssue:
    check: str
    severity: Severity
    entity_type: str
    entity_id: Optional[int]
    message: str
    expected: Dict[str, Any] = field(default_factory=dict)
    actual: Dict[str, Any] = field(default_factory=dict)
    fixable: bool = False


@dataclass
class AuditFix:
    cell_id: int
    cell_reference: str
    old: Dict[str, Any]
    new: Dict[str, Any]
    applied_at: datetime = field(default_factory=utc_now)


@dataclass
class ConsistencyReport:
    warehouse_id: Optional[int]
    auto_fix: bool
    issues: List[AuditIssue] = field(default_factory=list)
    fixes: List[AuditFix] = field(default_factory=list)
    scanned: Dict[str, int] = field(
        default_factory=lambda: {"intake_lines": 0, "allocations": 0, "cells": 0}
    )
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return not self.issues

    def by_severity(self) -> Dict[str, int]:
        out = {s.value: 0 for s in Severity}
        for issue in self.issues:
            out[issue.severity.value] += 1
        return out

    def issues_for(self, check: str) -> List[AuditIssue]:
        return [i for i in self.issues if i.check == check]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warehouse_id": self.warehouse_id,
            "auto_fix": self.auto_fix,
            "ok": self.ok,
            "summary": self.by_severity(),
            "scanned": dict(self.scanned),
            "issues": jsonable(self.issues),
            "fixes": jsonable(self.fixes),
            "started_at": jsonable(self.started_at),
            "finished_at": jsonable(self.finished_at),
        }


def _totals_dict(t: Totals) -> Dict[str, Any]:
    return {"quantity": t.quantity, "packages": t.packages, "weight": t.weight}


class ConsistencyAuditor:
    """
    用法：

        auditor = ConsistencyAuditor(uow_factory)
        report = await auditor.audit(warehouse_id=1, auto_fix=True)

    只有 LOW 级库位聚合漂移会在 auto_fix=True 时被修正；
    HIGH / MEDIUM 只报告，留给人工处理。
    """

    def __init__(
        self,
        uow_factory: Callable[[], Any],
        *,
        batch_size: Optional[int] = None,
        actor: Optional[str] = None,
    ):
        settings = get_settings()
        self._uow_factory = uow_factory
        self.batch_size = int(batch_size or settings.AUDIT_BATCH_SIZE)
        self.actor = actor or settings.AUDIT_ACTOR

    def _add(self, report: ConsistencyReport, issue: AuditIssue) -> None:
        report.issues.append(issue)
        record_issue(issue.check, issue.severity.value)
        logger.warning(
            "[%s] %s %s:%s %s",
            issue.severity.value,
            issue.check,
            issue.entity_type,
            issue.entity_id,
            issue.message,
        )

    async def audit(self, *, warehouse_id: Optional[int] = None, auto_fix: bool = False) -> ConsistencyReport:
        report = ConsistencyReport(warehouse_id=warehouse_id, auto_fix=auto_fix)
        await self._check_lots(report, warehouse_id)
        await self._check_inventory(report, warehouse_id)
        await self._check_cells(report, warehouse_id, auto_fix)
        await self._check_orphans(report, warehouse_id)
        report.finished_at = utc_now()

        logger.info(
            "consistency audit done: warehouse=%s scanned=%s issues=%s fixes=%d",
            warehouse_id if warehouse_id is not None else "*",
            report.scanned,
            report.by_severity(),
            len(report.fixes),
        )
        return report

    # ------------------------ HIGH：批次超分配 ------------------------

    async def _check_lots(self, report: ConsistencyReport, warehouse_id: Optional[int]) -> None:
        after_id = 0
        while True:
            async with self._uow_factory() as uow:
                lines = await uow.intake_lines.page(
                    after_id=after_id, limit=self.batch_size, warehouse_id=warehouse_id
                )
                if not lines:
                    break
                totals = await uow.allocations.totals_by_line([ln.id for ln in lines])

            for line in lines:
                allocated = totals.get(line.id)
                if allocated is None:
                    continue
                if (
                    allocated.quantity > line.quantity
                    or allocated.packages > line.packages
                    or allocated.weight > line.weight + WEIGHT_EPSILON
                ):
                    self._add(
                        report,
                        AuditIssue(
                            check=LOT_OVER_ALLOCATED,
                            severity=Severity.HIGH,
                            entity_type="IntakeLine",
                            entity_id=line.id,
                            message=(
                                f"allocated {allocated.quantity}/{allocated.packages}/{allocated.weight} "
                                f"exceeds lot totals {line.quantity}/{line.packages}/{line.weight}"
                            ),
                            expected=_totals_dict(line.totals),
                            actual=_totals_dict(allocated),
                        ),
                    )
            report.scanned["intake_lines"] += len(lines)
            after_id = lines[-1].id

    # ------------------------ MEDIUM：在库记录超过分配 ------------------------

    async def _check_inventory(self, report: ConsistencyReport, warehouse_id: Optional[int]) -> None:
        after_id = 0
        while True:
            async with self._uow_factory() as uow:
                allocs = await uow.allocations.page(
                    after_id=after_id, limit=self.batch_size, warehouse_id=warehouse_id
                )
                if not allocs:
                    break
                records = await uow.inventory.list_by_allocations([a.id for a in allocs])

            by_id = {a.id: a for a in allocs}
            for inv in records:
                alloc = by_id.get(inv.allocation_id)
                if alloc is None:
                    continue
                if (
                    inv.quantity > alloc.quantity
                    or inv.packages > alloc.packages
                    or inv.weight > alloc.weight + WEIGHT_EPSILON
                ):
                    self._add(
                        report,
                        AuditIssue(
                            check=INVENTORY_EXCEEDS_ALLOCATION,
                            severity=Severity.MEDIUM,
                            entity_type="InventoryRecord",
                            entity_id=inv.id,
                            message=(
                                f"inventory {inv.quantity}/{inv.packages}/{inv.weight} exceeds "
                                f"allocation {alloc.id} {alloc.quantity}/{alloc.packages}/{alloc.weight}"
                            ),
                            expected={
                                "allocation_id": alloc.id,
                                "quantity": alloc.quantity,
                                "packages": alloc.packages,
                                "weight": alloc.weight,
                            },
                            actual={"quantity": inv.quantity, "packages": inv.packages, "weight": inv.weight},
                        ),
                    )
            report.scanned["allocations"] += len(allocs)
            after_id = allocs[-1].id

    # ------------------------ LOW：库位聚合漂移（可修） ------------------------

    async def _check_cells(
        self, report: ConsistencyReport, warehouse_id: Optional[int], auto_fix: bool
    ) -> None:
        after_id = 0
        while True:
            async with self._uow_factory() as uow:
                cells = await uow.cells.page(
                    after_id=after_id, limit=self.batch_size, warehouse_id=warehouse_id
                )
                if not cells:
                    break
                sums = await uow.inventory.totals_by_cell([c.id for c in cells])
                ledger = CellOccupancyLedger(uow.cells)
                emitter = EventEmitter(uow.events)

                for cell in cells:
                    actual = sums.get(cell.id, Totals())
                    pkg_diff = actual.packages - cell.current_packages
                    weight_diff = actual.weight - cell.current_weight

                    if abs(pkg_diff) > PACKAGE_DRIFT_TOLERANCE or abs(weight_diff) > WEIGHT_DRIFT_TOLERANCE:
                        self._add(
                            report,
                            AuditIssue(
                                check=CELL_AGGREGATE_DRIFT,
                                severity=Severity.LOW,
                                entity_type="StorageCell",
                                entity_id=cell.id,
                                message=(
                                    f"cell {cell.reference} aggregate {cell.current_packages} pkgs / "
                                    f"{cell.current_weight} kg, inventory sum {actual.packages} pkgs / "
                                    f"{actual.weight} kg"
                                ),
                                expected={"packages": actual.packages, "weight": actual.weight},
                                actual={"packages": cell.current_packages, "weight": cell.current_weight},
                                fixable=True,
                            ),
                        )
                        if auto_fix:
                            await self._repair_cell(report, ledger, emitter, cell, pkg_diff, weight_diff)

                    if cell.capacity is not None and cell.current_volume > cell.capacity:
                        self._add(
                            report,
                            AuditIssue(
                                check=CELL_OVER_CAPACITY,
                                severity=Severity.LOW,
                                entity_type="StorageCell",
                                entity_id=cell.id,
                                message=(
                                    f"cell {cell.reference} volume {cell.current_volume} "
                                    f"exceeds capacity {cell.capacity}"
                                ),
                                expected={"capacity": cell.capacity},
                                actual={"volume": cell.current_volume},
                            ),
                        )

            report.scanned["cells"] += len(cells)
            after_id = cells[-1].id

    async def _repair_cell(
        self,
        report: ConsistencyReport,
        ledger: CellOccupancyLedger,
        emitter: EventEmitter,
        cell: StorageCell,
        pkg_diff: int,
        weight_diff: Decimal,
    ) -> None:
        # 以差值做原子增量；与并发的分配 / 流转不会互相覆盖
        fixed = await ledger.adjust(cell.id, packages=pkg_diff, weight=weight_diff)
        old = {"packages": cell.current_packages, "weight": cell.current_weight}
        new = {"packages": fixed.current_packages, "weight": fixed.current_weight}
        report.fixes.append(AuditFix(cell_id=cell.id, cell_reference=cell.reference, old=old, new=new))
        record_fix()

        await emitter.emit(
            MovementLogEntry(
                actor=self.actor,
                kind=MovementKind.ADJUSTMENT,
                package_delta=pkg_diff,
                weight_delta=weight_diff,
                cell_ref=cell.id,
                warehouse_ref=cell.warehouse_id,
                notes=f"consistency repair {cell.reference}",
            ),
            AuditRecord(
                actor=self.actor,
                action=AuditAction.CELL_AGGREGATE_REPAIRED,
                entity_type="StorageCell",
                entity_id=str(cell.id),
                description=(
                    f"cell {cell.reference} aggregate {old['packages']} -> {new['packages']} pkgs, "
                    f"{old['weight']} -> {new['weight']} kg"
                ),
                old_values=old,
                new_values=new,
                metadata={"check": CELL_AGGREGATE_DRIFT, "cell_reference": cell.reference},
            ),
        )
        logger.info("cell %s repaired: %s -> %s", cell.reference, old, new)

    # ------------------------ MEDIUM：孤儿在库记录 ------------------------

    async def _check_orphans(self, report: ConsistencyReport, warehouse_id: Optional[int]) -> None:
        async with self._uow_factory() as uow:
            orphans = await uow.inventory.count_orphans(warehouse_id=warehouse_id)
        if orphans > 0:
            self._add(
                report,
                AuditIssue(
                    check=ORPHAN_INVENTORY,
                    severity=Severity.MEDIUM,
                    entity_type="InventoryRecord",
                    entity_id=None,
                    message=f"{orphans} inventory records have no owning allocation",
                    expected={"count": 0},
                    actual={"count": orphans},
                ),
            )
