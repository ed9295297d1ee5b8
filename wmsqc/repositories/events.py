# wmsqc/repositories/events.py
from __future__ import annotations

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from wmsqc.domain.records import AuditRecord, MovementLogEntry, jsonable
from wmsqc.models.audit_event import AuditEvent
from wmsqc.models.movement_log import MovementLog

_audit = AuditEvent.__table__
_moves = MovementLog.__table__


class SqlEventSink:
    """
    审计 / 台账写入器：

    - 每次写入包在 SAVEPOINT 里：写失败只回滚这一条，
      外层业务事务不受影响（是否吞掉异常由 EventEmitter 决定）。
    - payload 先经 jsonable() 转成纯 JSON 结构（Decimal → str）。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_audit(self, record: AuditRecord) -> None:
        async with self.session.begin_nested():
            await self.session.execute(
                insert(_audit).values(
                    actor=record.actor,
                    action=record.action.value,
                    entity_type=record.entity_type,
                    entity_id=str(record.entity_id),
                    description=record.description,
                    old_values=jsonable(record.old_values),
                    new_values=jsonable(record.new_values),
                    metadata=jsonable(record.metadata),
                    created_at=record.created_at,
                )
            )

    async def record_movement(self, entry: MovementLogEntry) -> None:
        async with self.session.begin_nested():
            await self.session.execute(
                insert(_moves).values(
                    actor=entry.actor,
                    kind=entry.kind.value,
                    quantity_delta=entry.quantity_delta,
                    package_delta=entry.package_delta,
                    weight_delta=entry.weight_delta,
                    volume_delta=entry.volume_delta,
                    intake_line_id=entry.lot_ref,
                    allocation_id=entry.allocation_ref,
                    cell_id=entry.cell_ref,
                    warehouse_id=entry.warehouse_ref,
                    notes=entry.notes,
                    occurred_at=entry.occurred_at,
                )
            )
