# wmsqc/services/event_emitter.py
from __future__ import annotations

import logging

from wmsqc.domain.ports import EventSink
from wmsqc.domain.records import AuditRecord, MovementLogEntry

logger = logging.getLogger("wmsqc.audit")


class EventEmitter:
    """
    审计 / 台账发送（尽力而为）：

    写入失败只记 WARNING，不抛出、不回滚主业务。
    """

    def __init__(self, sink: EventSink):
        self.sink = sink

    async def movement(self, entry: MovementLogEntry) -> bool:
        try:
            await self.sink.record_movement(entry)
            return True
        except Exception as e:
            logger.warning(
                "movement log write failed: kind=%s alloc=%s cell=%s err=%s",
                entry.kind,
                entry.allocation_ref,
                entry.cell_ref,
                e,
            )
            return False

    async def audit(self, record: AuditRecord) -> bool:
        try:
            await self.sink.record_audit(record)
            return True
        except Exception as e:
            logger.warning(
                "audit record write failed: action=%s %s:%s err=%s",
                record.action,
                record.entity_type,
                record.entity_id,
                e,
            )
            return False

    async def emit(self, entry: MovementLogEntry, record: AuditRecord) -> None:
        await self.movement(entry)
        await self.audit(record)
