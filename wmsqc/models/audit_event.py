# wmsqc/models/audit_event.py
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from wmsqc.db.base import Base

# PG 下用 JSONB，其它后端退回通用 JSON
JsonPayload = sa.JSON().with_variant(JSONB(), "postgresql")


class AuditEvent(Base):
    """
    审计事件表 audit_events：

      - actor / action / entity_type / entity_id / description
      - old_values / new_values：变更前后快照
      - metadata：附加上下文（列名 metadata，属性名 meta）
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(
        sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    actor: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    action: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)

    old_values: Mapped[dict | None] = mapped_column(JsonPayload, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JsonPayload, nullable=True)
    meta: Mapped[dict | None] = mapped_column("metadata", JsonPayload, nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        sa.Index("ix_audit_events_action_time", "action", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent id={self.id} action={self.action} "
            f"{self.entity_type}:{self.entity_id} actor={self.actor}>"
        )
