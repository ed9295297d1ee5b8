# wmsqc/db/base.py
from __future__ import annotations

import importlib
import logging

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("wmsqc.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False

_MODEL_MODULES = (
    "wmsqc.models.warehouse",
    "wmsqc.models.storage_cell",
    "wmsqc.models.intake_line",
    "wmsqc.models.allocation",
    "wmsqc.models.inventory_record",
    "wmsqc.models.quality_transition",
    "wmsqc.models.movement_log",
    "wmsqc.models.audit_event",
)


def init_models(*, force: bool = False) -> None:
    """
    集中导入模型 + 固化映射：保证 Base.metadata 上注册了全部表
    （create_all / alembic autogenerate 之前调用）。
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    for mod in _MODEL_MODULES:
        importlib.import_module(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized (%d modules)", len(_MODEL_MODULES))
