# alembic/env.py：同步引擎跑迁移；DSN 与应用共用 DATABASE_URL

from __future__ import annotations

import os
import re
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# 延迟加载模型（避免导入时机引发的问题）
from wmsqc.db.base import Base, init_models  # noqa: E402

# 迁移走同步驱动：aiosqlite -> pysqlite；psycopg3 同步 / 异步同一个方言
_ASYNC_DRV_RE = re.compile(r"\+aiosqlite\b|\+asyncpg\b|\+psycopg2\b", re.I)


def normalize_sync_url(url: str) -> str:
    url = url.strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if url.lower().startswith("sqlite"):
        return _ASYNC_DRV_RE.sub("", url)
    url = _ASYNC_DRV_RE.sub("+psycopg", url)
    url = re.sub(r"^postgres://", "postgresql+psycopg://", url, flags=re.I)
    if url.lower().startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def get_url() -> str:
    """
    优先级：
      1. WMSQC_MIGRATION_URL
      2. DATABASE_URL
      3. alembic.ini 里的 sqlalchemy.url
    """
    url = (
        os.getenv("WMSQC_MIGRATION_URL")
        or os.getenv("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError(
            "Alembic 无法确定数据库 URL：请设置 DATABASE_URL，或在 alembic.ini 里配置 sqlalchemy.url"
        )
    return normalize_sync_url(url)


def run_migrations_offline() -> None:
    """Offline 模式：不真实连库，只生成 SQL。"""
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Online 模式：真实连库执行迁移。"""
    init_models()
    url = get_url()
    engine = create_engine(url, poolclass=NullPool, future=True)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            render_as_batch=url.lower().startswith("sqlite"),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
