# wmsqc/db/session.py
# 异步会话工厂：DSN 归一 + 懒加载 Engine
from __future__ import annotations

import re
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from wmsqc.core.config import get_settings
from wmsqc.db.engine import create_async_engine_safe


def normalize_async_dsn(url: str) -> str:
    """把常见写法统一到 psycopg3 / aiosqlite。"""
    url = url.strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite://") :]
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine_safe(
        normalize_async_dsn(settings.DATABASE_URL), echo=settings.SQL_ECHO
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return make_session_factory(get_engine())


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


async def close_engine() -> None:
    await get_engine().dispose()
