# wmsqc/db/engine.py
# 统一引擎工厂：PG 下带 application_name；SQLite 打开 SAVEPOINT 支持
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe"]


def _connect_args_for(url_str: str) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - PostgreSQL(psycopg): application_name（psycopg3 不认 server_settings）
    - SQLite: 不带任何额外参数
    """
    backend = make_url(url_str).get_backend_name()
    if backend.startswith("postgresql"):
        return {"application_name": "wms-qc"}
    return {}


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    pysqlite / aiosqlite 自己管理 BEGIN，会吃掉 SAVEPOINT。
    这里关掉驱动的隐式事务，由 SQLAlchemy 显式发 BEGIN。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_async_engine_safe(url_str: str, *, echo: bool = False) -> AsyncEngine:
    """Async 引擎（'postgresql+psycopg' 或 'sqlite+aiosqlite'）。"""
    u = make_url(url_str)
    backend = u.get_backend_name()

    kwargs: dict[str, Any] = {"echo": echo}
    if backend.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    connect_args = _connect_args_for(url_str)
    if connect_args:
        kwargs["connect_args"] = connect_args

    engine = create_async_engine(url_str, **kwargs)
    if backend.startswith("sqlite"):
        _enable_sqlite_savepoints(engine)
    return engine
