# wmsqc/db/uow.py
"""
Unit of Work（UoW）：一个事务内的全部仓储句柄。

    async with SqlAlchemyUnitOfWork(session_factory) as uow:
        line = await uow.intake_lines.get(1, for_update=True)
        ...

- 无异常 -> commit；有异常 -> rollback，异常继续向外抛
- 只关闭 UoW 自己创建的 session；外部传入的现成 AsyncSession 不负责关闭

回调风格：

    result = await run_in_uow(factory, lambda uow: svc.assign(uow, ...))
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wmsqc.repositories import (
    SqlAllocationRepo,
    SqlCellRepo,
    SqlEventSink,
    SqlIntakeLineRepo,
    SqlInventoryRepo,
    SqlTransitionRepo,
)

T = TypeVar("T")

SessionOrFactory = Union[AsyncSession, async_sessionmaker, Callable[[], AsyncSession]]


class SqlAlchemyUnitOfWork:
    def __init__(self, session_or_factory: SessionOrFactory) -> None:
        self._session_or_factory = session_or_factory
        self.session: Optional[AsyncSession] = None
        self._owns_session = False

    def _bind_repos(self, session: AsyncSession) -> None:
        self.intake_lines = SqlIntakeLineRepo(session)
        self.allocations = SqlAllocationRepo(session)
        self.inventory = SqlInventoryRepo(session)
        self.cells = SqlCellRepo(session)
        self.transitions = SqlTransitionRepo(session)
        self.events = SqlEventSink(session)

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        if isinstance(self._session_or_factory, AsyncSession):
            self.session = self._session_or_factory
            self._owns_session = False
        else:
            factory = self._session_or_factory
            if not callable(factory):
                raise TypeError("SqlAlchemyUnitOfWork 期望传入 AsyncSession 或 async_sessionmaker。")
            self.session = factory()
            self._owns_session = True

        if not isinstance(self.session, AsyncSession):
            raise TypeError("SqlAlchemyUnitOfWork 需要 AsyncSession。")

        self._bind_repos(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        session = self.session
        if session is None:
            return False
        try:
            if exc_type is not None:
                await session.rollback()
            else:
                await session.commit()
        finally:
            if self._owns_session:
                try:
                    await session.close()
                finally:
                    self.session = None
        return False

    async def commit(self) -> None:
        if self.session is not None:
            await self.session.commit()

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()


def uow_factory(session_factory: async_sessionmaker) -> Callable[[], SqlAlchemyUnitOfWork]:
    """给服务 / 体检用：每次调用返回一个新的 UoW。"""

    def _make() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return _make


async def run_in_uow(factory: Callable[[], Any], fn: Callable[[Any], Awaitable[T]]) -> T:
    """在一个 UoW 里执行回调：全部成功才提交，任何异常整体回滚。"""
    async with factory() as uow:
        return await fn(uow)
