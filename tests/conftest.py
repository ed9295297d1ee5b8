# tests/conftest.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tests.fakes import FakeStore, fake_uow_factory
from wmsqc.db.base import Base, init_models
from wmsqc.db.engine import create_async_engine_safe
from wmsqc.db.session import make_session_factory
from wmsqc.db.uow import uow_factory
from wmsqc.models import IntakeLine, StorageCell, Warehouse
from wmsqc.models.enums import CellRole, CellStatus, ReviewState


# =========================================
# 内存 fake（服务层单元测试）
# =========================================
@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def uow_factory_fake(store: FakeStore):
    return fake_uow_factory(store)


# =========================================
# SQLite（aiosqlite）文件库：每用例一个
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    engine = create_async_engine_safe(f"sqlite+aiosqlite:///{tmp_path}/wmsqc.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(async_engine)


@pytest.fixture
def sql_uow_factory(session_factory):
    return uow_factory(session_factory)


class Seeder:
    """直接用 ORM 写最小种子数据"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sf = session_factory

    async def warehouse(self, name: str = "WH-1") -> int:
        async with self._sf() as s:
            wh = Warehouse(name=name)
            s.add(wh)
            await s.commit()
            return wh.id

    async def cell(
        self,
        warehouse_id: int,
        *,
        row: str = "A",
        bay: int = 1,
        position: int = 1,
        role: CellRole = CellRole.STANDARD,
        status: CellStatus = CellStatus.AVAILABLE,
        capacity: Optional[str] = None,
        packages: int = 0,
        weight: str = "0",
    ) -> int:
        async with self._sf() as s:
            cell = StorageCell(
                warehouse_id=warehouse_id,
                row=row,
                bay=bay,
                position=position,
                role=role.value,
                status=status.value,
                capacity=Decimal(capacity) if capacity is not None else None,
                current_packages=packages,
                current_weight=Decimal(weight),
                current_volume=Decimal("0"),
            )
            s.add(cell)
            await s.commit()
            return cell.id

    async def line(
        self,
        warehouse_id: int,
        *,
        quantity: int = 100,
        packages: int = 50,
        weight: str = "500",
        volume: str = "10",
        product_code: str = "P-001",
        review_state: ReviewState = ReviewState.APPROVED,
        expiry_date: Optional[date] = None,
        entry_date: Optional[datetime] = None,
    ) -> int:
        async with self._sf() as s:
            line = IntakeLine(
                warehouse_id=warehouse_id,
                product_code=product_code,
                quantity=quantity,
                packages=packages,
                weight=Decimal(weight),
                volume=Decimal(volume),
                review_state=review_state.value,
                expiry_date=expiry_date,
                entry_date=entry_date,
            )
            s.add(line)
            await s.commit()
            return line.id


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)
