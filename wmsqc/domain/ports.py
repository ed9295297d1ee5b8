# -*- coding: utf-8 -*-
"""
仓储端口（Protocol）：服务层只依赖这些接口。

生产实现见 wmsqc.repositories（SQLAlchemy Core），
单元测试用内存实现（tests/fakes.py）。
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from wmsqc.domain.records import (
    Allocation,
    AuditRecord,
    DepartureCandidate,
    IntakeLine,
    InventoryRecord,
    MovementLogEntry,
    QualityTransition,
    StorageCell,
    Totals,
)
from wmsqc.models.enums import CellRole, CellStatus, QualityStatus


class IntakeLineRepo(Protocol):
    async def get(self, line_id: int, *, for_update: bool = False) -> Optional[IntakeLine]:
        ...

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[IntakeLine]:
        ...


class AllocationRepo(Protocol):
    async def get(self, allocation_id: int, *, for_update: bool = False) -> Optional[Allocation]:
        ...

    async def add(self, alloc: Allocation) -> Allocation:
        ...

    async def save(self, alloc: Allocation, *, expected_version: int) -> Allocation:
        """WHERE version = :expected；未命中抛 ConflictError，成功后 version + 1。"""
        ...

    async def totals_by_line(self, line_ids: Iterable[int]) -> Dict[int, Totals]:
        ...

    async def totals_by_line_status(self, line_id: int) -> Dict[QualityStatus, Totals]:
        ...

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[Allocation]:
        ...


class InventoryRepo(Protocol):
    async def add(self, record: InventoryRecord) -> InventoryRecord:
        ...

    async def get_by_allocation(self, allocation_id: int) -> Optional[InventoryRecord]:
        ...

    async def save(self, record: InventoryRecord) -> InventoryRecord:
        ...

    async def totals_by_cell(self, cell_ids: Iterable[int]) -> Dict[int, Totals]:
        ...

    async def list_by_allocations(self, allocation_ids: Iterable[int]) -> List[InventoryRecord]:
        ...

    async def count_orphans(self, *, warehouse_id: Optional[int] = None) -> int:
        ...

    async def list_by_quality_status(
        self, status: QualityStatus, *, warehouse_id: Optional[int] = None
    ) -> List[InventoryRecord]:
        ...

    async def list_available_for_departure(
        self, *, warehouse_id: Optional[int] = None, product_code: Optional[str] = None
    ) -> List[DepartureCandidate]:
        ...


class CellRepo(Protocol):
    async def get(self, cell_id: int) -> Optional[StorageCell]:
        ...

    async def apply_delta(
        self,
        cell_id: int,
        *,
        packages: int,
        weight: Decimal,
        volume: Decimal,
        occupy: bool = False,
    ) -> Optional[StorageCell]:
        """原子增减（SET x = x + :delta），返回更新后的库位；不存在返回 None。"""
        ...

    async def page(
        self, *, after_id: int, limit: int, warehouse_id: Optional[int] = None
    ) -> List[StorageCell]:
        ...

    async def list_for_roles(
        self,
        warehouse_id: int,
        roles: Optional[Sequence[CellRole]] = None,
        *,
        status: Optional[CellStatus] = None,
    ) -> List[StorageCell]:
        ...


class TransitionRepo(Protocol):
    async def add(self, transition: QualityTransition) -> QualityTransition:
        ...

    async def list_by_allocation(self, allocation_id: int) -> List[QualityTransition]:
        ...


class EventSink(Protocol):
    async def record_audit(self, record: AuditRecord) -> None:
        ...

    async def record_movement(self, entry: MovementLogEntry) -> None:
        ...


class UnitOfWork(Protocol):
    """
    一次事务内可见的全部仓储句柄。

        async with uow_factory() as uow:
            ...   # 正常退出 commit，异常 rollback
    """

    intake_lines: IntakeLineRepo
    allocations: AllocationRepo
    inventory: InventoryRepo
    cells: CellRepo
    transitions: TransitionRepo
    events: EventSink

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        ...
