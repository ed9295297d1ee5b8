# tests/services/test_sql_flow.py
"""
SQLite（aiosqlite）端到端：仓储 + UoW + 服务全链路。
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, text, update

from wmsqc.db.uow import SqlAlchemyUnitOfWork, run_in_uow
from wmsqc.errors import ConflictError, StateError
from wmsqc.models import Allocation, AuditEvent, InventoryRecord, MovementLog, StorageCell
from wmsqc.models.enums import CellRole, CellStatus, Presentation, QualityStatus
from wmsqc.schemas.commands import AssignCommand
from wmsqc.services.allocation_assigner import AllocationAssigner, assign_allocation
from wmsqc.services.inventory_queries import InventoryQueries
from wmsqc.services.quality_transition import QualityTransitionEngine

pytestmark = pytest.mark.asyncio


async def _assign(factory, line_id, cell_id, *, quantity=40, packages=20, weight="200"):
    return await AllocationAssigner(factory).assign(
        intake_line_id=line_id,
        cell_id=cell_id,
        quantity=quantity,
        packages=packages,
        weight=Decimal(weight),
        presentation=Presentation.BOX,
        actor="receiver",
    )


async def test_assign_persists_allocation_inventory_and_events(seed, sql_uow_factory, session_factory):
    wh = await seed.warehouse()
    cell_id = await seed.cell(wh, row="A", bay=1, position=2)
    line_id = await seed.line(wh, quantity=100, packages=50, weight="500")

    res = await _assign(sql_uow_factory, line_id, cell_id)

    assert res.allocation.quality_status == QualityStatus.CUARENTENA
    assert res.allocation.version == 1
    assert res.cell.reference == "A.01.02"

    async with session_factory() as s:
        cell = await s.get(StorageCell, cell_id)
        assert cell.status == CellStatus.OCCUPIED.value
        assert cell.current_packages == 20
        assert cell.current_weight == Decimal("200.000")

        inv = (await s.execute(select(InventoryRecord))).scalars().one()
        assert inv.allocation_id == res.allocation.id
        assert inv.quality_status == QualityStatus.CUARENTENA.value

        moves = (await s.execute(select(MovementLog))).scalars().all()
        assert [m.kind for m in moves] == ["ENTRY"]
        assert moves[0].quantity_delta == 40

        audits = (await s.execute(select(AuditEvent))).scalars().all()
        assert [a.action for a in audits] == ["ALLOCATION_CREATED"]
        assert Decimal(audits[0].new_values["weight"]) == Decimal("200")


async def test_transition_moves_quantity_and_bumps_version(seed, sql_uow_factory, session_factory):
    wh = await seed.warehouse()
    c1 = await seed.cell(wh, position=1)
    rejected = await seed.cell(wh, position=2, role=CellRole.REJECTED)
    line_id = await seed.line(wh, quantity=100, packages=50, weight="500")
    res = await _assign(sql_uow_factory, line_id, c1)

    out = await QualityTransitionEngine(sql_uow_factory).transition(
        allocation_id=res.allocation.id,
        to_status=QualityStatus.RECHAZADOS,
        quantity=10,
        reason="broken seal",
        actor="inspector",
        destination_cell_id=rejected,
    )

    assert out.cell_changed
    assert out.allocation.version == 2
    assert out.allocation.quantity == 10
    assert out.allocation.cell_id == rejected

    async with session_factory() as s:
        src = await s.get(StorageCell, c1)
        dst = await s.get(StorageCell, rejected)
        assert (src.current_packages, src.current_weight) == (15, Decimal("150.000"))
        assert (dst.current_packages, dst.current_weight) == (5, Decimal("50.000"))
        assert dst.status == CellStatus.OCCUPIED.value

        kinds = (await s.execute(select(MovementLog.kind).order_by(MovementLog.id))).scalars().all()
        assert kinds == ["ENTRY", "TRANSFER"]

        audit = (
            await s.execute(select(AuditEvent).where(AuditEvent.action == "QUALITY_TRANSITION"))
        ).scalars().one()
        assert audit.meta["remaining_in_quarantine"] == 30
        assert audit.old_values["quality_status"] == "CUARENTENA"

    history = await InventoryQueries(sql_uow_factory).transition_history(res.allocation.id)
    assert [(t.from_status, t.to_status) for t in history] == [
        (QualityStatus.CUARENTENA, QualityStatus.RECHAZADOS)
    ]

    with pytest.raises(StateError):
        await QualityTransitionEngine(sql_uow_factory).transition(
            allocation_id=res.allocation.id,
            to_status="APROBADO",
            quantity=1,
            reason="again",
            actor="inspector",
        )


async def test_run_in_uow_rolls_back_everything(seed, sql_uow_factory, session_factory):
    wh = await seed.warehouse()
    cell_id = await seed.cell(wh)
    line_id = await seed.line(wh)
    cmd = AssignCommand(
        intake_line_id=line_id, cell_id=cell_id, quantity=40, packages=20,
        weight=Decimal("200"), actor="receiver",
    )

    async def _assign_then_fail(uow):
        await assign_allocation(uow, cmd)
        raise RuntimeError("downstream failed")

    with pytest.raises(RuntimeError):
        await run_in_uow(sql_uow_factory, _assign_then_fail)

    async with session_factory() as s:
        assert (await s.execute(select(Allocation))).scalars().all() == []
        assert (await s.execute(select(MovementLog))).scalars().all() == []
        cell = await s.get(StorageCell, cell_id)
        assert cell.current_packages == 0
        assert cell.status == CellStatus.AVAILABLE.value


async def test_versioned_save_detects_concurrent_write(seed, sql_uow_factory):
    wh = await seed.warehouse()
    cell_id = await seed.cell(wh)
    line_id = await seed.line(wh)
    res = await _assign(sql_uow_factory, line_id, cell_id)

    with pytest.raises(ConflictError):
        async with sql_uow_factory() as uow:
            alloc = await uow.allocations.get(res.allocation.id, for_update=True)
            await uow.session.execute(
                update(Allocation.__table__)
                .where(Allocation.__table__.c.id == alloc.id)
                .values(version=Allocation.__table__.c.version + 1)
            )
            await uow.allocations.save(alloc, expected_version=alloc.version)

    # 整个 UoW 回滚：version 保持 1
    async with sql_uow_factory() as uow:
        assert (await uow.allocations.get(res.allocation.id)).version == 1


async def test_external_session_is_left_open(seed, session_factory):
    wh = await seed.warehouse()
    cell_id = await seed.cell(wh)

    async with session_factory() as s:
        async with SqlAlchemyUnitOfWork(s) as uow:
            cell = await uow.cells.get(cell_id)
            assert cell.reference == "A.01.01"
        # UoW 只提交不关闭
        assert (await s.execute(text("SELECT 1"))).scalar_one() == 1


async def test_queries_against_database(seed, sql_uow_factory):
    wh = await seed.warehouse()
    std = await seed.cell(wh, row="B", position=1)
    std2 = await seed.cell(wh, row="B", position=2)
    await seed.cell(wh, row="A", position=1)
    await seed.cell(wh, row="A", position=2, role=CellRole.SAMPLES)
    late = await seed.line(wh, quantity=10, packages=5, weight="50", expiry_date=date(2027, 6, 1))
    early = await seed.line(wh, quantity=10, packages=5, weight="50", expiry_date=date(2027, 1, 1))
    engine = QualityTransitionEngine(sql_uow_factory)

    for line_id, cell_id in ((late, std), (early, std2)):
        res = await _assign(sql_uow_factory, line_id, cell_id, quantity=10, packages=5, weight="50")
        await engine.transition(
            allocation_id=res.allocation.id, to_status="APROBADO", quantity=10, reason="ok", actor="qc"
        )

    q = InventoryQueries(sql_uow_factory)

    refs = [c.reference for c in await q.available_cells(wh, for_status=QualityStatus.APROBADO)]
    assert refs == ["A.01.01"]
    samples = await q.destination_cells(wh, QualityStatus.CONTRAMUESTRAS)
    assert [c.role for c in samples] == [CellRole.SAMPLES]

    departures = await q.available_for_departure(warehouse_id=wh)
    assert [d.intake_line_id for d in departures] == [early, late]
    assert [d.cell_reference for d in departures] == ["B.01.02", "B.01.01"]

    summary = await q.lot_summary(early)
    assert summary.fully_allocated
    assert summary.by_status[QualityStatus.APROBADO].quantity == 10
    assert QualityStatus.CUARENTENA not in summary.by_status

    approved = await q.inventory_by_quality_status(QualityStatus.APROBADO, warehouse_id=wh)
    assert len(approved) == 2
