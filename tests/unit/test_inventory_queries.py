from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from wmsqc.errors import NotFoundError
from wmsqc.models.enums import CellRole, CellStatus, Presentation, QualityStatus
from wmsqc.services.allocation_assigner import AllocationAssigner
from wmsqc.services.inventory_queries import InventoryQueries
from wmsqc.services.quality_transition import QualityTransitionEngine


async def _approve(store, factory, line, cell, quantity=10, packages=5, weight="50"):
    res = await AllocationAssigner(factory).assign(
        intake_line_id=line.id,
        cell_id=cell.id,
        quantity=quantity,
        packages=packages,
        weight=Decimal(weight),
        presentation=Presentation.BOX,
        actor="u",
    )
    await QualityTransitionEngine(factory).transition(
        allocation_id=res.allocation.id,
        to_status=QualityStatus.APROBADO,
        quantity=quantity,
        reason="ok",
        actor="qc",
    )
    return res.allocation.id


@pytest.mark.asyncio
async def test_available_cells_filters_by_role_and_status(store, uow_factory_fake):
    store.add_cell(role=CellRole.STANDARD, row="B", bay=2, position=1)
    store.add_cell(role=CellRole.STANDARD, row="A", bay=1, position=2)
    store.add_cell(role=CellRole.STANDARD, status=CellStatus.OCCUPIED)
    store.add_cell(role=CellRole.RETURNS)
    q = InventoryQueries(uow_factory_fake)

    cells = await q.available_cells(1, for_status=QualityStatus.APROBADO)
    assert [c.reference for c in cells] == ["A.01.02", "B.02.01"]

    assert len(await q.available_cells(1)) == 3
    assert [c.role for c in await q.destination_cells(1, QualityStatus.DEVOLUCIONES)] == [
        CellRole.RETURNS
    ]
    assert await q.destination_cells(1, QualityStatus.CUARENTENA) == []


@pytest.mark.asyncio
async def test_lot_summary_rolls_up_by_status(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1, c2 = store.add_cell(), store.add_cell()
    assigner = AllocationAssigner(uow_factory_fake)
    await assigner.assign(
        intake_line_id=line.id, cell_id=c1.id, quantity=40, packages=20,
        weight=Decimal("200"), actor="u",
    )
    res = await assigner.assign(
        intake_line_id=line.id, cell_id=c2.id, quantity=20, packages=10,
        weight=Decimal("100"), actor="u",
    )
    await QualityTransitionEngine(uow_factory_fake).transition(
        allocation_id=res.allocation.id, to_status="APROBADO", quantity=20, reason="ok", actor="qc"
    )

    summary = await InventoryQueries(uow_factory_fake).lot_summary(line.id)

    assert summary.allocated.quantity == 60
    assert summary.remaining.quantity == 40
    assert summary.remaining.weight == Decimal("200")
    assert summary.by_status[QualityStatus.CUARENTENA].quantity == 40
    assert summary.by_status[QualityStatus.APROBADO].quantity == 20
    assert not summary.fully_allocated

    with pytest.raises(NotFoundError):
        await InventoryQueries(uow_factory_fake).lot_summary(999)


@pytest.mark.asyncio
async def test_departure_candidates_are_fifo_by_expiry(store, uow_factory_fake):
    late = store.add_line(quantity=10, packages=5, weight="50", expiry_date=date(2027, 6, 1))
    none = store.add_line(quantity=10, packages=5, weight="50", expiry_date=None)
    early = store.add_line(
        quantity=10,
        packages=5,
        weight="50",
        expiry_date=date(2027, 1, 1),
        entry_date=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )
    quarantined = store.add_line(quantity=10, packages=5, weight="50", expiry_date=date(2026, 1, 1))

    for ln in (late, none, early):
        await _approve(store, uow_factory_fake, ln, store.add_cell())
    await AllocationAssigner(uow_factory_fake).assign(
        intake_line_id=quarantined.id, cell_id=store.add_cell().id, quantity=10, packages=5,
        weight=Decimal("50"), actor="u",
    )

    out = await InventoryQueries(uow_factory_fake).available_for_departure(warehouse_id=1)

    assert [c.intake_line_id for c in out] == [early.id, late.id, none.id]
    assert all(c.quantity > 0 for c in out)


@pytest.mark.asyncio
async def test_transition_history_newest_first(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    alloc_id = await _approve(store, uow_factory_fake, line, store.add_cell())

    history = await InventoryQueries(uow_factory_fake).transition_history(alloc_id)
    assert [t.to_status for t in history] == [QualityStatus.APROBADO]

    by_status = await InventoryQueries(uow_factory_fake).inventory_by_quality_status(
        QualityStatus.APROBADO
    )
    assert [r.allocation_id for r in by_status] == [alloc_id]
