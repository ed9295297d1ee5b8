from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from wmsqc.errors import NotFoundError, StateError, ValidationError
from wmsqc.models.enums import (
    AuditAction,
    CellStatus,
    Condition,
    InventoryStatus,
    MovementKind,
    Presentation,
    QualityStatus,
    ReviewState,
)
from wmsqc.services.allocation_assigner import AllocationAssigner


def _assign_kwargs(line_id, cell_id, **over):
    kw = dict(
        intake_line_id=line_id,
        cell_id=cell_id,
        quantity=40,
        packages=20,
        weight=Decimal("200"),
        volume=Decimal("4"),
        presentation=Presentation.PALLET,
        damaged=False,
        actor="user:ana",
    )
    kw.update(over)
    return kw


@pytest.mark.asyncio
async def test_assign_places_quarantined_allocation_and_increments_cell(store, uow_factory_fake):
    """
    批次 100 / 50 / 500，分 40 / 20 / 200 到 STANDARD 可用库位 C1。
    """
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()

    res = await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))

    assert res.allocation.quality_status == QualityStatus.CUARENTENA
    assert res.allocation.status_code == 30
    assert res.allocation.condition == Condition.NORMAL
    assert res.inventory.status == InventoryStatus.QUARANTINED
    assert res.inventory.allocation_id == res.allocation.id

    cell = store.cell(c1.id)
    assert cell.current_packages == 20
    assert cell.current_weight == Decimal("200")
    assert cell.current_volume == Decimal("4")
    assert cell.status == CellStatus.OCCUPIED
    assert store.commits == 1


@pytest.mark.asyncio
async def test_assign_rejects_packages_out_of_ratio(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()

    with pytest.raises(ValidationError):
        await AllocationAssigner(uow_factory_fake).assign(
            **_assign_kwargs(line.id, c1.id, quantity=70, packages=5, weight=Decimal("350"))
        )

    assert store.allocations == {}
    assert store.cell(c1.id).current_packages == 0
    assert store.cell(c1.id).status == CellStatus.AVAILABLE


@pytest.mark.asyncio
async def test_assign_emits_entry_movement_and_audit(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell(row="B", bay=3, position=7)

    res = await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))

    assert len(store.movements) == 1
    mv = store.movements[0]
    assert mv.kind == MovementKind.ENTRY
    assert (mv.quantity_delta, mv.package_delta, mv.weight_delta) == (40, 20, Decimal("200"))
    assert (mv.lot_ref, mv.allocation_ref, mv.cell_ref, mv.warehouse_ref) == (
        line.id,
        res.allocation.id,
        c1.id,
        1,
    )

    assert len(store.audits) == 1
    audit = store.audits[0]
    assert audit.action == AuditAction.ALLOCATION_CREATED
    assert audit.entity_id == str(res.allocation.id)
    assert audit.actor == "user:ana"
    assert audit.new_values["quality_status"] == "CUARENTENA"
    assert audit.new_values["weight"] == "200"
    assert audit.metadata["cell_reference"] == "B.03.07"


@pytest.mark.asyncio
async def test_damaged_goods_get_damaged_status_code(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()

    res = await AllocationAssigner(uow_factory_fake).assign(
        **_assign_kwargs(line.id, c1.id, presentation="box", damaged=True)
    )

    assert res.allocation.presentation == Presentation.BOX
    assert res.allocation.condition == Condition.DAMAGED
    assert res.allocation.status_code == 41
    assert res.inventory.status_code == 41


@pytest.mark.asyncio
async def test_assign_requires_approved_line(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500", review_state=ReviewState.PENDING)
    c1 = store.add_cell()

    with pytest.raises(StateError):
        await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))


@pytest.mark.asyncio
async def test_assign_requires_available_cell(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell(status=CellStatus.OCCUPIED)

    with pytest.raises(StateError):
        await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))


@pytest.mark.asyncio
async def test_assign_missing_line_or_cell(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()
    assigner = AllocationAssigner(uow_factory_fake)

    with pytest.raises(NotFoundError):
        await assigner.assign(**_assign_kwargs(999, c1.id))
    with pytest.raises(NotFoundError):
        await assigner.assign(**_assign_kwargs(line.id, 999))


@pytest.mark.asyncio
async def test_assign_rejects_cell_in_other_warehouse(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500", warehouse_id=1)
    other = store.add_cell(warehouse_id=2)

    with pytest.raises(ValidationError):
        await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, other.id))


@pytest.mark.asyncio
async def test_assign_rejects_invalid_input_before_touching_storage(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()

    with pytest.raises(ValidationError) as ei:
        await AllocationAssigner(uow_factory_fake).assign(
            **_assign_kwargs(line.id, c1.id, quantity=0)
        )
    assert ei.value.code == "VALIDATION_ERROR"
    assert ei.value.detail["errors"][0]["field"] == "quantity"

    with pytest.raises(ValidationError):
        await AllocationAssigner(uow_factory_fake).assign(
            **_assign_kwargs(line.id, c1.id, presentation="CRATE")
        )
    assert store.commits == 0


@pytest.mark.asyncio
async def test_allocations_never_exceed_lot_totals(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500")
    cells = [store.add_cell() for _ in range(4)]
    assigner = AllocationAssigner(uow_factory_fake)

    await assigner.assign(**_assign_kwargs(line.id, cells[0].id))
    await assigner.assign(**_assign_kwargs(line.id, cells[1].id))
    # 剩 20：再要 40 超出
    with pytest.raises(ValidationError):
        await assigner.assign(**_assign_kwargs(line.id, cells[2].id))
    await assigner.assign(
        **_assign_kwargs(line.id, cells[2].id, quantity=20, packages=10, weight=Decimal("100"))
    )
    with pytest.raises(ValidationError):
        await assigner.assign(
            **_assign_kwargs(line.id, cells[3].id, quantity=1, packages=1, weight=Decimal("5"))
        )

    allocs = list(store.allocations.values())
    assert sum(a.quantity for a in allocs) <= line.quantity
    assert sum(a.packages for a in allocs) <= line.packages
    assert sum(a.weight for a in allocs) <= line.weight


@pytest.mark.asyncio
async def test_sink_failure_does_not_fail_assignment(store, uow_factory_fake, caplog):
    line = store.add_line(quantity=100, packages=50, weight="500")
    c1 = store.add_cell()
    store.fail_events = True

    res = await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))

    assert res.allocation.id in store.allocations
    assert store.cell(c1.id).current_packages == 20
    assert store.movements == [] and store.audits == []
    assert "write failed" in caplog.text


@pytest.mark.asyncio
async def test_failures_are_counted(store, uow_factory_fake):
    line = store.add_line(quantity=100, packages=50, weight="500", review_state=ReviewState.REJECTED)
    c1 = store.add_cell()
    labels = {"op": "assign", "code": "INVALID_STATE"}
    before = REGISTRY.get_sample_value("wmsqc_operation_failures_total", labels) or 0

    with pytest.raises(StateError):
        await AllocationAssigner(uow_factory_fake).assign(**_assign_kwargs(line.id, c1.id))

    assert REGISTRY.get_sample_value("wmsqc_operation_failures_total", labels) == before + 1
