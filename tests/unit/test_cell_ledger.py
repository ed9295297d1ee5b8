from decimal import Decimal

import pytest

from tests.fakes import FakeCellRepo
from wmsqc.domain.ratios import Slice
from wmsqc.errors import NotFoundError
from wmsqc.models.enums import CellStatus
from wmsqc.services.cell_ledger import CellOccupancyLedger

MOVE = Slice(quantity=10, packages=5, weight=Decimal("50"), volume=Decimal("1"))


@pytest.mark.asyncio
async def test_first_increment_occupies_cell(store):
    cell = store.add_cell()
    ledger = CellOccupancyLedger(FakeCellRepo(store))

    out = await ledger.increment(cell.id, MOVE)

    assert out.status == CellStatus.OCCUPIED
    assert (out.current_packages, out.current_weight, out.current_volume) == (
        5,
        Decimal("50"),
        Decimal("1"),
    )


@pytest.mark.asyncio
async def test_emptied_cell_stays_occupied(store):
    cell = store.add_cell()
    ledger = CellOccupancyLedger(FakeCellRepo(store))

    await ledger.increment(cell.id, MOVE)
    out = await ledger.decrement(cell.id, MOVE)

    assert out.current_packages == 0
    assert out.current_weight == Decimal("0")
    assert out.status == CellStatus.OCCUPIED


@pytest.mark.asyncio
async def test_decrement_is_not_clamped(store):
    cell = store.add_cell()
    out = await CellOccupancyLedger(FakeCellRepo(store)).decrement(cell.id, MOVE)
    assert out.current_packages == -5
    assert out.status == CellStatus.AVAILABLE


@pytest.mark.asyncio
async def test_adjust_applies_signed_delta(store):
    cell = store.add_cell(packages=20, weight="200")
    out = await CellOccupancyLedger(FakeCellRepo(store)).adjust(
        cell.id, packages=-2, weight=Decimal("-0.5")
    )
    assert (out.current_packages, out.current_weight) == (18, Decimal("199.5"))


@pytest.mark.asyncio
async def test_missing_cell(store):
    with pytest.raises(NotFoundError):
        await CellOccupancyLedger(FakeCellRepo(store)).increment(42, MOVE)
