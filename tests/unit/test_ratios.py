from datetime import datetime, timezone
from decimal import Decimal

import pytest

from wmsqc.domain.ratios import (
    Slice,
    check_assign_ratios,
    check_remaining,
    check_transition_ratios,
    derive_slice,
)
from wmsqc.domain.records import Allocation, IntakeLine, Totals
from wmsqc.errors import ValidationError
from wmsqc.models.enums import Condition, Presentation, QualityStatus, ReviewState

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _line(quantity=100, packages=50, weight="500") -> IntakeLine:
    return IntakeLine(
        id=1,
        warehouse_id=1,
        product_code="P-001",
        quantity=quantity,
        packages=packages,
        weight=Decimal(weight),
        volume=Decimal("0"),
        review_state=ReviewState.APPROVED,
    )


def _alloc(quantity=40, packages=20, weight="200", volume="4") -> Allocation:
    return Allocation(
        id=7,
        intake_line_id=1,
        warehouse_id=1,
        cell_id=1,
        quantity=quantity,
        packages=packages,
        weight=Decimal(weight),
        volume=Decimal(volume),
        quality_status=QualityStatus.CUARENTENA,
        presentation=Presentation.PALLET,
        condition=Condition.NORMAL,
        status_code=30,
        created_by="u1",
        created_at=NOW,
        updated_at=NOW,
    )


def test_assign_ratio_accepts_proportional_request():
    check_assign_ratios(_line(), 40, 20, Decimal("200"))


def test_assign_ratio_accepts_packages_within_ten_percent():
    # 期望 20，允许 18..22
    check_assign_ratios(_line(), 40, 22, Decimal("200"))
    check_assign_ratios(_line(), 40, 18, Decimal("200"))


def test_assign_ratio_rejects_packages_far_from_lot_ratio():
    with pytest.raises(ValidationError):
        check_assign_ratios(_line(), 70, 5, Decimal("350"))


def test_assign_ratio_rejects_weight_outside_five_percent():
    with pytest.raises(ValidationError):
        check_assign_ratios(_line(), 40, 20, Decimal("220"))


def test_remaining_blocks_over_allocation():
    allocated = Totals(quantity=80, packages=40, weight=Decimal("400"))
    check_remaining(_line(), allocated, 20, 10, Decimal("100"))
    with pytest.raises(ValidationError):
        check_remaining(_line(), allocated, 21, 10, Decimal("100"))
    with pytest.raises(ValidationError):
        check_remaining(_line(), allocated, 20, 11, Decimal("100"))
    with pytest.raises(ValidationError):
        check_remaining(_line(), allocated, 20, 10, Decimal("101"))


def test_derive_slice_rounds_packages_up():
    moved = derive_slice(_alloc(), 15)
    # 20 * 15/40 = 7.5 -> 8
    assert moved.packages == 8
    assert moved.weight == Decimal("75.000")
    assert moved.volume == Decimal("1.500")


def test_derive_slice_keeps_caller_values():
    moved = derive_slice(_alloc(), 15, packages=7, weight=Decimal("74"))
    assert moved == Slice(15, 7, Decimal("74"), Decimal("1.500"))


def test_transition_package_tolerance_is_at_least_one():
    alloc = _alloc()
    check_transition_ratios(alloc, Slice(15, 9, Decimal("75"), Decimal("0")))
    with pytest.raises(ValidationError):
        check_transition_ratios(alloc, Slice(15, 10, Decimal("75"), Decimal("0")))


def test_transition_weight_tolerance_five_percent():
    alloc = _alloc()
    check_transition_ratios(alloc, Slice(20, 10, Decimal("104.9"), Decimal("0")))
    with pytest.raises(ValidationError):
        check_transition_ratios(alloc, Slice(20, 10, Decimal("106"), Decimal("0")))
