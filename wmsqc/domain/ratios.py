# wmsqc/domain/ratios.py
"""
比例校验（分配 / 流转共用）

分配：以批次行自身比例为基准
  - packages 偏差 ≤ 10%（基准 = quantity * lot.packages / lot.quantity）
  - weight   偏差 ≤ 5% （基准 = quantity * lot.weight / lot.quantity）

流转：以分配当前比例为基准，ratio = quantity / alloc.quantity
  - expected_packages = ceil(alloc.packages * ratio)，容差 max(1, 5%)
  - expected_weight   = alloc.weight * ratio，容差 5%
  - 未传的 packages / weight / volume 按 ratio 推算（packages 向上取整）
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from wmsqc.domain.records import Allocation, IntakeLine, Totals
from wmsqc.errors import ValidationError

ASSIGN_PACKAGE_TOLERANCE = Decimal("0.10")
ASSIGN_WEIGHT_TOLERANCE = Decimal("0.05")
TRANSITION_PACKAGE_TOLERANCE = Decimal("0.05")
TRANSITION_WEIGHT_TOLERANCE = Decimal("0.05")

# 重量 / 体积落库精度 Numeric(14, 3)
MEASURE_QUANT = Decimal("0.001")
WEIGHT_EPSILON = MEASURE_QUANT


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def quantize(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(MEASURE_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Slice:
    """一次分配 / 流转所移动的量。"""

    quantity: int
    packages: int
    weight: Decimal
    volume: Decimal


def check_remaining(lot: IntakeLine, allocated: Totals, quantity: int, packages: int, weight: Decimal) -> None:
    """请求量不能超过批次行剩余量（剩余 = 总量 - 已有分配之和）。"""
    remaining = lot.totals.minus(allocated)
    detail = {
        "intake_line_id": lot.id,
        "remaining_quantity": remaining.quantity,
        "remaining_packages": remaining.packages,
        "remaining_weight": str(remaining.weight),
    }
    if quantity > remaining.quantity:
        raise ValidationError(
            f"quantity {quantity} exceeds remaining {remaining.quantity}", detail=detail
        )
    if packages > remaining.packages:
        raise ValidationError(
            f"packages {packages} exceeds remaining {remaining.packages}", detail=detail
        )
    if to_decimal(weight) > remaining.weight + WEIGHT_EPSILON:
        raise ValidationError(
            f"weight {weight} exceeds remaining {remaining.weight}", detail=detail
        )


def check_assign_ratios(lot: IntakeLine, quantity: int, packages: int, weight: Decimal) -> None:
    if lot.quantity <= 0:
        raise ValidationError(
            "intake line has no quantity to derive ratios from",
            detail={"intake_line_id": lot.id},
        )

    q = Decimal(quantity)
    lot_qty = Decimal(lot.quantity)

    expected_packages = q * Decimal(lot.packages) / lot_qty
    if abs(Decimal(packages) - expected_packages) > expected_packages * ASSIGN_PACKAGE_TOLERANCE:
        raise ValidationError(
            f"packages {packages} out of tolerance (expected ≈{expected_packages:.2f})",
            detail={"expected_packages": str(expected_packages), "packages": packages},
        )

    expected_weight = q * to_decimal(lot.weight) / lot_qty
    actual_weight = to_decimal(weight)
    tolerance = max(expected_weight * ASSIGN_WEIGHT_TOLERANCE, WEIGHT_EPSILON)
    if abs(actual_weight - expected_weight) > tolerance:
        raise ValidationError(
            f"weight {weight} out of tolerance (expected ≈{expected_weight:.3f})",
            detail={"expected_weight": str(expected_weight), "weight": str(actual_weight)},
        )


def _ratio(alloc: Allocation, quantity: int) -> Decimal:
    if alloc.quantity <= 0:
        raise ValidationError(
            "allocation has no quantity left to move", detail={"allocation_id": alloc.id}
        )
    return Decimal(quantity) / Decimal(alloc.quantity)


def derive_slice(
    alloc: Allocation,
    quantity: int,
    packages: Optional[int] = None,
    weight: Optional[Decimal] = None,
    volume: Optional[Decimal] = None,
) -> Slice:
    """未传的字段按分配自身比例推算；packages 向上取整。"""
    ratio = _ratio(alloc, quantity)
    if packages is None:
        packages = math.ceil(Decimal(alloc.packages) * ratio)
    if weight is None:
        weight = quantize(to_decimal(alloc.weight) * ratio)
    if volume is None:
        volume = quantize(to_decimal(alloc.volume) * ratio)
    return Slice(int(quantity), int(packages), to_decimal(weight), to_decimal(volume))


def check_transition_ratios(alloc: Allocation, moved: Slice) -> None:
    """不论推算还是调用方给定，一律校验。"""
    ratio = _ratio(alloc, moved.quantity)

    expected_packages = math.ceil(Decimal(alloc.packages) * ratio)
    pkg_tolerance = max(Decimal(1), Decimal(expected_packages) * TRANSITION_PACKAGE_TOLERANCE)
    if abs(Decimal(moved.packages - expected_packages)) > pkg_tolerance:
        raise ValidationError(
            f"packages {moved.packages} out of tolerance (expected {expected_packages})",
            detail={"expected_packages": expected_packages, "packages": moved.packages},
        )

    expected_weight = to_decimal(alloc.weight) * ratio
    tolerance = max(expected_weight * TRANSITION_WEIGHT_TOLERANCE, WEIGHT_EPSILON)
    if abs(moved.weight - expected_weight) > tolerance:
        raise ValidationError(
            f"weight {moved.weight} out of tolerance (expected ≈{expected_weight:.3f})",
            detail={"expected_weight": str(expected_weight), "weight": str(moved.weight)},
        )
