# wmsqc/schemas/queries.py
from __future__ import annotations

from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, ConfigDict

from wmsqc.models.enums import QualityStatus, ReviewState


class _Base(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class TotalsOut(_Base):
    """件数 / 包装数 / 重量 / 体积"""

    quantity: int = 0
    packages: int = 0
    weight: Decimal = Decimal("0")
    volume: Decimal = Decimal("0")


class LotSummaryOut(_Base):
    """批次行分配汇总（读取时按 allocations 现算）"""

    intake_line_id: int
    warehouse_id: int
    product_code: str
    review_state: ReviewState
    totals: TotalsOut
    allocated: TotalsOut
    remaining: TotalsOut
    by_status: Dict[QualityStatus, TotalsOut] = {}
    fully_allocated: bool = False
