# wmsqc/domain/presentation.py
"""
包装形态 × 是否破损 → (状态, 数字编码)

| presentation | normal | damaged |
|--------------|--------|---------|
| PALLET       | 30     | 40      |
| BOX          | 31     | 41      |
| SACK         | 32     | 42      |
| UNIT         | 33     | 43      |
| PACKAGE      | 34     | 44      |
| DRUM         | 35     | 45      |
| BUNDLE       | 36     | 46      |
| OTHER        | 37     | 47      |
"""
from __future__ import annotations

from typing import Dict, Tuple

from wmsqc.models.enums import Condition, Presentation

STATUS_CODES: Dict[Presentation, Dict[Condition, int]] = {
    Presentation.PALLET: {Condition.NORMAL: 30, Condition.DAMAGED: 40},
    Presentation.BOX: {Condition.NORMAL: 31, Condition.DAMAGED: 41},
    Presentation.SACK: {Condition.NORMAL: 32, Condition.DAMAGED: 42},
    Presentation.UNIT: {Condition.NORMAL: 33, Condition.DAMAGED: 43},
    Presentation.PACKAGE: {Condition.NORMAL: 34, Condition.DAMAGED: 44},
    Presentation.DRUM: {Condition.NORMAL: 35, Condition.DAMAGED: 45},
    Presentation.BUNDLE: {Condition.NORMAL: 36, Condition.DAMAGED: 46},
    Presentation.OTHER: {Condition.NORMAL: 37, Condition.DAMAGED: 47},
}

DEFAULT_STATUS_CODE = STATUS_CODES[Presentation.OTHER][Condition.NORMAL]

_BY_CODE: Dict[int, Tuple[Presentation, Condition]] = {
    code: (p, c) for p, by_cond in STATUS_CODES.items() for c, code in by_cond.items()
}


def normalize(presentation: Presentation, damaged: bool) -> Tuple[Condition, int]:
    """(包装形态, 是否破损) → (condition, status_code)。"""
    condition = Condition.DAMAGED if damaged else Condition.NORMAL
    code = STATUS_CODES.get(presentation, {}).get(condition, DEFAULT_STATUS_CODE)
    return condition, code


def status_code_for(presentation: Presentation, condition: Condition) -> int:
    return STATUS_CODES.get(presentation, {}).get(condition, DEFAULT_STATUS_CODE)


def decode(code: int) -> Tuple[Presentation, Condition]:
    """反查；未知编码按 OTHER / NORMAL 处理。"""
    return _BY_CODE.get(int(code), (Presentation.OTHER, Condition.NORMAL))
