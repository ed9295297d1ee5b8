# wmsqc/schemas/commands.py
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from wmsqc.errors import ValidationError
from wmsqc.models.enums import Presentation, QualityStatus


# ========= 通用基类 =========
class _Base(BaseModel):
    """入口校验：字符串在这里一次性收敛成枚举，之后不再解析"""

    model_config = ConfigDict(from_attributes=True, extra="ignore", str_strip_whitespace=True)


Actor = Annotated[str, Field(min_length=1, max_length=64)]
Measure = Annotated[Decimal, Field(ge=0, max_digits=14, decimal_places=3)]


# ========= 分配（Assign） =========
class AssignCommand(_Base):
    """把批次行的一部分放进库位（初始状态 CUARENTENA）"""

    intake_line_id: Annotated[int, Field(ge=1)]
    cell_id: Annotated[int, Field(ge=1)]
    quantity: Annotated[int, Field(ge=1)]
    packages: Annotated[int, Field(ge=0)]
    weight: Measure
    volume: Measure = Decimal("0")
    presentation: Presentation = Presentation.OTHER
    damaged: bool = False
    observations: Annotated[str | None, Field(None, max_length=500)] = None
    actor: Actor

    @field_validator("presentation", mode="before")
    @classmethod
    def _upper_presentation(cls, v: Any):
        if isinstance(v, str):
            return v.strip().upper()
        return v


# ========= 质检流转（Transition） =========
class TransitionCommand(_Base):
    """把隔离区的一部分流转到目标质检状态；packages / weight / volume 缺省按比例推算"""

    allocation_id: Annotated[int, Field(ge=1)]
    to_status: QualityStatus
    quantity: Annotated[int, Field(ge=1)]
    packages: Annotated[int | None, Field(None, ge=0)] = None
    weight: Measure | None = None
    volume: Measure | None = None
    reason: Annotated[str, Field(min_length=1, max_length=500)]
    notes: Annotated[str | None, Field(None, max_length=500)] = None
    actor: Actor
    destination_cell_id: Annotated[int | None, Field(None, ge=1)] = None

    @field_validator("to_status", mode="before")
    @classmethod
    def _upper_status(cls, v: Any):
        if isinstance(v, str):
            return v.strip().upper()
        return v


C = TypeVar("C", bound=_Base)


def _describe(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for e in errors:
        out.append(
            {
                "field": ".".join(str(p) for p in e.get("loc", ())),
                "message": e.get("msg", ""),
                "type": e.get("type", ""),
            }
        )
    return out


def parse_command(model: Type[C], **fields: Any) -> C:
    """pydantic 校验失败统一转换为业务 ValidationError"""
    try:
        return model(**fields)
    except PydanticValidationError as e:
        errors = _describe(e.errors())
        first = errors[0] if errors else {"field": "", "message": "invalid input"}
        raise ValidationError(
            f"invalid {first['field'] or 'input'}: {first['message']}",
            detail={"errors": errors},
        ) from e
