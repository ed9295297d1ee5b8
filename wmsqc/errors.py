# wmsqc/errors.py
"""
业务错误分类（调用方按类型捕获，不解析 message）：

    BizError
      ├─ ValidationError   容量 / 比例 / 库位角色不匹配
      ├─ NotFoundError     批次行 / 库位 / 分配不存在
      ├─ StateError        生命周期状态不对（批次未审核、非隔离区来源、库位不可用）
      └─ ConflictError     并发修改（version 不一致）

所有错误都在事务内抛出，外层 UoW 整体回滚，不留半截写入。
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class BizError(Exception):
    code = "BIZ_ERROR"
    status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        *,
        detail: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        if status:
            self.status = status
        self.message = message
        self.detail: Dict[str, Any] = dict(detail or {})

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return {"error": body}


class ValidationError(BizError):
    code = "VALIDATION_ERROR"
    status = 422


class NotFoundError(BizError):
    code = "NOT_FOUND"
    status = 404


class StateError(BizError):
    code = "INVALID_STATE"
    status = 409


class ConflictError(BizError):
    code = "CONFLICT"
    status = 409


__all__ = ["BizError", "ValidationError", "NotFoundError", "StateError", "ConflictError"]
