# wmsqc/metrics.py
from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter

_registry: CollectorRegistry = REGISTRY


# ---- Prometheus metrics definitions --------------------------------------

# 分配成功次数（按包装形态）
ALLOCATIONS_ASSIGNED_TOTAL = Counter(
    "wmsqc_allocations_assigned_total",
    "Allocations created out of approved intake lines",
    ["presentation"],
    registry=_registry,
)

# 质检流转次数（按目标状态 / 是否换库位）
QUALITY_TRANSITIONS_TOTAL = Counter(
    "wmsqc_quality_transitions_total",
    "Quality-status transitions applied",
    ["to_status", "cell_changed"],
    registry=_registry,
)

# 业务失败（按操作 / 错误码）
OPERATION_FAILURES_TOTAL = Counter(
    "wmsqc_operation_failures_total",
    "Assign / transition calls rejected with a business error",
    ["op", "code"],
    registry=_registry,
)

# 一致性体检发现的问题
CONSISTENCY_ISSUES_TOTAL = Counter(
    "wmsqc_consistency_issues_total",
    "Consistency issues detected by the auditor",
    ["check", "severity"],
    registry=_registry,
)

CONSISTENCY_FIXES_TOTAL = Counter(
    "wmsqc_consistency_fixes_total",
    "Cell aggregate repairs applied by the auditor",
    registry=_registry,
)


def record_assigned(presentation: str) -> None:
    ALLOCATIONS_ASSIGNED_TOTAL.labels(presentation=presentation).inc()


def record_transition(to_status: str, cell_changed: bool) -> None:
    QUALITY_TRANSITIONS_TOTAL.labels(
        to_status=to_status, cell_changed="true" if cell_changed else "false"
    ).inc()


def record_failure(op: str, code: str) -> None:
    OPERATION_FAILURES_TOTAL.labels(op=op, code=code).inc()


def record_issue(check: str, severity: str) -> None:
    CONSISTENCY_ISSUES_TOTAL.labels(check=check, severity=severity).inc()


def record_fix() -> None:
    CONSISTENCY_FIXES_TOTAL.inc()
