# wmsqc/jobs/consistency_audit.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Any, Callable, Optional

from wmsqc.core.config import get_settings
from wmsqc.core.logging import setup_logging
from wmsqc.db.session import close_engine, get_session_factory
from wmsqc.db.uow import uow_factory
from wmsqc.models.enums import Severity
from wmsqc.services.consistency_auditor import ConsistencyAuditor, ConsistencyReport

logger = logging.getLogger("wmsqc.consistency")


class ConsistencyGuard:
    """
    Consistency Guard（一致性守护）
    -------------------------------
    由外部调度（cron / k8s CronJob）周期调用：
      - 四本账对账
      - 可选：修正库位聚合漂移（LOW）
      - HIGH / MEDIUM 只报告
    """

    @staticmethod
    async def run(
        factory: Optional[Callable[[], Any]] = None,
        *,
        warehouse_id: Optional[int] = None,
        auto_fix: bool = False,
        batch_size: Optional[int] = None,
    ) -> ConsistencyReport:
        if factory is None:
            factory = uow_factory(get_session_factory())
        auditor = ConsistencyAuditor(factory, batch_size=batch_size)
        return await auditor.audit(warehouse_id=warehouse_id, auto_fix=auto_fix)


async def run_once(*, warehouse_id: Optional[int], auto_fix: bool, batch_size: Optional[int]) -> int:
    try:
        report = await ConsistencyGuard.run(
            warehouse_id=warehouse_id, auto_fix=auto_fix, batch_size=batch_size
        )
    finally:
        await close_engine()

    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    # HIGH 级问题需要人工介入：非零退出码方便调度器告警
    return 1 if report.by_severity()[Severity.HIGH.value] else 0


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Allocation / inventory / cell consistency audit")
    ap.add_argument("--warehouse-id", type=int, default=None, help="limit the scan to one warehouse")
    ap.add_argument(
        "--auto-fix",
        action="store_true",
        help="repair LOW cell-aggregate drift (HIGH / MEDIUM are only reported)",
    )
    ap.add_argument("--batch-size", type=int, default=None, help="page size (default AUDIT_BATCH_SIZE)")
    args = ap.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
    logger.info(
        "consistency audit start: warehouse=%s auto_fix=%s", args.warehouse_id, args.auto_fix
    )

    return asyncio.run(
        run_once(warehouse_id=args.warehouse_id, auto_fix=args.auto_fix, batch_size=args.batch_size)
    )


if __name__ == "__main__":
    raise SystemExit(main())
