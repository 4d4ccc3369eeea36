"""Cost stage: actual cost per service across subscriptions."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

from ...models.results import CostResult
from ...models.stage_config import OPTION_PREVIOUS_MONTH, STAGE_COST
from ...scanners.cost import CostScanner
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)

MAX_COST_WORKERS = 10


class CostStage(BaseStage):
    def __init__(self, *, scanner_factory: Optional[Callable[[], CostScanner]] = None) -> None:
        super().__init__("Cost", False)
        self._scanner_factory = scanner_factory or CostScanner

    def skip(self, ctx: ScanContext) -> bool:
        return not ctx.params.stages.is_stage_enabled(STAGE_COST)

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        if not ctx.subscriptions:
            logger.debug("No subscriptions to scan for costs")
            return

        previous_month = bool(ctx.params.stages.get_stage_option(STAGE_COST, OPTION_PREVIOUS_MONTH))
        jobs = sorted(ctx.subscriptions.items())

        def job(subscription: Tuple[str, str]) -> CostResult:
            subscription_id, subscription_name = subscription
            scanner = self._scanner_factory()
            return scanner.scan(ctx.scanner_config(subscription_id, subscription_name), previous_month)

        with ThreadPoolExecutor(max_workers=min(MAX_COST_WORKERS, len(jobs))) as pool:
            results = list(pool.map(job, jobs))
        ctx.ctx.check()

        merged = report.cost
        for result in results:
            if merged is None:
                merged = CostResult(from_date=result.from_date, to_date=result.to_date)
            merged.items.extend(result.items)
        report.cost = merged
        logger.debug("Cost scan collected %d items", len(merged.items) if merged else 0)


__all__ = ["CostStage", "MAX_COST_WORKERS"]
