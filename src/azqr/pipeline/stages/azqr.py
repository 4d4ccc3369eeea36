"""In-process rule evaluation by the service scanners."""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Set

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ...adapters.graph_client import mask_subscription_id
from ...adapters.http_client import HTTPError
from ...context import ContextCancelledError
from ...models.recommendation import RecommendationType
from ...models.report_data import ReportData
from ...models.results import AzqrServiceResult
from ...models.stage_config import STAGE_DIAGNOSTICS
from ...scanners.base import ScanContext as RuleScanContext
from ...scanners.base import Scanner, ScannerConfig, should_skip_error
from ...scanners.diagnostics import DiagnosticSettingsScanner
from ...scanners.network import PrivateEndpointScanner, PublicIPScanner
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)

SCANNER_WORKERS = 10
SCANNER_ATTEMPTS = 3


def _retryable(exc: BaseException) -> bool:
    if isinstance(exc, ContextCancelledError):
        return False
    return not (isinstance(exc, HTTPError) and exc.skippable)


class AzqrScanStage(BaseStage):
    """Run every active service scanner per subscription and collect AZQR results."""

    def __init__(
        self,
        *,
        workers: int = SCANNER_WORKERS,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__("AZQR Service Scan", False)
        self._workers = workers
        self._sleep = sleep

    def skip(self, ctx: ScanContext) -> bool:
        return not ctx.params.use_azqr_recommendations

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        filters = ctx.params.filters
        scanners = list(filters.scanners)

        self._add_recommendations(report, scanners, ctx)

        types_by_subscription: Dict[str, Set[str]] = {}
        for resource in report.resources:
            types_by_subscription.setdefault(resource.subscription_id.lower(), set()).add(
                resource.type.lower()
            )

        diagnostics = self._diagnostics(ctx, report)

        for subscription_id, subscription_name in sorted(ctx.subscriptions.items()):
            ctx.ctx.check()
            present = types_by_subscription.get(subscription_id.lower(), set())
            applicable = [
                scanner
                for scanner in scanners
                if any(resource_type.lower() in present for resource_type in scanner.resource_types())
            ]
            if not applicable:
                logger.debug(
                    "No service scanners apply to subscription %s",
                    mask_subscription_id(subscription_id, ctx.params.mask),
                )
                continue

            config = ctx.scanner_config(subscription_id, subscription_name, long_running=True)
            rule_context = RuleScanContext(
                filters=filters,
                private_endpoints=PrivateEndpointScanner().scan(config),
                diagnostics_settings=diagnostics,
                public_ips=PublicIPScanner().scan(config),
            )
            report.azqr.extend(self._scan_subscription(ctx, config, applicable, rule_context))

        logger.debug("AZQR service scan produced %d results", len(report.azqr))

    # ------------------------------------------------------------------
    def _add_recommendations(self, report: ReportData, scanners: Sequence[Scanner], ctx: ScanContext) -> None:
        filters = ctx.params.filters
        added = 0
        for scanner in scanners:
            for recommendation in scanner.get_recommendations().values():
                if recommendation.recommendation_type == RecommendationType.SLA:
                    continue
                if filters.is_recommendation_excluded(recommendation.recommendation_id):
                    continue
                report.add_recommendation(recommendation.to_graph_recommendation())
                added += 1
        logger.debug("Added %d AZQR recommendations to the catalogue", added)

    def _diagnostics(self, ctx: ScanContext, report: ReportData) -> Dict[str, bool]:
        if ctx.params.stages.is_stage_enabled(STAGE_DIAGNOSTICS):
            return report.diagnostics_settings
        return DiagnosticSettingsScanner(ctx.client(), ctx.arm_endpoint()).scan(ctx.ctx, report.resources)

    def _scan_subscription(
        self,
        ctx: ScanContext,
        config: ScannerConfig,
        scanners: Sequence[Scanner],
        rule_context: RuleScanContext,
    ) -> List[AzqrServiceResult]:
        filters = ctx.params.filters

        def job(scanner: Scanner) -> List[AzqrServiceResult]:
            # each job gets its own context; storage writes blob properties into it
            return self._run_scanner(ctx, scanner, config, dataclasses.replace(rule_context))

        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            batches = list(pool.map(job, scanners))
        ctx.ctx.check()

        results: List[AzqrServiceResult] = []
        for batch in batches:
            results.extend(result for result in batch if not filters.is_service_excluded(result.resource_id()))
        return results

    def _run_scanner(
        self,
        ctx: ScanContext,
        scanner: Scanner,
        config: ScannerConfig,
        rule_context: RuleScanContext,
    ) -> List[AzqrServiceResult]:
        def attempt() -> List[AzqrServiceResult]:
            ctx.ctx.check()
            scanner.init(config)
            return scanner.scan(rule_context)

        retrying = Retrying(
            stop=stop_after_attempt(SCANNER_ATTEMPTS),
            wait=wait_exponential(multiplier=0.01),
            retry=retry_if_exception(_retryable),
            sleep=self._sleep or ctx.ctx.sleep,
            reraise=True,
        )
        try:
            return retrying(attempt)
        except ContextCancelledError:
            return []
        except Exception as exc:
            if should_skip_error(exc):
                return []
            logger.error(
                "Scanner %r failed for subscription %s: %s",
                scanner,
                mask_subscription_id(config.subscription_id, ctx.params.mask),
                exc,
            )
            return []


__all__ = ["AzqrScanStage", "SCANNER_ATTEMPTS", "SCANNER_WORKERS"]
