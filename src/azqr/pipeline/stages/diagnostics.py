"""Diagnostic settings coverage for every supported resource."""

from __future__ import annotations

import logging

from ...models.stage_config import STAGE_DIAGNOSTICS
from ...scanners.diagnostics import DiagnosticSettingsScanner
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)


class DiagnosticsScanStage(BaseStage):
    def __init__(self) -> None:
        super().__init__("Diagnostics Settings Scan", False)

    def skip(self, ctx: ScanContext) -> bool:
        return not ctx.params.stages.is_stage_enabled(STAGE_DIAGNOSTICS)

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        scanner = DiagnosticSettingsScanner(ctx.client(), ctx.arm_endpoint())

        types = sorted({resource.type for resource in report.resources})
        added = 0
        for resource_type, by_id in scanner.get_recommendations(types).items():
            for recommendation in by_id.values():
                report.add_recommendation(recommendation)
                added += 1
        logger.debug("Added %d diagnostic settings recommendations", added)

        report.diagnostics_settings = scanner.scan(ctx.ctx, report.resources)
        results = scanner.graph_results(report.resources, report.diagnostics_settings, ctx.subscriptions)
        results = [result for result in results if not ctx.params.filters.is_service_excluded(result.resource_id)]
        report.graph.extend(results)
        logger.debug(
            "Diagnostics scan added %d results (%d graph results in total)",
            len(results),
            len(report.graph),
        )


__all__ = ["DiagnosticsScanStage"]
