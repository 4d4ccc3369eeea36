"""Hand the finished report to the configured renderers."""

from __future__ import annotations

import logging

from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)


class ReportRenderingStage(BaseStage):
    def __init__(self) -> None:
        super().__init__("Report Rendering", True)

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        if not ctx.renderers:
            logger.debug("No renderers configured")
        for renderer in ctx.renderers:
            renderer(report)


__all__ = ["ReportRenderingStage"]
