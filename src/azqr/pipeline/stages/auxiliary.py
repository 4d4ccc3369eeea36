"""Stages for the Advisor, Defender, Policy and Arc SQL scans."""

from __future__ import annotations

import logging

from ...models.stage_config import (
    STAGE_ADVISOR,
    STAGE_ARC,
    STAGE_DEFENDER,
    STAGE_DEFENDER_RECOMMENDATIONS,
    STAGE_POLICY,
)
from ...scanners.advisor import AdvisorScanner
from ...scanners.arc_sql import ArcSQLScanner
from ...scanners.defender import DefenderScanner
from ...scanners.policy import AzurePolicyScanner
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)


class _FlaggedStage(BaseStage):
    """Stage that runs only while ``stage_flag`` is enabled."""

    stage_flag = ""

    def __init__(self, name: str) -> None:
        super().__init__(name, False)

    def skip(self, ctx: ScanContext) -> bool:
        return not ctx.params.stages.is_stage_enabled(self.stage_flag)


class AdvisorStage(_FlaggedStage):
    stage_flag = STAGE_ADVISOR

    def __init__(self) -> None:
        super().__init__("Advisor Scan")

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        report.advisor = AdvisorScanner(ctx.graph()).scan(ctx.ctx, ctx.subscriptions, ctx.params.filters)
        logger.debug("Advisor scan found %d recommendations", len(report.advisor))


class DefenderStatusStage(_FlaggedStage):
    stage_flag = STAGE_DEFENDER

    def __init__(self) -> None:
        super().__init__("Defender Status Scan")

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        scanner = DefenderScanner()
        for subscription_id, subscription_name in sorted(ctx.subscriptions.items()):
            ctx.ctx.check()
            report.defender.extend(scanner.scan(ctx.scanner_config(subscription_id, subscription_name)))
        logger.debug("Defender status scan found %d plans", len(report.defender))


class DefenderRecommendationsStage(_FlaggedStage):
    stage_flag = STAGE_DEFENDER_RECOMMENDATIONS

    def __init__(self) -> None:
        super().__init__("Defender Recommendations Scan")

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        report.defender_recommendations = DefenderScanner().get_recommendations(
            ctx.ctx, ctx.graph(), ctx.subscriptions, ctx.params.filters
        )
        logger.debug("Defender recommendations scan found %d items", len(report.defender_recommendations))


class PolicyStage(_FlaggedStage):
    stage_flag = STAGE_POLICY

    def __init__(self) -> None:
        super().__init__("Azure Policy Scan")

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        report.azure_policy = AzurePolicyScanner(ctx.graph()).scan(ctx.ctx, ctx.subscriptions, ctx.params.filters)
        logger.debug("Policy scan found %d non-compliant resources", len(report.azure_policy))


class ArcSQLStage(_FlaggedStage):
    stage_flag = STAGE_ARC

    def __init__(self) -> None:
        super().__init__("Arc SQL Scan")

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        report.arc_sql = ArcSQLScanner(ctx.graph()).scan(ctx.ctx, ctx.subscriptions, ctx.params.filters)
        logger.debug("Arc SQL scan found %d instances", len(report.arc_sql))


__all__ = [
    "AdvisorStage",
    "ArcSQLStage",
    "DefenderRecommendationsStage",
    "DefenderStatusStage",
    "PolicyStage",
]
