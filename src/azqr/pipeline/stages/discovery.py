"""Subscription and resource discovery stages."""

from __future__ import annotations

import logging

from ...adapters.graph_client import mask_subscription_id
from ...scanners.discovery import ManagementGroupDiscovery, ResourceDiscovery, SubscriptionDiscovery
from ..executor import BaseStage, ScanContext, StageError

logger = logging.getLogger(__name__)

# rows available in an Excel worksheet once the header rows are taken
MAX_REPORT_ROWS = 1_048_566


class SubscriptionDiscoveryStage(BaseStage):
    def __init__(self) -> None:
        super().__init__("Subscription Discovery", True)

    def execute(self, ctx: ScanContext) -> None:
        params = ctx.params
        if params.management_groups:
            discovery = ManagementGroupDiscovery(ctx.client(), ctx.arm_endpoint())
            subscriptions = discovery.list_subscriptions(ctx.ctx, params.management_groups, params.filters)
        else:
            subscriptions = SubscriptionDiscovery(ctx.client(), ctx.arm_endpoint()).list_subscriptions(
                ctx.ctx, params.subscriptions, params.filters
            )

        ctx.subscriptions = subscriptions
        if not subscriptions:
            logger.warning("No subscriptions found to scan")
        for subscription_id in sorted(subscriptions):
            logger.debug(
                "Subscription %s selected for scan", mask_subscription_id(subscription_id, params.mask)
            )
        logger.info("Discovered %d subscriptions", len(subscriptions))


class ResourceDiscoveryStage(BaseStage):
    def __init__(self, *, max_resources: int = MAX_REPORT_ROWS) -> None:
        super().__init__("Resource Discovery", True)
        self._max_resources = max_resources

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        resources, excluded = ResourceDiscovery(ctx.graph()).get_all_resources(
            ctx.ctx, ctx.subscriptions, ctx.params.filters
        )
        if len(resources) > self._max_resources:
            raise StageError(
                f"Too many resources to scan ({len(resources)}); the report supports at most "
                f"{self._max_resources}. Narrow the scope with filters."
            )
        report.resources = resources
        report.excluded_resources = excluded


__all__ = ["MAX_REPORT_ROWS", "ResourceDiscoveryStage", "SubscriptionDiscoveryStage"]
