"""Defender for Cloud plan status and unhealthy assessments."""

from __future__ import annotations

import logging
from typing import List, Mapping

from ..adapters.graph_client import GraphQueryClient
from ..models.filters import Filters
from ..models.results import DefenderRecommendation, DefenderResult
from ..normalization.graph_rows import to_text
from ..context import ExecutionContext
from .base import ScannerConfig, log_resource_type_scan, log_subscription_scan, should_skip_error

logger = logging.getLogger(__name__)

PRICINGS_API_VERSION = "2024-01-01"

DEFENDER_RECOMMENDATIONS_QUERY = """
SecurityResources
| where type == 'microsoft.security/assessments'
| where properties.status.code == 'Unhealthy'
| mvexpand Category = properties.metadata.categories
| extend
    AssessmentId = id,
    AssessmentKey = name,
    ResourceId = properties.resourceDetails.Id,
    ResourceIdsplit = split(properties.resourceDetails.Id, '/'),
    RecommendationName = properties.displayName,
    RecommendationState = properties.status.code,
    ActionDescription = properties.metadata.description,
    RemediationDescription = properties.metadata.remediationDescription,
    RecommendationSeverity = properties.metadata.severity,
    PolicyDefinitionId = properties.metadata.policyDefinitionId,
    AssessmentType = properties.metadata.assessmentType,
    Threats = properties.metadata.threats,
    UserImpact = properties.metadata.userImpact,
    AzPortalLink = tostring(properties.links.azurePortal)
| extend
    ResourceSubId = tostring(ResourceIdsplit[2]),
    ResourceGroupName = tostring(ResourceIdsplit[4]),
    ResourceType = tostring(ResourceIdsplit[6]),
    ResourceName = tostring(ResourceIdsplit[8])
| join kind=leftouter (resourcecontainers
    | where type == 'microsoft.resources/subscriptions'
    | project SubscriptionName = name, subscriptionId) on subscriptionId
| project SubscriptionId=subscriptionId, SubscriptionName, ResourceGroupName, ResourceType,
    ResourceName, Category, RecommendationSeverity, RecommendationName, ActionDescription,
    RemediationDescription, AzPortalLink, ResourceId
"""


class DefenderScanner:
    """Per-subscription Defender plan tiers and tenant-wide unhealthy assessments."""

    def list_configuration(self, config: ScannerConfig) -> List[DefenderResult]:
        log_subscription_scan(config.subscription_id, "Defender Status")
        url = (
            f"{config.arm_endpoint()}/subscriptions/{config.subscription_id}"
            f"/providers/Microsoft.Security/pricings?api-version={PRICINGS_API_VERSION}"
        )
        payload = config.client().get_json(url, ctx=config.ctx)
        return [
            DefenderResult(
                subscription_id=config.subscription_id,
                subscription_name=config.subscription_name,
                name=to_text(pricing.get("name")),
                tier=to_text((pricing.get("properties") or {}).get("pricingTier")),
            )
            for pricing in payload.get("value") or []
        ]

    def scan(self, config: ScannerConfig) -> List[DefenderResult]:
        try:
            return self.list_configuration(config)
        except Exception as exc:
            if should_skip_error(exc):
                return []
            raise

    def get_recommendations(
        self,
        ctx: ExecutionContext,
        graph_client: GraphQueryClient,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> List[DefenderRecommendation]:
        log_resource_type_scan("Defender Recommendations")
        results: List[DefenderRecommendation] = []
        for row in graph_client.query(ctx, DEFENDER_RECOMMENDATIONS_QUERY, sorted(subscriptions)):
            resource_id = to_text(row.get("ResourceId"))
            if filters.is_service_excluded(resource_id):
                continue
            results.append(
                DefenderRecommendation(
                    subscription_id=to_text(row.get("SubscriptionId")),
                    subscription_name=to_text(row.get("SubscriptionName")),
                    resource_group_name=to_text(row.get("ResourceGroupName")),
                    resource_type=to_text(row.get("ResourceType")),
                    resource_name=to_text(row.get("ResourceName")),
                    category=to_text(row.get("Category")),
                    recommendation_severity=to_text(row.get("RecommendationSeverity")),
                    recommendation_name=to_text(row.get("RecommendationName")),
                    action_description=to_text(row.get("ActionDescription")),
                    remediation_description=to_text(row.get("RemediationDescription")),
                    az_portal_link=f"https://{to_text(row.get('AzPortalLink'))}",
                    resource_id=resource_id,
                )
            )
        return results


__all__ = ["DEFENDER_RECOMMENDATIONS_QUERY", "DefenderScanner"]
