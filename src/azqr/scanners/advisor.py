"""Azure Advisor recommendations through Resource Graph."""

from __future__ import annotations

import logging
from typing import List, Mapping, Set, Tuple

from ..adapters.graph_client import GraphQueryClient
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.results import AdvisorResult
from ..normalization.graph_rows import to_text
from .base import log_resource_type_scan

logger = logging.getLogger(__name__)

ADVISOR_QUERY = """
AdvisorResources
| join kind=inner (
    resourcecontainers
    | where type == 'microsoft.resources/subscriptions'
    | project subscriptionId, subscriptionName = name)
on subscriptionId
| project Type=type, SubscriptionId=subscriptionId, SubscriptionName=subscriptionName,
    ResourceGroup = resourceGroup, Category = properties.category, Impact = properties.impact,
    ImpactedField = properties.impactedField, ImpactedValue = properties.impactedValue,
    Problem = properties.shortDescription.problem, ResourceId = properties.resourceMetadata.resourceId,
    RecommendationTypeId = properties.recommendationTypeId
"""


class AdvisorScanner:
    def __init__(self, graph_client: GraphQueryClient) -> None:
        self._graph = graph_client

    def scan(
        self,
        ctx: ExecutionContext,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> List[AdvisorResult]:
        """Advisor recommendations, one per resource, recommendation type and category."""

        log_resource_type_scan("Advisor Recommendations")
        results: List[AdvisorResult] = []
        seen: Set[Tuple[str, str, str]] = set()
        for row in self._graph.query(ctx, ADVISOR_QUERY, sorted(subscriptions)):
            if filters.is_subscription_excluded(to_text(row.get("SubscriptionId"))):
                continue
            resource_id = to_text(row.get("ResourceId"))
            if filters.is_service_excluded(resource_id):
                continue

            result = AdvisorResult(
                recommendation_id=to_text(row.get("RecommendationTypeId")),
                subscription_id=to_text(row.get("SubscriptionId")),
                subscription_name=to_text(row.get("SubscriptionName")),
                type=to_text(row.get("ImpactedField")),
                name=to_text(row.get("ImpactedValue")),
                resource_id=resource_id,
                category=to_text(row.get("Category")),
                impact=to_text(row.get("Impact")),
                description=to_text(row.get("Problem")),
            )
            key = (result.resource_id, result.recommendation_id, result.category)
            if key not in seen:
                seen.add(key)
                results.append(result)
        logger.debug("Advisor returned %d unique recommendations", len(results))
        return results


__all__ = ["ADVISOR_QUERY", "AdvisorScanner"]
