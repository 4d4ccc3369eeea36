"""Subscription, management-group and resource discovery."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence, Tuple

from ..adapters.graph_client import GraphQueryClient, mask_subscription_id
from ..adapters.http_client import HttpClient
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.recommendation import GraphRecommendation
from ..models.resource import Resource, ResourceTypeCount
from ..normalization.graph_rows import GraphRowNormalizer

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_API_VERSION = "2022-12-01"
MANAGEMENT_GROUPS_API_VERSION = "2023-04-01"
MANAGEMENT_GROUP_TYPE = "Microsoft.Management/managementGroups"

_INACTIVE_STATES = frozenset({"disabled", "deleted"})

RESOURCES_QUERY = (
    "resources "
    "| project id, subscriptionId, resourceGroup, location, type, name, "
    "skuName=tostring(sku.name), skuTier=tostring(sku.tier), kind "
    "| order by subscriptionId, resourceGroup, type, name"
)
COUNT_BY_TYPE_QUERY = "resources | summarize count() by type | order by type"
COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY = (
    "resources | summarize count() by subscriptionId, type | order by subscriptionId, type"
)


def _is_active(state: object) -> bool:
    return str(state or "").lower() not in _INACTIVE_STATES


def _keep_subscription(subscription_id: str, filters: Filters) -> bool:
    if filters.is_subscription_excluded(subscription_id):
        logger.info("Skipping subscriptions/...%s", subscription_id[29:])
        return False
    return True


class SubscriptionDiscovery:
    """List the enabled subscriptions visible to the credential."""

    def __init__(self, http_client: HttpClient, endpoint: str) -> None:
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")

    def list_subscriptions(
        self,
        ctx: ExecutionContext,
        subscriptions: Sequence[str],
        filters: Filters,
    ) -> Dict[str, str]:
        """Return ``id -> display name``, restricted to ``subscriptions`` when given."""

        url = f"{self._endpoint}/subscriptions?api-version={SUBSCRIPTIONS_API_VERSION}"
        wanted = {subscription_id.lower() for subscription_id in subscriptions}
        result: Dict[str, str] = {}
        for item in self._http.iter_pages(url, ctx=ctx):
            if not _is_active(item.get("state")):
                continue
            subscription_id = str(item.get("subscriptionId") or "")
            if not subscription_id or (wanted and subscription_id.lower() not in wanted):
                continue
            if _keep_subscription(subscription_id, filters):
                result[subscription_id] = str(item.get("displayName") or "")
        return result


class ManagementGroupDiscovery:
    """List the subscriptions under management groups and all their descendants."""

    def __init__(self, http_client: HttpClient, endpoint: str) -> None:
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")

    def list_subscriptions(
        self,
        ctx: ExecutionContext,
        groups: Sequence[str],
        filters: Filters,
    ) -> Dict[str, str]:
        result: Dict[str, str] = {}
        pending = list(groups)
        visited: set[str] = set()
        while pending:
            group = pending.pop(0)
            if group.lower() in visited:
                continue
            visited.add(group.lower())

            for item in self._http.iter_pages(self._url(group, "subscriptions"), ctx=ctx):
                properties = item.get("properties") or {}
                if not _is_active(properties.get("state")):
                    continue
                subscription_id = str(item.get("name") or "")
                if subscription_id and _keep_subscription(subscription_id, filters):
                    result[subscription_id] = str(properties.get("displayName") or "")

            for item in self._http.iter_pages(self._url(group, "descendants"), ctx=ctx):
                if item.get("type") == MANAGEMENT_GROUP_TYPE and item.get("name"):
                    pending.append(str(item["name"]))
        return result

    def _url(self, group: str, child: str) -> str:
        return (
            f"{self._endpoint}/providers/Microsoft.Management/managementGroups/{group}"
            f"/{child}?api-version={MANAGEMENT_GROUPS_API_VERSION}"
        )


class ResourceDiscovery:
    """Resource inventory and per-type counts through Resource Graph."""

    def __init__(
        self,
        graph_client: GraphQueryClient,
        normalizer: GraphRowNormalizer | None = None,
    ) -> None:
        self._graph = graph_client
        self._normalizer = normalizer or GraphRowNormalizer()

    # ------------------------------------------------------------------
    def get_all_resources(
        self,
        ctx: ExecutionContext,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> Tuple[List[Resource], List[Resource]]:
        """Return ``(resources, excluded_resources)`` split by the service filter."""

        rows = self._graph.query(ctx, RESOURCES_QUERY, sorted(subscriptions))
        resources: List[Resource] = []
        excluded: List[Resource] = []
        for row in rows:
            resource = self._normalizer.to_resource(row)
            if not resource.id:
                continue
            if filters.is_service_excluded(resource.id):
                excluded.append(resource)
            else:
                resources.append(resource)
        logger.info(
            "Discovered %d resources (%d excluded) across %d subscriptions",
            len(resources),
            len(excluded),
            len(subscriptions),
        )
        return resources, excluded

    def get_count_per_resource_type(
        self, ctx: ExecutionContext, subscriptions: Mapping[str, str]
    ) -> Dict[str, float]:
        """Return ``lowercase resource type -> count`` over all subscriptions."""

        counts: Dict[str, float] = {}
        for row in self._graph.query(ctx, COUNT_BY_TYPE_QUERY, sorted(subscriptions)):
            resource_type = str(row.get("type") or "").lower()
            if resource_type:
                counts[resource_type] = counts.get(resource_type, 0.0) + float(row.get("count_") or 0)
        return counts

    def get_count_per_resource_type_and_subscription(
        self,
        ctx: ExecutionContext,
        subscriptions: Mapping[str, str],
        recommendations: Mapping[str, Mapping[str, GraphRecommendation]],
    ) -> List[ResourceTypeCount]:
        rows = self._graph.query(ctx, COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY, sorted(subscriptions))
        counts: List[ResourceTypeCount] = []
        for row in rows:
            subscription_id = str(row.get("subscriptionId") or "")
            resource_type = str(row.get("type") or "")
            counts.append(
                ResourceTypeCount(
                    subscription=subscriptions.get(subscription_id, subscription_id),
                    resource_type=resource_type,
                    count=float(row.get("count_") or 0),
                    available_in_aprl="Yes" if resource_type.lower() in recommendations else "No",
                )
            )
        logger.debug(
            "Counted %d resource types for %s",
            len(counts),
            ", ".join(mask_subscription_id(sid) for sid in sorted(subscriptions)),
        )
        return counts


__all__ = [
    "COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY",
    "COUNT_BY_TYPE_QUERY",
    "ManagementGroupDiscovery",
    "RESOURCES_QUERY",
    "ResourceDiscovery",
    "SubscriptionDiscovery",
]
