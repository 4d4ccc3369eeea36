"""Non-compliant Azure Policy states through Resource Graph."""

from __future__ import annotations

from typing import List, Mapping, Set, Tuple

from ..adapters.graph_client import GraphQueryClient
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.resource import (
    get_resource_group_from_resource_id,
    get_resource_name_from_resource_id,
    get_resource_type_from_resource_id,
)
from ..models.results import AzurePolicyResult
from ..normalization.graph_rows import to_text
from .base import log_resource_type_scan

POLICY_QUERY = """
PolicyResources
| where type == 'microsoft.policyinsights/policystates'
| extend
    resourceId = tostring(properties.resourceId),
    subscriptionId = tostring(properties.subscriptionId),
    policyAssignmentId = tostring(properties.policyAssignmentId),
    policyAssignmentName = tostring(properties.policyAssignmentName),
    policyDefinitionId = tostring(properties.policyDefinitionId),
    policyDefinitionName = tostring(properties.policyDefinitionName),
    timestamp = todatetime(properties.timestamp),
    complianceState = tostring(properties.complianceState)
| where complianceState == 'NonCompliant'
| join kind=leftouter (
    PolicyResources
    | where type == 'microsoft.authorization/policydefinitions'
    | extend policyDefinitionId = tolower(id)
    | project policyDefinitionId, policyDescription = tostring(properties.description), policyDefinitionDisplayName = properties.displayName
) on policyDefinitionId
| join kind=leftouter (
    ResourceContainers
    | where type == 'microsoft.resources/subscriptions'
    | project subscriptionId = tolower(subscriptionId), subscriptionName = name
) on subscriptionId
| project subscriptionId, subscriptionName, resourceId, policyAssignmentId, policyAssignmentName, policyDefinitionId, policyDefinitionName, timestamp, policyDefinitionDisplayName, policyDescription, complianceState
"""


class AzurePolicyScanner:
    def __init__(self, graph_client: GraphQueryClient) -> None:
        self._graph = graph_client

    def scan(
        self,
        ctx: ExecutionContext,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> List[AzurePolicyResult]:
        log_resource_type_scan("Azure Policy (Non Compliant Resources)")
        results: List[AzurePolicyResult] = []
        seen: Set[Tuple[str, str]] = set()
        for row in self._graph.query(ctx, POLICY_QUERY, sorted(subscriptions)):
            if filters.is_subscription_excluded(to_text(row.get("subscriptionId"))):
                continue
            resource_id = to_text(row.get("resourceId"))
            if filters.is_service_excluded(resource_id):
                continue

            key = (resource_id, to_text(row.get("policyDefinitionId")))
            if key in seen:
                continue
            seen.add(key)
            results.append(
                AzurePolicyResult(
                    subscription_id=to_text(row.get("subscriptionId")),
                    subscription_name=to_text(row.get("subscriptionName")),
                    type=get_resource_type_from_resource_id(resource_id),
                    resource_group_name=get_resource_group_from_resource_id(resource_id),
                    name=get_resource_name_from_resource_id(resource_id),
                    policy_display_name=to_text(row.get("policyDefinitionDisplayName")),
                    policy_description=to_text(row.get("policyDescription")),
                    resource_id=resource_id,
                    time_stamp=to_text(row.get("timestamp")),
                    policy_definition_name=to_text(row.get("policyDefinitionName")),
                    policy_definition_id=to_text(row.get("policyDefinitionId")),
                    policy_assignment_name=to_text(row.get("policyAssignmentName")),
                    policy_assignment_id=to_text(row.get("policyAssignmentId")),
                    compliance_state=to_text(row.get("complianceState")),
                )
            )
        return results


__all__ = ["AzurePolicyScanner", "POLICY_QUERY"]
