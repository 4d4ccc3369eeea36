"""Result records produced by service scanners and the auxiliary scans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from .recommendation import AzqrResult


@dataclass(slots=True)
class AzqrServiceResult:
    """Rules evaluated against one resource by a service scanner."""

    subscription_id: str
    subscription_name: str
    resource_group: str
    location: str
    type: str
    service_name: str
    recommendations: Dict[str, AzqrResult] = field(default_factory=dict)

    def resource_id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/{self.type}/{self.service_name}"
        ).lower()


@dataclass(slots=True)
class AdvisorResult:
    recommendation_id: str
    subscription_id: str
    subscription_name: str
    type: str
    name: str
    resource_id: str
    category: str
    impact: str
    description: str


@dataclass(slots=True)
class DefenderResult:
    subscription_id: str
    subscription_name: str
    name: str
    tier: str


@dataclass(slots=True)
class DefenderRecommendation:
    subscription_id: str
    subscription_name: str
    resource_group_name: str
    resource_type: str
    resource_name: str
    category: str
    recommendation_severity: str
    recommendation_name: str
    action_description: str
    remediation_description: str
    az_portal_link: str
    resource_id: str


@dataclass(slots=True)
class AzurePolicyResult:
    subscription_id: str
    subscription_name: str
    type: str
    resource_group_name: str
    name: str
    policy_display_name: str
    policy_description: str
    resource_id: str
    time_stamp: str
    policy_definition_name: str
    policy_definition_id: str
    policy_assignment_name: str
    policy_assignment_id: str
    compliance_state: str


@dataclass(slots=True)
class ArcSQLResult:
    subscription_id: str
    subscription_name: str
    status: str
    azure_arc_server: str
    sql_instance: str
    resource_group: str
    version: str
    build: str
    patch_level: str
    edition: str
    vcores: str
    license: str
    dps_status: str
    tel_status: str
    defender_status: str


@dataclass(slots=True)
class CostResultItem:
    subscription_id: str
    subscription_name: str
    service_name: str
    value: str
    currency: str


@dataclass(slots=True)
class CostResult:
    """Cost per service for every scanned subscription over one period."""

    from_date: datetime
    to_date: datetime
    items: List[CostResultItem] = field(default_factory=list)


@dataclass(slots=True)
class PluginResult:
    """Tabular output of one internal plugin: a header row followed by data rows."""

    plugin_name: str
    sheet_name: str
    description: str
    table: List[List[str]] = field(default_factory=list)


__all__ = [
    "AdvisorResult",
    "ArcSQLResult",
    "AzqrServiceResult",
    "AzurePolicyResult",
    "CostResult",
    "CostResultItem",
    "DefenderRecommendation",
    "DefenderResult",
    "PluginResult",
]
