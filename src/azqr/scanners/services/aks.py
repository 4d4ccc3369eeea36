"""Azure Kubernetes Service scanner."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from ...models.recommendation import (
    AzqrRecommendation,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from ..base import GenericScanner, ScanContext, extract_standard_arm_resource_info
from .common import (
    CAF_URL,
    TAGS_URL,
    arm_client_factory,
    caf_prefix,
    list_with_client,
    missing_diagnostics,
    missing_tags,
    properties,
)

AKS_TYPE = "Microsoft.ContainerService/managedClusters"
AKS_API_VERSION = "2024-09-01"


def _sla(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    sku = resource.get("sku") or {}
    if "Free" in str(sku.get("tier") or "Free"):
        return True, "None"

    pools = properties(resource).get("agentPoolProfiles") or []
    zoned = all(len(pool.get("availabilityZones") or []) > 1 for pool in pools)
    return False, "99.95%" if zoned else "99.9%"


def _not_private(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    profile = properties(resource).get("apiServerAccessProfile") or {}
    return not profile.get("enablePrivateCluster", False), ""


def _no_managed_aad(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    profile = properties(resource).get("aadProfile") or {}
    return not profile.get("managed", False), ""


def _no_rbac(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    return not properties(resource).get("enableRBAC", False), ""


def _http_routing_enabled(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    addons = properties(resource).get("addonProfiles") or {}
    routing = addons.get("httpApplicationRouting") or {}
    return bool(routing.get("enabled", False)), ""


def _not_user_defined_routing(
    resource: Mapping[str, Any], scan_context: ScanContext
) -> Tuple[bool, str]:
    network = properties(resource).get("networkProfile") or {}
    return network.get("outboundType") != "userDefinedRouting", ""


def _default_max_surge(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    for pool in properties(resource).get("agentPoolProfiles") or []:
        surge = (pool.get("upgradeSettings") or {}).get("maxSurge")
        if not surge or surge == "1":
            return True, ""
    return False, ""


def get_recommendations() -> Dict[str, AzqrRecommendation]:
    rules = [
        AzqrRecommendation(
            recommendation_id="aks-001",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.MONITORING_AND_ALERTING,
            recommendation="AKS Cluster should have diagnostic settings enabled",
            impact=RecommendationImpact.LOW,
            eval=missing_diagnostics,
            learn_more_url="https://learn.microsoft.com/en-us/azure/aks/monitor-aks#collect-resource-logs",
        ),
        AzqrRecommendation(
            recommendation_id="aks-003",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.HIGH_AVAILABILITY,
            recommendation="AKS Cluster should have an SLA",
            impact=RecommendationImpact.HIGH,
            eval=_sla,
            recommendation_type=RecommendationType.SLA,
            learn_more_url=(
                "https://learn.microsoft.com/en-us/azure/aks/free-standard-pricing-tiers"
                "#uptime-sla-terms-and-conditions"
            ),
        ),
        AzqrRecommendation(
            recommendation_id="aks-004",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="AKS Cluster should be private",
            impact=RecommendationImpact.HIGH,
            eval=_not_private,
            learn_more_url="https://learn.microsoft.com/en-us/azure/aks/private-clusters",
        ),
        AzqrRecommendation(
            recommendation_id="aks-006",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="AKS Name should comply with naming conventions",
            impact=RecommendationImpact.LOW,
            eval=caf_prefix("aks"),
            learn_more_url=CAF_URL,
        ),
        AzqrRecommendation(
            recommendation_id="aks-007",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="AKS should integrate authentication with AAD (Managed)",
            impact=RecommendationImpact.MEDIUM,
            eval=_no_managed_aad,
            learn_more_url="https://learn.microsoft.com/en-us/azure/aks/managed-azure-ad",
        ),
        AzqrRecommendation(
            recommendation_id="aks-008",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="AKS should be RBAC enabled.",
            impact=RecommendationImpact.MEDIUM,
            eval=_no_rbac,
            learn_more_url="https://learn.microsoft.com/azure/aks/manage-azure-rbac",
        ),
        AzqrRecommendation(
            recommendation_id="aks-010",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="AKS should have httpApplicationRouting disabled",
            impact=RecommendationImpact.MEDIUM,
            eval=_http_routing_enabled,
            learn_more_url="https://learn.microsoft.com/azure/aks/http-application-routing",
        ),
        AzqrRecommendation(
            recommendation_id="aks-012",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="AKS should have outbound type set to user defined routing",
            impact=RecommendationImpact.HIGH,
            eval=_not_user_defined_routing,
            learn_more_url="https://learn.microsoft.com/azure/aks/limit-egress-traffic",
        ),
        AzqrRecommendation(
            recommendation_id="aks-015",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="AKS should have tags",
            impact=RecommendationImpact.LOW,
            eval=missing_tags,
            learn_more_url=TAGS_URL,
        ),
        AzqrRecommendation(
            recommendation_id="aks-016",
            resource_type=AKS_TYPE,
            category=RecommendationCategory.SCALABILITY,
            recommendation="AKS Node Pools should have MaxSurge set",
            impact=RecommendationImpact.LOW,
            eval=_default_max_surge,
            learn_more_url=(
                "https://learn.microsoft.com/en-us/azure/aks/operator-best-practices-run-at-scale"
                "#cluster-upgrade-considerations-and-best-practices"
            ),
        ),
    ]
    return {rule.recommendation_id: rule for rule in rules}


def new_aks_scanner() -> GenericScanner:
    return GenericScanner(
        [AKS_TYPE],
        arm_client_factory(AKS_TYPE, AKS_API_VERSION),
        list_with_client,
        get_recommendations,
        extract_standard_arm_resource_info,
        name="Azure Kubernetes Service",
    )


__all__ = ["AKS_TYPE", "get_recommendations", "new_aks_scanner"]
