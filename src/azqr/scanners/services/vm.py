"""Virtual machine scanner."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from ...models.recommendation import (
    AzqrRecommendation,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from ..base import GenericScanner, ScanContext, extract_standard_arm_resource_info
from .common import CAF_URL, TAGS_URL, arm_client_factory, caf_prefix, list_with_client, missing_tags, properties

VIRTUAL_MACHINE_TYPE = "Microsoft.Compute/virtualMachines"
VIRTUAL_MACHINE_API_VERSION = "2024-07-01"


def _sla(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    scale_set = properties(resource).get("virtualMachineScaleSet") or {}
    has_scale_set = bool(scale_set.get("id"))
    has_zones = len(resource.get("zones") or []) > 1

    sla = "99.9%"
    if has_scale_set and not has_zones:
        sla = "99.95%"
    elif has_zones:
        sla = "99.99%"
    return False, sla


def get_recommendations() -> Dict[str, AzqrRecommendation]:
    return {
        "vm-003": AzqrRecommendation(
            recommendation_id="vm-003",
            resource_type=VIRTUAL_MACHINE_TYPE,
            category=RecommendationCategory.HIGH_AVAILABILITY,
            recommendation="Virtual Machine should have a SLA",
            impact=RecommendationImpact.HIGH,
            eval=_sla,
            recommendation_type=RecommendationType.SLA,
            learn_more_url=(
                "https://www.microsoft.com/licensing/docs/view/"
                "Service-Level-Agreements-SLA-for-Online-Services?lang=1"
            ),
        ),
        "vm-006": AzqrRecommendation(
            recommendation_id="vm-006",
            resource_type=VIRTUAL_MACHINE_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Virtual Machine Name should comply with naming conventions",
            impact=RecommendationImpact.LOW,
            eval=caf_prefix("vm"),
            learn_more_url=CAF_URL,
        ),
        "vm-007": AzqrRecommendation(
            recommendation_id="vm-007",
            resource_type=VIRTUAL_MACHINE_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Virtual Machine should have tags",
            impact=RecommendationImpact.LOW,
            eval=missing_tags,
            learn_more_url=TAGS_URL,
        ),
    }


def new_virtual_machine_scanner() -> GenericScanner:
    return GenericScanner(
        [VIRTUAL_MACHINE_TYPE],
        arm_client_factory(VIRTUAL_MACHINE_TYPE, VIRTUAL_MACHINE_API_VERSION),
        list_with_client,
        get_recommendations,
        extract_standard_arm_resource_info,
        name="Virtual Machine",
    )


__all__ = ["VIRTUAL_MACHINE_TYPE", "get_recommendations", "new_virtual_machine_scanner"]
