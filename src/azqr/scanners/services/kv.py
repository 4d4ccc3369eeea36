"""Key Vault scanner."""

from __future__ import annotations

from typing import Dict

from ...models.recommendation import (
    AzqrRecommendation,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from ..base import GenericScanner, extract_standard_arm_resource_info
from .common import (
    CAF_URL,
    TAGS_URL,
    arm_client_factory,
    caf_prefix,
    list_with_client,
    missing_diagnostics,
    missing_tags,
)

KEY_VAULT_TYPE = "Microsoft.KeyVault/vaults"
KEY_VAULT_API_VERSION = "2023-07-01"


def get_recommendations() -> Dict[str, AzqrRecommendation]:
    return {
        "kv-001": AzqrRecommendation(
            recommendation_id="kv-001",
            resource_type=KEY_VAULT_TYPE,
            category=RecommendationCategory.MONITORING_AND_ALERTING,
            recommendation="Key Vault should have diagnostic settings enabled",
            impact=RecommendationImpact.LOW,
            eval=missing_diagnostics,
            learn_more_url="https://learn.microsoft.com/en-us/azure/key-vault/general/monitor-key-vault",
        ),
        "kv-003": AzqrRecommendation(
            recommendation_id="kv-003",
            resource_type=KEY_VAULT_TYPE,
            category=RecommendationCategory.HIGH_AVAILABILITY,
            recommendation="Key Vault should have a SLA",
            impact=RecommendationImpact.HIGH,
            eval=lambda resource, scan_context: (False, "99.99%"),
            recommendation_type=RecommendationType.SLA,
            learn_more_url="https://www.azure.cn/en-us/support/sla/key-vault/",
        ),
        "kv-006": AzqrRecommendation(
            recommendation_id="kv-006",
            resource_type=KEY_VAULT_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Key Vault Name should comply with naming conventions",
            impact=RecommendationImpact.LOW,
            eval=caf_prefix("kv"),
            learn_more_url=CAF_URL,
        ),
        "kv-007": AzqrRecommendation(
            recommendation_id="kv-007",
            resource_type=KEY_VAULT_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Key Vault should have tags",
            impact=RecommendationImpact.LOW,
            eval=missing_tags,
            learn_more_url=TAGS_URL,
        ),
    }


def new_key_vault_scanner() -> GenericScanner:
    return GenericScanner(
        [KEY_VAULT_TYPE],
        arm_client_factory(KEY_VAULT_TYPE, KEY_VAULT_API_VERSION),
        list_with_client,
        get_recommendations,
        extract_standard_arm_resource_info,
        name="Key Vault",
    )


__all__ = ["KEY_VAULT_TYPE", "get_recommendations", "new_key_vault_scanner"]
