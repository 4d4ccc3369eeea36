"""Storage account scanner.

Storage needs the blob service properties of every account for its soft
delete rule, so it implements the scanner contract directly instead of going
through :class:`~azqr.scanners.base.GenericScanner`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple

from ...adapters.http_client import HTTPError, TransportError
from ...models.recommendation import (
    AzqrRecommendation,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from ...models.resource import get_resource_group_from_resource_id
from ...models.results import AzqrServiceResult
from ...rules.engine import RecommendationEngine
from ..arm_client import ArmResourceClient
from ..base import ScanContext, Scanner, ScannerConfig, log_subscription_scan
from .common import (
    CAF_URL,
    TAGS_URL,
    caf_prefix,
    missing_diagnostics,
    missing_tags,
    properties,
)

logger = logging.getLogger(__name__)

STORAGE_TYPE = "Microsoft.Storage/storageAccounts"
STORAGE_API_VERSION = "2023-05-01"
_RELIABILITY_URL = (
    "https://learn.microsoft.com/en-us/azure/well-architected/service-guides/storage-accounts/reliability"
)


def _sku_name(resource: Mapping[str, Any]) -> str:
    return str((resource.get("sku") or {}).get("name") or "")


def _sla(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    sku = _sku_name(resource)
    tier = str(properties(resource).get("accessTier") or "")

    sla = "99%"
    if "RAGRS" in sku and "Hot" in tier:
        sla = "99.99%"
    elif "RAGRS" in sku:
        sla = "99.9%"
    elif any(replication in sku for replication in ("LRS", "ZRS", "GRS")) and "Hot" in tier:
        sla = "99.9%"
    return False, sla


def _sku(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    return False, _sku_name(resource)


def _not_https_only(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    return not properties(resource).get("supportsHttpsTrafficOnly", False), ""


def _old_tls(resource: Mapping[str, Any], scan_context: ScanContext) -> Tuple[bool, str]:
    return properties(resource).get("minimumTlsVersion") != "TLS1_2", ""


def _no_immutable_versioning(
    resource: Mapping[str, Any], scan_context: ScanContext
) -> Tuple[bool, str]:
    immutable = properties(resource).get("immutableStorageWithVersioning") or {}
    return not immutable.get("enabled", False), ""


def _no_container_soft_delete(
    resource: Mapping[str, Any], scan_context: ScanContext
) -> Tuple[bool, str]:
    if scan_context.blob_service_properties is None:
        return False, ""
    policy = properties(scan_context.blob_service_properties).get("containerDeleteRetentionPolicy") or {}
    return not policy.get("enabled", False), ""


def get_recommendations() -> Dict[str, AzqrRecommendation]:
    rules = [
        AzqrRecommendation(
            recommendation_id="st-001",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.MONITORING_AND_ALERTING,
            recommendation="Storage should have diagnostic settings enabled",
            impact=RecommendationImpact.LOW,
            eval=missing_diagnostics,
            learn_more_url="https://learn.microsoft.com/en-us/azure/storage/blobs/monitor-blob-storage",
        ),
        AzqrRecommendation(
            recommendation_id="st-003",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.HIGH_AVAILABILITY,
            recommendation="Storage should have a SLA",
            impact=RecommendationImpact.HIGH,
            eval=_sla,
            recommendation_type=RecommendationType.SLA,
            learn_more_url="https://www.azure.cn/en-us/support/sla/storage/",
        ),
        AzqrRecommendation(
            recommendation_id="st-005",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.HIGH_AVAILABILITY,
            recommendation="Storage SKU",
            impact=RecommendationImpact.HIGH,
            eval=_sku,
            learn_more_url="https://learn.microsoft.com/en-us/rest/api/storagerp/srp_sku_types",
        ),
        AzqrRecommendation(
            recommendation_id="st-006",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Storage Name should comply with naming conventions",
            impact=RecommendationImpact.LOW,
            eval=caf_prefix("st"),
            learn_more_url=CAF_URL,
        ),
        AzqrRecommendation(
            recommendation_id="st-007",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="Storage Account should use HTTPS only",
            impact=RecommendationImpact.HIGH,
            eval=_not_https_only,
            learn_more_url="https://learn.microsoft.com/en-us/azure/storage/common/storage-require-secure-transfer",
        ),
        AzqrRecommendation(
            recommendation_id="st-008",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.GOVERNANCE,
            recommendation="Storage Account should have tags",
            impact=RecommendationImpact.LOW,
            eval=missing_tags,
            learn_more_url=TAGS_URL,
        ),
        AzqrRecommendation(
            recommendation_id="st-009",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.SECURITY,
            recommendation="Storage Account should enforce TLS >= 1.2",
            impact=RecommendationImpact.LOW,
            eval=_old_tls,
            learn_more_url=(
                "https://learn.microsoft.com/en-us/azure/storage/common/"
                "transport-layer-security-configure-minimum-version?tabs=portal"
            ),
        ),
        AzqrRecommendation(
            recommendation_id="st-010",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.DISASTER_RECOVERY,
            recommendation="Storage Account should have inmutable storage versioning enabled",
            impact=RecommendationImpact.LOW,
            eval=_no_immutable_versioning,
            learn_more_url=_RELIABILITY_URL,
        ),
        AzqrRecommendation(
            recommendation_id="st-011",
            resource_type=STORAGE_TYPE,
            category=RecommendationCategory.DISASTER_RECOVERY,
            recommendation="Storage Account should have soft delete enabled",
            impact=RecommendationImpact.MEDIUM,
            eval=_no_container_soft_delete,
            learn_more_url=_RELIABILITY_URL,
        ),
    ]
    return {rule.recommendation_id: rule for rule in rules}


class StorageScanner(Scanner):
    def __init__(self, engine: RecommendationEngine | None = None) -> None:
        self.name = "Storage Account"
        self._engine = engine or RecommendationEngine()
        self.config: ScannerConfig | None = None
        self.client: ArmResourceClient | None = None

    # ------------------------------------------------------------------
    def init(self, config: ScannerConfig) -> None:
        self.config = config
        self.client = ArmResourceClient(
            config.client(), config.arm_endpoint(), config.subscription_id, STORAGE_TYPE, STORAGE_API_VERSION
        )

    def scan(self, scan_context: ScanContext) -> List[AzqrServiceResult]:
        if self.config is None or self.client is None:
            raise RuntimeError("storage scanner used before init")

        log_subscription_scan(self.config.subscription_id, STORAGE_TYPE)
        rules = self.get_recommendations()
        results: List[AzqrServiceResult] = []
        for account in self.client.list(self.config.ctx):
            account_id = str(account.get("id") or "")
            scan_context.blob_service_properties = self._blob_service_properties(account_id)

            evaluated = self._engine.evaluate_recommendations(rules, account, scan_context)
            results.append(
                AzqrServiceResult(
                    subscription_id=self.config.subscription_id,
                    subscription_name=self.config.subscription_name,
                    resource_group=get_resource_group_from_resource_id(account_id),
                    location=str(account.get("location") or ""),
                    type=str(account.get("type") or STORAGE_TYPE),
                    service_name=str(account.get("name") or ""),
                    recommendations=evaluated,
                )
            )
        scan_context.blob_service_properties = None
        return results

    def resource_types(self) -> List[str]:
        return [STORAGE_TYPE]

    def get_recommendations(self) -> Dict[str, AzqrRecommendation]:
        return get_recommendations()

    # ------------------------------------------------------------------
    def _blob_service_properties(self, account_id: str) -> Dict[str, Any] | None:
        assert self.client is not None and self.config is not None
        try:
            return self.client.get(self.config.ctx, f"{account_id}/blobServices/default")
        except (HTTPError, TransportError) as exc:
            # accounts without blob services (e.g. FileStorage) still get evaluated
            logger.debug("No blob service properties for %s: %s", account_id, exc)
            return None


def new_storage_scanner() -> StorageScanner:
    return StorageScanner()


__all__ = ["STORAGE_TYPE", "StorageScanner", "get_recommendations", "new_storage_scanner"]
