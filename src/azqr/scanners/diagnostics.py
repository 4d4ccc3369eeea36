"""Diagnostic settings lookup through ARM batch requests."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Sequence

from ..adapters.http_client import HttpClient
from ..context import ExecutionContext
from ..models.recommendation import (
    GraphRecommendation,
    GraphResult,
    LearnMoreLink,
    RecommendationCategory,
    RecommendationImpact,
)
from ..models.resource import Resource
from .base import log_resource_type_scan, should_skip_error

logger = logging.getLogger(__name__)

BATCH_API_VERSION = "2020-06-01"
DIAGNOSTIC_SETTINGS_API_VERSION = "2021-05-01-preview"
BATCH_SIZE = 20
MAX_WORKERS = 30
LARGE_SCAN_WARNING = 5000

DIAGNOSTICS_RECOMMENDATION_ID = "dgs-001"
_SETTINGS_SEGMENT = "/providers/microsoft.insights/diagnosticsettings/"

TYPES_WITH_DIAGNOSTIC_SETTINGS = frozenset(
    {
        "microsoft.analysisservices/servers",
        "microsoft.app/containerapps",
        "microsoft.app/managedenvironments",
        "microsoft.appconfiguration/configurationstores",
        "microsoft.automation/automationaccounts",
        "microsoft.batch/batchaccounts",
        "microsoft.cache/redis",
        "microsoft.cdn/profiles",
        "microsoft.cognitiveservices/accounts",
        "microsoft.compute/availabilitysets",
        "microsoft.compute/disks",
        "microsoft.compute/galleries",
        "microsoft.compute/virtualmachines",
        "microsoft.compute/virtualmachinescalesets",
        "microsoft.containerinstance/containergroups",
        "microsoft.containerregistry/registries",
        "microsoft.containerservice/managedclusters",
        "microsoft.dashboard/grafana",
        "microsoft.databricks/workspaces",
        "microsoft.datafactory/factories",
        "microsoft.dbformysql/flexibleservers",
        "microsoft.dbformysql/servers",
        "microsoft.dbforpostgresql/flexibleservers",
        "microsoft.dbforpostgresql/servers",
        "microsoft.devices/iothubs",
        "microsoft.documentdb/databaseaccounts",
        "microsoft.eventgrid/domains",
        "microsoft.eventhub/namespaces",
        "microsoft.insights/components",
        "microsoft.keyvault/vaults",
        "microsoft.kusto/clusters",
        "microsoft.logic/workflows",
        "microsoft.machinelearningservices/workspaces",
        "microsoft.network/applicationgateways",
        "microsoft.network/azurefirewalls",
        "microsoft.network/connections",
        "microsoft.network/frontdoorwebapplicationfirewallpolicies",
        "microsoft.network/ipgroups",
        "microsoft.network/loadbalancers",
        "microsoft.network/natgateways",
        "microsoft.network/networkinterfaces",
        "microsoft.network/networksecuritygroups",
        "microsoft.network/networkwatchers",
        "microsoft.network/privatednszones",
        "microsoft.network/privateendpoints",
        "microsoft.network/publicipaddresses",
        "microsoft.network/routetables",
        "microsoft.network/trafficmanagerprofiles",
        "microsoft.network/virtualnetworkgateways",
        "microsoft.network/virtualnetworks",
        "microsoft.network/virtualnetworks/subnets",
        "microsoft.network/virtualwans",
        "microsoft.operationalinsights/workspaces",
        "microsoft.recoveryservices/vaults",
        "microsoft.resources/resourcegroups",
        "microsoft.search/searchservices",
        "microsoft.servicebus/namespaces",
        "microsoft.signalrservice/signalr",
        "microsoft.signalrservice/webpubsub",
        "microsoft.sql/servers",
        "microsoft.sql/servers/databases",
        "microsoft.sql/servers/elasticpools",
        "microsoft.storage/storageaccounts",
        "microsoft.virtualmachineimages/imagetemplates",
        "microsoft.web/certificates",
        "microsoft.web/connections",
        "microsoft.web/serverfarms",
        "microsoft.web/sites",
        "specialized.workload/avd",
        "specialized.workload/hpc",
        "specialized.workload/sap",
    }
)


def supports_diagnostic_settings(resource_type: str) -> bool:
    return resource_type.lower() in TYPES_WITH_DIAGNOSTIC_SETTINGS


def parse_resource_id(diagnostic_setting_id: str) -> str:
    """Lowercased id of the resource a diagnostic setting belongs to."""

    lowered = diagnostic_setting_id.lower()
    index = lowered.find(_SETTINGS_SEGMENT)
    return lowered[:index] if index >= 0 else lowered


def diagnostics_recommendation(resource_type: str) -> GraphRecommendation:
    return GraphRecommendation(
        recommendation_id=DIAGNOSTICS_RECOMMENDATION_ID,
        recommendation="Resource should have diagnostic settings enabled",
        category=RecommendationCategory.MONITORING_AND_ALERTING.value,
        impact=RecommendationImpact.LOW.value,
        resource_type=resource_type,
        long_description=(
            "Diagnostic settings stream platform logs and metrics to a destination "
            "where they can be retained and analysed."
        ),
        learn_more_link=[
            LearnMoreLink(
                name="Diagnostic settings in Azure Monitor",
                url="https://learn.microsoft.com/en-us/azure/azure-monitor/essentials/diagnostic-settings",
            )
        ],
        source="AZQR",
    )


class DiagnosticSettingsScanner:
    """Find which resources have at least one diagnostic setting."""

    def __init__(
        self,
        http_client: HttpClient,
        endpoint: str,
        *,
        batch_size: int = BATCH_SIZE,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")
        self._batch_size = batch_size
        self._max_workers = max_workers

    # ------------------------------------------------------------------
    def scan(self, ctx: ExecutionContext, resources: Sequence[Resource]) -> Dict[str, bool]:
        """Return ``lowercase resource id -> True``; skippable errors yield an empty map."""

        try:
            return self.list_resources_with_diagnostic_settings(ctx, resources)
        except Exception as exc:
            if should_skip_error(exc):
                return {}
            raise

    def list_resources_with_diagnostic_settings(
        self, ctx: ExecutionContext, resources: Sequence[Resource]
    ) -> Dict[str, bool]:
        ids = [resource.id for resource in resources if supports_diagnostic_settings(resource.type)]
        if not ids:
            logger.debug("No resources found to scan for diagnostic settings")
            return {}
        if len(ids) > LARGE_SCAN_WARNING:
            logger.warning("%d resources detected. Scan will take longer than usual", len(ids))

        log_resource_type_scan("Diagnostic Settings")
        batches = [ids[start : start + self._batch_size] for start in range(0, len(ids), self._batch_size)]
        logger.debug("Number of diagnostic setting batches: %d", len(batches))

        found: Dict[str, bool] = {}
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(batches))) as pool:
            for partial in pool.map(lambda batch: self._scan_batch(ctx, batch), batches):
                found.update(partial)
        return found

    def get_recommendations(self, resource_types: Sequence[str]) -> Dict[str, Dict[str, GraphRecommendation]]:
        """The diagnostics recommendation for every supported type among ``resource_types``."""

        recommendations: Dict[str, Dict[str, GraphRecommendation]] = {}
        for resource_type in resource_types:
            if supports_diagnostic_settings(resource_type):
                recommendation = diagnostics_recommendation(resource_type)
                recommendations[resource_type.lower()] = {recommendation.recommendation_id: recommendation}
        return recommendations

    def graph_results(
        self,
        resources: Sequence[Resource],
        diagnostics: Mapping[str, bool],
        subscriptions: Mapping[str, str],
    ) -> List[GraphResult]:
        """One row per supported resource that has no diagnostic setting."""

        results: List[GraphResult] = []
        for resource in resources:
            if not supports_diagnostic_settings(resource.type) or diagnostics.get(resource.id.lower()):
                continue
            recommendation = diagnostics_recommendation(resource.type)
            results.append(
                GraphResult(
                    recommendation_id=recommendation.recommendation_id,
                    recommendation=recommendation.recommendation,
                    resource_id=resource.id,
                    category=recommendation.category,
                    impact=recommendation.impact,
                    resource_type=resource.type,
                    long_description=recommendation.long_description,
                    name=resource.name,
                    subscription_id=resource.subscription_id,
                    subscription_name=subscriptions.get(resource.subscription_id, ""),
                    resource_group=resource.resource_group,
                    learn=recommendation.learn_more_url,
                    automation_available="false",
                    source=recommendation.source,
                )
            )
        return results

    # ------------------------------------------------------------------
    def _scan_batch(self, ctx: ExecutionContext, ids: Sequence[str]) -> Dict[str, bool]:
        body = {
            "requests": [
                {
                    "httpMethod": "GET",
                    "relativeUrl": (
                        f"{resource_id}/providers/microsoft.insights/diagnosticSettings"
                        f"?api-version={DIAGNOSTIC_SETTINGS_API_VERSION}"
                    ),
                }
                for resource_id in ids
            ]
        }
        url = f"{self._endpoint}/batch?api-version={BATCH_API_VERSION}"
        payload = self._http.post_json(url, body, ctx=ctx)

        found: Dict[str, bool] = {}
        for response in payload.get("responses") or []:
            if response.get("httpStatusCode") != 200:
                continue
            content: Any = response.get("content") or {}
            for setting in content.get("value") or []:
                setting_id = setting.get("id")
                if setting_id:
                    found[parse_resource_id(str(setting_id))] = True
        return found


__all__ = [
    "DIAGNOSTICS_RECOMMENDATION_ID",
    "DiagnosticSettingsScanner",
    "TYPES_WITH_DIAGNOSTIC_SETTINGS",
    "diagnostics_recommendation",
    "parse_resource_id",
    "supports_diagnostic_settings",
]
