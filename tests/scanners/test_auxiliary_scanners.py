from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from azqr.adapters.http_client import HTTPError, default_options
from azqr.context import ExecutionContext
from azqr.models.filters import Filters, load_filters
from azqr.scanners.advisor import AdvisorScanner
from azqr.scanners.arc_sql import ArcSQLScanner
from azqr.scanners.base import BaseScanner, ScannerConfig
from azqr.scanners.defender import DefenderScanner
from azqr.scanners.policy import AzurePolicyScanner

SUB = "00000000-0000-0000-0000-000000000001"
OTHER_SUB = "00000000-0000-0000-0000-000000000002"
KV_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.KeyVault/vaults/kv1"
VM_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.Compute/virtualMachines/vm1"
ARC_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.AzureArcData/sqlServerInstances/sql1"


class DummyGraph:
    def __init__(self, rows: List[Dict[str, Any]]) -> None:
        self.rows = rows
        self.subscriptions: List[str] = []

    def query(self, ctx: Any, query: str, subscriptions: List[str]) -> List[Dict[str, Any]]:
        self.subscriptions = list(subscriptions)
        return self.rows


class DummyHttp:
    def __init__(self, payload: Dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.payload = payload or {}
        self.error = error
        self.urls: List[str] = []

    def get_json(self, url: str, *, ctx: Any = None) -> Dict[str, Any]:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload


def _filters() -> Filters:
    filters = load_filters(
        None,
        [],
        scanner_list={
            "kv": [BaseScanner("kv", "Microsoft.KeyVault/vaults")],
            "arc": [BaseScanner("arc", "Microsoft.AzureArcData/sqlServerInstances")],
        },
    )
    filters._x_subscriptions = {OTHER_SUB}
    return filters


def _config(http: DummyHttp) -> ScannerConfig:
    return ScannerConfig(
        ctx=ExecutionContext.background(),
        credential=None,
        client_options=default_options(),
        subscription_id=SUB,
        subscription_name="Prod",
        http_client=http,
        endpoint="https://management.azure.com/",
    )


def test_advisor_deduplicates_and_filters() -> None:
    row = {
        "RecommendationTypeId": "rt-1",
        "SubscriptionId": SUB,
        "SubscriptionName": "Prod",
        "ImpactedField": "Microsoft.KeyVault/vaults",
        "ImpactedValue": "kv1",
        "ResourceId": KV_ID,
        "Category": "Security",
        "Impact": "High",
        "Problem": "Enable soft delete",
    }
    rows = [
        row,
        dict(row),
        dict(row, Category="Cost"),
        dict(row, ResourceId=VM_ID),
        dict(row, SubscriptionId=OTHER_SUB),
    ]
    graph = DummyGraph(rows)

    results = AdvisorScanner(graph).scan(ExecutionContext.background(), {SUB: "Prod"}, _filters())

    assert [(r.resource_id, r.category) for r in results] == [(KV_ID, "Security"), (KV_ID, "Cost")]
    assert results[0].description == "Enable soft delete"
    assert graph.subscriptions == [SUB]


def test_defender_status_lists_pricing_tiers() -> None:
    http = DummyHttp(
        {
            "value": [
                {"name": "VirtualMachines", "properties": {"pricingTier": "Standard"}},
                {"name": "KeyVaults", "properties": {"pricingTier": "Free"}},
            ]
        }
    )

    results = DefenderScanner().scan(_config(http))

    assert [(r.name, r.tier, r.subscription_name) for r in results] == [
        ("VirtualMachines", "Standard", "Prod"),
        ("KeyVaults", "Free", "Prod"),
    ]
    assert http.urls == [
        f"https://management.azure.com/subscriptions/{SUB}"
        "/providers/Microsoft.Security/pricings?api-version=2024-01-01"
    ]


def test_defender_status_skips_unregistered_subscriptions() -> None:
    error = HTTPError(409, json.dumps({"error": {"code": "MissingSubscriptionRegistration"}}), "url")

    assert DefenderScanner().scan(_config(DummyHttp(error=error))) == []

    with pytest.raises(HTTPError):
        DefenderScanner().scan(_config(DummyHttp(error=HTTPError(500, "{}", "url"))))


def test_defender_recommendations_prefix_portal_link() -> None:
    graph = DummyGraph(
        [
            {"SubscriptionId": SUB, "ResourceId": KV_ID, "RecommendationName": "Enable", "AzPortalLink": "portal/x"},
            {"SubscriptionId": SUB, "ResourceId": VM_ID, "RecommendationName": "Skip"},
        ]
    )

    results = DefenderScanner().get_recommendations(
        ExecutionContext.background(), graph, {SUB: "Prod"}, _filters()
    )

    assert len(results) == 1
    assert results[0].az_portal_link == "https://portal/x"
    assert results[0].recommendation_name == "Enable"


def test_policy_results_are_unique_per_definition() -> None:
    row = {
        "subscriptionId": SUB,
        "subscriptionName": "Prod",
        "resourceId": KV_ID,
        "policyDefinitionId": "def-1",
        "policyDefinitionDisplayName": "Soft delete",
        "complianceState": "NonCompliant",
    }
    graph = DummyGraph([row, dict(row), dict(row, policyDefinitionId="def-2"), dict(row, resourceId=VM_ID)])

    results = AzurePolicyScanner(graph).scan(ExecutionContext.background(), {SUB: "Prod"}, _filters())

    assert [r.policy_definition_id for r in results] == ["def-1", "def-2"]
    assert results[0].type == "Microsoft.KeyVault/vaults"
    assert results[0].resource_group_name == "rg1"
    assert results[0].name == "kv1"


def test_arc_sql_uses_discovered_subscription_names() -> None:
    graph = DummyGraph(
        [
            {"subscriptionId": SUB, "SQLInstance": ARC_ID, "status": "Connected", "vcores": 8},
            {"subscriptionId": OTHER_SUB, "SQLInstance": ARC_ID},
        ]
    )

    results = ArcSQLScanner(graph).scan(ExecutionContext.background(), {SUB: "Prod"}, _filters())

    assert len(results) == 1
    assert results[0].subscription_name == "Prod"
    assert results[0].vcores == "8"
    assert results[0].status == "Connected"
