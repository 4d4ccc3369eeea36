from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

import pytest

from azqr.models.recommendation import GraphRecommendation
from azqr.models.report_data import ReportData
from azqr.models.resource import Resource
from azqr.models.scan_params import ScanParams
from azqr.plugins.registry import Plugin, PluginMetadata, PluginRegistry, PluginType
from azqr.pipeline.executor import ScanContext, ScanValidationError, StageError
from azqr.pipeline.stages import (
    DiagnosticsScanStage,
    GraphScanStage,
    InitializationStage,
    ResourceDiscoveryStage,
    SubscriptionDiscoveryStage,
    generate_output_file_name,
    validate_scan_scope,
)
from azqr.pipeline.stages.graph import filter_service_scanners
from azqr.scanners.base import BaseScanner
from azqr.scanners.discovery import (
    COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY,
    COUNT_BY_TYPE_QUERY,
    RESOURCES_QUERY,
)

SUB = "00000000-0000-0000-0000-000000000001"
KV_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.KeyVault/vaults/kv1"
ST_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.Storage/storageAccounts/st1"
KV_TYPE = "Microsoft.KeyVault/vaults"
ST_TYPE = "Microsoft.Storage/storageAccounts"


class DummyArm:
    def __init__(self) -> None:
        self.posts: List[str] = []

    def iter_pages(self, url: str, *, ctx: Any = None):
        yield {"subscriptionId": SUB, "displayName": "Prod", "state": "Enabled"}

    def post_json(self, url: str, body: Dict[str, Any], *, ctx: Any = None) -> Dict[str, Any]:
        self.posts.append(url)
        return {
            "responses": [
                {
                    "httpStatusCode": 200,
                    "content": {"value": [{"id": f"{KV_ID}/providers/microsoft.insights/diagnosticSettings/a"}]},
                }
            ]
        }


class DummyGraph:
    def __init__(self, rows: Dict[str, List[Dict[str, Any]]] | None = None) -> None:
        self.rows = rows or {}
        self.queries: List[str] = []

    def query(self, ctx: Any, query: str, subscriptions: List[str]) -> List[Dict[str, Any]]:
        self.queries.append(query)
        return self.rows.get(query, [])


class DummyCatalog:
    def for_resource_type(self, resource_type: str) -> Dict[str, GraphRecommendation]:
        if resource_type == KV_TYPE.lower():
            rec = GraphRecommendation("kv-graph", "Soft delete", resource_type=KV_TYPE, graph_query="kv query")
            return {rec.recommendation_id: rec}
        return {}


def _params(**kwargs: Any) -> ScanParams:
    params = ScanParams.with_defaults(services=["kv", "st"], **kwargs)
    return params


def _context(params: ScanParams, **kwargs: Any) -> ScanContext:
    ctx = ScanContext(params=params, http_client=DummyArm(), endpoint="https://management.azure.com", **kwargs)
    ctx.report_data = ReportData(output_name="out", stages=params.stages)
    ctx.subscriptions = {SUB: "Prod"}
    return ctx


def test_output_name_defaults_to_a_timestamp() -> None:
    assert generate_output_file_name("custom") == "custom"
    assert (
        generate_output_file_name("", datetime(2024, 3, 5, 7, 8, 9))
        == "azqr_action_plan_2024_03_05_T070809"
    )


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"management_groups": ["mg"], "subscriptions": [SUB]}, "Management Group name"),
        ({"resource_groups": ["rg1"]}, "only be used with a Subscription Id"),
        ({"subscriptions": [SUB, SUB], "resource_groups": ["rg1"]}, "only be used with 1 Subscription Id"),
    ],
)
def test_conflicting_scope_is_rejected(kwargs: Dict[str, Any], message: str) -> None:
    with pytest.raises(ScanValidationError, match=message):
        validate_scan_scope(ScanParams(**kwargs))


def test_initialization_prepares_filters_credential_and_report() -> None:
    params = _params(subscriptions=[SUB], resource_groups=["rg1"])
    ctx = ScanContext(params=params, credential_factory=lambda: "token-credential")

    InitializationStage(clock=lambda: datetime(2024, 1, 2, 3, 4, 5)).execute(ctx)

    assert ctx.credential == "token-credential"
    assert params.output_name == "azqr_action_plan_2024_01_02_T030405"
    assert ctx.report_data.output_name == params.output_name
    assert ctx.report_data.stages is params.stages
    assert not params.filters.is_service_excluded(KV_ID)
    assert params.filters.is_service_excluded(KV_ID.replace("rg1", "rg2"))


def test_subscription_discovery_stage() -> None:
    ctx = _context(_params())
    ctx.subscriptions = {}

    SubscriptionDiscoveryStage().execute(ctx)

    assert ctx.subscriptions == {SUB: "Prod"}


def test_resource_discovery_stage_enforces_the_row_limit() -> None:
    rows = {
        RESOURCES_QUERY: [
            {"id": KV_ID, "type": KV_TYPE},
            {"id": ST_ID, "type": ST_TYPE},
        ]
    }
    ctx = _context(_params(), graph_client=DummyGraph(rows))

    ResourceDiscoveryStage().execute(ctx)
    assert [resource.id for resource in ctx.report_data.resources] == [KV_ID, ST_ID]

    with pytest.raises(StageError, match="Too many resources"):
        ResourceDiscoveryStage(max_resources=1).execute(ctx)


def test_filter_service_scanners_appends_resource_scanner() -> None:
    kv = BaseScanner("kv", KV_TYPE)
    st = BaseScanner("st", ST_TYPE)

    kept = filter_service_scanners([kv, st], {"microsoft.keyvault/vaults": 2, "microsoft.storage/storageaccounts": 0})

    assert kept[0] is kv
    assert len(kept) == 2
    assert kept[1].resource_types() == ["Microsoft.Resources"]


def test_graph_stage_collects_recommendations_results_and_counts() -> None:
    graph = DummyGraph(
        {
            COUNT_BY_TYPE_QUERY: [{"type": KV_TYPE, "count_": 1}],
            "kv query": [{"id": KV_ID, "name": "kv1"}],
            "plugin query": [{"id": ST_ID, "name": "st1"}],
            COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY: [{"subscriptionId": SUB, "type": KV_TYPE, "count_": 1}],
        }
    )
    registry = PluginRegistry()
    registry.register(
        Plugin(
            metadata=PluginMetadata(name="extras", type=PluginType.YAML),
            yaml_recommendations=[
                GraphRecommendation("st-plugin", "Extra", resource_type=ST_TYPE, graph_query="plugin query")
            ],
        )
    )
    ctx = _context(_params(), graph_client=graph)

    GraphScanStage(catalog=DummyCatalog(), plugin_registry=registry).execute(ctx)

    report = ctx.report_data
    assert sorted(report.recommendations) == ["microsoft.keyvault/vaults", "microsoft.storage/storageaccounts"]
    # storage has no resources, so its plugin query is listed but never run
    assert "plugin query" not in graph.queries
    assert [result.resource_id for result in report.graph] == [KV_ID]
    assert report.resource_type_count[0].available_in_aprl == "Yes"
    assert not GraphScanStage(catalog=DummyCatalog()).skip(ctx)


def test_diagnostics_stage_adds_results_for_resources_without_settings() -> None:
    params = _params()
    ctx = _context(params)
    ctx.report_data.resources = [
        Resource(KV_ID, SUB, "rg1", KV_TYPE, name="kv1"),
        Resource(ST_ID, SUB, "rg1", ST_TYPE, name="st1"),
    ]
    stage = DiagnosticsScanStage()

    assert not stage.skip(ctx)
    stage.execute(ctx)

    report = ctx.report_data
    assert report.diagnostics_settings == {KV_ID.lower(): True}
    assert [result.resource_id for result in report.graph] == [ST_ID]
    assert "dgs-001" in report.recommendations["microsoft.storage/storageaccounts"]

    params.stages.disable_stage("diagnostics")
    assert stage.skip(ctx)
