"""End-to-end scan through the default pipeline against in-memory Azure fakes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from azqr.adapters.graph_client import GraphQueryClient
from azqr.cli.reporting import JsonReportRenderer
from azqr.models.scan_params import ScanParams
from azqr.plugins.registry import PluginRegistry
from azqr.scanners.discovery import (
    COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY,
    COUNT_BY_TYPE_QUERY,
    RESOURCES_QUERY,
)
from azqr.service import ScanService

SUB = "00000000-0000-0000-0000-000000001234"
MASKED_SUB = "xxxxxxxx-xxxx-xxxx-xxxx-xxxxx0001234"
KV_TYPE = "Microsoft.KeyVault/vaults"
KV_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/{KV_TYPE}/kv1"
KV_RESOURCE = {
    "id": KV_ID,
    "name": "kv1",
    "type": KV_TYPE,
    "location": "westeurope",
    "properties": {"enableSoftDelete": True},
}


class FakeArm:
    """ARM endpoints used by discovery, diagnostics, rule scanners and Defender."""

    def __init__(self) -> None:
        self.urls: List[str] = []

    def iter_pages(self, url: str, *, ctx: Any = None):
        self.urls.append(url)
        yield {"subscriptionId": SUB, "displayName": "Production", "state": "Enabled"}

    def list_all(self, url: str, *, ctx: Any = None) -> List[Dict[str, Any]]:
        self.urls.append(url)
        if "Microsoft.KeyVault/vaults" in url:
            return [KV_RESOURCE]
        return []

    def get_json(self, url: str, *, ctx: Any = None) -> Dict[str, Any]:
        self.urls.append(url)
        return {"value": [{"name": "KeyVaults", "properties": {"pricingTier": "Standard"}}]}

    def post_json(self, url: str, body: Dict[str, Any], *, ctx: Any = None) -> Dict[str, Any]:
        self.urls.append(url)
        return {"responses": [{"httpStatusCode": 200, "content": {"value": []}} for _ in body["requests"]]}


class FakeGraph:
    def __init__(self) -> None:
        self.queries: List[str] = []

    def query(self, ctx: Any, query: str, subscriptions: List[str]) -> List[Dict[str, Any]]:
        self.queries.append(query)
        if query == RESOURCES_QUERY:
            return [dict(KV_RESOURCE, subscriptionId=SUB, resourceGroup="rg1")]
        if query == COUNT_BY_TYPE_QUERY:
            return [{"type": KV_TYPE, "count_": 1}]
        if query == COUNT_BY_SUBSCRIPTION_AND_TYPE_QUERY:
            return [{"subscriptionId": SUB, "type": KV_TYPE, "count_": 1}]
        if "microsoft.keyvault/vaults" in query:
            return [{"id": KV_ID, "name": "kv1", "param1": "soft delete"}]
        return []


def test_default_scan_writes_masked_json_report(tmp_path: Path) -> None:
    arm, graph = FakeArm(), FakeGraph()
    service = ScanService(
        credential="credential",
        http_client=arm,
        graph_client=graph,
        renderers=[JsonReportRenderer(output_dir=tmp_path)],
        plugin_registry=PluginRegistry(),
        plugin_dirs=[],
        endpoint="https://management.azure.com",
    )
    params = ScanParams.with_defaults(subscriptions=[SUB], services=["kv"])
    params.output_name = "report"

    report = service.scan(params)

    sources = {result.source for result in report.graph}
    assert {"APRL", "AZQR"} <= sources
    assert [result.recommendation_id for result in report.graph if result.source == "AZQR"] == ["dgs-001"]
    assert [result.service_name for result in report.azqr] == ["kv1"]
    assert report.azqr[0].recommendations["kv-001"].not_compliant is True
    assert [(d.name, d.tier) for d in report.defender] == [("KeyVaults", "Standard")]
    assert report.advisor == []
    assert report.cost is None
    assert report.resource_type_count[0].subscription == "Production"
    assert "kv-001" in report.recommendations["microsoft.keyvault/vaults"]

    document = json.loads((tmp_path / "report.json").read_text(encoding="utf-8"))
    assert document["outputName"] == "report"
    assert {row["subscription_id"] for row in document["azqr"]} == {MASKED_SUB}
    assert {row["subscription_id"] for row in document["graph"]} == {MASKED_SUB}
    assert document["stages"]["graph"]["enabled"] is True
    assert document["cost"] is None


class EmptyTenantArm(FakeArm):
    """A tenant whose subscription listing is empty."""

    def iter_pages(self, url: str, *, ctx: Any = None):
        self.urls.append(url)
        yield from ()

    def get_json(self, url: str, *, ctx: Any = None) -> Dict[str, Any]:
        self.urls.append(url)
        return {"value": []}


def test_default_scan_without_subscriptions_produces_an_empty_report(tmp_path: Path) -> None:
    arm = EmptyTenantArm()
    service = ScanService(
        credential="credential",
        http_client=arm,
        graph_client=GraphQueryClient(arm, "https://management.azure.com"),  # type: ignore[arg-type]
        renderers=[JsonReportRenderer(output_dir=tmp_path)],
        plugin_registry=PluginRegistry(),
        plugin_dirs=[],
        endpoint="https://management.azure.com",
    )
    params = ScanParams.with_defaults()
    params.output_name = "empty"

    report = service.scan(params)

    assert report.resources == []
    assert report.graph == []
    assert report.azqr == []
    assert report.defender == []
    assert not any("Microsoft.ResourceGraph" in url for url in arm.urls)
    pipeline = service.last_pipeline
    assert pipeline is not None
    assert pipeline.metrics.stage_errors == {}
    assert pipeline.metrics.stages_executed + pipeline.metrics.stages_skipped == len(pipeline.stages)
    assert (tmp_path / "empty.json").exists()
