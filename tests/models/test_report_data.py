from __future__ import annotations

from azqr.models.recommendation import (
    AzqrRecommendation,
    GraphRecommendation,
    RecommendationCategory,
    RecommendationImpact,
)
from azqr.models.report_data import ReportData
from azqr.models.resource import (
    ResourceTypeCount,
    get_resource_group_id_from_resource_id,
    get_resource_name_from_resource_id,
    get_resource_type_from_resource_id,
    get_subscription_from_resource_id,
    parse_location,
)
from azqr.models.results import AzqrServiceResult

SUB = "00000000-0000-0000-0000-000000000001"
KV_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.KeyVault/vaults/kv1"


def test_recommendations_are_indexed_by_lowercase_type() -> None:
    report = ReportData()

    report.add_recommendation(GraphRecommendation("b", "B", resource_type="Microsoft.KeyVault/vaults"))
    report.add_recommendation(GraphRecommendation("a", "A", resource_type="microsoft.keyvault/vaults"))
    report.add_recommendation(GraphRecommendation("c", "C", resource_type="Microsoft.Web/sites"))

    assert sorted(report.recommendations) == ["microsoft.keyvault/vaults", "microsoft.web/sites"]
    assert report.recommendation_ids() == ["a", "b", "c"]


def test_rule_converts_to_graph_recommendation() -> None:
    rule = AzqrRecommendation(
        recommendation_id="kv-007",
        resource_type="Microsoft.KeyVault/vaults",
        category=RecommendationCategory.GOVERNANCE,
        recommendation="Key Vault should have tags",
        impact=RecommendationImpact.LOW,
        eval=lambda resource, scan_context: (False, ""),
        learn_more_url="https://tags",
    )

    graph = rule.to_graph_recommendation()

    assert graph.recommendation_id == "kv-007"
    assert graph.category == RecommendationCategory.GOVERNANCE.value
    assert graph.learn_more_url == "https://tags"
    assert graph.source == "AZQR"


def test_service_result_resource_id_is_lowercase() -> None:
    result = AzqrServiceResult(SUB, "Prod", "rg1", "westeurope", "Microsoft.KeyVault/vaults", "kv1")

    assert result.resource_id() == KV_ID.lower()


def test_resource_id_helpers() -> None:
    assert get_subscription_from_resource_id(KV_ID) == SUB
    assert get_resource_group_id_from_resource_id(KV_ID) == f"/subscriptions/{SUB}/resourceGroups/rg1"
    assert get_resource_type_from_resource_id(KV_ID) == "Microsoft.KeyVault/vaults"
    assert get_resource_name_from_resource_id(KV_ID) == "kv1"
    assert get_resource_type_from_resource_id("/subscriptions/x") == ""
    assert parse_location("West Europe") == "westeurope"


def test_resource_type_count_row() -> None:
    row = ResourceTypeCount("Prod", "Microsoft.KeyVault/vaults", 3, "Yes").to_dict()

    assert row["Number of Resources"] == 3
    assert row["Available In APRL?"] == "Yes"
