"""Passive container the pipeline stages fill and the renderers read."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .recommendation import GraphRecommendation, GraphResult
from .resource import Resource, ResourceTypeCount
from .results import (
    AdvisorResult,
    ArcSQLResult,
    AzqrServiceResult,
    AzurePolicyResult,
    CostResult,
    DefenderRecommendation,
    DefenderResult,
    PluginResult,
)
from .stage_config import StageConfigs


@dataclass(slots=True)
class ReportData:
    output_name: str = ""
    mask: bool = True
    stages: StageConfigs = field(default_factory=StageConfigs)
    # resource type -> recommendation id -> recommendation
    recommendations: Dict[str, Dict[str, GraphRecommendation]] = field(default_factory=dict)
    graph: List[GraphResult] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    excluded_resources: List[Resource] = field(default_factory=list)
    resource_type_count: List[ResourceTypeCount] = field(default_factory=list)
    azqr: List[AzqrServiceResult] = field(default_factory=list)
    advisor: List[AdvisorResult] = field(default_factory=list)
    defender: List[DefenderResult] = field(default_factory=list)
    defender_recommendations: List[DefenderRecommendation] = field(default_factory=list)
    azure_policy: List[AzurePolicyResult] = field(default_factory=list)
    arc_sql: List[ArcSQLResult] = field(default_factory=list)
    cost: Optional[CostResult] = None
    plugin_results: List[PluginResult] = field(default_factory=list)
    diagnostics_settings: Dict[str, bool] = field(default_factory=dict)

    def add_recommendation(self, recommendation: GraphRecommendation) -> None:
        resource_type = recommendation.resource_type.lower()
        self.recommendations.setdefault(resource_type, {})[recommendation.recommendation_id] = (
            recommendation
        )

    def recommendation_ids(self) -> List[str]:
        return sorted(
            recommendation_id
            for by_id in self.recommendations.values()
            for recommendation_id in by_id
        )


__all__ = ["ReportData"]
