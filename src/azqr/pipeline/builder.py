"""Fluent construction of the default and plugin-only pipelines."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from ..adapters.graph_client import GraphQueryClient
from ..adapters.http_client import HttpClient, HttpClientOptions, default_options
from ..context import ExecutionContext
from ..models.scan_params import ScanParams
from ..plugins.registry import PluginRegistry
from ..rules.catalog import RecommendationCatalog
from .executor import Pipeline, Renderer, ScanContext, Stage
from .stages import (
    AdvisorStage,
    ArcSQLStage,
    AzqrScanStage,
    CostStage,
    DefenderRecommendationsStage,
    DefenderStatusStage,
    DiagnosticsScanStage,
    GraphScanStage,
    InitializationStage,
    PluginExecutionStage,
    PolicyStage,
    ProfilingCleanupStage,
    ProfilingStage,
    ReportRenderingStage,
    ResourceDiscoveryStage,
    SubscriptionDiscoveryStage,
)


class ScanPipelineBuilder:
    """Collect stages in call order and produce a :class:`Pipeline`."""

    def __init__(
        self,
        *,
        catalog: RecommendationCatalog | None = None,
        plugin_registry: PluginRegistry | None = None,
    ) -> None:
        self._stages: List[Stage] = []
        self._catalog = catalog
        self._plugins = plugin_registry

    # ------------------------------------------------------------------
    def with_profiling(self) -> "ScanPipelineBuilder":
        return self.with_stage(ProfilingStage())

    def with_initialization(self) -> "ScanPipelineBuilder":
        return self.with_stage(InitializationStage())

    def with_subscription_discovery(self) -> "ScanPipelineBuilder":
        return self.with_stage(SubscriptionDiscoveryStage())

    def with_resource_discovery(self) -> "ScanPipelineBuilder":
        return self.with_stage(ResourceDiscoveryStage())

    def with_graph_scan(self) -> "ScanPipelineBuilder":
        return self.with_stage(GraphScanStage(catalog=self._catalog, plugin_registry=self._plugins))

    def with_diagnostics_scan(self) -> "ScanPipelineBuilder":
        return self.with_stage(DiagnosticsScanStage())

    def with_azqr_scan(self) -> "ScanPipelineBuilder":
        return self.with_stage(AzqrScanStage())

    def with_advisor(self) -> "ScanPipelineBuilder":
        return self.with_stage(AdvisorStage())

    def with_defender_status(self) -> "ScanPipelineBuilder":
        return self.with_stage(DefenderStatusStage())

    def with_defender_recommendations(self) -> "ScanPipelineBuilder":
        return self.with_stage(DefenderRecommendationsStage())

    def with_policy(self) -> "ScanPipelineBuilder":
        return self.with_stage(PolicyStage())

    def with_arc_sql(self) -> "ScanPipelineBuilder":
        return self.with_stage(ArcSQLStage())

    def with_cost(self) -> "ScanPipelineBuilder":
        return self.with_stage(CostStage())

    def with_plugin_execution(self) -> "ScanPipelineBuilder":
        return self.with_stage(PluginExecutionStage(plugin_registry=self._plugins))

    def with_report_rendering(self) -> "ScanPipelineBuilder":
        return self.with_stage(ReportRenderingStage())

    def with_profiling_cleanup(self) -> "ScanPipelineBuilder":
        return self.with_stage(ProfilingCleanupStage())

    def with_stage(self, stage: Stage) -> "ScanPipelineBuilder":
        self._stages.append(stage)
        return self

    def with_stages(self, stages: Iterable[Stage]) -> "ScanPipelineBuilder":
        self._stages.extend(stages)
        return self

    # ------------------------------------------------------------------
    def build(self) -> Pipeline:
        return Pipeline(self._stages)

    def build_default(self) -> Pipeline:
        """Every stage of a regular scan, from profiling setup to profiling cleanup."""

        return (
            self.with_profiling()
            .with_initialization()
            .with_subscription_discovery()
            .with_resource_discovery()
            .with_graph_scan()
            .with_diagnostics_scan()
            .with_azqr_scan()
            .with_advisor()
            .with_defender_status()
            .with_defender_recommendations()
            .with_policy()
            .with_arc_sql()
            .with_cost()
            .with_plugin_execution()
            .with_report_rendering()
            .with_profiling_cleanup()
            .build()
        )

    def build_plugin_only(self) -> Pipeline:
        return (
            self.with_profiling()
            .with_initialization()
            .with_subscription_discovery()
            .with_plugin_execution()
            .with_report_rendering()
            .with_profiling_cleanup()
            .build()
        )


def new_scan_context(
    params: ScanParams,
    *,
    ctx: ExecutionContext | None = None,
    credential: Any = None,
    credential_factory: Optional[Callable[[], Any]] = None,
    client_options: HttpClientOptions | None = None,
    http_client: HttpClient | None = None,
    graph_client: GraphQueryClient | None = None,
    renderers: Iterable[Renderer] = (),
    endpoint: str = "",
    start_time: datetime | None = None,
) -> ScanContext:
    """Runtime context for one scan; the credential is created later when omitted."""

    return ScanContext(
        params=params,
        ctx=(ctx or ExecutionContext.background()).with_cancel(),
        credential=credential,
        client_options=client_options or default_options(),
        start_time=start_time or datetime.now(),
        renderers=list(renderers),
        credential_factory=credential_factory,
        http_client=http_client,
        graph_client=graph_client,
        endpoint=endpoint,
    )


__all__ = ["ScanPipelineBuilder", "new_scan_context"]
