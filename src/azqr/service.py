"""Facade used by the CLI to run regular and plugin-only scans."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .adapters.graph_client import GraphQueryClient
from .adapters.http_client import HttpClient, HttpClientOptions
from .context import ExecutionContext
from .models.report_data import ReportData
from .models.scan_params import ScanParams
from .pipeline.builder import ScanPipelineBuilder, new_scan_context
from .pipeline.executor import Pipeline, Renderer, StageError
from .plugins.builtin import register_builtin_plugins
from .plugins.registry import PluginRegistry, get_registry
from .plugins.yaml_loader import register_yaml_plugins
from .rules.catalog import RecommendationCatalog
from .scanners.registry import register_default_scanners

logger = logging.getLogger(__name__)

CredentialFactory = Callable[[], Any]
BuilderFactory = Callable[[], ScanPipelineBuilder]


def format_duration(seconds: float) -> str:
    """Render ``seconds`` as ``HH:MM:SS``."""

    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ScanService:
    """Build the scan context and pipeline, execute it and return the report."""

    def __init__(
        self,
        *,
        credential: Any = None,
        credential_factory: CredentialFactory | None = None,
        client_options: HttpClientOptions | None = None,
        http_client: HttpClient | None = None,
        graph_client: GraphQueryClient | None = None,
        renderers: Iterable[Renderer] = (),
        plugin_registry: PluginRegistry | None = None,
        plugin_dirs: Sequence[Path | str] | None = None,
        catalog: RecommendationCatalog | None = None,
        builder_factory: BuilderFactory | None = None,
        endpoint: str = "",
        ctx: ExecutionContext | None = None,
    ) -> None:
        self._credential = credential
        self._credential_factory = credential_factory
        self._client_options = client_options
        self._http_client = http_client
        self._graph_client = graph_client
        self._renderers: List[Renderer] = list(renderers)
        self._plugins = plugin_registry
        self._plugin_dirs = plugin_dirs
        self._catalog = catalog
        self._builder_factory = builder_factory or self._default_builder
        self._endpoint = endpoint
        self._ctx = ctx
        self.last_pipeline: Optional[Pipeline] = None

    # ------------------------------------------------------------------
    def scan(self, params: ScanParams) -> ReportData:
        """Run the default pipeline; the graph stage must be enabled."""

        params.stages.validate_graph_stage_enabled()
        self._bootstrap()
        return self._run(self._builder_factory().build_default(), params)

    def scan_plugins(self, params: ScanParams) -> ReportData:
        """Run only the enabled internal plugins over the discovered subscriptions."""

        self._bootstrap()
        return self._run(self._builder_factory().build_plugin_only(), params)

    # ------------------------------------------------------------------
    def _bootstrap(self) -> None:
        register_default_scanners()
        register_builtin_plugins(self._plugins)
        count = register_yaml_plugins(self._plugin_dirs, self._plugins)
        logger.debug("Registered %d YAML plugins", count)

    def _default_builder(self) -> ScanPipelineBuilder:
        return ScanPipelineBuilder(catalog=self._catalog, plugin_registry=self._plugins)

    def _run(self, pipeline: Pipeline, params: ScanParams) -> ReportData:
        started = datetime.now()
        ctx = new_scan_context(
            params,
            ctx=self._ctx,
            credential=self._credential,
            credential_factory=self._credential_factory,
            client_options=self._client_options,
            http_client=self._http_client,
            graph_client=self._graph_client,
            renderers=self._renderers,
            endpoint=self._endpoint,
            start_time=started,
        )
        self.last_pipeline = pipeline

        try:
            pipeline.execute(ctx)
        finally:
            if params.debug:
                pipeline.log_metrics()
            ctx.cancel()

        if ctx.report_data is None:
            raise StageError("scan finished without report data")

        elapsed = (datetime.now() - started).total_seconds()
        logger.info("Scan completed in %s", format_duration(elapsed))
        return ctx.report_data

    @property
    def plugin_registry(self) -> PluginRegistry:
        return self._plugins or get_registry()


__all__ = ["ScanService", "format_duration"]
