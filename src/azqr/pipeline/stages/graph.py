"""Two-phase Resource Graph scan."""

from __future__ import annotations

import logging
from typing import List, Mapping, Sequence

from ...plugins.registry import PluginRegistry, get_registry
from ...rules.catalog import RecommendationCatalog
from ...scanners.base import Scanner
from ...scanners.discovery import ResourceDiscovery
from ...scanners.graph import GraphScanner
from ...scanners.registry import get_scanner_by_key
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)

RESOURCE_SCANNER_KEY = "resource"


def filter_service_scanners(
    scanners: Sequence[Scanner],
    resource_type_counts: Mapping[str, float],
) -> List[Scanner]:
    """Keep scanners owning a type with resources, then add the generic resource scanner."""

    counts = {resource_type.lower(): count for resource_type, count in resource_type_counts.items()}
    kept: List[Scanner] = []
    for scanner in scanners:
        for resource_type in scanner.resource_types():
            if counts.get(resource_type.lower(), 0) > 0:
                logger.info("Scanner for %s will be used", resource_type)
                kept.append(scanner)
                break
        else:
            logger.debug("Skipping scanner %r: no resources", scanner)

    kept.extend(get_scanner_by_key(RESOURCE_SCANNER_KEY)[:1])
    return kept


class GraphScanStage(BaseStage):
    """Graph recommendations, limited to scanners whose types have resources."""

    def __init__(
        self,
        *,
        catalog: RecommendationCatalog | None = None,
        plugin_registry: PluginRegistry | None = None,
    ) -> None:
        super().__init__("Graph Scan", False)
        self._catalog = catalog or RecommendationCatalog()
        self._plugins = plugin_registry

    def skip(self, ctx: ScanContext) -> bool:
        return False

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        filters = ctx.params.filters
        service_scanners = list(filters.scanners)
        logger.debug(
            "Graph scan starting with %d scanners over %d subscriptions",
            len(service_scanners),
            len(ctx.subscriptions),
        )

        scanner = self._new_scanner(ctx, service_scanners)
        recommendations, rules = scanner.list_recommendations()
        report.recommendations = recommendations
        logger.debug("Listed %d recommendation types and %d rules", len(recommendations), len(rules))

        discovery = ResourceDiscovery(ctx.graph())
        counts = discovery.get_count_per_resource_type(ctx.ctx, ctx.subscriptions)
        filtered = filter_service_scanners(service_scanners, counts)
        logger.debug("Scanners filtered from %d to %d", len(service_scanners), len(filtered))

        if filtered:
            report.graph = self._new_scanner(ctx, filtered).scan(ctx.ctx)
        else:
            logger.warning("No scanners left after filtering; graph scan returns no results")
        logger.debug("Graph scan produced %d results", len(report.graph))

        report.resource_type_count = discovery.get_count_per_resource_type_and_subscription(
            ctx.ctx, ctx.subscriptions, report.recommendations
        )

    # ------------------------------------------------------------------
    def _new_scanner(self, ctx: ScanContext, scanners: Sequence[Scanner]) -> GraphScanner:
        scanner = GraphScanner(
            scanners,
            ctx.params.filters,
            ctx.subscriptions,
            catalog=self._catalog,
            graph_client=ctx.graph(),
        )
        registry = self._plugins or get_registry()
        for plugin in registry.list():
            if not plugin.yaml_recommendations:
                continue
            logger.info(
                "Registering %d queries from YAML plugin %s",
                len(plugin.yaml_recommendations),
                plugin.metadata.name,
            )
            for recommendation in plugin.yaml_recommendations:
                scanner.register_external_query(recommendation.resource_type, recommendation)
        return scanner


__all__ = ["GraphScanStage", "RESOURCE_SCANNER_KEY", "filter_service_scanners"]
