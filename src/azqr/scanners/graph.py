"""Run catalogue and plugin graph recommendations through Resource Graph."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..adapters.graph_client import GraphQueryClient
from ..adapters.http_client import HttpClient
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.recommendation import GraphRecommendation, GraphResult
from ..normalization.graph_rows import GraphRowNormalizer
from ..rules.catalog import RecommendationCatalog, is_query_runnable
from .base import Scanner, log_resource_type_scan

logger = logging.getLogger(__name__)

GRAPH_WORKERS = 12

Recommendations = Dict[str, Dict[str, GraphRecommendation]]


class GraphScanner:
    """Graph recommendations for the resource types of the active scanners."""

    def __init__(
        self,
        service_scanners: Sequence[Scanner],
        filters: Filters,
        subscriptions: Mapping[str, str],
        *,
        catalog: RecommendationCatalog | None = None,
        graph_client: GraphQueryClient | None = None,
        normalizer: GraphRowNormalizer | None = None,
        workers: int = GRAPH_WORKERS,
    ) -> None:
        self._scanners = list(service_scanners)
        self._filters = filters
        self._subscriptions = dict(subscriptions)
        self._catalog = catalog or RecommendationCatalog()
        self._graph_client = graph_client
        self._normalizer = normalizer or GraphRowNormalizer()
        self._workers = max(1, workers)
        self._external: Recommendations = {}

    # ------------------------------------------------------------------
    def register_external_query(self, resource_type: str, recommendation: GraphRecommendation) -> None:
        """Add a plugin recommendation; it replaces a catalogue entry with the same id."""

        key = resource_type.lower()
        self._external.setdefault(key, {})[recommendation.recommendation_id] = recommendation
        logger.debug(
            "Registered external query %s for %s", recommendation.recommendation_id, resource_type
        )

    def list_recommendations(self) -> Tuple[Recommendations, List[GraphRecommendation]]:
        """Return the recommendations for the active types and the runnable rules.

        The first element maps lowercase resource type to recommendation id
        for every non-excluded recommendation; the second lists the rules
        whose query can actually be run.
        """

        recommendations: Recommendations = {}
        rules: List[GraphRecommendation] = []
        seen: set[Tuple[str, str]] = set()
        for scanner in self._scanners:
            for resource_type in scanner.resource_types():
                key = resource_type.lower()
                for recommendation in self._for_type(key).values():
                    if self._filters.is_recommendation_excluded(recommendation.recommendation_id):
                        continue
                    recommendations.setdefault(key, {})[recommendation.recommendation_id] = recommendation
                    marker = (key, recommendation.recommendation_id)
                    if marker in seen or not is_query_runnable(recommendation.graph_query):
                        continue
                    seen.add(marker)
                    rules.append(recommendation)
        return recommendations, rules

    def scan(self, ctx: ExecutionContext, credential: Any = None) -> List[GraphResult]:
        """Execute every runnable rule and return the non-excluded impacted resources."""

        _, rules = self.list_recommendations()
        if not rules or not self._subscriptions:
            return []

        for resource_type in sorted({rule.resource_type for rule in rules}):
            log_resource_type_scan(resource_type)

        client = self._graph_client or GraphQueryClient(HttpClient(credential))
        subscription_ids = sorted(self._subscriptions)

        def run(rule: GraphRecommendation) -> List[GraphResult]:
            logger.debug("Running graph query for %s", rule.recommendation_id)
            rows = client.query(ctx, rule.graph_query, subscription_ids)
            return self._normalizer.to_graph_results(rule, rows, self._subscriptions)

        results: List[GraphResult] = []
        with ThreadPoolExecutor(max_workers=min(self._workers, len(rules))) as pool:
            for batch in pool.map(run, rules):
                for result in batch:
                    if self._filters.is_service_excluded(result.resource_id):
                        continue
                    results.append(result)
        logger.info("Graph scan produced %d results from %d rules", len(results), len(rules))
        return results

    # ------------------------------------------------------------------
    def _for_type(self, resource_type: str) -> Dict[str, GraphRecommendation]:
        merged = self._catalog.for_resource_type(resource_type)
        merged.update(self._external.get(resource_type, {}))
        return merged


__all__ = ["GRAPH_WORKERS", "GraphScanner"]
