"""Load the bundled graph recommendation catalogue shipped as package data."""

from __future__ import annotations

import logging
from importlib import resources
from importlib.resources.abc import Traversable
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import yaml

from ..models.recommendation import GraphRecommendation

logger = logging.getLogger(__name__)

APRL_TREE = "azure-resources"
ORPHAN_TREE = "azure-orphan-resources"

# catalogue tree -> source reported for its recommendations
CATALOG_SOURCES: Mapping[str, str] = {
    APRL_TREE: "APRL",
    ORPHAN_TREE: "AOR",
}

Catalog = Dict[str, Dict[str, GraphRecommendation]]


class RecommendationCatalogError(RuntimeError):
    """Raised when a bundled recommendation file cannot be parsed."""


def _catalog_root() -> Traversable:
    return resources.files("azqr.rules") / "catalog"


def _walk(node: Traversable) -> Iterator[Traversable]:
    """Yield every file under ``node`` in a sorted, deterministic order."""

    for child in sorted(node.iterdir(), key=lambda entry: entry.name):
        if child.is_dir():
            yield from _walk(child)
        elif child.is_file():
            yield child


class RecommendationCatalog:
    """Recommendations keyed by lowercase resource type then recommendation id."""

    def __init__(
        self,
        trees: Sequence[str] | None = None,
        *,
        root: Traversable | None = None,
    ) -> None:
        self._trees = list(trees or CATALOG_SOURCES)
        self._root = root
        self._cache: Catalog | None = None

    # ------------------------------------------------------------------
    def load(self) -> Catalog:
        if self._cache is None:
            catalog: Catalog = {}
            root = self._root or _catalog_root()
            for tree in self._trees:
                source = CATALOG_SOURCES.get(tree, tree.upper())
                for resource_type, by_id in self._load_tree(root / tree, source).items():
                    catalog.setdefault(resource_type, {}).update(by_id)
            self._cache = catalog
            logger.debug(
                "Loaded %d bundled recommendations for %d resource types",
                sum(len(by_id) for by_id in catalog.values()),
                len(catalog),
            )
        return self._cache

    def for_resource_type(self, resource_type: str) -> Dict[str, GraphRecommendation]:
        return dict(self.load().get(resource_type.lower(), {}))

    def resource_types(self) -> List[str]:
        return sorted(self.load())

    # ------------------------------------------------------------------
    def _load_tree(self, tree: Traversable, source: str) -> Catalog:
        if not tree.is_dir():
            logger.debug("Recommendation tree %s not bundled", tree.name)
            return {}

        files = list(_walk(tree))
        queries = {
            entry.name[: -len(".kql")]: entry.read_text(encoding="utf-8")
            for entry in files
            if entry.name.endswith(".kql")
        }

        catalog: Catalog = {}
        for entry in files:
            if not entry.name.endswith((".yaml", ".yml")):
                continue
            for recommendation in self._parse_file(entry, source):
                query = queries.get(recommendation.recommendation_id)
                if query is not None:
                    recommendation.graph_query = query
                resource_type = recommendation.resource_type.lower()
                catalog.setdefault(resource_type, {})[recommendation.recommendation_id] = recommendation
        return catalog

    def _parse_file(self, entry: Traversable, source: str) -> List[GraphRecommendation]:
        try:
            data: Any = yaml.safe_load(entry.read_text(encoding="utf-8")) or []
        except yaml.YAMLError as exc:
            raise RecommendationCatalogError(f"Invalid YAML in recommendation file {entry.name}") from exc

        if not isinstance(data, list):
            raise RecommendationCatalogError(
                f"Recommendation file must contain a list: {entry.name}"
            )

        recommendations: List[GraphRecommendation] = []
        for item in data:
            if not isinstance(item, Mapping) or not item.get("aprlGuid"):
                continue
            recommendations.append(GraphRecommendation.from_mapping(dict(item), source=source))
        return recommendations


def split_runnable(
    recommendations: Mapping[str, GraphRecommendation],
) -> Tuple[List[GraphRecommendation], List[GraphRecommendation]]:
    """Split into (runnable, not runnable) according to the query text."""

    runnable: List[GraphRecommendation] = []
    skipped: List[GraphRecommendation] = []
    for recommendation in recommendations.values():
        if is_query_runnable(recommendation.graph_query):
            runnable.append(recommendation)
        else:
            skipped.append(recommendation)
    return runnable, skipped


_NOT_RUNNABLE_MARKERS = ("cannot-be-validated-with-arg", "under-development", "under development")


def is_query_runnable(query: str) -> bool:
    if not query or not query.strip():
        return False
    return not any(marker in query for marker in _NOT_RUNNABLE_MARKERS)


__all__ = [
    "APRL_TREE",
    "CATALOG_SOURCES",
    "Catalog",
    "ORPHAN_TREE",
    "RecommendationCatalog",
    "RecommendationCatalogError",
    "is_query_runnable",
    "split_runnable",
]
