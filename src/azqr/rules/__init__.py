"""Recommendation engine and the bundled graph recommendation catalogue."""

from .catalog import RecommendationCatalog, RecommendationCatalogError, is_query_runnable
from .engine import RecommendationEngine

__all__ = [
    "RecommendationCatalog",
    "RecommendationCatalogError",
    "RecommendationEngine",
    "is_query_runnable",
]
