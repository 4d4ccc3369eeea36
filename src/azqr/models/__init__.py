"""Data models for scan requests, scope filters, recommendations and results."""

from .filters import ExcludeFilter, FilterError, Filters, IncludeFilter, load_filters
from .recommendation import (
    AzqrRecommendation,
    AzqrResult,
    GraphRecommendation,
    GraphResult,
    LearnMoreLink,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from .report_data import ReportData
from .resource import Resource, ResourceTypeCount
from .results import (
    AdvisorResult,
    ArcSQLResult,
    AzqrServiceResult,
    AzurePolicyResult,
    CostResult,
    CostResultItem,
    DefenderRecommendation,
    DefenderResult,
    PluginResult,
)
from .scan_params import ScanParams
from .stage_config import StageConfigError, StageConfigs, StageOptionError

__all__ = [
    "AdvisorResult",
    "ArcSQLResult",
    "AzqrRecommendation",
    "AzqrResult",
    "AzqrServiceResult",
    "AzurePolicyResult",
    "CostResult",
    "CostResultItem",
    "DefenderRecommendation",
    "DefenderResult",
    "ExcludeFilter",
    "FilterError",
    "Filters",
    "GraphRecommendation",
    "GraphResult",
    "IncludeFilter",
    "LearnMoreLink",
    "PluginResult",
    "RecommendationCategory",
    "RecommendationImpact",
    "RecommendationType",
    "ReportData",
    "Resource",
    "ResourceTypeCount",
    "ScanParams",
    "StageConfigError",
    "StageConfigs",
    "StageOptionError",
    "load_filters",
]
