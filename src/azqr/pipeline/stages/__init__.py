"""Pipeline stages in the order the default pipeline runs them."""

from .auxiliary import (
    AdvisorStage,
    ArcSQLStage,
    DefenderRecommendationsStage,
    DefenderStatusStage,
    PolicyStage,
)
from .azqr import AzqrScanStage
from .cost import CostStage
from .diagnostics import DiagnosticsScanStage
from .discovery import ResourceDiscoveryStage, SubscriptionDiscoveryStage
from .graph import GraphScanStage
from .initialization import InitializationStage, generate_output_file_name, validate_scan_scope
from .plugins import PluginExecutionStage
from .profiling import Profiler, ProfilingCleanupStage, ProfilingStage
from .rendering import ReportRenderingStage

__all__ = [
    "AdvisorStage",
    "ArcSQLStage",
    "AzqrScanStage",
    "CostStage",
    "DefenderRecommendationsStage",
    "DefenderStatusStage",
    "DiagnosticsScanStage",
    "GraphScanStage",
    "InitializationStage",
    "PluginExecutionStage",
    "PolicyStage",
    "Profiler",
    "ProfilingCleanupStage",
    "ProfilingStage",
    "ReportRenderingStage",
    "ResourceDiscoveryStage",
    "SubscriptionDiscoveryStage",
    "generate_output_file_name",
    "validate_scan_scope",
]
