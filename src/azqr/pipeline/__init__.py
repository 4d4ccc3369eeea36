"""Scan pipeline: executor, stages and builder."""

from .builder import ScanPipelineBuilder, new_scan_context
from .executor import (
    BaseStage,
    Pipeline,
    PipelineMetrics,
    Renderer,
    ScanContext,
    ScanValidationError,
    Stage,
    StageError,
)

__all__ = [
    "BaseStage",
    "Pipeline",
    "PipelineMetrics",
    "Renderer",
    "ScanContext",
    "ScanPipelineBuilder",
    "ScanValidationError",
    "Stage",
    "StageError",
    "new_scan_context",
]
