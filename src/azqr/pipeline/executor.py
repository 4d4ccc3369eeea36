"""Sequential stage executor and the runtime scan context it threads through."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..adapters.cloud import get_resource_manager_endpoint
from ..adapters.graph_client import GraphQueryClient
from ..adapters.http_client import (
    HttpClient,
    HttpClientOptions,
    default_options,
    long_running_options,
)
from ..context import ExecutionContext
from ..models.report_data import ReportData
from ..models.scan_params import ScanParams
from ..scanners.base import ScannerConfig

logger = logging.getLogger(__name__)

Renderer = Callable[[ReportData], None]


class StageError(RuntimeError):
    """Raised when a stage cannot complete; the pipeline stops on the first one."""


class ScanValidationError(RuntimeError):
    """Raised when the scan request combines options that cannot be used together."""


@dataclass(slots=True)
class ScanContext:
    """State shared by the stages of one pipeline run."""

    params: ScanParams
    ctx: ExecutionContext = field(default_factory=ExecutionContext.background)
    credential: Any = None
    client_options: HttpClientOptions = field(default_factory=default_options)
    subscriptions: Dict[str, str] = field(default_factory=dict)
    start_time: datetime = field(default_factory=datetime.now)
    report_data: Optional[ReportData] = None
    profiler: Any = None
    renderers: List[Renderer] = field(default_factory=list)
    credential_factory: Optional[Callable[[], Any]] = None
    http_client: Optional[HttpClient] = None
    graph_client: Optional[GraphQueryClient] = None
    endpoint: str = ""

    def cancel(self) -> None:
        self.ctx.cancel()

    # ------------------------------------------------------------------
    def arm_endpoint(self) -> str:
        return (self.endpoint or get_resource_manager_endpoint()).rstrip("/")

    def client(self) -> HttpClient:
        if self.http_client is None:
            self.http_client = HttpClient(self.credential, self.client_options)
        return self.http_client

    def graph(self) -> GraphQueryClient:
        if self.graph_client is None:
            self.graph_client = GraphQueryClient(self.client(), self.arm_endpoint())
        return self.graph_client

    def long_running_client(self) -> HttpClient:
        """The shared client with the larger retry budget of long-running scans."""

        client = self.client()
        if isinstance(client, HttpClient):
            return client.with_options(long_running_options(self.client_options.try_timeout))
        return client

    def scanner_config(
        self, subscription_id: str, subscription_name: str = "", *, long_running: bool = False
    ) -> ScannerConfig:
        client = self.long_running_client() if long_running else self.client()
        return ScannerConfig(
            ctx=self.ctx,
            credential=self.credential,
            client_options=client.options if isinstance(client, HttpClient) else self.client_options,
            subscription_id=subscription_id,
            subscription_name=subscription_name,
            http_client=client,
            endpoint=self.arm_endpoint(),
        )

    def require_report_data(self) -> ReportData:
        if self.report_data is None:
            raise StageError("report data not initialized; the initialization stage must run first")
        return self.report_data


class Stage(ABC):
    """One unit of pipeline work."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name used for logging and metrics."""

    @abstractmethod
    def skip(self, ctx: ScanContext) -> bool:
        """Whether this stage should be skipped for ``ctx``."""

    @abstractmethod
    def execute(self, ctx: ScanContext) -> None:
        """Run the stage, reading and writing ``ctx``."""


class BaseStage(Stage):
    """Stage with a fixed name; it runs only when ``required``."""

    def __init__(self, name: str, required: bool) -> None:
        self._name = name
        self.required = required

    @property
    def name(self) -> str:
        return self._name

    def skip(self, ctx: ScanContext) -> bool:
        return not self.required

    def execute(self, ctx: ScanContext) -> None:  # pragma: no cover - overridden
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


@dataclass(slots=True)
class PipelineMetrics:
    total_duration: float = 0.0
    stage_durations: Dict[str, float] = field(default_factory=dict)
    stage_errors: Dict[str, BaseException] = field(default_factory=dict)
    stages_executed: int = 0
    stages_skipped: int = 0


class Pipeline:
    """Run stages in order, timing each; the first failure stops the run."""

    def __init__(self, stages: Sequence[Stage], *, clock: Callable[[], float] = time.perf_counter) -> None:
        names = [stage.name for stage in stages]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate stage names: {', '.join(duplicates)}")
        self.stages = list(stages)
        self.metrics = PipelineMetrics()
        self._clock = clock

    def execute(self, ctx: ScanContext) -> None:
        started = self._clock()
        logger.info("Scan started with %d stages", len(self.stages))

        try:
            for position, stage in enumerate(self.stages, start=1):
                if stage.skip(ctx):
                    logger.debug("Skipping stage %s (%d)", stage.name, position)
                    self.metrics.stages_skipped += 1
                    continue

                logger.debug("Executing stage %s (%d/%d)", stage.name, position, len(self.stages))
                stage_started = self._clock()
                try:
                    stage.execute(ctx)
                except Exception as exc:
                    duration = self._clock() - stage_started
                    self.metrics.stage_durations[stage.name] = duration
                    self.metrics.stages_executed += 1
                    self.metrics.stage_errors[stage.name] = exc
                    logger.error("Stage %s failed after %.3fs: %s", stage.name, duration, exc)
                    raise

                duration = self._clock() - stage_started
                self.metrics.stage_durations[stage.name] = duration
                self.metrics.stages_executed += 1
                logger.debug("Stage %s completed in %.3fs", stage.name, duration)
        finally:
            self.metrics.total_duration = self._clock() - started

        logger.debug(
            "Scan completed in %.3fs (executed: %d, skipped: %d)",
            self.metrics.total_duration,
            self.metrics.stages_executed,
            self.metrics.stages_skipped,
        )

    def log_metrics(self) -> None:
        total = self.metrics.total_duration
        logger.debug("=== Scan Performance Metrics ===")
        for position, stage in enumerate(self.stages, start=1):
            duration = self.metrics.stage_durations.get(stage.name)
            if duration is None:
                continue
            share = duration / total * 100 if total > 0 else 0.0
            logger.debug("%2d. %-35s %.3fs (%.1f%%)", position, stage.name, duration, share)
        logger.debug(
            "Total %.3fs, executed %d, skipped %d",
            total,
            self.metrics.stages_executed,
            self.metrics.stages_skipped,
        )
        logger.debug("=== End Scan Metrics ===")


__all__ = [
    "BaseStage",
    "Pipeline",
    "PipelineMetrics",
    "Renderer",
    "ScanContext",
    "ScanValidationError",
    "Stage",
    "StageError",
]
