"""Optional cProfile/tracemalloc instrumentation around the scan."""

from __future__ import annotations

import cProfile
import logging
import tracemalloc

from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)


class Profiler:
    """Collects CPU and memory profiles and writes them on :meth:`cleanup`."""

    def __init__(self, cpu_profile: str = "", mem_profile: str = "", trace_profile: str = "") -> None:
        self.cpu_profile = cpu_profile
        self.mem_profile = mem_profile
        self.trace_profile = trace_profile
        self._cpu: cProfile.Profile | None = None

    def start(self) -> None:
        if self.cpu_profile:
            self._cpu = cProfile.Profile()
            self._cpu.enable()
        if self.mem_profile and not tracemalloc.is_tracing():
            tracemalloc.start()
        if self.trace_profile:
            logger.warning("Execution traces are not collected; ignoring %s", self.trace_profile)

    def cleanup(self) -> None:
        if self._cpu is not None:
            self._cpu.disable()
            self._cpu.dump_stats(self.cpu_profile)
            logger.info("CPU profile written to %s", self.cpu_profile)
            self._cpu = None
        if self.mem_profile and tracemalloc.is_tracing():
            tracemalloc.take_snapshot().dump(self.mem_profile)
            tracemalloc.stop()
            logger.info("Memory profile written to %s", self.mem_profile)


class ProfilingStage(BaseStage):
    def __init__(self) -> None:
        super().__init__("Profiling Setup", True)

    def execute(self, ctx: ScanContext) -> None:
        params = ctx.params
        if not params.profiling_enabled:
            return

        logger.info("Profiling enabled")
        profiler = Profiler(params.cpu_profile, params.mem_profile, params.trace_profile)
        profiler.start()
        ctx.profiler = profiler


class ProfilingCleanupStage(BaseStage):
    def __init__(self) -> None:
        super().__init__("Profiling Cleanup", True)

    def execute(self, ctx: ScanContext) -> None:
        if ctx.profiler is not None:
            logger.debug("Cleaning up profiling resources")
            ctx.profiler.cleanup()
            ctx.profiler = None


__all__ = ["Profiler", "ProfilingCleanupStage", "ProfilingStage"]
