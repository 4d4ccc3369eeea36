from __future__ import annotations

from typing import List

import pytest

from azqr.adapters.http_client import HttpClient
from azqr.models.scan_params import ScanParams
from azqr.pipeline.executor import BaseStage, Pipeline, ScanContext, StageError


class RecordingStage(BaseStage):
    def __init__(self, name: str, calls: List[str], *, required: bool = True, fail: bool = False) -> None:
        super().__init__(name, required)
        self.calls = calls
        self.fail = fail

    def execute(self, ctx: ScanContext) -> None:
        self.calls.append(self.name)
        if self.fail:
            raise StageError(f"{self.name} broke")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


def test_stages_run_in_order_and_optional_ones_are_skipped() -> None:
    calls: List[str] = []
    pipeline = Pipeline(
        [
            RecordingStage("first", calls),
            RecordingStage("optional", calls, required=False),
            RecordingStage("last", calls),
        ],
        clock=FakeClock(),
    )

    pipeline.execute(ScanContext(params=ScanParams()))

    assert calls == ["first", "last"]
    assert pipeline.metrics.stages_executed == 2
    assert pipeline.metrics.stages_skipped == 1
    assert set(pipeline.metrics.stage_durations) == {"first", "last"}
    assert pipeline.metrics.total_duration > 0


def test_first_failure_stops_the_pipeline() -> None:
    calls: List[str] = []
    pipeline = Pipeline(
        [RecordingStage("first", calls), RecordingStage("broken", calls, fail=True), RecordingStage("never", calls)],
        clock=FakeClock(),
    )

    with pytest.raises(StageError, match="broken broke"):
        pipeline.execute(ScanContext(params=ScanParams()))

    assert calls == ["first", "broken"]
    assert list(pipeline.metrics.stage_errors) == ["broken"]
    assert pipeline.metrics.stages_executed == 2
    assert pipeline.metrics.total_duration > 0


def test_log_metrics_handles_unexecuted_stages() -> None:
    pipeline = Pipeline([RecordingStage("optional", [], required=False)])

    pipeline.execute(ScanContext(params=ScanParams()))
    pipeline.log_metrics()

    assert pipeline.metrics.stage_durations == {}


def test_report_data_is_required() -> None:
    with pytest.raises(StageError, match="initialization stage"):
        ScanContext(params=ScanParams()).require_report_data()


def test_scanner_config_shares_the_scan_client() -> None:
    client = object()
    ctx = ScanContext(params=ScanParams(), http_client=client, endpoint="https://arm.example/")

    config = ctx.scanner_config("sub", "Prod")

    assert config.http_client is client
    assert config.endpoint == "https://arm.example"
    assert config.ctx is ctx.ctx


def test_long_running_config_raises_the_retry_budget() -> None:
    ctx = ScanContext(params=ScanParams(), http_client=HttpClient(), endpoint="https://arm.example")

    config = ctx.scanner_config("sub", long_running=True)

    assert config.client_options.max_retries == 5
    assert config.http_client is not ctx.http_client
    assert ctx.scanner_config("sub").client_options.max_retries == 3


def test_cancel_propagates_to_the_execution_context() -> None:
    ctx = ScanContext(params=ScanParams())

    ctx.cancel()

    assert ctx.ctx.cancelled


def test_duplicate_stage_names_are_rejected() -> None:
    with pytest.raises(ValueError, match="duplicate stage names: graph"):
        Pipeline([RecordingStage("graph", []), RecordingStage("advisor", []), RecordingStage("graph", [])])
