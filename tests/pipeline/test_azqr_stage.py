from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from azqr.adapters.http_client import HTTPError, TransportError
from azqr.context import ContextCancelledError
from azqr.models.filters import load_filters
from azqr.models.recommendation import (
    AzqrRecommendation,
    RecommendationCategory,
    RecommendationImpact,
    RecommendationType,
)
from azqr.models.report_data import ReportData
from azqr.models.resource import Resource
from azqr.models.results import AzqrServiceResult
from azqr.models.scan_params import ScanParams
from azqr.models.stage_config import StageConfigs
from azqr.pipeline.executor import ScanContext
from azqr.pipeline.stages import AzqrScanStage
from azqr.scanners.base import ScanContext as RuleScanContext
from azqr.scanners.base import Scanner, ScannerConfig

SUB = "00000000-0000-0000-0000-000000000001"
OTHER_SUB = "00000000-0000-0000-0000-000000000002"
KV_TYPE = "Microsoft.KeyVault/vaults"
KV1_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/{KV_TYPE}/kv1"
PE_TARGET = KV1_ID


class DummyArm:
    def __init__(self) -> None:
        self.list_urls: List[str] = []

    def list_all(self, url: str, *, ctx: Any = None) -> List[Dict[str, Any]]:
        self.list_urls.append(url)
        if "privateEndpoints" in url:
            return [{"properties": {"privateLinkServiceConnections": [{"properties": {"privateLinkServiceId": PE_TARGET}}]}}]
        return []


class DummyKeyVaultScanner(Scanner):
    def __init__(self, failures: List[Exception] | None = None) -> None:
        self.failures = list(failures or [])
        self.attempts = 0
        self.configs: List[ScannerConfig] = []
        self.contexts: List[RuleScanContext] = []

    def init(self, config: ScannerConfig) -> None:
        self.configs.append(config)

    def scan(self, scan_context: RuleScanContext) -> List[AzqrServiceResult]:
        self.attempts += 1
        self.contexts.append(scan_context)
        if self.failures:
            raise self.failures.pop(0)
        config = self.configs[-1]
        return [
            AzqrServiceResult(config.subscription_id, config.subscription_name, "rg1", "westeurope", KV_TYPE, name)
            for name in ("kv1", "kv2")
        ]

    def resource_types(self) -> List[str]:
        return [KV_TYPE]

    def get_recommendations(self) -> Dict[str, AzqrRecommendation]:
        def rule(rule_id: str, rule_type: RecommendationType) -> AzqrRecommendation:
            return AzqrRecommendation(
                recommendation_id=rule_id,
                resource_type=KV_TYPE,
                category=RecommendationCategory.SECURITY,
                recommendation=f"Rule {rule_id}",
                impact=RecommendationImpact.HIGH,
                eval=lambda resource, scan_context: (False, ""),
                recommendation_type=rule_type,
            )

        return {
            "kv-001": rule("kv-001", RecommendationType.RECOMMENDATION),
            "kv-002": rule("kv-002", RecommendationType.RECOMMENDATION),
            "kv-003": rule("kv-003", RecommendationType.SLA),
        }


def _context(*scanners: Scanner) -> ScanContext:
    filters = load_filters(None, [], scanner_list={"kv": list(scanners)})
    filters._x_services = {f"/subscriptions/{SUB}/resourcegroups/rg1/providers/{KV_TYPE}/kv2".lower()}
    filters._x_recommendations = {"kv-002"}
    params = ScanParams(stages=StageConfigs.with_defaults(), filters=filters)
    ctx = ScanContext(params=params, http_client=DummyArm(), endpoint="https://management.azure.com")
    ctx.subscriptions = {SUB: "Prod", OTHER_SUB: "Dev"}
    ctx.report_data = ReportData(
        resources=[Resource(KV1_ID, SUB, "rg1", KV_TYPE, name="kv1")],
        diagnostics_settings={KV1_ID.lower(): True},
    )
    return ctx


def _stage(sleeps: List[float]) -> AzqrScanStage:
    return AzqrScanStage(workers=2, sleep=sleeps.append)


def test_results_and_recommendations_are_collected() -> None:
    scanner = DummyKeyVaultScanner()
    ctx = _context(scanner)

    _stage([]).execute(ctx)

    report = ctx.report_data
    assert [result.service_name for result in report.azqr] == ["kv1"]
    assert report.azqr[0].subscription_name == "Prod"
    assert list(report.recommendations["microsoft.keyvault/vaults"]) == ["kv-001"]
    # only the subscription holding key vaults is scanned
    assert [config.subscription_id for config in scanner.configs] == [SUB]
    scan_context = scanner.contexts[0]
    assert scan_context.private_endpoints == {PE_TARGET: True}
    assert scan_context.diagnostics_settings == {KV1_ID.lower(): True}


def test_each_scanner_gets_its_own_rule_context() -> None:
    first, second = DummyKeyVaultScanner(), DummyKeyVaultScanner()
    ctx = _context(first, second)

    _stage([]).execute(ctx)

    assert first.contexts[0] is not second.contexts[0]
    assert len(ctx.report_data.azqr) == 2


def test_transient_failures_are_retried() -> None:
    scanner = DummyKeyVaultScanner([TransportError("connection reset")])
    sleeps: List[float] = []

    _stage(sleeps).execute(_context(scanner))

    assert scanner.attempts == 2
    assert len(sleeps) == 1


def test_skippable_errors_are_not_retried() -> None:
    error = HTTPError(409, json.dumps({"error": {"code": "MissingSubscriptionRegistration"}}), "url")
    scanner = DummyKeyVaultScanner([error])
    ctx = _context(scanner)

    _stage([]).execute(ctx)

    assert scanner.attempts == 1
    assert ctx.report_data.azqr == []


def test_persistent_failures_give_up_after_three_attempts() -> None:
    scanner = DummyKeyVaultScanner([RuntimeError("boom")] * 3)
    sleeps: List[float] = []
    ctx = _context(scanner)

    _stage(sleeps).execute(ctx)

    assert scanner.attempts == 3
    assert len(sleeps) == 2
    assert ctx.report_data.azqr == []


def test_skip_when_rule_scanners_are_disabled() -> None:
    ctx = _context(DummyKeyVaultScanner())
    ctx.params.use_azqr_recommendations = False

    assert AzqrScanStage().skip(ctx)


def test_cancelled_scan_stops() -> None:
    ctx = _context(DummyKeyVaultScanner())
    ctx.cancel()

    with pytest.raises(ContextCancelledError):
        _stage([]).execute(ctx)
