from __future__ import annotations

import io
import json
from datetime import datetime
from pathlib import Path

from azqr.cli.reporting import JsonReportRenderer, report_to_dict
from azqr.models.report_data import ReportData
from azqr.models.resource import ResourceTypeCount
from azqr.models.results import CostResult, CostResultItem, DefenderResult
from azqr.models.stage_config import StageConfigs

SUB = "00000000-1111-2222-3333-444455556666"


def _report(mask: bool = True) -> ReportData:
    report = ReportData(output_name="scan", mask=mask, stages=StageConfigs.with_defaults())
    report.defender = [DefenderResult(subscription_id=SUB, subscription_name="Prod", name="VirtualMachines", tier="Free")]
    report.resource_type_count = [ResourceTypeCount("Prod", "Microsoft.KeyVault/vaults", 2.0, "Yes")]
    report.cost = CostResult(
        from_date=datetime(2024, 1, 1),
        to_date=datetime(2024, 1, 31),
        items=[CostResultItem(SUB, "Prod", "Key Vault", "1.50", "EUR")],
    )
    return report


def test_report_dict_masks_subscription_ids() -> None:
    payload = report_to_dict(_report())

    assert payload["outputName"] == "scan"
    assert payload["defender"][0]["subscription_id"] == "xxxxxxxx-xxxx-xxxx-xxxx-xxxxx5556666"
    assert payload["cost"]["from"] == "2024-01-01T00:00:00"
    assert payload["cost"]["items"][0]["subscription_id"].startswith("xxxxxxxx")
    assert payload["resourceTypeCount"][0]["Available In APRL?"] == "Yes"
    assert payload["stages"]["graph"] == {"enabled": True, "options": {}}


def test_report_dict_without_mask() -> None:
    payload = report_to_dict(_report(mask=False))

    assert payload["defender"][0]["subscription_id"] == SUB


def test_renderer_writes_file_and_stream(tmp_path: Path) -> None:
    stream = io.StringIO()
    renderer = JsonReportRenderer(output_dir=tmp_path, to_file=True, to_stdout=True, stream=stream)

    renderer(_report())

    written = json.loads((tmp_path / "scan.json").read_text(encoding="utf-8"))
    assert written == json.loads(stream.getvalue())
    assert written["defender"][0]["tier"] == "Free"


def test_renderer_can_skip_the_file(tmp_path: Path) -> None:
    JsonReportRenderer(output_dir=tmp_path, to_file=False)(_report())

    assert list(tmp_path.iterdir()) == []
