"""JSON rendering of :class:`~azqr.models.report_data.ReportData`."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterable, TextIO

from ..adapters.graph_client import mask_subscription_id
from ..models.report_data import ReportData

logger = logging.getLogger(__name__)


def _items(values: Iterable[Any]) -> list[Dict[str, Any]]:
    return [asdict(value) for value in values]


def _mask_rows(rows: list[Dict[str, Any]], mask: bool) -> list[Dict[str, Any]]:
    if not mask:
        return rows
    for row in rows:
        if row.get("subscription_id"):
            row["subscription_id"] = mask_subscription_id(row["subscription_id"], True)
    return rows


def report_to_dict(report: ReportData) -> Dict[str, Any]:
    """Plain JSON-ready view of the report; subscription ids are masked when requested."""

    mask = report.mask
    payload: Dict[str, Any] = {
        "outputName": report.output_name,
        "stages": report.stages.to_dict(),
        "recommendations": {
            resource_type: {rec_id: asdict(rec) for rec_id, rec in sorted(by_id.items())}
            for resource_type, by_id in sorted(report.recommendations.items())
        },
        "graph": _mask_rows(_items(report.graph), mask),
        "azqr": _mask_rows(_items(report.azqr), mask),
        "resources": _mask_rows(_items(report.resources), mask),
        "excludedResources": _mask_rows(_items(report.excluded_resources), mask),
        "resourceTypeCount": [count.to_dict() for count in report.resource_type_count],
        "advisor": _mask_rows(_items(report.advisor), mask),
        "defender": _mask_rows(_items(report.defender), mask),
        "defenderRecommendations": _mask_rows(_items(report.defender_recommendations), mask),
        "azurePolicy": _mask_rows(_items(report.azure_policy), mask),
        "arcSql": _mask_rows(_items(report.arc_sql), mask),
        "cost": None,
        "plugins": _items(report.plugin_results),
    }
    if report.cost is not None:
        payload["cost"] = {
            "from": report.cost.from_date.isoformat(),
            "to": report.cost.to_date.isoformat(),
            "items": _mask_rows(_items(report.cost.items), mask),
        }
    return payload


class JsonReportRenderer:
    """Write the report as ``<output name>.json`` and/or print it to ``stream``."""

    def __init__(
        self,
        *,
        output_dir: Path | None = None,
        to_file: bool = True,
        to_stdout: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.output_dir = output_dir or Path.cwd()
        self.to_file = to_file
        self.to_stdout = to_stdout
        self._stream = stream

    def __call__(self, report: ReportData) -> None:
        document = json.dumps(report_to_dict(report), indent=2, default=str)
        if self.to_file:
            path = self.output_dir / f"{report.output_name}.json"
            path.write_text(document + "\n", encoding="utf-8")
            logger.info("Generating Report: %s", path)
        if self.to_stdout:
            stream = self._stream or sys.stdout
            stream.write(document + "\n")


__all__ = ["JsonReportRenderer", "report_to_dict"]
