from __future__ import annotations

from typing import Any, Dict, List

import pytest

from azqr.adapters.http_client import HTTPError
from azqr.context import ExecutionContext
from azqr.models.filters import load_filters
from azqr.plugins.carbon import TABLE_HEADER, CarbonEmissionsScanner
from azqr.plugins.registry import PluginError
from azqr.scanners.base import BaseScanner

SUB1 = "00000000-0000-0000-0000-000000000001"
SUB2 = "00000000-0000-0000-0000-000000000002"


class DummyCarbonHttp:
    def __init__(self, reports: List[Any], date_range: Dict[str, Any] | None = None) -> None:
        self.reports = list(reports)
        self.date_range = date_range if date_range is not None else {
            "startDate": "2024-01-01",
            "endDate": "2024-05-01T00:00:00Z",
        }
        self.bodies: List[Dict[str, Any]] = []

    def post_json(self, url: str, body: Dict[str, Any], *, ctx: Any = None) -> Dict[str, Any]:
        if "queryCarbonEmissionDataAvailableDateRange" in url:
            return self.date_range
        self.bodies.append(body)
        report = self.reports.pop(0)
        if isinstance(report, Exception):
            raise report
        return report


def _filters():
    return load_filters(
        None,
        [],
        scanner_list={
            "st": [BaseScanner("st", "Microsoft.Storage/storageAccounts")],
            "vm": [BaseScanner("vm", "Microsoft.Compute/virtualMachines")],
        },
    )


def _scanner(http: DummyCarbonHttp) -> CarbonEmissionsScanner:
    return CarbonEmissionsScanner(client_factory=lambda credential: http, endpoint="https://management.azure.com")


def test_emissions_are_aggregated_by_type() -> None:
    http = DummyCarbonHttp(
        [
            {
                "value": [
                    {
                        "itemName": "microsoft.storage/storageaccounts",
                        "latestMonthEmissions": 1.5,
                        "previousMonthEmissions": 1.0,
                        "monthlyEmissionsChangeValue": 0.5,
                    },
                    {"itemName": "microsoft.compute/virtualmachines", "latestMonthEmissions": 2},
                    {"itemName": "microsoft.storage/storageaccounts", "latestMonthEmissions": 0.5},
                    {"itemName": "microsoft.web/sites", "latestMonthEmissions": 9},
                    {"itemName": "microsoft.sql/servers"},
                ]
            }
        ]
    )

    output = _scanner(http).scan(ExecutionContext.background(), None, {SUB2: "B", SUB1: "A"}, _filters())

    assert output.table[0] == TABLE_HEADER
    assert output.table[1:] == [
        ["2024-05-01", "2024-05-01", "microsoft.compute/virtualmachines", "2.00", "", "", "", "kgCO2e"],
        ["2024-05-01", "2024-05-01", "microsoft.storage/storageaccounts", "2.00", "1.00", "100.00%", "0.50", "kgCO2e"],
    ]
    assert http.bodies[0]["subscriptionList"] == [SUB1, SUB2]
    assert http.bodies[0]["dateRange"] == {"start": "2024-05-01", "end": "2024-05-01"}
    assert output.sheet_name == "Carbon Emissions"
    assert output.error == ""


def test_failed_batches_are_skipped() -> None:
    subscriptions = {f"00000000-0000-0000-0000-{index:012d}": "" for index in range(150)}
    http = DummyCarbonHttp(
        [
            HTTPError(500, "{}", "url"),
            {"value": [{"itemName": "microsoft.compute/virtualmachines", "latestMonthEmissions": 1}]},
        ]
    )

    output = _scanner(http).scan(ExecutionContext.background(), None, subscriptions, _filters())

    assert len(http.bodies) == 2
    assert len(http.bodies[1]["subscriptionList"]) == 50
    assert [row[2] for row in output.table[1:]] == ["microsoft.compute/virtualmachines"]


def test_missing_date_range_is_an_error() -> None:
    http = DummyCarbonHttp([], date_range={"startDate": "2024-01-01"})

    with pytest.raises(PluginError, match="missing start or end date"):
        _scanner(http).scan(ExecutionContext.background(), None, {SUB1: "A"}, _filters())


def test_metadata_describes_columns() -> None:
    metadata = CarbonEmissionsScanner().get_metadata()

    assert metadata.name == "carbon-emissions"
    assert [column.name for column in metadata.column_metadata] == TABLE_HEADER
