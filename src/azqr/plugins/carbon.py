"""Carbon emissions per resource type from the Carbon Optimization API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Tuple

from ..adapters.cloud import get_resource_manager_endpoint
from ..adapters.http_client import HTTPError, HttpClient, TransportError, default_options
from ..context import ExecutionContext
from ..models.filters import Filters
from .internal import ExternalPluginOutput, InternalPluginScanner
from .registry import ColumnMetadata, FilterType, PluginError, PluginMetadata, PluginType

logger = logging.getLogger(__name__)

PLUGIN_NAME = "carbon-emissions"
CARBON_API_VERSION = "2025-04-01"
SUBSCRIPTION_BATCH_SIZE = 100
PAGE_SIZE = 1000
EMISSIONS_UNIT = "kgCO2e"

TABLE_HEADER = [
    "Period From",
    "Period To",
    "Resource Type",
    "Latest Month Emissions",
    "Previous Month Emissions",
    "Month-over-Month Change Ratio",
    "Monthly Change Value",
    "Unit",
]


@dataclass(slots=True)
class _Emissions:
    latest_month: float = 0.0
    previous_month: float = 0.0
    monthly_change_value: float = 0.0


class CarbonEmissionsScanner(InternalPluginScanner):
    """Aggregate the latest available month of emissions by resource type."""

    def __init__(
        self,
        *,
        client_factory: Callable[[Any], HttpClient] | None = None,
        endpoint: str | None = None,
    ) -> None:
        self._client_factory = client_factory or (lambda cred: HttpClient(cred, default_options()))
        self._endpoint = endpoint

    def get_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            name=PLUGIN_NAME,
            version="1.0.0",
            description="Analyzes carbon emissions by Azure resource type",
            author="Azure Quick Review Team",
            license="MIT",
            type=PluginType.INTERNAL,
            column_metadata=[
                ColumnMetadata("Period From", "periodFrom", FilterType.SEARCH),
                ColumnMetadata("Period To", "periodTo", FilterType.SEARCH),
                ColumnMetadata("Resource Type", "resourceType", FilterType.DROPDOWN),
                ColumnMetadata("Latest Month Emissions", "latestMonthEmissions"),
                ColumnMetadata("Previous Month Emissions", "previousMonthEmissions"),
                ColumnMetadata("Month-over-Month Change Ratio", "monthOverMonthChangeRatio"),
                ColumnMetadata("Monthly Change Value", "monthlyChangeValue"),
                ColumnMetadata("Unit", "unit"),
            ],
        )

    # ------------------------------------------------------------------
    def scan(
        self,
        ctx: ExecutionContext,
        credential: Any,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> ExternalPluginOutput:
        logger.info("Scanning carbon emissions across subscriptions")
        client = self._client_factory(credential)
        base = (self._endpoint or get_resource_manager_endpoint()).rstrip("/")

        period = self._available_month(ctx, client, base)
        logger.info("Carbon emissions available date range: %s to %s", period[0], period[1])

        ids = sorted(subscriptions)
        aggregated: Dict[str, _Emissions] = {}
        for start in range(0, len(ids), SUBSCRIPTION_BATCH_SIZE):
            ctx.check()
            batch = ids[start : start + SUBSCRIPTION_BATCH_SIZE]
            end = start + len(batch)
            logger.info(
                "Processing carbon emissions for batch %d-%d of %d subscriptions", start + 1, end, len(ids)
            )
            try:
                payload = client.post_json(
                    f"{base}/providers/Microsoft.Carbon/carbonEmissionReports?api-version={CARBON_API_VERSION}",
                    _report_query(batch, period),
                    ctx=ctx,
                )
            except (HTTPError, TransportError) as exc:
                logger.info("Carbon emissions data not available for batch %d-%d: %s", start + 1, end, exc)
                continue

            for item in payload.get("value") or []:
                resource_type = item.get("itemName")
                latest = item.get("latestMonthEmissions")
                if not resource_type or latest is None:
                    continue
                if filters.is_resource_type_excluded(str(resource_type)):
                    continue
                totals = aggregated.setdefault(str(resource_type), _Emissions())
                totals.latest_month += float(latest)
                totals.previous_month += float(item.get("previousMonthEmissions") or 0.0)
                totals.monthly_change_value += float(item.get("monthlyEmissionsChangeValue") or 0.0)

        table: List[List[str]] = [list(TABLE_HEADER)]
        for resource_type in sorted(aggregated):
            table.append(_row(period, resource_type, aggregated[resource_type]))

        logger.info("Carbon emissions scan completed with %d resource types", len(aggregated))
        return ExternalPluginOutput(
            metadata=self.get_metadata(),
            sheet_name="Carbon Emissions",
            description="Analysis of carbon emissions by Azure resource type for the previous month",
            table=table,
        )

    def _available_month(self, ctx: ExecutionContext, client: HttpClient, base: str) -> Tuple[str, str]:
        """The latest month with data, used as both ends of the report range."""

        url = (
            f"{base}/providers/Microsoft.Carbon/queryCarbonEmissionDataAvailableDateRange"
            f"?api-version={CARBON_API_VERSION}"
        )
        try:
            payload = client.post_json(url, {}, ctx=ctx)
        except (HTTPError, TransportError) as exc:
            raise PluginError(f"failed to query available date range: {exc}") from exc

        start, end = payload.get("startDate"), payload.get("endDate")
        if not start or not end:
            raise PluginError("available date range response missing start or end date")
        try:
            latest = date.fromisoformat(str(end)[:10]).isoformat()
        except ValueError as exc:
            raise PluginError(f"failed to parse end date {end!r}") from exc
        return latest, latest


def _report_query(subscriptions: List[str], period: Tuple[str, str]) -> Dict[str, Any]:
    return {
        "reportType": "ItemDetailsReport",
        "subscriptionList": subscriptions,
        "carbonScopeList": ["Scope1", "Scope2", "Scope3"],
        "dateRange": {"start": period[0], "end": period[1]},
        "categoryType": "ResourceType",
        "orderBy": "LatestMonthEmissions",
        "sortDirection": "Desc",
        "pageSize": PAGE_SIZE,
    }


def _row(period: Tuple[str, str], resource_type: str, totals: _Emissions) -> List[str]:
    previous = f"{totals.previous_month:.2f}" if totals.previous_month > 0 else ""
    ratio = ""
    if totals.previous_month != 0:
        change = (totals.latest_month - totals.previous_month) / totals.previous_month
        ratio = f"{change * 100:.2f}%"
    change_value = f"{totals.monthly_change_value:.2f}" if totals.monthly_change_value != 0 else ""
    return [
        period[0],
        period[1],
        resource_type,
        f"{totals.latest_month:.2f}",
        previous,
        ratio,
        change_value,
        EMISSIONS_UNIT,
    ]


__all__ = ["CarbonEmissionsScanner", "PLUGIN_NAME", "TABLE_HEADER"]
