"""Actual cost per service through the Cost Management query API."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

from ..models.results import CostResult, CostResultItem
from ..normalization.graph_rows import to_text
from .base import ScannerConfig, log_subscription_scan, should_skip_error

logger = logging.getLogger(__name__)

COST_API_VERSION = "2023-03-01"


class CostScanner:
    """Query one subscription's costs grouped by service name.

    Each worker owns its own instance because ``init`` binds the scanner to a
    single subscription.
    """

    def __init__(self, *, now: datetime | None = None) -> None:
        self.config: ScannerConfig | None = None
        self._now = now

    def init(self, config: ScannerConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    def query_costs(self, previous_month: bool = False) -> CostResult:
        if self.config is None:
            raise RuntimeError("cost scanner used before init")

        log_subscription_scan(self.config.subscription_id, "Costs")
        from_date, to_date = cost_period(self._now or datetime.now(timezone.utc), previous_month)
        url = (
            f"{self.config.arm_endpoint()}/subscriptions/{self.config.subscription_id}"
            f"/providers/Microsoft.CostManagement/query?api-version={COST_API_VERSION}"
        )
        payload = self.config.client().post_json(
            url, query_definition(from_date, to_date), ctx=self.config.ctx
        )

        result = CostResult(from_date=from_date, to_date=to_date)
        for row in (payload.get("properties") or {}).get("rows") or []:
            if len(row) < 3:
                logger.debug("Skipping malformed cost row: %s", row)
                continue
            result.items.append(
                CostResultItem(
                    subscription_id=self.config.subscription_id,
                    subscription_name=self.config.subscription_name,
                    service_name=to_text(row[1]),
                    value=to_text(row[0]),
                    currency=to_text(row[2]),
                )
            )
        return result

    def scan(self, config: ScannerConfig, previous_month: bool = False) -> CostResult:
        """Costs for ``config``'s subscription; skippable API errors give no items."""

        self.init(config)
        try:
            return self.query_costs(previous_month)
        except Exception as exc:
            if should_skip_error(exc):
                from_date, to_date = cost_period(
                    self._now or datetime.now(timezone.utc), previous_month
                )
                return CostResult(from_date=from_date, to_date=to_date)
            raise


def cost_period(now: datetime, previous_month: bool = False) -> Tuple[datetime, datetime]:
    """Return the ``(from, to)`` window in UTC.

    By default the window runs from the first day of the month three months
    back until ``now``. With ``previous_month`` it covers the whole previous
    calendar month.
    """

    now = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    first_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if previous_month:
        last_of_previous = first_of_month - timedelta(microseconds=1)
        return last_of_previous.replace(day=1, hour=0, minute=0, second=0, microsecond=0), last_of_previous

    year, month = first_of_month.year, first_of_month.month - 3
    if month < 1:
        year, month = year - 1, month + 12
    return first_of_month.replace(year=year, month=month), now


def query_definition(from_date: datetime, to_date: datetime) -> Dict[str, Any]:
    return {
        "type": "ActualCost",
        "timeframe": "Custom",
        "timePeriod": {"from": from_date.isoformat(), "to": to_date.isoformat()},
        "dataset": {
            "aggregation": {"TotalCost": {"name": "Cost", "function": "Sum"}},
            "grouping": [{"name": "ServiceName", "type": "Dimension"}],
        },
    }


__all__ = ["COST_API_VERSION", "CostScanner", "cost_period", "query_definition"]
