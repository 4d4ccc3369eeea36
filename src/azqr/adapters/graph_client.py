"""Resource Graph query client with subscription batching and pagination."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from ..context import ExecutionContext
from .cloud import get_resource_manager_endpoint
from .http_client import HTTPError, HttpClient, TransportError

logger = logging.getLogger(__name__)

GRAPH_API_VERSION = "2022-10-01"
SUBSCRIPTION_BATCH_SIZE = 1000
PAGE_SIZE = 1000


class GraphQueryError(RuntimeError):
    """Raised when a Resource Graph query cannot be completed."""


class GraphQueryClient:
    """Run KQL queries against Resource Graph.

    Throttling and 429/``Retry-After`` retries happen inside the wrapped
    :class:`HttpClient`, so each page request already acquires a Graph
    limiter permit and is retried up to the client's retry budget.
    """

    def __init__(self, http_client: HttpClient, endpoint: str | None = None) -> None:
        self._http = http_client
        base = (endpoint or get_resource_manager_endpoint()).rstrip("/")
        self.url = (
            f"{base}/providers/Microsoft.ResourceGraph/resources?api-version={GRAPH_API_VERSION}"
        )

    # ------------------------------------------------------------------
    def query(
        self,
        ctx: ExecutionContext,
        query: str,
        subscriptions: Sequence[str],
    ) -> List[Dict[str, Any]]:
        """Return every row produced by ``query`` over ``subscriptions``.

        Subscriptions that cannot serve the query (unregistered provider,
        disallowed operation, not found) are dropped and the query continues
        for the rest.
        """

        rows: List[Dict[str, Any]] = []
        ids = [sid for sid in subscriptions if sid]
        for start in range(0, len(ids), SUBSCRIPTION_BATCH_SIZE):
            batch = ids[start : start + SUBSCRIPTION_BATCH_SIZE]
            try:
                rows.extend(self._query_batch(ctx, query, batch))
            except HTTPError as exc:
                if not exc.skippable:
                    raise GraphQueryError(f"failed to run Resource Graph query: {exc}") from exc
                rows.extend(self._query_individually(ctx, query, batch))
        return rows

    # ------------------------------------------------------------------
    def _query_batch(
        self, ctx: ExecutionContext, query: str, subscriptions: List[str]
    ) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        skip_token: str | None = None
        while True:
            ctx.check()
            options: Dict[str, Any] = {"resultFormat": "objectArray", "$top": PAGE_SIZE}
            if skip_token:
                options["$skipToken"] = skip_token
            body = {"subscriptions": subscriptions, "query": query, "options": options}
            try:
                page = self._http.post_json(self.url, body, ctx=ctx)
            except TransportError as exc:
                raise GraphQueryError(f"failed to run Resource Graph query: {exc}") from exc

            data = page.get("data") or []
            if isinstance(data, dict):
                # table result format
                columns = [column.get("name") for column in data.get("columns", [])]
                data = [dict(zip(columns, row)) for row in data.get("rows", [])]
            rows.extend(item for item in data if isinstance(item, dict))

            skip_token = page.get("$skipToken") or page.get("skipToken")
            if not skip_token:
                return rows

    def _query_individually(
        self, ctx: ExecutionContext, query: str, subscriptions: List[str]
    ) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for subscription_id in subscriptions:
            try:
                rows.extend(self._query_batch(ctx, query, [subscription_id]))
            except HTTPError as exc:
                if not exc.skippable:
                    raise GraphQueryError(f"failed to run Resource Graph query: {exc}") from exc
                logger.warning(
                    "Skipping subscription %s for graph query: %s",
                    mask_subscription_id(subscription_id),
                    exc.error_code,
                )
        return rows


def mask_subscription_id(subscription_id: str, mask: bool = True) -> str:
    """Show only the last 7 characters of a subscription id."""

    if not mask or len(subscription_id) <= 29:
        return subscription_id
    return "xxxxxxxx-xxxx-xxxx-xxxx-xxxxx" + subscription_id[29:]


__all__ = ["GraphQueryClient", "GraphQueryError", "mask_subscription_id"]
