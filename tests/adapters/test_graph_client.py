from __future__ import annotations

import json
from typing import Any

import pytest

from azqr.adapters.graph_client import GraphQueryClient, GraphQueryError, mask_subscription_id
from azqr.adapters.http_client import HTTPError, HttpClient
from azqr.adapters.throttling import TokenBucketLimiter
from azqr.context import ExecutionContext


class FakeHttp:
    """Serves canned graph pages; ``failing`` maps a subscription id to an error code."""

    def __init__(self, pages: list[dict[str, Any]], failing: dict[str, str] | None = None) -> None:
        self.pages = list(pages)
        self.failing = failing or {}
        self.bodies: list[dict[str, Any]] = []

    def post_json(self, url: str, body: Any = None, *, ctx: Any = None) -> dict[str, Any]:
        self.bodies.append(body)
        for subscription_id in body["subscriptions"]:
            if subscription_id in self.failing:
                raise HTTPError(400, json.dumps({"error": {"code": self.failing[subscription_id]}}), url)
        return self.pages.pop(0)



class ThrottlingSession:
    """Answers 429 ``throttled`` times before returning ``payload``."""

    def __init__(self, throttled: int, payload: dict[str, Any]) -> None:
        self.throttled = throttled
        self.payload = payload
        self.calls = 0

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls += 1
        if self.calls <= self.throttled:
            return _Response(429, {"error": {"code": "RateLimiting"}})
        return _Response(200, self.payload)


class _Response:
    def __init__(self, status_code: int, payload: dict[str, Any]) -> None:
        self.status_code = status_code
        self.headers: dict[str, str] = {}
        self.text = json.dumps(payload)
        self.content = self.text.encode("utf-8")

def test_query_follows_skip_token() -> None:
    http = FakeHttp(
        [
            {"data": [{"id": "1"}], "$skipToken": "next"},
            {"data": [{"id": "2"}]},
        ]
    )
    client = GraphQueryClient(http, "https://management.azure.com/")  # type: ignore[arg-type]

    rows = client.query(ExecutionContext.background(), "resources", ["sub-a"])

    assert [row["id"] for row in rows] == ["1", "2"]
    assert http.bodies[1]["options"]["$skipToken"] == "next"
    assert http.bodies[0]["options"]["$top"] == 1000
    assert client.url.startswith("https://management.azure.com/providers/Microsoft.ResourceGraph/resources")


def test_table_results_are_converted_to_objects() -> None:
    http = FakeHttp([{"data": {"columns": [{"name": "id"}, {"name": "name"}], "rows": [["x", "vm1"]]}}])
    client = GraphQueryClient(http, "https://arm")  # type: ignore[arg-type]

    rows = client.query(ExecutionContext.background(), "resources", ["sub-a"])

    assert rows == [{"id": "x", "name": "vm1"}]


def test_skippable_subscription_is_dropped() -> None:
    http = FakeHttp([{"data": [{"id": "from-b"}]}], failing={"sub-a": "DisallowedOperation"})
    client = GraphQueryClient(http, "https://arm")  # type: ignore[arg-type]

    rows = client.query(ExecutionContext.background(), "resources", ["sub-a", "sub-b"])

    assert rows == [{"id": "from-b"}]


def test_terminal_errors_raise_graph_query_error() -> None:
    http = FakeHttp([], failing={"sub-a": "AuthorizationFailed"})
    client = GraphQueryClient(http, "https://arm")  # type: ignore[arg-type]

    with pytest.raises(GraphQueryError):
        client.query(ExecutionContext.background(), "resources", ["sub-a"])


def test_mask_subscription_id() -> None:
    sid = "00000000-1111-2222-3333-444455556666"

    assert mask_subscription_id(sid) == "xxxxxxxx-xxxx-xxxx-xxxx-xxxxx5556666"
    assert mask_subscription_id(sid, mask=False) == sid


def test_throttled_query_backs_off_and_succeeds() -> None:
    session = ThrottlingSession(3, {"data": [{"id": "1"}]})
    sleeps: list[float] = []
    http = HttpClient(
        None,
        session=session,  # type: ignore[arg-type]
        limiter_for=lambda url: TokenBucketLimiter(1000.0, 1000),
        sleep=sleeps.append,
        rand=lambda: 0.0,
    )
    client = GraphQueryClient(http, "https://management.azure.com")

    rows = client.query(ExecutionContext.background(), "resources", ["sub-a"])

    assert rows == [{"id": "1"}]
    assert session.calls == 4
    assert sleeps == [2.0, 4.0, 8.0]
    assert sum(sleeps) >= 2.0 + 2 * 2.0
