"""Retrying, throttled and authenticated HTTP client for management APIs."""

from __future__ import annotations

import copy
import json
import logging
import random
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Tuple

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
)

from ..context import ExecutionContext
from .cloud import get_cloud_configuration
from .credential import BearerTokenPolicy, TokenCredential
from .throttling import TokenBucketLimiter, limiter_for_url

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
SKIPPABLE_ERROR_CODES = frozenset(
    {
        "MissingRegistrationForResourceProvider",
        "MissingSubscriptionRegistration",
        "DisallowedOperation",
        "NotFound",
    }
)
_TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)


class HTTPError(RuntimeError):
    """Non-success response surfaced by :class:`HttpClient`."""

    def __init__(self, status: int, body: str, url: str) -> None:
        super().__init__(f"HTTP {status} from {url}: {body}")
        self.status = status
        self.body = body
        self.url = url

    @property
    def error_code(self) -> str:
        """Return the ``error.code`` carried by an ARM error body, if any."""

        try:
            payload = json.loads(self.body or "{}")
        except ValueError:
            return ""
        if not isinstance(payload, dict):
            return ""
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("code") or "")
        return str(payload.get("code") or "")

    @property
    def skippable(self) -> bool:
        """True when the subscription or provider simply cannot serve the call."""

        return self.error_code in SKIPPABLE_ERROR_CODES


class TransportError(RuntimeError):
    """Raised when a request cannot be delivered after all retries."""


@dataclass(slots=True)
class HttpClientOptions:
    """Retry and timeout settings for one client."""

    max_retries: int = 3
    try_timeout: float = 30.0
    retry_delay: float = 2.0
    max_retry_delay: float = 60.0
    jitter: float = 0.3
    retry_status_codes: frozenset = field(default_factory=lambda: RETRYABLE_STATUS_CODES)

    def __post_init__(self) -> None:
        self.retry_delay = min(max(self.retry_delay, 1.0), 4.0)

    @property
    def transport_timeout(self) -> float:
        return self.try_timeout + 5.0

    @property
    def operation_timeout(self) -> float:
        return self.try_timeout * 10


def default_options(timeout: float = 30.0) -> HttpClientOptions:
    return HttpClientOptions(try_timeout=timeout)


def long_running_options(timeout: float = 30.0) -> HttpClientOptions:
    return HttpClientOptions(max_retries=5, try_timeout=timeout)


def backoff_delay(
    attempt: int,
    options: HttpClientOptions,
    rand: Callable[[], float] = random.random,
) -> float:
    """Delay before retry ``attempt`` (0-based): ``min(base * 2**i, cap)`` plus jitter."""

    delay = min(options.retry_delay * (2 ** attempt), options.max_retry_delay)
    jittered = delay + delay * options.jitter * rand()
    return min(jittered, options.max_retry_delay) if delay < options.max_retry_delay else delay


def retry_after_seconds(response: Any) -> float | None:
    """Parse ``Retry-After`` (seconds or HTTP date) and its millisecond variants."""

    headers = getattr(response, "headers", None) or {}
    for name in ("retry-after-ms", "x-ms-retry-after-ms"):
        value = headers.get(name)
        if value:
            try:
                return float(value) / 1000.0
            except ValueError:
                continue

    value = headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class HttpClient:
    """HTTP pipeline: bearer token, per-attempt throttling and a retry envelope."""

    def __init__(
        self,
        credential: TokenCredential | None = None,
        options: HttpClientOptions | None = None,
        *,
        scope: str | None = None,
        session: requests.Session | None = None,
        limiter_for: Callable[[str], TokenBucketLimiter] = limiter_for_url,
        sleep: Callable[[float], None] | None = None,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.options = options or HttpClientOptions()
        self._session = session or requests.Session()
        self._auth: BearerTokenPolicy | None = None
        if credential is not None:
            self._auth = BearerTokenPolicy(
                credential, scope or get_cloud_configuration().resource_manager_scope
            )
        self._limiter_for = limiter_for
        self._sleep = sleep
        self._rand = rand

    def with_options(self, options: HttpClientOptions) -> "HttpClient":
        """Copy sharing the session, token policy and limiters with other retry settings."""

        clone = copy.copy(self)
        clone.options = options
        return clone

    # ------------------------------------------------------------------
    def get(self, url: str, *, ctx: ExecutionContext | None = None) -> Tuple[bytes, int]:
        return self.request("GET", url, ctx=ctx)

    def post(
        self, url: str, body: Any = None, *, ctx: ExecutionContext | None = None
    ) -> Tuple[bytes, int]:
        return self.request("POST", url, body=body, ctx=ctx)

    def get_json(self, url: str, *, ctx: ExecutionContext | None = None) -> Dict[str, Any]:
        content, _ = self.get(url, ctx=ctx)
        return _decode(content, url)

    def post_json(
        self, url: str, body: Any = None, *, ctx: ExecutionContext | None = None
    ) -> Dict[str, Any]:
        content, _ = self.post(url, body, ctx=ctx)
        return _decode(content, url)

    def iter_pages(self, url: str, *, ctx: ExecutionContext | None = None) -> Iterator[Dict[str, Any]]:
        """Yield every item of an ARM list operation, following ``nextLink``."""

        next_url: str | None = url
        while next_url:
            page = self.get_json(next_url, ctx=ctx)
            for item in page.get("value", []) or []:
                yield item
            next_url = page.get("nextLink")

    def list_all(self, url: str, *, ctx: ExecutionContext | None = None) -> List[Dict[str, Any]]:
        return list(self.iter_pages(url, ctx=ctx))

    # ------------------------------------------------------------------
    def request(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        ctx: ExecutionContext | None = None,
    ) -> Tuple[bytes, int]:
        """Issue ``method`` against ``url`` and return ``(content, status)``.

        Raises :class:`HTTPError` for non-success responses and
        :class:`TransportError` when the request never reached the server.
        """

        context = ctx or ExecutionContext.background()
        data: bytes | None
        if body is None or isinstance(body, bytes):
            data = body
        else:
            data = json.dumps(body).encode("utf-8")

        retrying = Retrying(
            stop=stop_after_attempt(self.options.max_retries + 1)
            | stop_after_delay(self.options.operation_timeout),
            retry=retry_if_exception_type(_TRANSIENT_EXCEPTIONS) | retry_if_result(self._should_retry),
            wait=self._wait,
            sleep=self._sleep or context.sleep,
            before_sleep=self._log_retry,
            retry_error_callback=_last_outcome,
        )

        try:
            response = retrying(self._attempt, method, url, data, context)
        except _TRANSIENT_EXCEPTIONS as exc:
            raise TransportError(f"failed to execute request to {url}: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise HTTPError(response.status_code, response.text, url)

        logger.debug("Successfully executed request to %s (status: %d)", url, response.status_code)
        return response.content, response.status_code

    # ------------------------------------------------------------------
    def _attempt(
        self, method: str, url: str, data: bytes | None, ctx: ExecutionContext
    ) -> requests.Response:
        ctx.check()
        self._limiter_for(url).wait(ctx)

        headers: Dict[str, str] = {"Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"
        if self._auth is not None:
            headers.update(self._auth.authorization_header())

        return self._session.request(
            method,
            url,
            data=data,
            headers=headers,
            timeout=(self.options.try_timeout, self.options.transport_timeout),
        )

    def _should_retry(self, response: requests.Response) -> bool:
        if response.status_code in self.options.retry_status_codes:
            return True
        if 200 <= response.status_code < 300:
            return False
        return "Retry-After" in (response.headers or {})

    def _wait(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            after = retry_after_seconds(outcome.result())
            if after is not None and after > 0:
                return min(after, self.options.max_retry_delay)
        return backoff_delay(retry_state.attempt_number - 1, self.options, self._rand)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        reason = "transport error"
        if outcome is not None and not outcome.failed:
            reason = f"status {outcome.result().status_code}"
        logger.debug(
            "Retrying request after %s (attempt %d, sleeping %.2fs)",
            reason,
            retry_state.attempt_number,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )


def _last_outcome(retry_state: RetryCallState) -> Any:
    # returns the last response, or re-raises the last transport error
    return retry_state.outcome.result()  # type: ignore[union-attr]


def _decode(content: bytes, url: str) -> Dict[str, Any]:
    if not content:
        return {}
    try:
        payload = json.loads(content)
    except ValueError as exc:
        raise HTTPError(200, content[:200].decode("utf-8", "replace"), url) from exc
    return payload if isinstance(payload, dict) else {"value": payload}


__all__ = [
    "HTTPError",
    "HttpClient",
    "HttpClientOptions",
    "RETRYABLE_STATUS_CODES",
    "SKIPPABLE_ERROR_CODES",
    "TransportError",
    "backoff_delay",
    "default_options",
    "long_running_options",
    "retry_after_seconds",
]
