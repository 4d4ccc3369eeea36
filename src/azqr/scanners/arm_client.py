"""Thin ARM list/get helper used by the service scanners."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..adapters.http_client import HttpClient
from ..context import ExecutionContext

logger = logging.getLogger(__name__)


class ArmResourceClient:
    """List the resources of one provider type within a subscription."""

    def __init__(
        self,
        http_client: HttpClient,
        endpoint: str,
        subscription_id: str,
        provider: str,
        api_version: str,
    ) -> None:
        self._http = http_client
        self.endpoint = endpoint.rstrip("/")
        self.subscription_id = subscription_id
        self.provider = provider
        self.api_version = api_version

    @property
    def list_url(self) -> str:
        return (
            f"{self.endpoint}/subscriptions/{self.subscription_id}"
            f"/providers/{self.provider}?api-version={self.api_version}"
        )

    def list(self, ctx: ExecutionContext) -> List[Dict[str, Any]]:
        resources = self._http.list_all(self.list_url, ctx=ctx)
        logger.debug("Listed %d %s resources", len(resources), self.provider)
        return resources

    def get(
        self, ctx: ExecutionContext, path: str, api_version: str | None = None
    ) -> Dict[str, Any]:
        """GET ``path`` (a resource id or sub-resource path) under the ARM endpoint."""

        url = f"{self.endpoint}{path}?api-version={api_version or self.api_version}"
        return self._http.get_json(url, ctx=ctx)


__all__ = ["ArmResourceClient"]
