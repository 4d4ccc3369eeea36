from __future__ import annotations

import json
from typing import Any, Dict, List

from azqr.adapters.http_client import HTTPError, default_options
from azqr.context import ExecutionContext
from azqr.scanners.base import ScannerConfig
from azqr.scanners.network import PrivateEndpointScanner, PublicIPScanner

SUB = "00000000-0000-0000-0000-000000000001"
KV_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.KeyVault/vaults/kv1"
ST_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.Storage/storageAccounts/st1"
PIP_ID = f"/subscriptions/{SUB}/resourceGroups/rg1/providers/Microsoft.Network/publicIPAddresses/pip1"


class DummyHttp:
    def __init__(self, items: List[Dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.items = items or []
        self.error = error
        self.urls: List[str] = []

    def list_all(self, url: str, *, ctx: Any = None) -> List[Dict[str, Any]]:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.items


def _config(http: DummyHttp) -> ScannerConfig:
    return ScannerConfig(
        ctx=ExecutionContext.background(),
        credential=None,
        client_options=default_options(),
        subscription_id=SUB,
        http_client=http,
        endpoint="https://management.azure.com",
    )


def test_private_endpoints_collect_both_connection_kinds() -> None:
    http = DummyHttp(
        [
            {
                "properties": {
                    "privateLinkServiceConnections": [{"properties": {"privateLinkServiceId": KV_ID}}],
                    "manualPrivateLinkServiceConnections": [{"properties": {"privateLinkServiceId": ST_ID}}],
                }
            },
            {"properties": {}},
        ]
    )

    found = PrivateEndpointScanner().scan(_config(http))

    assert found == {KV_ID: True, ST_ID: True}
    assert "Microsoft.Network/privateEndpoints?api-version=" in http.urls[0]


def test_private_endpoints_skip_unregistered_provider() -> None:
    error = HTTPError(409, json.dumps({"error": {"code": "MissingRegistrationForResourceProvider"}}), "url")

    assert PrivateEndpointScanner().scan(_config(DummyHttp(error=error))) == {}


def test_public_ips_are_keyed_by_id() -> None:
    address = {"id": PIP_ID, "properties": {"ipAddress": "1.2.3.4"}}
    http = DummyHttp([address, {"name": "no-id"}])

    assert PublicIPScanner().scan(_config(http)) == {PIP_ID: address}
