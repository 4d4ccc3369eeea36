"""Private endpoint and public IP lookups used as rule evaluation context."""

from __future__ import annotations

import logging
from typing import Any, Dict

from .base import ScannerConfig, log_subscription_scan, should_skip_error

logger = logging.getLogger(__name__)

NETWORK_API_VERSION = "2024-05-01"


def _list_url(config: ScannerConfig, provider: str) -> str:
    return (
        f"{config.arm_endpoint()}/subscriptions/{config.subscription_id}"
        f"/providers/{provider}?api-version={NETWORK_API_VERSION}"
    )


class PrivateEndpointScanner:
    def scan(self, config: ScannerConfig) -> Dict[str, bool]:
        """Return ``private link service id -> True`` for the subscription."""

        log_subscription_scan(config.subscription_id, "Private Endpoints")
        try:
            endpoints = config.client().list_all(
                _list_url(config, "Microsoft.Network/privateEndpoints"), ctx=config.ctx
            )
        except Exception as exc:
            if should_skip_error(exc):
                return {}
            raise

        found: Dict[str, bool] = {}
        for endpoint in endpoints:
            properties = endpoint.get("properties") or {}
            connections = list(properties.get("privateLinkServiceConnections") or [])
            connections += properties.get("manualPrivateLinkServiceConnections") or []
            for connection in connections:
                service_id = (connection.get("properties") or {}).get("privateLinkServiceId")
                if service_id:
                    found[str(service_id)] = True
        return found


class PublicIPScanner:
    def scan(self, config: ScannerConfig) -> Dict[str, Dict[str, Any]]:
        """Return ``public IP id -> resource payload`` for the subscription."""

        log_subscription_scan(config.subscription_id, "Public IPs")
        try:
            addresses = config.client().list_all(
                _list_url(config, "Microsoft.Network/publicIPAddresses"), ctx=config.ctx
            )
        except Exception as exc:
            if should_skip_error(exc):
                return {}
            raise
        return {str(address["id"]): address for address in addresses if address.get("id")}


__all__ = ["PrivateEndpointScanner", "PublicIPScanner"]
