"""Helpers shared by the service scanners' rule sets."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from ...models.recommendation import EvalFunc
from ..arm_client import ArmResourceClient
from ..base import ScanContext, ScannerConfig

TAGS_URL = "https://learn.microsoft.com/en-us/azure/azure-resource-manager/management/tag-resources?tabs=json"
CAF_URL = (
    "https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/"
    "azure-best-practices/resource-abbreviations"
)


def properties(resource: Mapping[str, Any]) -> Mapping[str, Any]:
    return resource.get("properties") or {}


def has_diagnostics(resource: Mapping[str, Any], scan_context: ScanContext) -> bool:
    resource_id = str(resource.get("id") or "").lower()
    return bool(scan_context.diagnostics_settings.get(resource_id))


def missing_diagnostics(resource: Mapping[str, Any], scan_context: ScanContext) -> tuple[bool, str]:
    return not has_diagnostics(resource, scan_context), ""


def missing_tags(resource: Mapping[str, Any], scan_context: ScanContext) -> tuple[bool, str]:
    return not resource.get("tags"), ""


def caf_prefix(prefix: str) -> EvalFunc:
    """Rule body breaking when the resource name lacks the naming-convention prefix."""

    def _eval(resource: Mapping[str, Any], scan_context: ScanContext) -> tuple[bool, str]:
        return not str(resource.get("name") or "").startswith(prefix), ""

    return _eval


def arm_client_factory(provider: str, api_version: str) -> Callable[[ScannerConfig], ArmResourceClient]:
    def _factory(config: ScannerConfig) -> ArmResourceClient:
        return ArmResourceClient(
            config.client(), config.arm_endpoint(), config.subscription_id, provider, api_version
        )

    return _factory


def list_with_client(client: ArmResourceClient, ctx: Any) -> list:
    return client.list(ctx)


__all__ = [
    "CAF_URL",
    "TAGS_URL",
    "arm_client_factory",
    "caf_prefix",
    "has_diagnostics",
    "list_with_client",
    "missing_diagnostics",
    "missing_tags",
    "properties",
]
