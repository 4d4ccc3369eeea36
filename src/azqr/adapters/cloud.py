"""Cloud environment selection driven by environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CloudConfiguration:
    """Endpoints for one sovereign (or custom) cloud."""

    name: str
    authority_host: str
    resource_manager_endpoint: str
    resource_manager_audience: str = ""

    @property
    def resource_manager_scope(self) -> str:
        audience = self.resource_manager_audience or self.resource_manager_endpoint
        return audience.rstrip("/") + "/.default"


AZURE_PUBLIC = CloudConfiguration(
    name="AzurePublic",
    authority_host="https://login.microsoftonline.com/",
    resource_manager_endpoint="https://management.azure.com/",
    resource_manager_audience="https://management.core.windows.net/",
)

AZURE_GOVERNMENT = CloudConfiguration(
    name="AzureGovernment",
    authority_host="https://login.microsoftonline.us/",
    resource_manager_endpoint="https://management.usgovcloudapi.net",
    resource_manager_audience="https://management.core.usgovcloudapi.net",
)

AZURE_CHINA = CloudConfiguration(
    name="AzureChina",
    authority_host="https://login.chinacloudapi.cn/",
    resource_manager_endpoint="https://management.chinacloudapi.cn",
    resource_manager_audience="https://management.core.chinacloudapi.cn",
)

_NAMED_CLOUDS = {
    "azuregovernment": AZURE_GOVERNMENT,
    "azureusgovernment": AZURE_GOVERNMENT,
    "usgovernment": AZURE_GOVERNMENT,
    "azurechina": AZURE_CHINA,
    "china": AZURE_CHINA,
    "azurepublic": AZURE_PUBLIC,
    "public": AZURE_PUBLIC,
    "": AZURE_PUBLIC,
}


def get_cloud_configuration(env: Mapping[str, str] | None = None) -> CloudConfiguration:
    """Resolve the cloud to talk to.

    A custom configuration wins when both ``AZURE_AUTHORITY_HOST`` and
    ``AZURE_RESOURCE_MANAGER_ENDPOINT`` are set. Otherwise ``AZURE_CLOUD``
    names the cloud; unknown names fall back to the public cloud.
    """

    environ = os.environ if env is None else env

    authority_host = environ.get("AZURE_AUTHORITY_HOST", "")
    arm_endpoint = environ.get("AZURE_RESOURCE_MANAGER_ENDPOINT", "")
    if authority_host and arm_endpoint:
        return CloudConfiguration(
            name="Custom",
            authority_host=authority_host,
            resource_manager_endpoint=arm_endpoint,
            resource_manager_audience=environ.get("AZURE_RESOURCE_MANAGER_AUDIENCE", ""),
        )

    cloud_name = environ.get("AZURE_CLOUD", "").strip().lower()
    config = _NAMED_CLOUDS.get(cloud_name)
    if config is None:
        logger.debug("Unknown AZURE_CLOUD value %r, using the public cloud", cloud_name)
        return AZURE_PUBLIC
    return config


def get_resource_manager_endpoint(env: Mapping[str, str] | None = None) -> str:
    """Return the resource manager endpoint without a trailing slash."""

    return get_cloud_configuration(env).resource_manager_endpoint.rstrip("/")


__all__ = [
    "AZURE_CHINA",
    "AZURE_GOVERNMENT",
    "AZURE_PUBLIC",
    "CloudConfiguration",
    "get_cloud_configuration",
    "get_resource_manager_endpoint",
]
