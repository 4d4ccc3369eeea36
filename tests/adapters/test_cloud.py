from __future__ import annotations

import pytest

from azqr.adapters.cloud import (
    AZURE_CHINA,
    AZURE_GOVERNMENT,
    AZURE_PUBLIC,
    get_cloud_configuration,
    get_resource_manager_endpoint,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("AzureUSGovernment", AZURE_GOVERNMENT),
        ("usgovernment", AZURE_GOVERNMENT),
        ("AzureChina", AZURE_CHINA),
        ("public", AZURE_PUBLIC),
        ("", AZURE_PUBLIC),
        ("mars", AZURE_PUBLIC),
    ],
)
def test_named_clouds(value: str, expected: object) -> None:
    assert get_cloud_configuration({"AZURE_CLOUD": value}) is expected


def test_custom_cloud_requires_both_endpoints() -> None:
    env = {
        "AZURE_AUTHORITY_HOST": "https://login.example/",
        "AZURE_RESOURCE_MANAGER_ENDPOINT": "https://arm.example/",
        "AZURE_RESOURCE_MANAGER_AUDIENCE": "https://audience.example",
        "AZURE_CLOUD": "china",
    }

    config = get_cloud_configuration(env)

    assert config.name == "Custom"
    assert config.resource_manager_scope == "https://audience.example/.default"
    assert get_cloud_configuration({"AZURE_AUTHORITY_HOST": "https://login.example/"}) is AZURE_PUBLIC


def test_resource_manager_endpoint_has_no_trailing_slash() -> None:
    assert get_resource_manager_endpoint({}) == "https://management.azure.com"
    assert AZURE_PUBLIC.resource_manager_scope == "https://management.core.windows.net/.default"
