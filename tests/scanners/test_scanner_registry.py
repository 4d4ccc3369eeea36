from __future__ import annotations

import pytest

from azqr.scanners.base import BaseScanner, GenericScanner
from azqr.scanners.registry import (
    SCANNER_LIST,
    get_scanner_by_key,
    get_scanner_count,
    get_scanner_keys,
    get_scanners_by_keys,
    list_scanner_info,
    register_default_scanners,
)
from azqr.scanners.services.st import StorageScanner


def test_registration_is_idempotent() -> None:
    register_default_scanners()
    count = get_scanner_count()

    register_default_scanners()

    assert get_scanner_count() == count
    assert len(SCANNER_LIST) == len(get_scanner_keys())


def test_keys_are_sorted_and_cover_the_rule_scanners() -> None:
    keys = get_scanner_keys()

    assert keys == sorted(keys)
    assert {"aks", "kv", "resource", "st", "vm"} <= set(keys)


def test_lookup_by_key() -> None:
    assert isinstance(get_scanner_by_key("kv")[0], GenericScanner)
    assert isinstance(get_scanner_by_key("st")[0], StorageScanner)
    assert isinstance(get_scanner_by_key("vnet")[0], BaseScanner)
    assert get_scanner_by_key("missing") == []


def test_lookup_by_keys_defaults_to_everything() -> None:
    assert len(get_scanners_by_keys(None)) == get_scanner_count()
    assert [s.resource_types() for s in get_scanners_by_keys(["kv", "missing"])] == [
        ["Microsoft.KeyVault/vaults"]
    ]


def test_scanner_info_lists_resource_types() -> None:
    info = {entry.key: entry for entry in list_scanner_info()}

    assert info["vm"].resource_types == ["Microsoft.Compute/virtualMachines"]
    assert info["vm"].scanner_count == 1


register_default_scanners()
REGISTERED_KEYS = sorted(SCANNER_LIST)


@pytest.mark.parametrize("key", REGISTERED_KEYS)
def test_rules_match_their_scanner(key: str) -> None:
    for scanner in get_scanner_by_key(key):
        types = {resource_type.lower() for resource_type in scanner.resource_types()}
        rules = scanner.get_recommendations()

        assert types
        for rule_id, rule in rules.items():
            assert rule_id == rule.recommendation_id
            assert rule.resource_type.lower() in types


def test_rule_ids_are_unique_across_scanners() -> None:
    ids = [
        rule.recommendation_id
        for key in REGISTERED_KEYS
        for scanner in get_scanner_by_key(key)
        for rule in scanner.get_recommendations().values()
    ]

    assert len(ids) == len(set(ids))
