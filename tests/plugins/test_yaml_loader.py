from __future__ import annotations

from pathlib import Path

import pytest

from azqr.plugins.registry import PluginError, PluginRegistry, PluginType
from azqr.plugins.yaml_loader import discover_yaml_plugins, load_yaml_plugin, register_yaml_plugins

PLUGIN = """
name: storage-extras
description: Extra storage checks
author: Platform Team
queries:
  - aprlGuid: st-extra-001
    description: Storage should use private endpoints
    recommendationControl: Security
    recommendationImpact: High
    recommendationResourceType: Microsoft.Storage/storageAccounts
    learnMoreLink:
      - name: Docs
        url: https://learn.microsoft.com/storage
    queryFile: st-extra-001.kql
  - aprlGuid: st-extra-002
    description: Storage should have tags
    recommendationResourceType: Microsoft.Storage/storageAccounts
    automationAvailable: true
    query: resources | where isnull(tags)
"""


def _write_plugin(directory: Path, name: str = "plugin.yaml", content: str = PLUGIN) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "st-extra-001.kql").write_text("resources | project id", encoding="utf-8")
    path = directory / name
    path.write_text(content, encoding="utf-8")
    return path


def test_load_plugin_reads_queries_and_query_files(tmp_path: Path) -> None:
    plugin, recommendations = load_yaml_plugin(_write_plugin(tmp_path))

    assert plugin.metadata.name == "storage-extras"
    assert plugin.metadata.version == "1.0.0"
    assert plugin.metadata.type is PluginType.YAML
    assert [rec.recommendation_id for rec in recommendations] == ["st-extra-001", "st-extra-002"]
    assert recommendations[0].graph_query == "resources | project id"
    assert recommendations[0].learn_more_url == "https://learn.microsoft.com/storage"
    assert recommendations[0].source == "storage-extras"
    assert recommendations[0].automation_available == "false"
    assert recommendations[1].automation_available == "true"
    assert plugin.yaml_recommendations == recommendations


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("description: no name\nqueries: []\n", "plugin name is required"),
        ("name: empty\n", "at least one query"),
        ("name: x\nqueries:\n  - description: d\n    query: q\n", "aprlGuid"),
        ("name: x\nqueries:\n  - aprlGuid: g\n    query: q\n", "description"),
        ("name: x\nqueries:\n  - aprlGuid: g\n    description: d\n", "either 'query' or 'queryFile'"),
        ("name: x\nqueries:\n  - aprlGuid: g\n    description: d\n    queryFile: nope.kql\n", "query file"),
        ("- just\n- a list\n", "must be a mapping"),
        ("name: [unclosed\n", "failed to parse"),
    ],
)
def test_invalid_plugins(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(PluginError, match=message):
        load_yaml_plugin(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(PluginError, match="failed to read"):
        load_yaml_plugin(tmp_path / "missing.yaml")


def test_discovery_skips_invalid_and_duplicate_plugins(tmp_path: Path) -> None:
    first = tmp_path / "home"
    second = tmp_path / "local"
    _write_plugin(first / "nested")
    _write_plugin(second, "copy.yml")
    (second / "broken.yaml").write_text("name: broken\n", encoding="utf-8")
    (second / "notes.txt").write_text("name: ignored", encoding="utf-8")

    plugins = discover_yaml_plugins([first, second, tmp_path / "absent"])

    assert [plugin.metadata.name for plugin in plugins] == ["storage-extras"]
    assert plugins[0].metadata.command_path.startswith(str(first))


def test_register_yaml_plugins(tmp_path: Path) -> None:
    _write_plugin(tmp_path)
    registry = PluginRegistry()

    assert register_yaml_plugins([tmp_path], registry) == 1
    assert registry.get("storage-extras") is not None
