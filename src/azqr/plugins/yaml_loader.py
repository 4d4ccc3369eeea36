"""Declarative plugins: YAML files carrying extra Resource Graph recommendations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Set, Tuple

import yaml

from ..models.recommendation import GraphRecommendation
from .registry import Plugin, PluginError, PluginMetadata, PluginRegistry, PluginType, get_registry

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_VERSION = "1.0.0"
PLUGIN_SUFFIXES = (".yaml", ".yml")


def default_plugin_dirs() -> List[Path]:
    """``~/.azqr/plugins`` followed by ``./plugins``."""

    return [Path.home() / ".azqr" / "plugins", Path.cwd() / "plugins"]


def load_yaml_plugin(path: Path | str) -> Tuple[Plugin, List[GraphRecommendation]]:
    """Parse one plugin file and convert its queries into graph recommendations."""

    plugin_path = Path(path)
    try:
        content = plugin_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PluginError(f"failed to read YAML plugin file: {plugin_path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise PluginError(f"failed to parse YAML plugin: {plugin_path}") from exc

    if not isinstance(data, Mapping):
        raise PluginError(f"YAML plugin must be a mapping: {plugin_path}")

    name = str(data.get("name") or "")
    if not name:
        raise PluginError("plugin name is required")
    version = str(data.get("version") or DEFAULT_PLUGIN_VERSION)

    queries = data.get("queries") or []
    if not isinstance(queries, list) or not queries:
        raise PluginError("plugin must have at least one query")

    recommendations = [
        _to_recommendation(query, plugin_path.parent, name) for query in queries
    ]

    plugin = Plugin(
        metadata=PluginMetadata(
            name=name,
            version=version,
            description=str(data.get("description") or ""),
            author=str(data.get("author") or ""),
            license=str(data.get("license") or ""),
            type=PluginType.YAML,
            command_path=str(plugin_path),
        ),
        yaml_recommendations=recommendations,
    )
    return plugin, recommendations


def _to_recommendation(query: Any, base_dir: Path, source: str) -> GraphRecommendation:
    if not isinstance(query, Mapping):
        raise PluginError("each plugin query must be a mapping")

    item: Dict[str, Any] = dict(query)
    guid = str(item.get("aprlGuid") or "")
    query_file = item.get("queryFile")
    if query_file:
        query_path = base_dir / str(query_file)
        try:
            item["query"] = query_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PluginError(f"failed to read query file {query_file}") from exc

    if not item.get("query"):
        raise PluginError(f"query {guid} must have either 'query' or 'queryFile' specified")
    if not guid:
        raise PluginError("query missing required field 'aprlGuid'")
    if not item.get("description"):
        raise PluginError(f"query {guid} missing required field 'description'")

    item["automationAvailable"] = bool(item.get("automationAvailable", False))
    item.pop("graphQuery", None)
    return GraphRecommendation.from_mapping(item, source=source)


def discover_yaml_plugins(dirs: Sequence[Path | str]) -> List[Plugin]:
    """Load every valid plugin file under ``dirs``; the first plugin with a name wins."""

    plugins: List[Plugin] = []
    seen: Set[str] = set()
    for directory in (Path(entry) for entry in dirs):
        if not directory.exists() or not directory.is_dir():
            continue

        files = sorted(
            path for path in directory.rglob("*") if path.is_file() and path.suffix in PLUGIN_SUFFIXES
        )
        for path in files:
            try:
                plugin, recommendations = load_yaml_plugin(path)
            except PluginError as exc:
                logger.debug("Skipping file %s - not a valid YAML plugin: %s", path, exc)
                continue

            if plugin.metadata.name in seen:
                logger.debug("Skipping duplicate YAML plugin %s at %s", plugin.metadata.name, path)
                continue
            seen.add(plugin.metadata.name)
            plugins.append(plugin)
            logger.debug(
                "Discovered YAML plugin %s at %s with %d queries",
                plugin.metadata.name,
                path,
                len(recommendations),
            )
    return plugins


def register_yaml_plugins(
    dirs: Sequence[Path | str] | None = None,
    registry: PluginRegistry | None = None,
) -> int:
    """Discover plugins under ``dirs`` (the default locations when omitted) and register them."""

    target = registry or get_registry()
    plugins = discover_yaml_plugins(default_plugin_dirs() if dirs is None else dirs)
    for plugin in plugins:
        target.register(plugin)
    if plugins:
        logger.info("Registered %d YAML plugins", len(plugins))
    return len(plugins)


__all__ = [
    "DEFAULT_PLUGIN_VERSION",
    "default_plugin_dirs",
    "discover_yaml_plugins",
    "load_yaml_plugin",
    "register_yaml_plugins",
]
