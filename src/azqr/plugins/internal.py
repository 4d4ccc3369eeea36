"""Contract for in-process plugins and their tabular output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..context import ExecutionContext
from ..models.filters import Filters
from .registry import Plugin, PluginMetadata, PluginRegistry, get_registry


@dataclass(slots=True)
class ExternalPluginOutput:
    """Plugin result: ``table`` holds a header row followed by data rows."""

    metadata: PluginMetadata
    sheet_name: str
    description: str
    table: List[List[str]] = field(default_factory=list)
    error: str = ""


class InternalPluginScanner(ABC):
    @abstractmethod
    def scan(
        self,
        ctx: ExecutionContext,
        credential: Any,
        subscriptions: Mapping[str, str],
        filters: Filters,
    ) -> ExternalPluginOutput:
        """Run the plugin over ``subscriptions`` and return its table."""

    @abstractmethod
    def get_metadata(self) -> PluginMetadata:
        """Describe the plugin."""


_INTERNAL_PLUGINS: Dict[str, InternalPluginScanner] = {}


def register_internal_plugin(
    name: str,
    scanner: InternalPluginScanner,
    registry: PluginRegistry | None = None,
) -> Plugin:
    """Record ``scanner`` under ``name`` and register it as a plugin."""

    _INTERNAL_PLUGINS[name] = scanner
    metadata = scanner.get_metadata()
    plugin = Plugin(metadata=metadata, internal_scanner=scanner, command=metadata.description)
    (registry or get_registry()).register(plugin)
    return plugin


def get_internal_plugin(name: str) -> Optional[InternalPluginScanner]:
    return _INTERNAL_PLUGINS.get(name)


__all__ = [
    "ExternalPluginOutput",
    "InternalPluginScanner",
    "get_internal_plugin",
    "register_internal_plugin",
]
