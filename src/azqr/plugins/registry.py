"""Process-wide plugin registry."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from ..models.recommendation import GraphRecommendation

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .internal import InternalPluginScanner

logger = logging.getLogger(__name__)


class PluginError(RuntimeError):
    """Raised when a plugin cannot be registered, loaded or found."""


class PluginType(str, Enum):
    YAML = "yaml"
    INTERNAL = "internal"


class FilterType(str, Enum):
    NONE = "none"
    DROPDOWN = "dropdown"
    SEARCH = "search"


@dataclass(slots=True)
class ColumnMetadata:
    """How a viewer should filter one column of a plugin table."""

    name: str
    data_key: str
    filter_type: FilterType = FilterType.NONE


@dataclass(slots=True)
class PluginMetadata:
    name: str
    version: str = ""
    description: str = ""
    author: str = ""
    license: str = ""
    type: PluginType = PluginType.INTERNAL
    command_path: str = ""
    column_metadata: List[ColumnMetadata] = field(default_factory=list)


@dataclass(slots=True)
class Plugin:
    """A registered plugin: metadata plus either a scanner or graph recommendations."""

    metadata: PluginMetadata
    internal_scanner: Optional["InternalPluginScanner"] = None
    yaml_recommendations: List[GraphRecommendation] = field(default_factory=list)
    command: str = ""


class PluginRegistry:
    """Plugins keyed by name, guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._plugins: Dict[str, Plugin] = {}

    # ------------------------------------------------------------------
    def register(self, plugin: Optional[Plugin]) -> None:
        if plugin is None:
            raise PluginError("cannot register nil plugin")
        if not plugin.metadata.name:
            raise PluginError("plugin name cannot be empty")

        with self._lock:
            existing = self._plugins.get(plugin.metadata.name)
            if existing is not None:
                logger.warning(
                    "Plugin %s already registered (version %s), replacing with version %s",
                    plugin.metadata.name,
                    existing.metadata.version,
                    plugin.metadata.version,
                )
            self._plugins[plugin.metadata.name] = plugin

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._plugins:
                raise PluginError(f"plugin {name} not found")
            del self._plugins[name]
        logger.info("Plugin %s unregistered", name)

    def get(self, name: str) -> Optional[Plugin]:
        with self._lock:
            return self._plugins.get(name)

    def list(self) -> List[Plugin]:
        """All plugins sorted by name."""

        with self._lock:
            return [self._plugins[name] for name in sorted(self._plugins)]

    def count(self) -> int:
        with self._lock:
            return len(self._plugins)

    def clear(self) -> None:
        with self._lock:
            self._plugins.clear()


_REGISTRY = PluginRegistry()


def get_registry() -> PluginRegistry:
    return _REGISTRY


__all__ = [
    "ColumnMetadata",
    "FilterType",
    "Plugin",
    "PluginError",
    "PluginMetadata",
    "PluginRegistry",
    "PluginType",
    "get_registry",
]
