"""Plugin registry, YAML plugin loader and the built-in internal plugins."""

from .builtin import register_builtin_plugins
from .carbon import CarbonEmissionsScanner
from .internal import (
    ExternalPluginOutput,
    InternalPluginScanner,
    get_internal_plugin,
    register_internal_plugin,
)
from .registry import (
    ColumnMetadata,
    FilterType,
    Plugin,
    PluginError,
    PluginMetadata,
    PluginRegistry,
    PluginType,
    get_registry,
)
from .yaml_loader import discover_yaml_plugins, load_yaml_plugin, register_yaml_plugins

__all__ = [
    "CarbonEmissionsScanner",
    "ColumnMetadata",
    "ExternalPluginOutput",
    "FilterType",
    "InternalPluginScanner",
    "Plugin",
    "PluginError",
    "PluginMetadata",
    "PluginRegistry",
    "PluginType",
    "discover_yaml_plugins",
    "get_internal_plugin",
    "get_registry",
    "load_yaml_plugin",
    "register_builtin_plugins",
    "register_internal_plugin",
    "register_yaml_plugins",
]
