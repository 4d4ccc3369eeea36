"""Registration of the plugins shipped with the package."""

from __future__ import annotations

import threading

from .carbon import PLUGIN_NAME as CARBON_PLUGIN_NAME
from .carbon import CarbonEmissionsScanner
from .internal import register_internal_plugin
from .registry import PluginRegistry, get_registry

_LOCK = threading.Lock()
_REGISTERED = False


def register_builtin_plugins(registry: PluginRegistry | None = None) -> None:
    """Register the internal plugins once per process (or once into ``registry``)."""

    global _REGISTERED
    if registry is not None:
        register_internal_plugin(CARBON_PLUGIN_NAME, CarbonEmissionsScanner(), registry)
        return

    with _LOCK:
        if _REGISTERED:
            return
        register_internal_plugin(CARBON_PLUGIN_NAME, CarbonEmissionsScanner(), get_registry())
        _REGISTERED = True


__all__ = ["register_builtin_plugins"]
