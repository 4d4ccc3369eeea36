"""Run the enabled internal plugins."""

from __future__ import annotations

import logging

from ...models.results import PluginResult
from ...plugins.registry import PluginRegistry, get_registry
from ..executor import BaseStage, ScanContext

logger = logging.getLogger(__name__)


class PluginExecutionStage(BaseStage):
    def __init__(self, *, plugin_registry: PluginRegistry | None = None) -> None:
        super().__init__("Plugin Execution", False)
        self._plugins = plugin_registry

    def skip(self, ctx: ScanContext) -> bool:
        return not ctx.params.enabled_plugin_names()

    def execute(self, ctx: ScanContext) -> None:
        report = ctx.require_report_data()
        registry = self._plugins or get_registry()

        for name in ctx.params.enabled_plugin_names():
            ctx.ctx.check()
            plugin = registry.get(name)
            if plugin is None or plugin.internal_scanner is None:
                logger.warning("Internal plugin %s is not registered; skipping", name)
                continue

            logger.info("Running internal plugin %s", name)
            try:
                output = plugin.internal_scanner.scan(
                    ctx.ctx, ctx.credential, ctx.subscriptions, ctx.params.filters
                )
            except Exception as exc:
                logger.error("Internal plugin %s failed: %s", name, exc)
                continue
            if output.error:
                logger.error("Internal plugin %s reported an error: %s", name, output.error)
                continue

            report.plugin_results.append(
                PluginResult(
                    plugin_name=name,
                    sheet_name=output.sheet_name,
                    description=output.description,
                    table=output.table,
                )
            )
            logger.info("Internal plugin %s completed with %d rows", name, max(len(output.table) - 1, 0))


__all__ = ["PluginExecutionStage"]
