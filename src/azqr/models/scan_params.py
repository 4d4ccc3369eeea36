"""Caller-supplied scan request."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from .filters import Filters, load_filters
from .stage_config import StageConfigs


@dataclass(slots=True)
class ScanParams:
    management_groups: List[str] = field(default_factory=list)
    subscriptions: List[str] = field(default_factory=list)
    resource_groups: List[str] = field(default_factory=list)
    output_name: str = ""
    stages: StageConfigs = field(default_factory=StageConfigs)
    xlsx: bool = False
    csv: bool = False
    json: bool = False
    stdout: bool = False
    mask: bool = True
    debug: bool = False
    scanner_keys: List[str] = field(default_factory=list)
    filters: Filters = field(default_factory=Filters)
    enabled_internal_plugins: Dict[str, bool] = field(default_factory=dict)
    use_azqr_recommendations: bool = True
    cpu_profile: str = ""
    mem_profile: str = ""
    trace_profile: str = ""

    @classmethod
    def with_defaults(
        cls,
        *,
        subscriptions: Sequence[str] | None = None,
        resource_groups: Sequence[str] | None = None,
        management_groups: Sequence[str] | None = None,
        services: Sequence[str] | None = None,
        stages: Sequence[str] | None = None,
        stage_params: Sequence[str] | None = None,
        filter_file: Path | str | None = None,
        mask: bool = True,
    ) -> "ScanParams":
        """Parameters for a regular scan: default stages plus any overrides.

        Raises :class:`~azqr.models.stage_config.StageConfigError`,
        :class:`~azqr.models.stage_config.StageOptionError` or
        :class:`~azqr.models.filters.FilterError` for invalid input.
        """

        stage_configs = StageConfigs.with_defaults()
        if stages:
            stage_configs.configure_stages(stages)
        stage_configs.apply_stage_params(stage_params or [])

        keys = list(services or [])
        return cls(
            management_groups=list(management_groups or []),
            subscriptions=list(subscriptions or []),
            resource_groups=list(resource_groups or []),
            stages=stage_configs,
            mask=mask,
            scanner_keys=keys,
            filters=load_filters(filter_file, keys),
        )

    @classmethod
    def for_plugins(
        cls,
        *,
        subscriptions: Sequence[str] | None = None,
        resource_groups: Sequence[str] | None = None,
        management_groups: Sequence[str] | None = None,
        plugins: Sequence[str] | None = None,
        filter_file: Path | str | None = None,
        mask: bool = True,
    ) -> "ScanParams":
        """Parameters for a plugin-only scan: no stages, all scanners in the filter."""

        return cls(
            management_groups=list(management_groups or []),
            subscriptions=list(subscriptions or []),
            resource_groups=list(resource_groups or []),
            stages=StageConfigs(),
            mask=mask,
            filters=load_filters(filter_file, []),
            enabled_internal_plugins={name: True for name in plugins or []},
        )

    @property
    def profiling_enabled(self) -> bool:
        return bool(self.cpu_profile or self.mem_profile or self.trace_profile)

    def enabled_plugin_names(self) -> List[str]:
        return sorted(name for name, enabled in self.enabled_internal_plugins.items() if enabled)


__all__ = ["ScanParams"]
