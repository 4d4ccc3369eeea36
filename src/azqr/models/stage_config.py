"""Togglable pipeline stages and their typed ``stage.key=value`` options."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping

logger = logging.getLogger(__name__)

STAGE_GRAPH = "graph"
STAGE_DIAGNOSTICS = "diagnostics"
STAGE_ADVISOR = "advisor"
STAGE_DEFENDER = "defender"
STAGE_DEFENDER_RECOMMENDATIONS = "defender-recommendations"
STAGE_ARC = "arc"
STAGE_POLICY = "policy"
STAGE_COST = "cost"

# registered stages and whether they are enabled by default
ALL_STAGES: Mapping[str, bool] = {
    STAGE_GRAPH: True,
    STAGE_DIAGNOSTICS: True,
    STAGE_ADVISOR: True,
    STAGE_DEFENDER: True,
    STAGE_DEFENDER_RECOMMENDATIONS: False,
    STAGE_ARC: False,
    STAGE_POLICY: False,
    STAGE_COST: False,
}

OPTION_PREVIOUS_MONTH = "previousMonth"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class StageConfigError(RuntimeError):
    """Raised for unknown stage names or an invalid stage selection."""


class StageOptionError(RuntimeError):
    """Raised when a ``stage.key=value`` parameter cannot be parsed or validated."""


@dataclass(frozen=True, slots=True)
class OptionSpec:
    type: str
    default: Any
    description: str = ""


STAGE_OPTION_REGISTRY: Mapping[str, Mapping[str, OptionSpec]] = {
    STAGE_COST: {
        OPTION_PREVIOUS_MONTH: OptionSpec(
            type="bool",
            default=False,
            description="Scan costs for the previous calendar month (UTC) instead of the last 3 months",
        ),
    },
}


@dataclass(slots=True)
class StageConfig:
    enabled: bool = False
    options: Dict[str, Any] = field(default_factory=dict)


def is_valid_stage_name(name: str) -> bool:
    return name in ALL_STAGES


class StageConfigs:
    """Enabled flags and options for the registered stages."""

    def __init__(self, stages: Mapping[str, StageConfig] | None = None) -> None:
        self._stages: Dict[str, StageConfig] = dict(stages or {})

    @classmethod
    def with_defaults(cls) -> "StageConfigs":
        return cls({name: StageConfig(enabled=enabled) for name, enabled in ALL_STAGES.items()})

    # ------------------------------------------------------------------
    def is_stage_enabled(self, name: str) -> bool:
        config = self._stages.get(name)
        return config is not None and config.enabled

    def enable_stage(self, name: str) -> None:
        if not is_valid_stage_name(name):
            raise StageConfigError(f"unknown stage name: {name}")
        self._stages.setdefault(name, StageConfig()).enabled = True

    def disable_stage(self, name: str) -> None:
        if not is_valid_stage_name(name):
            raise StageConfigError(f"unknown stage name: {name}")
        config = self._stages.get(name)
        if config is not None:
            config.enabled = False

    def get_enabled_stages(self) -> List[str]:
        return sorted(name for name in self._stages if self.is_stage_enabled(name))

    def validate_graph_stage_enabled(self) -> None:
        if not self.is_stage_enabled(STAGE_GRAPH):
            raise StageConfigError("graph stage is mandatory for regular scans and cannot be disabled")

    def configure_stages(self, tokens: Iterable[str]) -> None:
        """Apply ``--stages`` tokens; each may hold comma-separated names, ``-name`` disables."""

        for token in tokens:
            for raw in token.split(","):
                name = raw.strip().lower()
                if not name:
                    continue
                if name.startswith("-"):
                    self.disable_stage(name[1:])
                else:
                    self.enable_stage(name)

    # ------------------------------------------------------------------
    def apply_stage_params(self, params: Iterable[str]) -> None:
        for stage, options in parse_and_validate_stage_params(params).items():
            self.set_stage_options(stage, options)

    def set_stage_options(self, name: str, options: Mapping[str, Any]) -> None:
        if not is_valid_stage_name(name):
            raise StageConfigError(f"unknown stage name: {name}")
        self._stages.setdefault(name, StageConfig()).options.update(options)

    def get_stage_options(self, name: str) -> Dict[str, Any]:
        config = self._stages.get(name)
        return config.options if config is not None else {}

    def get_stage_option(self, name: str, key: str) -> Any:
        """Return an option value, falling back to its registered default."""

        options = self.get_stage_options(name)
        if key in options:
            return options[key]
        spec = STAGE_OPTION_REGISTRY.get(name, {}).get(key)
        return spec.default if spec is not None else None

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"enabled": config.enabled, "options": dict(config.options)}
            for name, config in sorted(self._stages.items())
        }


def parse_and_validate_stage_params(params: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Parse ``stage.key=value`` strings into typed options per stage."""

    options: MutableMapping[str, Dict[str, Any]] = {}
    for param in params:
        param = param.strip()
        if not param:
            continue

        stage_key, sep, value = param.partition("=")
        if not sep:
            raise StageOptionError(f"stage param must be in the form stage.key=value: {param}")
        stage, dot, key = stage_key.partition(".")
        if not dot or not stage or not key:
            raise StageOptionError(f"stage param must be in the form stage.key=value: {param}")

        specs = STAGE_OPTION_REGISTRY.get(stage)
        if specs is None:
            raise StageOptionError(f"unknown stage: {stage}")
        spec = specs.get(key)
        if spec is None:
            raise StageOptionError(f'unknown option "{key}" for stage "{stage}"')

        try:
            parsed = parse_option_value(value, spec.type)
        except ValueError as exc:
            raise StageOptionError(f"invalid value for {stage}.{key}: {exc}") from exc

        options.setdefault(stage, {})[key] = parsed
        logger.debug("Stage option %s.%s=%r", stage, key, parsed)
    return dict(options)


def parse_option_value(value: str, type_name: str) -> Any:
    value = value.strip().strip("\"'")

    if type_name == "bool":
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f'expected bool, got "{value}"')
    if type_name == "int":
        try:
            return int(value)
        except ValueError:
            raise ValueError(f'expected int, got "{value}"') from None
    if type_name in ("float", "float64"):
        try:
            return float(value)
        except ValueError:
            raise ValueError(f'expected float64, got "{value}"') from None
    if type_name == "string":
        return value
    raise ValueError(f"unsupported type: {type_name}")


__all__ = [
    "ALL_STAGES",
    "OPTION_PREVIOUS_MONTH",
    "OptionSpec",
    "STAGE_ADVISOR",
    "STAGE_ARC",
    "STAGE_COST",
    "STAGE_DEFENDER",
    "STAGE_DEFENDER_RECOMMENDATIONS",
    "STAGE_DIAGNOSTICS",
    "STAGE_GRAPH",
    "STAGE_OPTION_REGISTRY",
    "STAGE_POLICY",
    "StageConfig",
    "StageConfigError",
    "StageConfigs",
    "StageOptionError",
    "parse_and_validate_stage_params",
    "parse_option_value",
]
