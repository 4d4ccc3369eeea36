"""Include/exclude scope filters loaded from the YAML filter file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence, Set

import yaml

from .resource import (
    get_resource_group_id_from_resource_id,
    get_resource_type_from_resource_id,
    get_subscription_from_resource_id,
)

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..scanners.base import Scanner

logger = logging.getLogger(__name__)

_RG_FORMAT = "/subscriptions/{subscription-id}/resourceGroups/{resource-group-name}"


class FilterError(RuntimeError):
    """Raised when a filter file cannot be read, parsed or validated."""


@dataclass(slots=True)
class IncludeFilter:
    subscriptions: List[str] = field(default_factory=list)
    resource_groups: List[str] = field(default_factory=list)
    resource_types: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ExcludeFilter:
    subscriptions: List[str] = field(default_factory=list)
    resource_groups: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Filters:
    """Scope of a scan.

    Include sets, once non-empty, exclude everything they do not name. A
    resource whose type is not among the active scanners' types is always
    excluded; within included types subscription exclusion wins over
    resource-group exclusion, which wins over service exclusion.
    """

    include: IncludeFilter = field(default_factory=IncludeFilter)
    exclude: ExcludeFilter = field(default_factory=ExcludeFilter)
    scanners: List["Scanner"] = field(default_factory=list)
    _i_subscriptions: Set[str] = field(default_factory=set)
    _i_resource_groups: Set[str] = field(default_factory=set)
    _i_resource_types: Set[str] = field(default_factory=set)
    _x_subscriptions: Set[str] = field(default_factory=set)
    _x_resource_groups: Set[str] = field(default_factory=set)
    _x_services: Set[str] = field(default_factory=set)
    _x_recommendations: Set[str] = field(default_factory=set)

    # ------------------------------------------------------------------
    def add_subscription(self, subscription_id: str) -> None:
        self._i_subscriptions.add(subscription_id.lower())
        self.include.subscriptions.append(subscription_id)

    def add_resource_group(self, resource_group_id: str) -> None:
        self._i_resource_groups.add(resource_group_id.lower())
        self.include.resource_groups.append(resource_group_id)

    def set_scanners(self, scanners: Sequence["Scanner"]) -> None:
        """Replace the active scanners and the include-type lookup derived from them."""

        self.scanners = list(scanners)
        self._i_resource_types = {
            resource_type.lower()
            for scanner in self.scanners
            for resource_type in scanner.resource_types()
        }

    # ------------------------------------------------------------------
    def is_subscription_excluded(self, subscription_id: str) -> bool:
        key = subscription_id.lower()
        if key in self._i_subscriptions:
            return False
        if self._i_subscriptions:
            return True
        return key in self._x_subscriptions

    def is_resource_group_excluded(self, resource_group_id: str) -> bool:
        key = resource_group_id.lower()
        if key in self._i_resource_groups:
            return False
        if self._i_resource_groups:
            return True
        return key in self._x_resource_groups

    def is_service_excluded(self, resource_id: str) -> bool:
        resource_type = get_resource_type_from_resource_id(resource_id)
        if resource_type.lower() not in self._i_resource_types:
            logger.debug("Service type is excluded: %s", resource_type)
            return True

        excluded = self.is_subscription_excluded(get_subscription_from_resource_id(resource_id))
        if not excluded:
            excluded = self.is_resource_group_excluded(
                get_resource_group_id_from_resource_id(resource_id)
            )
        if not excluded:
            excluded = resource_id.lower() in self._x_services

        if excluded:
            logger.debug("Service is excluded: %s", resource_id)
        return excluded

    def is_recommendation_excluded(self, recommendation_id: str) -> bool:
        return recommendation_id.lower() in self._x_recommendations

    def is_resource_type_excluded(self, resource_type: str) -> bool:
        return resource_type.lower() not in self._i_resource_types


def validate_resource_group_id(resource_group_id: str) -> None:
    """Raise :class:`FilterError` unless the id is ``/subscriptions/{sub}/resourceGroups/{name}``."""

    parts = resource_group_id.split("/")
    if len(parts) != 5 or parts[0] != "" or parts[1] != "subscriptions" or parts[3] != "resourceGroups":
        raise FilterError(
            f"resource group ID '{resource_group_id}' has incorrect format. Expected format: {_RG_FORMAT}"
        )
    if not parts[2]:
        raise FilterError(
            f"resource group ID '{resource_group_id}' has empty subscription ID. Expected format: {_RG_FORMAT}"
        )
    if not parts[4]:
        raise FilterError(
            f"resource group ID '{resource_group_id}' has empty resource group name. Expected format: {_RG_FORMAT}"
        )


def load_filters(
    filter_file: Path | str | None,
    scanner_keys: Sequence[str] | None = None,
    *,
    scanner_list: Mapping[str, Sequence["Scanner"]] | None = None,
) -> Filters:
    """Load a filter file (or empty filters) and resolve the active scanners.

    ``scanner_list`` defaults to the process-wide scanner registry.
    """

    filters = Filters()
    if filter_file:
        document = _read_filter_file(Path(filter_file))
        _populate(filters, document)

    for resource_group_id in filters.include.resource_groups:
        validate_resource_group_id(resource_group_id)
    for resource_group_id in filters.exclude.resource_groups:
        validate_resource_group_id(resource_group_id)

    filters._i_subscriptions = {value.lower() for value in filters.include.subscriptions}
    filters._i_resource_groups = {value.lower() for value in filters.include.resource_groups}
    filters._x_subscriptions = {value.lower() for value in filters.exclude.subscriptions}
    filters._x_resource_groups = {value.lower() for value in filters.exclude.resource_groups}
    filters._x_services = {value.lower() for value in filters.exclude.services}
    filters._x_recommendations = {value.lower() for value in filters.exclude.recommendations}

    if scanner_list is None:
        from ..scanners.registry import SCANNER_LIST, register_default_scanners

        register_default_scanners()
        scanner_list = SCANNER_LIST

    keys = list(scanner_keys or [])
    scanners: List["Scanner"] = []
    if len(keys) > 1 and filters.include.resource_types:
        for key in filters.include.resource_types:
            scanners.extend(scanner_list.get(key, []))
        logger.debug(
            "Loaded %d scanners by resource types %s", len(scanners), filters.include.resource_types
        )
    elif keys:
        for key in keys:
            scanners.extend(scanner_list.get(key, []))
        logger.debug("Loaded %d scanners by keys %s", len(scanners), keys)
    else:
        for key in sorted(scanner_list):
            scanners.extend(scanner_list[key])
        logger.debug("Loaded all %d scanners", len(scanners))

    # one instance per scanner; init stores per-subscription state
    unique: List["Scanner"] = []
    seen: set = set()
    for scanner in scanners:
        if id(scanner) not in seen:
            seen.add(id(scanner))
            unique.append(scanner)

    filters.set_scanners(unique)
    return filters


def _read_filter_file(path: Path) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilterError(f"failed reading data from file: {path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise FilterError(f"failed parsing yaml from file: {path}") from exc

    if not isinstance(data, Mapping):
        raise FilterError(f"filter file must be a mapping: {path}")
    return dict(data)


def _string_list(section: Mapping[str, Any], key: str) -> List[str]:
    values = section.get(key) or []
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, list):
        raise FilterError(f"filter field '{key}' must be a list")
    return [str(value) for value in values]


def _populate(filters: Filters, document: Mapping[str, Any]) -> None:
    azqr = document.get("azqr") or {}
    if not isinstance(azqr, Mapping):
        raise FilterError("filter section 'azqr' must be a mapping")

    include = azqr.get("include") or {}
    exclude = azqr.get("exclude") or {}
    if not isinstance(include, Mapping) or not isinstance(exclude, Mapping):
        raise FilterError("filter sections 'include' and 'exclude' must be mappings")

    filters.include = IncludeFilter(
        subscriptions=_string_list(include, "subscriptions"),
        resource_groups=_string_list(include, "resourceGroups"),
        resource_types=_string_list(include, "resourceTypes"),
    )
    filters.exclude = ExcludeFilter(
        subscriptions=_string_list(exclude, "subscriptions"),
        resource_groups=_string_list(exclude, "resourceGroups"),
        services=_string_list(exclude, "services"),
        recommendations=_string_list(exclude, "recommendations"),
    )


__all__ = [
    "ExcludeFilter",
    "FilterError",
    "Filters",
    "IncludeFilter",
    "load_filters",
    "validate_resource_group_id",
]
