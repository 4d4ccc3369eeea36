"""Process-wide registry of service scanners keyed by service abbreviation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .base import Scanner
from .services import (
    new_aks_scanner,
    new_base_scanners,
    new_key_vault_scanner,
    new_storage_scanner,
    new_virtual_machine_scanner,
)

logger = logging.getLogger(__name__)

SCANNER_LIST: Dict[str, List[Scanner]] = {}

_lock = threading.Lock()
_registered = False


@dataclass(slots=True)
class ScannerInfo:
    key: str
    resource_types: List[str]
    scanner_count: int


def register_default_scanners() -> None:
    """Populate :data:`SCANNER_LIST` once; later calls are no-ops."""

    global _registered
    with _lock:
        if _registered:
            return
        SCANNER_LIST.update(new_base_scanners())
        SCANNER_LIST["aks"] = [new_aks_scanner()]
        SCANNER_LIST["kv"] = [new_key_vault_scanner()]
        SCANNER_LIST["st"] = [new_storage_scanner()]
        SCANNER_LIST["vm"] = [new_virtual_machine_scanner()]
        _registered = True
        logger.debug("Registered %d scanner keys", len(SCANNER_LIST))


def get_scanners() -> Tuple[List[str], List[Scanner]]:
    """Return the sorted keys and every scanner flattened in key order."""

    register_default_scanners()
    keys = sorted(SCANNER_LIST)
    scanners: List[Scanner] = []
    for key in keys:
        scanners.extend(SCANNER_LIST[key])
    return keys, scanners


def get_scanners_by_keys(keys: Sequence[str] | None) -> List[Scanner]:
    """Scanners registered under ``keys``, or all scanners when none are given."""

    if not keys:
        return get_scanners()[1]
    register_default_scanners()
    scanners: List[Scanner] = []
    for key in keys:
        scanners.extend(SCANNER_LIST.get(key, []))
    return scanners


def get_scanner_keys() -> List[str]:
    return get_scanners()[0]


def get_scanner_by_key(key: str) -> List[Scanner]:
    register_default_scanners()
    return list(SCANNER_LIST.get(key, []))


def get_scanner_count() -> int:
    return len(get_scanners()[1])


def list_scanner_info() -> List[ScannerInfo]:
    info: List[ScannerInfo] = []
    for key in get_scanner_keys():
        scanners = SCANNER_LIST[key]
        if scanners:
            info.append(
                ScannerInfo(
                    key=key,
                    resource_types=scanners[0].resource_types(),
                    scanner_count=len(scanners),
                )
            )
    return info


__all__ = [
    "SCANNER_LIST",
    "ScannerInfo",
    "get_scanner_by_key",
    "get_scanner_count",
    "get_scanner_keys",
    "get_scanners",
    "get_scanners_by_keys",
    "list_scanner_info",
    "register_default_scanners",
]
