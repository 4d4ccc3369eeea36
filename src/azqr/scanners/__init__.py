"""Scanner contract, registry, graph scanner and the auxiliary scans."""

from .advisor import AdvisorScanner
from .arc_sql import ArcSQLScanner
from .base import (
    BaseScanner,
    GenericScanner,
    ResourceInfo,
    ScanContext,
    Scanner,
    ScannerConfig,
    extract_standard_arm_resource_info,
    should_skip_error,
)
from .cost import CostScanner
from .defender import DefenderScanner
from .diagnostics import DiagnosticSettingsScanner
from .discovery import ManagementGroupDiscovery, ResourceDiscovery, SubscriptionDiscovery
from .graph import GraphScanner
from .network import PrivateEndpointScanner, PublicIPScanner
from .policy import AzurePolicyScanner
from .registry import (
    SCANNER_LIST,
    ScannerInfo,
    get_scanner_by_key,
    get_scanner_count,
    get_scanner_keys,
    get_scanners,
    get_scanners_by_keys,
    list_scanner_info,
    register_default_scanners,
)

__all__ = [
    "AdvisorScanner",
    "ArcSQLScanner",
    "AzurePolicyScanner",
    "BaseScanner",
    "CostScanner",
    "DefenderScanner",
    "DiagnosticSettingsScanner",
    "GenericScanner",
    "GraphScanner",
    "ManagementGroupDiscovery",
    "PrivateEndpointScanner",
    "PublicIPScanner",
    "ResourceDiscovery",
    "ResourceInfo",
    "SCANNER_LIST",
    "ScanContext",
    "Scanner",
    "ScannerConfig",
    "ScannerInfo",
    "SubscriptionDiscovery",
    "extract_standard_arm_resource_info",
    "get_scanner_by_key",
    "get_scanner_count",
    "get_scanner_keys",
    "get_scanners",
    "get_scanners_by_keys",
    "list_scanner_info",
    "register_default_scanners",
    "should_skip_error",
]
