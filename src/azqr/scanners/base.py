"""Scanner contract plus the base and generic scanner adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from ..adapters.cloud import get_resource_manager_endpoint
from ..adapters.graph_client import mask_subscription_id
from ..adapters.http_client import HTTPError, HttpClient, HttpClientOptions
from ..context import ExecutionContext
from ..models.filters import Filters
from ..models.recommendation import AzqrRecommendation
from ..models.resource import get_resource_group_from_resource_id
from ..models.results import AzqrServiceResult
from ..rules.engine import RecommendationEngine

logger = logging.getLogger(__name__)

TResource = TypeVar("TResource")
TClient = TypeVar("TClient")


@dataclass(slots=True)
class ScannerConfig:
    """Per-subscription view handed to every scanner's ``init``."""

    ctx: ExecutionContext
    credential: Any
    client_options: HttpClientOptions
    subscription_id: str
    subscription_name: str = ""
    http_client: Optional[HttpClient] = None
    endpoint: str = ""

    def client(self) -> HttpClient:
        if self.http_client is None:
            self.http_client = HttpClient(self.credential, self.client_options)
        return self.http_client

    def arm_endpoint(self) -> str:
        return (self.endpoint or get_resource_manager_endpoint()).rstrip("/")


@dataclass(slots=True)
class ScanContext:
    """Shared lookups available to rule evaluation."""

    filters: Filters = field(default_factory=Filters)
    private_endpoints: Dict[str, bool] = field(default_factory=dict)
    diagnostics_settings: Dict[str, bool] = field(default_factory=dict)
    public_ips: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    blob_service_properties: Optional[Dict[str, Any]] = None


class Scanner(ABC):
    """Contract every service scanner implements."""

    @abstractmethod
    def init(self, config: ScannerConfig) -> None:
        """Prepare the scanner for one subscription."""

    @abstractmethod
    def scan(self, scan_context: ScanContext) -> List[AzqrServiceResult]:
        """Evaluate the scanner's rules against the subscription's resources."""

    @abstractmethod
    def resource_types(self) -> List[str]:
        """Resource types owned by this scanner."""

    @abstractmethod
    def get_recommendations(self) -> Dict[str, AzqrRecommendation]:
        """Rules keyed by recommendation id."""


class BaseScanner(Scanner):
    """Scanner that only advertises resource types handled by graph queries."""

    def __init__(self, name: str, *resource_types: str) -> None:
        self.name = name
        self._resource_types = list(resource_types)
        self.config: ScannerConfig | None = None

    def init(self, config: ScannerConfig) -> None:
        self.config = config

    def scan(self, scan_context: ScanContext) -> List[AzqrServiceResult]:
        return []

    def resource_types(self) -> List[str]:
        return list(self._resource_types)

    def get_recommendations(self) -> Dict[str, AzqrRecommendation]:
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


@dataclass(slots=True)
class ResourceInfo:
    id: str = ""
    name: str = ""
    location: str = ""
    type: str = ""


def extract_standard_arm_resource_info(resource: Mapping[str, Any]) -> ResourceInfo:
    """Read ``id``, ``name``, ``location`` and ``type`` from an ARM resource payload."""

    return ResourceInfo(
        id=str(resource.get("id") or ""),
        name=str(resource.get("name") or ""),
        location=str(resource.get("location") or ""),
        type=str(resource.get("type") or ""),
    )


class GenericScanner(Scanner, Generic[TResource, TClient]):
    """List-and-evaluate scanner parameterised by callbacks.

    ``client_factory`` builds a client from the :class:`ScannerConfig`,
    ``list_resources`` returns every resource using that client, and
    ``extract_resource_info`` maps one resource onto the report columns.
    """

    def __init__(
        self,
        resource_types: Sequence[str],
        client_factory: Callable[[ScannerConfig], TClient],
        list_resources: Callable[[TClient, ExecutionContext], List[TResource]],
        get_recommendations: Callable[[], Dict[str, AzqrRecommendation]],
        extract_resource_info: Callable[[TResource], ResourceInfo],
        *,
        name: str = "",
        engine: RecommendationEngine | None = None,
    ) -> None:
        if not resource_types:
            raise ValueError("generic scanner needs at least one resource type")
        self.name = name or resource_types[0]
        self._resource_types = list(resource_types)
        self._client_factory = client_factory
        self._list_resources = list_resources
        self._get_recommendations = get_recommendations
        self._extract_resource_info = extract_resource_info
        self._engine = engine or RecommendationEngine()
        self.config: ScannerConfig | None = None
        self.client: TClient | None = None

    # ------------------------------------------------------------------
    def init(self, config: ScannerConfig) -> None:
        self.config = config
        self.client = self._client_factory(config)

    def scan(self, scan_context: ScanContext) -> List[AzqrServiceResult]:
        if self.config is None or self.client is None:
            raise RuntimeError(f"scanner {self.name} used before init")

        log_subscription_scan(self.config.subscription_id, self._resource_types[0])
        resources = self._list_resources(self.client, self.config.ctx)
        rules = self._get_recommendations()

        results: List[AzqrServiceResult] = []
        for resource in resources:
            evaluated = self._engine.evaluate_recommendations(rules, resource, scan_context)
            info = self._extract_resource_info(resource)
            results.append(
                AzqrServiceResult(
                    subscription_id=self.config.subscription_id,
                    subscription_name=self.config.subscription_name,
                    resource_group=get_resource_group_from_resource_id(info.id),
                    location=info.location,
                    type=info.type,
                    service_name=info.name,
                    recommendations=evaluated,
                )
            )
        return results

    def resource_types(self) -> List[str]:
        return list(self._resource_types)

    def get_recommendations(self) -> Dict[str, AzqrRecommendation]:
        return self._get_recommendations()

    def __repr__(self) -> str:
        return f"GenericScanner({self.name!r})"


def should_skip_error(exc: BaseException) -> bool:
    """True for API errors meaning the subscription cannot serve this scan."""

    if isinstance(exc, HTTPError) and exc.skippable:
        logger.warning("Subscription failed with code: %s. Skipping Scan...", exc.error_code)
        return True
    return False


def log_subscription_scan(subscription_id: str, service: str) -> None:
    logger.info("Scanning subscriptions/%s for %s", mask_subscription_id(subscription_id), service)


def log_resource_type_scan(service: str) -> None:
    logger.info("Scanning subscriptions for %s", service)


__all__ = [
    "BaseScanner",
    "GenericScanner",
    "ResourceInfo",
    "ScanContext",
    "Scanner",
    "ScannerConfig",
    "extract_standard_arm_resource_info",
    "log_resource_type_scan",
    "log_subscription_scan",
    "should_skip_error",
]
