"""Recommendation models shared by scanners, the graph stage and reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Tuple

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..scanners.base import ScanContext


class RecommendationCategory(str, Enum):
    """Closed set of recommendation categories."""

    BUSINESS_CONTINUITY = "BusinessContinuity"
    DISASTER_RECOVERY = "DisasterRecovery"
    GOVERNANCE = "Governance"
    HIGH_AVAILABILITY = "HighAvailability"
    MONITORING_AND_ALERTING = "MonitoringAndAlerting"
    OTHER_BEST_PRACTICES = "OtherBestPractices"
    SCALABILITY = "Scalability"
    SECURITY = "Security"
    SERVICE_UPGRADE_AND_RETIREMENT = "ServiceUpgradeAndRetirement"
    SLA = "SLA"


class RecommendationImpact(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecommendationType(str, Enum):
    """Plain recommendations versus SLA assertions."""

    RECOMMENDATION = ""
    SLA = "SLA"


EvalFunc = Callable[[Any, "ScanContext"], Tuple[bool, str]]


@dataclass(slots=True)
class AzqrRecommendation:
    """In-process rule evaluated against one resource returned by a service scanner."""

    recommendation_id: str
    resource_type: str
    category: RecommendationCategory
    recommendation: str
    impact: RecommendationImpact
    eval: EvalFunc
    recommendation_type: RecommendationType = RecommendationType.RECOMMENDATION
    learn_more_url: str = ""

    def to_graph_recommendation(self) -> "GraphRecommendation":
        return GraphRecommendation(
            recommendation_id=self.recommendation_id,
            recommendation=self.recommendation,
            category=self.category.value,
            impact=self.impact.value,
            resource_type=self.resource_type,
            long_description=self.recommendation,
            learn_more_link=[LearnMoreLink(name="Learn More", url=self.learn_more_url)],
            source="AZQR",
        )


@dataclass(slots=True)
class AzqrResult:
    """Outcome of one rule evaluated against one resource."""

    recommendation_id: str
    category: RecommendationCategory
    recommendation: str
    impact: RecommendationImpact
    recommendation_type: RecommendationType = RecommendationType.RECOMMENDATION
    resource_type: str = ""
    learn_more_url: str = ""
    not_compliant: bool = False
    result: str = ""


@dataclass(slots=True)
class LearnMoreLink:
    name: str
    url: str


@dataclass(slots=True)
class GraphRecommendation:
    """Declarative recommendation carrying an optional Resource Graph query."""

    recommendation_id: str
    recommendation: str
    category: str = ""
    impact: str = ""
    resource_type: str = ""
    metadata_state: str = ""
    long_description: str = ""
    potential_benefits: str = ""
    pg_verified: bool = False
    automation_available: str = ""
    tags: List[str] = field(default_factory=list)
    graph_query: str = ""
    learn_more_link: List[LearnMoreLink] = field(default_factory=list)
    source: str = ""

    @property
    def learn_more_url(self) -> str:
        return self.learn_more_link[0].url if self.learn_more_link else ""

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], *, source: str = "") -> "GraphRecommendation":
        """Build a recommendation from catalogue-style keys (``aprlGuid``, ``description``...)."""

        links = [
            LearnMoreLink(name=str(link.get("name") or ""), url=str(link.get("url") or ""))
            for link in data.get("learnMoreLink") or []
            if isinstance(link, dict)
        ]
        automation = data.get("automationAvailable", "")
        if isinstance(automation, bool):
            automation = "true" if automation else "false"
        return cls(
            recommendation_id=str(data.get("aprlGuid") or ""),
            recommendation=str(data.get("description") or ""),
            category=str(data.get("recommendationControl") or ""),
            impact=str(data.get("recommendationImpact") or ""),
            resource_type=str(data.get("recommendationResourceType") or ""),
            metadata_state=str(data.get("recommendationMetadataState") or ""),
            long_description=str(data.get("longDescription") or ""),
            potential_benefits=str(data.get("potentialBenefits") or ""),
            pg_verified=bool(data.get("pgVerified", False)),
            automation_available=str(automation or ""),
            tags=[str(tag) for tag in data.get("tags") or []],
            graph_query=str(data.get("graphQuery") or data.get("query") or ""),
            learn_more_link=links,
            source=source,
        )


@dataclass(slots=True)
class GraphResult:
    """One impacted resource reported by a graph recommendation."""

    recommendation_id: str
    recommendation: str
    resource_id: str
    category: str = ""
    impact: str = ""
    resource_type: str = ""
    long_description: str = ""
    potential_benefits: str = ""
    name: str = ""
    subscription_id: str = ""
    subscription_name: str = ""
    resource_group: str = ""
    tags: str = ""
    param1: str = ""
    param2: str = ""
    param3: str = ""
    param4: str = ""
    param5: str = ""
    learn: str = ""
    automation_available: str = ""
    source: str = ""


__all__ = [
    "AzqrRecommendation",
    "AzqrResult",
    "EvalFunc",
    "GraphRecommendation",
    "GraphResult",
    "LearnMoreLink",
    "RecommendationCategory",
    "RecommendationImpact",
    "RecommendationType",
]
