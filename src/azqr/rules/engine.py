"""Evaluate a scanner's rule set against one resource."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping

from ..models.recommendation import AzqrRecommendation, AzqrResult, RecommendationType

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..scanners.base import ScanContext

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Stateless evaluator for :class:`AzqrRecommendation` rules."""

    def evaluate_recommendations(
        self,
        rules: Mapping[str, AzqrRecommendation],
        resource: Any,
        scan_context: "ScanContext",
    ) -> Dict[str, AzqrResult]:
        """Return ``rule id -> result`` for every applicable, non-excluded rule."""

        resource_type = _resource_type_of(resource)
        results: Dict[str, AzqrResult] = {}
        for key, rule in rules.items():
            if scan_context.filters.is_recommendation_excluded(rule.recommendation_id):
                continue
            if resource_type and rule.resource_type and rule.resource_type.lower() != resource_type:
                continue
            results[key] = self.evaluate_recommendation(rule, resource, scan_context)
        return results

    def evaluate_recommendation(
        self, rule: AzqrRecommendation, resource: Any, scan_context: "ScanContext"
    ) -> AzqrResult:
        broken, detail = rule.eval(resource, scan_context)
        if rule.recommendation_type is RecommendationType.SLA:
            # the detail is the asserted SLA whether or not the rule is broken
            logger.debug("SLA for %s: %s", rule.resource_type, detail)

        return AzqrResult(
            recommendation_id=rule.recommendation_id,
            category=rule.category,
            recommendation=rule.recommendation,
            impact=rule.impact,
            recommendation_type=rule.recommendation_type,
            resource_type=rule.resource_type,
            learn_more_url=rule.learn_more_url,
            not_compliant=bool(broken),
            result=detail or "",
        )


def _resource_type_of(resource: Any) -> str:
    if isinstance(resource, Mapping):
        value = resource.get("type")
    else:
        value = getattr(resource, "type", None)
    return value.lower() if isinstance(value, str) else ""


__all__ = ["RecommendationEngine"]
