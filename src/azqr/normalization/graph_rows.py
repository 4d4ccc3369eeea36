"""Conversion helpers that turn raw Resource Graph rows into report models."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Mapping, Optional

from ..models.recommendation import GraphRecommendation, GraphResult
from ..models.resource import (
    Resource,
    get_resource_group_from_resource_id,
    get_subscription_from_resource_id,
)

logger = logging.getLogger(__name__)


class GraphRowNormalizer:
    """Normalize Resource Graph rows into :class:`GraphResult` and :class:`Resource`."""

    def to_graph_results(
        self,
        recommendation: GraphRecommendation,
        rows: Iterable[Mapping[str, Any]],
        subscriptions: Mapping[str, str],
    ) -> List[GraphResult]:
        """Return one result per row; rows without an ``id`` are skipped."""

        results: List[GraphResult] = []
        for row in rows:
            result = self.to_graph_result(recommendation, row, subscriptions)
            if result is not None:
                results.append(result)
        return results

    def to_graph_result(
        self,
        recommendation: GraphRecommendation,
        row: Mapping[str, Any],
        subscriptions: Mapping[str, str],
    ) -> Optional[GraphResult]:
        resource_id = row.get("id")
        if not resource_id:
            logger.warning(
                "Skipping result: 'id' field is missing in the response for recommendation: %s",
                recommendation.recommendation_id,
            )
            return None

        resource_id = str(resource_id)
        subscription_id = get_subscription_from_resource_id(resource_id)
        return GraphResult(
            recommendation_id=recommendation.recommendation_id,
            recommendation=recommendation.recommendation,
            resource_id=resource_id,
            category=recommendation.category,
            impact=recommendation.impact,
            resource_type=recommendation.resource_type,
            long_description=recommendation.long_description,
            potential_benefits=recommendation.potential_benefits,
            name=self._text(row.get("name")),
            subscription_id=subscription_id,
            subscription_name=subscriptions.get(subscription_id, ""),
            resource_group=get_resource_group_from_resource_id(resource_id),
            tags=self._text(row.get("tags")),
            param1=self._text(row.get("param1")),
            param2=self._text(row.get("param2")),
            param3=self._text(row.get("param3")),
            param4=self._text(row.get("param4")),
            param5=self._text(row.get("param5")),
            learn=recommendation.learn_more_url,
            automation_available=recommendation.automation_available,
            source=recommendation.source,
        )

    def to_resource(self, row: Mapping[str, Any]) -> Resource:
        resource_id = self._text(row.get("id"))
        return Resource(
            id=resource_id,
            subscription_id=self._text(row.get("subscriptionId"))
            or get_subscription_from_resource_id(resource_id),
            resource_group=self._text(row.get("resourceGroup"))
            or get_resource_group_from_resource_id(resource_id),
            type=self._text(row.get("type")),
            location=self._text(row.get("location")),
            name=self._text(row.get("name")),
            sku_name=self._text(row.get("skuName")),
            sku_tier=self._text(row.get("skuTier")),
            kind=self._text(row.get("kind")),
            sla=self._text(row.get("sla")),
        )

    # ------------------------------------------------------------------
    def _text(self, value: Any) -> str:
        return to_text(value)


def to_text(value: Any) -> str:
    """Render a graph cell as report text; objects and arrays become JSON."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


__all__ = ["GraphRowNormalizer", "to_text"]
