"""
Custom insights.

Runs user-authored formula definitions against each group's metric
variables and turns every triggered definition into a SmartInsight.
"""

import math
from typing import Dict, Iterable, List, Mapping, Optional

from chatinsights.core.errors import ValidationError
from chatinsights.core.logging import log_event
from chatinsights.core.tracing import start_span
from chatinsights.features.custom_insights.models import CustomInsightDefinition, DefinitionsSummary
from chatinsights.features.formulas.service import FormulaEvaluator, render_number
from chatinsights.features.insights.models import (
    InsightMetadata,
    InsightPriority,
    InsightTrend,
    InsightType,
    SmartInsight,
)
from chatinsights.features.insights.service import rank_insights
from chatinsights.features.metrics.calculator import compute_metric_variables
from chatinsights.models.stats import GroupAnalysisInput


PRIORITY_WEIGHTS = {
    InsightPriority.CRITICAL: 90,
    InsightPriority.HIGH: 78,
    InsightPriority.MEDIUM: 62,
    InsightPriority.LOW: 45,
}

_PRIORITY_TRENDS = {
    InsightPriority.CRITICAL: InsightTrend.CRITICAL,
    InsightPriority.HIGH: InsightTrend.WARNING,
}


class CustomInsightRunner:
    def __init__(self, evaluator: Optional[FormulaEvaluator] = None):
        self.evaluator = evaluator or FormulaEvaluator()

    def _to_insight(self, definition: CustomInsightDefinition, group: GroupAnalysisInput, result) -> SmartInsight:
        description = definition.description or definition.name
        return SmartInsight(
            id=f"custom_{definition.id}_{group.group_id}",
            type=InsightType.CUSTOM,
            priority=definition.priority,
            weight=PRIORITY_WEIGHTS[definition.priority],
            group_id=group.group_id,
            group_name=group.group_name,
            title=definition.name,
            description=(
                f"{description} Formula {result.expression} evaluated as "
                f"{result.substituted_expression} = {render_number(result.result)}."
            ),
            value=result.result if not isinstance(result.result, bool) else int(result.result),
            trend=_PRIORITY_TRENDS.get(definition.priority, InsightTrend.STABLE),
            actionable=True,
            metadata=InsightMetadata(
                period=f"Last {group.period.days} days",
                data_points=group.total_days,
                confidence=100,
                category=definition.category,
            ),
        )

    def run_group(
        self,
        definitions: Iterable[CustomInsightDefinition],
        group: GroupAnalysisInput,
        previous: Optional[GroupAnalysisInput] = None,
    ) -> List[SmartInsight]:
        variables = compute_metric_variables(group, previous=previous, period_suffix=True)
        insights = []
        for definition in definitions:
            if not definition.enabled:
                continue
            try:
                result = self.evaluator.evaluate(definition.expression, variables, definition.conditions)
            except ValidationError as exc:
                log_event(
                    "warning",
                    "custom_insight.invalid",
                    group_id=group.group_id,
                    event_type="custom_insight.invalid",
                    error_code=exc.code,
                    extra={"definition_id": definition.id, "identifiers": exc.identifiers},
                )
                continue
            if result.error:
                log_event(
                    "warning",
                    "custom_insight.evaluation_failed",
                    group_id=group.group_id,
                    event_type="formula.evaluation_failed",
                    error_code=result.error_code,
                    extra={"definition_id": definition.id, "error": result.error},
                )
                continue
            if result.triggered and not isinstance(result.result, bool) and not math.isfinite(result.result):
                log_event(
                    "warning",
                    "custom_insight.non_finite",
                    group_id=group.group_id,
                    event_type="formula.evaluation_failed",
                    extra={"definition_id": definition.id, "result": result.result},
                )
                continue
            if result.triggered:
                insights.append(self._to_insight(definition, group, result))
        return insights

    def run(
        self,
        definitions: Iterable[CustomInsightDefinition],
        groups: Iterable[GroupAnalysisInput],
        previous: Optional[Mapping[str, GroupAnalysisInput]] = None,
    ) -> List[SmartInsight]:
        """
        Evaluate every enabled definition for every group.

        Args:
            definitions: Formula definitions
            groups: Current-period aggregates
            previous: Previous-period aggregates keyed by group_id (enables growth metrics)

        Returns:
            Triggered insights sorted by weight descending
        """
        definitions = list(definitions)
        previous = previous or {}
        insights: List[SmartInsight] = []
        for group in groups:
            with start_span("custom_insights.run_group", {"group_id": group.group_id, "definitions": len(definitions)}):
                insights.extend(self.run_group(definitions, group, previous.get(group.group_id)))
        return rank_insights(insights)


def summarize_definitions(definitions: Iterable[CustomInsightDefinition]) -> DefinitionsSummary:
    total = 0
    enabled = 0
    by_category: Dict[str, int] = {}
    by_priority: Dict[str, int] = {priority.value: 0 for priority in InsightPriority}
    for definition in definitions:
        total += 1
        if definition.enabled:
            enabled += 1
        by_category[definition.category] = by_category.get(definition.category, 0) + 1
        by_priority[definition.priority.value] += 1
    return DefinitionsSummary(total=total, enabled=enabled, by_category=by_category, by_priority=by_priority)
