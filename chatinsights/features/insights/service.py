"""
Insight Engine - Computation Service

Runs the analyzer battery over one or more groups and ranks the result.
Analysis is deterministic: identical input yields identical ids in identical order.
"""

import datetime as dt
import math
from typing import Iterable, List, Optional, Sequence

from chatinsights.core.config import settings
from chatinsights.core.errors import ProviderError
from chatinsights.core.logging import log_event
from chatinsights.core.metrics import (
    analyzer_failures_total,
    insights_generated_total,
    provider_failures_total,
)
from chatinsights.core.tracing import start_span
from chatinsights.features.insights.analyzers import ANALYZERS, Analyzer
from chatinsights.features.insights.models import SmartInsight
from chatinsights.models.stats import GroupAnalysisInput


def _is_finite(insight: SmartInsight) -> bool:
    for number in (insight.value, insight.change):
        if isinstance(number, float) and not math.isfinite(number):
            return False
    return True


def rank_insights(insights: Iterable[SmartInsight]) -> List[SmartInsight]:
    """Sort by weight descending. Stable, so ties keep their emission order."""
    return sorted(insights, key=lambda insight: insight.weight, reverse=True)


def top_insights(ranked: Sequence[SmartInsight], limit: Optional[int]) -> List[SmartInsight]:
    if limit is None:
        return list(ranked)
    return list(ranked[:max(limit, 0)])


class InsightEngine:
    """
    Applies every analyzer to every group.

    A failing analyzer contributes nothing; the rest of the batch proceeds.
    """

    def __init__(self, analyzers: Optional[Sequence[tuple]] = None):
        self.analyzers = tuple(analyzers) if analyzers is not None else ANALYZERS

    def _run_analyzer(self, name: str, analyzer: Analyzer, group: GroupAnalysisInput) -> List[SmartInsight]:
        try:
            emitted = list(analyzer(group))
        except Exception as exc:
            analyzer_failures_total.inc(labels={"analyzer": name})
            log_event(
                "warning",
                "analyzer.failed",
                group_id=group.group_id,
                event_type="analyzer.failed",
                error_code=type(exc).__name__,
                extra={"analyzer": name, "error": exc},
            )
            return []

        kept = [insight for insight in emitted if _is_finite(insight)]
        if len(kept) != len(emitted):
            analyzer_failures_total.inc(labels={"analyzer": name})
            log_event(
                "warning",
                "analyzer.non_finite",
                group_id=group.group_id,
                event_type="analyzer.failed",
                extra={"analyzer": name, "dropped": len(emitted) - len(kept)},
            )
        return kept

    def analyze_group(self, group: GroupAnalysisInput) -> List[SmartInsight]:
        """All insights for one group, in analyzer order (unranked)."""
        insights: List[SmartInsight] = []
        with start_span("insights.analyze_group", {
            "group_id": group.group_id,
            "days": group.total_days,
            "members": len(group.member_stats),
        }) as span:
            for name, analyzer in self.analyzers:
                insights.extend(self._run_analyzer(name, analyzer, group))
            if span is not None:
                span.set_attribute("insights", len(insights))

        for insight in insights:
            insights_generated_total.inc(labels={"type": insight.type.value})
        return insights

    def rank(self, groups: Iterable[GroupAnalysisInput]) -> List[SmartInsight]:
        """Full ranked list across all groups (no truncation)."""
        collected: List[SmartInsight] = []
        for group in groups:
            collected.extend(self.analyze_group(group))
        return rank_insights(collected)

    def generate_insights(
        self,
        groups: Iterable[GroupAnalysisInput],
        limit: Optional[int] = None,
        full: bool = False,
    ) -> List[SmartInsight]:
        """
        Headline insights across all groups.

        Args:
            groups: Aggregates per group
            limit: Top-N cap (defaults to TOP_INSIGHTS_LIMIT)
            full: Skip truncation entirely

        Returns:
            Insights sorted by weight descending
        """
        ranked = self.rank(groups)
        if full:
            return ranked
        return top_insights(ranked, settings.TOP_INSIGHTS_LIMIT if limit is None else limit)


def generate_insights(groups: Iterable[GroupAnalysisInput], limit: Optional[int] = None) -> List[SmartInsight]:
    return InsightEngine().generate_insights(groups, limit=limit)


def fetch_groups(provider, group_ids: Iterable[str], start: dt.date, end: dt.date) -> List[GroupAnalysisInput]:
    """
    Fetch aggregates for each group, skipping groups the provider cannot supply.
    """
    groups = []
    for group_id in group_ids:
        try:
            groups.append(provider.fetch(group_id, start, end))
        except ProviderError as exc:
            provider_failures_total.inc()
            log_event(
                "warning",
                "provider.failed",
                group_id=group_id,
                event_type="provider.failed",
                error_code=exc.code,
                extra={"error": exc.message},
            )
        except Exception as exc:
            provider_failures_total.inc()
            log_event(
                "warning",
                "provider.failed",
                group_id=group_id,
                event_type="provider.failed",
                error_code=type(exc).__name__,
                extra={"error": exc},
            )
    return groups


def generate_insights_for_groups(
    provider,
    group_ids: Iterable[str],
    start: dt.date,
    end: dt.date,
    limit: Optional[int] = None,
    full: bool = False,
    engine: Optional[InsightEngine] = None,
) -> List[SmartInsight]:
    groups = fetch_groups(provider, group_ids, start, end)
    return (engine or InsightEngine()).generate_insights(groups, limit=limit, full=full)
