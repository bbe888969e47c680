"""
Metric aggregate providers.

A provider hands the insight engine one group's aggregates for a date
range. The engine trusts what it receives: deduplication, date bucketing
and dropping system messages are the provider's job.
"""

import datetime as dt
import threading
from typing import Dict, List, Mapping, Protocol

from chatinsights.core.errors import ProviderError
from chatinsights.models.stats import (
    AnalysisPeriod,
    GroupAnalysisInput,
    MemberDailyCount,
    MemberStat,
)


class AggregateProvider(Protocol):
    def fetch(self, group_id: str, start: dt.date, end: dt.date) -> GroupAnalysisInput:
        """Aggregates for [start, end]; raises ProviderError when unavailable."""
        ...


def build_member_stat(
    name: str,
    daily_counts: Mapping[dt.date, int],
    word_count: int = 0,
    media_count: int = 0,
) -> MemberStat:
    """MemberStat whose message_count is the sum of its daily breakdown."""
    daily = [
        MemberDailyCount(date=day, message_count=count)
        for day, count in sorted(daily_counts.items())
    ]
    return MemberStat(
        name=name,
        message_count=sum(d.message_count for d in daily),
        word_count=word_count,
        media_count=media_count,
        daily_stats=daily,
    )


def _slice_member(member: MemberStat, start: dt.date, end: dt.date) -> MemberStat:
    if not member.daily_stats:
        return member

    retained = [d for d in member.daily_stats if start <= d.date <= end]
    if len(retained) == len(member.daily_stats):
        return member

    messages = sum(d.message_count for d in retained)
    factor = messages / member.message_count if member.message_count else 0.0
    return MemberStat(
        name=member.name,
        message_count=messages,
        word_count=round(member.word_count * factor),
        media_count=min(round(member.media_count * factor), messages),
        daily_stats=retained,
    )


class InMemoryAggregateProvider:
    """Dictionary-backed provider; thread-safe for concurrent requests."""

    def __init__(self, groups: List[GroupAnalysisInput] = None):
        self._groups: Dict[str, GroupAnalysisInput] = {}
        self._lock = threading.Lock()
        for group in groups or []:
            self.put(group)

    def put(self, group: GroupAnalysisInput) -> None:
        with self._lock:
            self._groups[group.group_id] = group

    def group_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._groups)

    def clear(self) -> None:
        with self._lock:
            self._groups.clear()

    def fetch(self, group_id: str, start: dt.date, end: dt.date) -> GroupAnalysisInput:
        if start > end:
            raise ProviderError(f"Invalid range {start} > {end}", group_id=group_id)

        with self._lock:
            stored = self._groups.get(group_id)
        if stored is None:
            raise ProviderError(f"No aggregates for group {group_id}", group_id=group_id)

        daily = [d for d in stored.daily_stats if start <= d.date <= end]
        members = [_slice_member(m, start, end) for m in stored.member_stats]
        return GroupAnalysisInput(
            group_id=stored.group_id,
            group_name=stored.group_name,
            daily_stats=daily,
            member_stats=members,
            period=AnalysisPeriod.spanning(start, end),
        )


_default_provider = InMemoryAggregateProvider()


def get_default_provider() -> InMemoryAggregateProvider:
    return _default_provider
