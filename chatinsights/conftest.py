# chatinsights/conftest.py
import datetime as dt
from typing import Dict, List, Optional, Sequence

import pytest

from chatinsights.models.stats import (
    AnalysisPeriod,
    DailyStat,
    GroupAnalysisInput,
    MemberDailyCount,
    MemberStat,
)

# A Monday, so weekday/weekend splits are easy to reason about.
BASE_DATE = dt.date(2024, 1, 1)


def build_days(
    messages: Sequence[int],
    start: dt.date = BASE_DATE,
    active_members: Optional[Sequence[int]] = None,
    hourly: Optional[Sequence[Dict[int, int]]] = None,
) -> List[DailyStat]:
    days = []
    for offset, count in enumerate(messages):
        days.append(DailyStat(
            date=start + dt.timedelta(days=offset),
            total_messages=count,
            active_members=active_members[offset] if active_members else (min(count, 5) if count else 0),
            hourly_activity=hourly[offset] if hourly else {},
        ))
    return days


def build_member(
    name: str,
    messages: int,
    words: Optional[int] = None,
    media: int = 0,
    daily: Optional[Dict[dt.date, int]] = None,
) -> MemberStat:
    return MemberStat(
        name=name,
        message_count=messages,
        word_count=words if words is not None else (messages - media) * 10,
        media_count=media,
        daily_stats=[
            MemberDailyCount(date=day, message_count=count)
            for day, count in sorted((daily or {}).items())
        ],
    )


def build_group(
    daily_stats: Optional[List[DailyStat]] = None,
    member_stats: Optional[List[MemberStat]] = None,
    group_id: str = "g1",
    group_name: str = "Group One",
) -> GroupAnalysisInput:
    daily_stats = daily_stats or []
    if daily_stats:
        period = AnalysisPeriod.spanning(daily_stats[0].date, daily_stats[-1].date)
    else:
        period = AnalysisPeriod(start=BASE_DATE, end=BASE_DATE, days=1)
    return GroupAnalysisInput(
        group_id=group_id,
        group_name=group_name,
        daily_stats=daily_stats,
        member_stats=member_stats or [],
        period=period,
    )


@pytest.fixture
def make_days():
    """Factory: list of DailyStat from per-day message counts."""
    return build_days


@pytest.fixture
def make_member():
    """Factory: MemberStat with ~10 words per text message by default."""
    return build_member


@pytest.fixture
def make_group():
    """Factory: GroupAnalysisInput whose period spans the supplied days."""
    return build_group


@pytest.fixture
def steady_group():
    """
    Two flat weeks of 20 messages/day and a mid-range member spread.

    Fires exactly: growth_steady, engagement_stable, consistency_exceptional.
    """
    days = build_days([20] * 14)
    members = [build_member(f"m{i}", count) for i, count in enumerate([60, 55, 50, 45, 40, 30])]
    return build_group(days, members, group_id="steady", group_name="Steady")
