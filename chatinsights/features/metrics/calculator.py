"""
Metric variable calculator.

Turns a group's aggregates into the named values formulas are evaluated
against. Every key produced here is a catalog metric (or a period-suffixed
alias of one).
"""

import math
from typing import Dict, Mapping, Optional, Union

from chatinsights.core.errors import ValidationError
from chatinsights.features.formulas.catalog import PERIOD_SUFFIXES
from chatinsights.features.insights.statistics import (
    consistency_score,
    mean,
    percent_change,
    population_stddev,
    trend_slope,
)
from chatinsights.models.stats import GroupAnalysisInput

Number = Union[int, float]

MORNING_HOURS = range(6, 12)
AFTERNOON_HOURS = range(12, 18)
EVENING_HOURS = range(18, 23)
NIGHT_HOURS = (23, 0, 1, 2, 3, 4, 5)

# |z| at which anomaly_score reaches 100
ANOMALY_Z_FULL_SCALE = 2.5


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * scale


def _total_messages(group: GroupAnalysisInput) -> int:
    if group.daily_stats:
        return sum(group.daily_messages())
    return sum(m.message_count for m in group.member_stats)


def _active_senders(group: GroupAnalysisInput) -> set:
    return {m.name for m in group.member_stats if m.message_count > 0}


def _hourly_totals(group: GroupAnalysisInput) -> Dict[int, int]:
    totals: Dict[int, int] = {}
    for day in group.daily_stats:
        for hour, count in day.hourly_activity.items():
            totals[hour] = totals.get(hour, 0) + count
    return totals


def _basic(group: GroupAnalysisInput) -> Dict[str, Number]:
    total = _total_messages(group)
    active = len(_active_senders(group))
    member_count = len(group.member_stats)
    return {
        "total_messages": total,
        "active_members": active,
        "member_count": member_count,
        "avg_messages_day": _ratio(total, group.total_days),
        "avg_messages_member": _ratio(total, active),
        "participation_rate": _ratio(active, member_count, 100),
    }


def _growth(group: GroupAnalysisInput, previous: GroupAnalysisInput) -> Dict[str, Number]:
    current_total = _total_messages(group)
    current_active = len(_active_senders(group))
    prev_total = _total_messages(previous)
    prev_active = len(_active_senders(previous))
    return {
        "prev_total_messages": prev_total,
        "prev_active_members": prev_active,
        "message_growth_rate": percent_change(current_total, prev_total),
        "member_growth_rate": percent_change(current_active, prev_active),
    }


def _quality(group: GroupAnalysisInput) -> Dict[str, Number]:
    messages = sum(m.message_count for m in group.member_stats)
    words = sum(m.word_count for m in group.member_stats)
    media = sum(m.media_count for m in group.member_stats)
    return {
        "avg_message_length": _ratio(words, messages - media),
        "media_ratio": _ratio(media, messages, 100),
    }


def _diversity_index(counts) -> float:
    """Shannon entropy of message shares normalized to 0..1."""
    positive = [c for c in counts if c > 0]
    if len(positive) <= 1:
        return 0.0
    total = sum(positive)
    entropy = -sum((c / total) * math.log(c / total) for c in positive)
    return entropy / math.log(len(positive))


def _distribution(group: GroupAnalysisInput) -> Dict[str, Number]:
    counts = sorted((m.message_count for m in group.member_stats), reverse=True)
    total = sum(counts)
    top3 = sum(counts[:3])
    top20_size = max(1, math.ceil(len(counts) * 0.2)) if counts else 0
    return {
        "top3_members_messages": top3,
        "concentration_index": _ratio(top3, total),
        "top20_percent_activity": _ratio(sum(counts[:top20_size]), total, 100),
        "participation_diversity_index": _diversity_index(counts),
    }


def _temporal(group: GroupAnalysisInput) -> Dict[str, Number]:
    hourly = _hourly_totals(group)
    daily = group.daily_messages()

    weekend = [d.total_messages for d in group.daily_stats if d.date.weekday() >= 5]
    weekday = [d.total_messages for d in group.daily_stats if d.date.weekday() < 5]

    busiest_hour = max(hourly.values()) if hourly else 0
    peak_hours = sum(1 for count in hourly.values() if busiest_hour and count >= busiest_hour / 2)

    return {
        "morning_activity": sum(hourly.get(h, 0) for h in MORNING_HOURS),
        "afternoon_activity": sum(hourly.get(h, 0) for h in AFTERNOON_HOURS),
        "evening_activity": sum(hourly.get(h, 0) for h in EVENING_HOURS),
        "night_activity": sum(hourly.get(h, 0) for h in NIGHT_HOURS),
        "weekend_activity_ratio": _ratio(mean(weekend), mean(weekday), 100),
        "peak_activity_ratio": _ratio(max(daily) if daily else 0, mean(daily)),
        "peak_duration_hours": peak_hours,
    }


def _retention(group: GroupAnalysisInput, previous: Optional[GroupAnalysisInput]) -> float:
    if previous is not None:
        earlier = _active_senders(previous)
        current = _active_senders(group)
        return _ratio(len(earlier & current), len(earlier), 100)

    midpoint = group.period.start.toordinal() + group.period.days // 2
    earlier, later = set(), set()
    for member in group.member_stats:
        for day in member.daily_stats:
            if day.message_count <= 0:
                continue
            if day.date.toordinal() < midpoint:
                earlier.add(member.name)
            else:
                later.add(member.name)
    return _ratio(len(earlier & later), len(earlier), 100)


def _advanced(group: GroupAnalysisInput, previous: Optional[GroupAnalysisInput]) -> Dict[str, Number]:
    daily = group.daily_messages()
    average = mean(daily)
    stddev = population_stddev(daily)
    if stddev > 0:
        max_z = max(abs(v - average) / stddev for v in daily)
        anomaly = min(100.0, max_z / ANOMALY_Z_FULL_SCALE * 100)
    else:
        anomaly = 0.0
    return {
        "consistency_score": consistency_score(daily),
        "anomaly_score": anomaly,
        "engagement_velocity": trend_slope(daily),
        "retention_index": _retention(group, previous),
    }


def with_period_suffix(variables: Mapping[str, Number], suffix: str) -> Dict[str, Number]:
    if suffix not in PERIOD_SUFFIXES:
        raise ValidationError(
            f"Unknown period suffix '{suffix}'",
            identifiers=[suffix],
        )
    return {f"{name}_{suffix}": value for name, value in variables.items()}


def compute_metric_variables(
    group: GroupAnalysisInput,
    previous: Optional[GroupAnalysisInput] = None,
    extra: Optional[Mapping[str, Number]] = None,
    period_suffix: bool = False,
) -> Dict[str, Number]:
    """
    Catalog variables for one group.

    Growth metrics are only present when `previous` is given. `response_rate`
    and `conversation_depth` need reply data and are only present when passed
    through `extra`, which also overrides any computed value.
    """
    variables: Dict[str, Number] = {}
    variables.update(_basic(group))
    if previous is not None:
        variables.update(_growth(group, previous))
    variables.update(_quality(group))
    variables.update(_distribution(group))
    variables.update(_temporal(group))
    variables.update(_advanced(group, previous))
    if extra:
        variables.update(extra)

    if period_suffix:
        suffix = f"last_{group.period.days}_days"
        if suffix in PERIOD_SUFFIXES:
            variables.update(with_period_suffix(dict(variables), suffix))
    return variables
