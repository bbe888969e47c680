"""
Metric catalog.

The one table of metric names a formula may reference. Authoring tools and
the evaluator both read it; adding a metric means adding a row here and
teaching the calculator (features/metrics) how to compute it.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict


CATALOG_VERSION = "2024.1"


class MetricValueType(str, Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"
    AVERAGE = "average"
    SCORE = "score"


class MetricCategory(str, Enum):
    BASIC = "Basic"
    GROWTH = "Growth"
    QUALITY = "Quality"
    DISTRIBUTION = "Distribution"
    TEMPORAL = "Temporal"
    ADVANCED = "Advanced"


class MetricDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    value_type: MetricValueType
    category: MetricCategory
    example: Union[int, float]


def _metric(name, label, value_type, category, example) -> MetricDescriptor:
    return MetricDescriptor(name=name, label=label, value_type=value_type, category=category, example=example)


_C, _P, _A, _S = (
    MetricValueType.COUNT,
    MetricValueType.PERCENTAGE,
    MetricValueType.AVERAGE,
    MetricValueType.SCORE,
)

METRIC_CATALOG: Tuple[MetricDescriptor, ...] = (
    # Basic
    _metric("total_messages", "Total messages in the period", _C, MetricCategory.BASIC, 1500),
    _metric("active_members", "Members who sent at least one message", _C, MetricCategory.BASIC, 42),
    _metric("member_count", "Total members in the group", _C, MetricCategory.BASIC, 60),
    _metric("avg_messages_day", "Average messages per day", _A, MetricCategory.BASIC, 50.0),
    _metric("avg_messages_member", "Average messages per active member", _A, MetricCategory.BASIC, 35.7),
    _metric("participation_rate", "Participation rate (%)", _P, MetricCategory.BASIC, 70.0),
    # Growth
    _metric("message_growth_rate", "Message growth rate (%)", _P, MetricCategory.GROWTH, 12.5),
    _metric("member_growth_rate", "Active member growth rate (%)", _P, MetricCategory.GROWTH, 5.0),
    _metric("prev_total_messages", "Total messages in the previous period", _C, MetricCategory.GROWTH, 1333),
    _metric("prev_active_members", "Active members in the previous period", _C, MetricCategory.GROWTH, 40),
    # Quality
    _metric("avg_message_length", "Average words per text message", _A, MetricCategory.QUALITY, 11.2),
    _metric("media_ratio", "Share of messages carrying media (%)", _P, MetricCategory.QUALITY, 8.0),
    _metric("response_rate", "Reply rate between members (%)", _P, MetricCategory.QUALITY, 45.0),
    _metric("conversation_depth", "Average replies per thread", _A, MetricCategory.QUALITY, 3.4),
    # Distribution
    _metric("concentration_index", "Share of messages from the top 3 members (0-1)", _S, MetricCategory.DISTRIBUTION, 0.45),
    _metric("top3_members_messages", "Messages sent by the top 3 members", _C, MetricCategory.DISTRIBUTION, 675),
    _metric("top20_percent_activity", "Share of messages from the top 20% of members (%)", _P, MetricCategory.DISTRIBUTION, 62.0),
    _metric("participation_diversity_index", "Evenness of participation (0-1)", _S, MetricCategory.DISTRIBUTION, 0.78),
    # Temporal
    _metric("morning_activity", "Messages between 06h and 11h", _C, MetricCategory.TEMPORAL, 320),
    _metric("afternoon_activity", "Messages between 12h and 17h", _C, MetricCategory.TEMPORAL, 540),
    _metric("evening_activity", "Messages between 18h and 22h", _C, MetricCategory.TEMPORAL, 510),
    _metric("night_activity", "Messages between 23h and 05h", _C, MetricCategory.TEMPORAL, 130),
    _metric("weekend_activity_ratio", "Weekend vs weekday daily activity (%)", _P, MetricCategory.TEMPORAL, 85.0),
    _metric("peak_activity_ratio", "Busiest day vs average day", _S, MetricCategory.TEMPORAL, 2.4),
    _metric("peak_duration_hours", "Hours at or above half the busiest hour", _C, MetricCategory.TEMPORAL, 5),
    # Advanced
    _metric("consistency_score", "Predictability of daily activity (0-100)", _S, MetricCategory.ADVANCED, 72.0),
    _metric("anomaly_score", "Strength of the largest daily deviation (0-100)", _S, MetricCategory.ADVANCED, 40.0),
    _metric("engagement_velocity", "Daily trend of message volume", _S, MetricCategory.ADVANCED, 1.8),
    _metric("retention_index", "Share of earlier senders still active (%)", _P, MetricCategory.ADVANCED, 76.0),
)

PERIOD_SUFFIXES: Tuple[str, ...] = (
    "last_7_days",
    "last_14_days",
    "last_30_days",
    "last_90_days",
    "last_week",
    "last_month",
    "current_day",
)

_BY_NAME: Dict[str, MetricDescriptor] = {metric.name: metric for metric in METRIC_CATALOG}


def base_metric_name(name: str) -> Optional[str]:
    """
    Catalog name behind an identifier, stripping a period suffix if present.

    Returns None when the identifier is not a metric.
    """
    if name in _BY_NAME:
        return name
    for suffix in PERIOD_SUFFIXES:
        tail = "_" + suffix
        if name.endswith(tail) and name[:-len(tail)] in _BY_NAME:
            return name[:-len(tail)]
    return None


def is_known_metric(name: str) -> bool:
    return base_metric_name(name) is not None


def get_metric(name: str) -> Optional[MetricDescriptor]:
    base = base_metric_name(name)
    return _BY_NAME[base] if base else None


def metric_names() -> List[str]:
    return [metric.name for metric in METRIC_CATALOG]


def metrics_by_category() -> Dict[str, List[MetricDescriptor]]:
    grouped: Dict[str, List[MetricDescriptor]] = {category.value: [] for category in MetricCategory}
    for metric in METRIC_CATALOG:
        grouped[metric.category.value].append(metric)
    return grouped
