"""
Insight Engine - Data Models

Pydantic models for smart insights emitted by the analyzers.
All models frozen (immutable).
"""

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class InsightType(str, Enum):
    """Closed set of insight categories."""
    PARTICIPATION_DECLINE = "participation_decline"
    ACTIVITY_PEAK = "activity_peak"
    GROWTH_TREND = "growth_trend"
    ENGAGEMENT_PATTERN = "engagement_pattern"
    MEMBER_CONCENTRATION = "member_concentration"
    TIME_PATTERN = "time_pattern"
    CONTENT_QUALITY = "content_quality"
    GROUP_HEALTH = "group_health"
    ANOMALY_DETECTION = "anomaly_detection"
    LEADERSHIP_EMERGENCE = "leadership_emergence"
    CUSTOM = "custom"


class InsightPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InsightTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
    WARNING = "warning"
    CRITICAL = "critical"


class InsightMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: str = Field(..., description="Human-readable analysis window")
    data_points: int = Field(..., ge=0)
    confidence: int = Field(..., ge=0, le=100)
    category: str


class SmartInsight(BaseModel):
    """
    One observation about a group's activity.

    `description` always embeds the computed values behind the verdict.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Deterministic per (analyzer, group)")
    type: InsightType
    priority: InsightPriority
    weight: int = Field(..., ge=0, le=100, description="Ranking score; not a probability")
    group_id: str
    group_name: str
    title: str
    description: str
    recommendation: Optional[str] = None
    value: Union[int, float, str]
    change: Optional[Union[int, float]] = None
    trend: InsightTrend
    actionable: bool
    metadata: InsightMetadata


class InsightsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    insights: list[SmartInsight]
    total_ranked: int
    computed_at: str
