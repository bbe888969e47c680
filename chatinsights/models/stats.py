"""
Aggregate statistics consumed by the insight engine and the formula evaluator.

Produced by an aggregate provider (see features/aggregates). All models are
frozen: once a group's aggregates are handed to the core they never change.
"""

import datetime as dt
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DailyStat(BaseModel):
    """One calendar day of aggregate activity for a group."""
    model_config = ConfigDict(frozen=True)

    date: dt.date
    total_messages: int = Field(0, ge=0)
    active_members: int = Field(0, ge=0)
    hourly_activity: Dict[int, int] = Field(
        default_factory=dict,
        description="Hour of day (0-23) -> message count; only hours with activity",
    )

    @field_validator("hourly_activity")
    @classmethod
    def _check_hours(cls, value: Dict[int, int]) -> Dict[int, int]:
        for hour, count in value.items():
            if not 0 <= hour <= 23:
                raise ValueError(f"hour must be within 0-23, got {hour}")
            if count < 0:
                raise ValueError(f"hourly count must be non-negative, got {count} at {hour}h")
        return value


class MemberDailyCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    message_count: int = Field(0, ge=0)


class MemberStat(BaseModel):
    """One member's aggregate activity over the analysis window."""
    model_config = ConfigDict(frozen=True)

    name: str
    message_count: int = Field(0, ge=0)
    word_count: int = Field(0, ge=0)
    media_count: int = Field(0, ge=0)
    daily_stats: List[MemberDailyCount] = Field(default_factory=list)

    @model_validator(mode="after")
    def _media_within_messages(self) -> "MemberStat":
        if self.media_count > self.message_count:
            raise ValueError(
                f"media_count ({self.media_count}) cannot exceed message_count ({self.message_count})"
            )
        return self

    @property
    def text_message_count(self) -> int:
        return self.message_count - self.media_count

    @property
    def avg_words_per_message(self) -> float:
        text_messages = self.text_message_count
        if text_messages <= 0:
            return 0.0
        return self.word_count / text_messages


class AnalysisPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: dt.date
    end: dt.date
    days: int = Field(..., ge=0)

    @classmethod
    def spanning(cls, start: dt.date, end: dt.date) -> "AnalysisPeriod":
        return cls(start=start, end=end, days=(end - start).days + 1)


class GroupAnalysisInput(BaseModel):
    """The unit of work handed to the insight engine."""
    model_config = ConfigDict(frozen=True)

    group_id: str
    group_name: str
    daily_stats: List[DailyStat] = Field(default_factory=list)
    member_stats: List[MemberStat] = Field(default_factory=list)
    period: AnalysisPeriod

    @property
    def total_days(self) -> int:
        return len(self.daily_stats)

    def daily_messages(self) -> List[int]:
        return [day.total_messages for day in self.daily_stats]
