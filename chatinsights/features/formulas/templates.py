"""Ready-made formulas offered to authors as starting points."""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from chatinsights.features.formulas.models import Condition


class FormulaTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str
    expression: str
    category: str
    difficulty: str
    conditions: List[Condition] = Field(default_factory=list)


FORMULA_TEMPLATES: Tuple[FormulaTemplate, ...] = (
    FormulaTemplate(
        key="growth_percentage",
        name="Percentage growth",
        description="Message growth between the current and the previous period",
        expression="((total_messages - prev_total_messages) / prev_total_messages) * 100",
        category="Growth",
        difficulty="basic",
        conditions=[Condition(field="result", operator="gt", value=20)],
    ),
    FormulaTemplate(
        key="activity_concentration",
        name="Activity concentration",
        description="Whether a few members dominate the conversation",
        expression="(top3_members_messages / total_messages) * 100",
        category="Distribution",
        difficulty="intermediate",
        conditions=[Condition(field="result", operator="gt", value=70)],
    ),
    FormulaTemplate(
        key="low_quality",
        name="Low quality",
        description="Messages are very short and carry almost no media",
        expression="avg_message_length < 10 && media_ratio < 10",
        category="Quality",
        difficulty="intermediate",
    ),
    FormulaTemplate(
        key="anomalous_peak",
        name="Anomalous peak",
        description="Suspicious short bursts of activity",
        expression="peak_activity_ratio > 5 && peak_duration_hours < 2",
        category="Anomalies",
        difficulty="advanced",
    ),
    FormulaTemplate(
        key="balanced_engagement",
        name="Balanced engagement",
        description="Participation is spread well across members",
        expression="participation_diversity_index > 0.7 && participation_rate > 20",
        category="Engagement",
        difficulty="advanced",
    ),
)


def get_template(key: str) -> Optional[FormulaTemplate]:
    for template in FORMULA_TEMPLATES:
        if template.key == key:
            return template
    return None
