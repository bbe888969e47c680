"""Custom insight definitions authored as formulas."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chatinsights.features.formulas.models import Condition
from chatinsights.features.insights.models import InsightPriority


class CustomInsightDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    expression: str
    conditions: List[Condition] = Field(default_factory=list)
    priority: InsightPriority = InsightPriority.MEDIUM
    category: str = "custom"
    enabled: bool = True


class DefinitionsSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    enabled: int
    by_category: Dict[str, int]
    by_priority: Dict[str, int]
