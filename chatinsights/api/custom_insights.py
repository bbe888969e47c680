from typing import Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from chatinsights.core.tracing import start_span
from chatinsights.features.custom_insights.models import CustomInsightDefinition, DefinitionsSummary
from chatinsights.features.custom_insights.service import CustomInsightRunner, summarize_definitions
from chatinsights.features.insights.models import SmartInsight
from chatinsights.models.stats import GroupAnalysisInput

router = APIRouter(prefix="/api/custom-insights", tags=["custom-insights"])


class RunRequest(BaseModel):
    definitions: List[CustomInsightDefinition]
    groups: List[GroupAnalysisInput]
    previous: Dict[str, GroupAnalysisInput] = Field(default_factory=dict)


class RunResponse(BaseModel):
    insights: List[SmartInsight]


class SummaryRequest(BaseModel):
    definitions: List[CustomInsightDefinition]


@router.post("/run", response_model=RunResponse)
def run_custom_insights(request: RunRequest) -> RunResponse:
    """Evaluate definitions per group; only triggered definitions produce insights."""
    with start_span("run_custom_insights", attributes={"definitions": len(request.definitions), "groups": len(request.groups)}):
        insights = CustomInsightRunner().run(request.definitions, request.groups, previous=request.previous)
        return RunResponse(insights=insights)


@router.post("/summary", response_model=DefinitionsSummary)
def summarize(request: SummaryRequest) -> DefinitionsSummary:
    return summarize_definitions(request.definitions)
