"""
Insights API

Headline and full insight lists, either from aggregates posted in the body
or from groups served by the aggregate provider.
"""

import datetime as dt
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from chatinsights.core.tracing import start_span
from chatinsights.features.aggregates.provider import AggregateProvider, get_default_provider
from chatinsights.features.insights.models import InsightsResponse
from chatinsights.features.insights.service import InsightEngine, fetch_groups, top_insights
from chatinsights.core.config import settings
from chatinsights.models.stats import GroupAnalysisInput

router = APIRouter(prefix="/api/insights", tags=["insights"])


def get_insight_engine() -> InsightEngine:
    return InsightEngine()


def get_aggregate_provider() -> AggregateProvider:
    return get_default_provider()


class GenerateInsightsRequest(BaseModel):
    groups: List[GroupAnalysisInput]
    limit: Optional[int] = Field(None, ge=0)
    full: bool = False


def _respond(engine: InsightEngine, groups: List[GroupAnalysisInput], limit: Optional[int], full: bool, now: Optional[str]) -> InsightsResponse:
    ranked = engine.rank(groups)
    insights = ranked if full else top_insights(ranked, settings.TOP_INSIGHTS_LIMIT if limit is None else limit)
    return InsightsResponse(
        insights=insights,
        total_ranked=len(ranked),
        computed_at=now or datetime.now(timezone.utc).isoformat(),
    )


@router.post("/generate", response_model=InsightsResponse)
def generate_insights(
    request: GenerateInsightsRequest,
    engine: Annotated[InsightEngine, Depends(get_insight_engine)],
    now: Optional[str] = Query(None, description="Optional ISO timestamp for deterministic testing"),
) -> InsightsResponse:
    """
    Rank insights across the posted groups.

    **Body:**
    - groups: aggregates per group
    - limit (optional): headline size, defaults to TOP_INSIGHTS_LIMIT
    - full (optional): return the whole ranked list
    """
    with start_span("generate_insights", attributes={"groups": len(request.groups), "full": request.full}):
        return _respond(engine, request.groups, request.limit, request.full, now)


@router.get("/groups", response_model=InsightsResponse)
def get_group_insights(
    engine: Annotated[InsightEngine, Depends(get_insight_engine)],
    provider: Annotated[AggregateProvider, Depends(get_aggregate_provider)],
    group_id: List[str] = Query(..., description="Repeat for several groups"),
    start: dt.date = Query(...),
    end: dt.date = Query(...),
    limit: Optional[int] = Query(None, ge=0),
    full: bool = Query(False),
    now: Optional[str] = Query(None),
) -> InsightsResponse:
    """Insights for provider-backed groups. Groups the provider cannot supply are skipped."""
    if start > end:
        raise HTTPException(status_code=400, detail="'start' must not be after 'end'")
    with start_span("get_group_insights", attributes={"groups": len(group_id)}):
        groups = fetch_groups(provider, group_id, start, end)
        return _respond(engine, groups, limit, full, now)
