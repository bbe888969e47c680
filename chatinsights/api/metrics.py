from typing import Dict, List, Optional, Union

from fastapi import APIRouter
from pydantic import BaseModel

from chatinsights.features.formulas.catalog import (
    CATALOG_VERSION,
    METRIC_CATALOG,
    PERIOD_SUFFIXES,
    MetricDescriptor,
    metrics_by_category,
)
from chatinsights.features.metrics.calculator import compute_metric_variables
from chatinsights.models.stats import GroupAnalysisInput

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


class CatalogResponse(BaseModel):
    version: str
    metrics: List[MetricDescriptor]
    categories: Dict[str, List[str]]
    period_suffixes: List[str]


class VariablesRequest(BaseModel):
    group: GroupAnalysisInput
    previous: Optional[GroupAnalysisInput] = None
    extra: Optional[Dict[str, float]] = None
    period_suffix: bool = False


class VariablesResponse(BaseModel):
    group_id: str
    variables: Dict[str, Union[int, float]]


@router.get("/catalog", response_model=CatalogResponse)
def get_catalog() -> CatalogResponse:
    return CatalogResponse(
        version=CATALOG_VERSION,
        metrics=list(METRIC_CATALOG),
        categories={
            category: [metric.name for metric in metrics]
            for category, metrics in metrics_by_category().items()
        },
        period_suffixes=list(PERIOD_SUFFIXES),
    )


@router.post("/variables", response_model=VariablesResponse)
def compute_variables(request: VariablesRequest) -> VariablesResponse:
    """Catalog variables computed from posted aggregates."""
    variables = compute_metric_variables(
        request.group,
        previous=request.previous,
        extra=request.extra,
        period_suffix=request.period_suffix,
    )
    return VariablesResponse(group_id=request.group.group_id, variables=variables)
