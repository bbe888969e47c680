from typing import Dict, List, Union

from fastapi import APIRouter
from pydantic import BaseModel, Field

from chatinsights.core.errors import EvaluationError, ValidationError
from chatinsights.core.tracing import start_span
from chatinsights.features.formulas.models import Condition, EvaluationResult
from chatinsights.features.formulas.parser import parse
from chatinsights.features.formulas.service import FormulaEvaluator
from chatinsights.features.formulas.templates import FORMULA_TEMPLATES, FormulaTemplate

router = APIRouter(prefix="/api/formulas", tags=["formulas"])


class EvaluateRequest(BaseModel):
    expression: str
    variables: Dict[str, Union[bool, float]] = Field(default_factory=dict)
    conditions: List[Condition] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    expression: str
    conditions: List[Condition] = Field(default_factory=list)


class ValidateResponse(BaseModel):
    valid: bool
    variables: List[str]
    errors: List[str]
    identifiers: List[str]


@router.post("/evaluate", response_model=EvaluationResult)
def evaluate_formula(request: EvaluateRequest) -> EvaluationResult:
    """Evaluate an expression; unknown identifiers are rejected with 400."""
    with start_span("evaluate_formula", attributes={"length": len(request.expression)}):
        return FormulaEvaluator().evaluate(request.expression, request.variables, request.conditions)


@router.post("/validate", response_model=ValidateResponse)
def validate_formula(request: ValidateRequest) -> ValidateResponse:
    evaluator = FormulaEvaluator()
    try:
        names = evaluator.validate(request.expression, request.conditions)
    except ValidationError as exc:
        return ValidateResponse(valid=False, variables=[], errors=exc.errors, identifiers=exc.identifiers)

    try:
        parse(request.expression, evaluator.max_depth)
    except EvaluationError as exc:
        return ValidateResponse(valid=False, variables=names, errors=[exc.message], identifiers=[])

    return ValidateResponse(valid=True, variables=names, errors=[], identifiers=[])


@router.get("/templates", response_model=List[FormulaTemplate])
def list_templates() -> List[FormulaTemplate]:
    return list(FORMULA_TEMPLATES)
