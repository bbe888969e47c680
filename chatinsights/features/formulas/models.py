"""
Formula Evaluator - Data Models

A formula is an expression over catalog metrics plus optional conditions.
All models frozen (immutable).
"""

import math
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


ConditionOperator = Literal["gt", "lt", "gte", "lte", "eq", "between"]
ResultValue = Union[bool, int, float]


def _json_number(value):
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    return value


class Condition(BaseModel):
    """
    `field` is either the literal "result" or a catalog metric name.

    `between` takes an inclusive [low, high] pair; every other operator a single number.
    """
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1)
    operator: ConditionOperator
    value: Union[float, Tuple[float, float]]

    @model_validator(mode="after")
    def _check_value_shape(self) -> "Condition":
        if self.operator == "between":
            if not isinstance(self.value, tuple):
                raise ValueError("'between' requires a [low, high] pair")
            low, high = self.value
            if low > high:
                raise ValueError(f"'between' bounds out of order: {low} > {high}")
        elif isinstance(self.value, tuple):
            raise ValueError(f"'{self.operator}' requires a single number")
        return self


class FormulaExpression(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    expression: str
    conditions: List[Condition] = Field(default_factory=list)


class ConditionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    operator: ConditionOperator
    expected: Union[float, Tuple[float, float]]
    actual: ResultValue
    passed: bool

    @field_serializer("actual", when_used="json")
    def _serialize_actual(self, value):
        return _json_number(value)


class EvaluationResult(BaseModel):
    """
    Outcome of evaluating one formula.

    `substituted_expression` is always populated: it is what a formula author
    looks at when a result surprises them.
    """
    model_config = ConfigDict(frozen=True)

    expression: str
    substituted_expression: str
    result: Optional[ResultValue] = None
    triggered: bool = False
    condition_results: List[ConditionResult] = Field(default_factory=list)
    variables: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @field_serializer("result", when_used="json")
    def _serialize_result(self, value):
        return _json_number(value)
