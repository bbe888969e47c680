"""
Formula Evaluator - Service

Validates a formula against the metric catalog, renders the substituted
expression for display, evaluates the expression tree and applies the
formula's conditions (AND-combined).

Validation failures raise ValidationError before anything is evaluated.
Evaluation failures never escape: they come back as an EvaluationResult
with `error` set and `triggered=False`.
"""

import math
import re
from typing import Iterable, List, Mapping, Optional, Sequence, Set

from chatinsights.core.config import settings
from chatinsights.core.errors import EvaluationError, ValidationError
from chatinsights.core.logging import log_event
from chatinsights.core.metrics import formula_evaluations_total
from chatinsights.features.formulas.catalog import is_known_metric
from chatinsights.features.formulas.evaluator import Value, evaluate_node, is_truthy
from chatinsights.features.formulas.models import (
    Condition,
    ConditionResult,
    EvaluationResult,
    FormulaExpression,
)
from chatinsights.features.formulas.parser import parse
from chatinsights.features.formulas.tokenizer import TokenKind, tokenize


RESULT_FIELD = "result"

_IDENTIFIER_RE = re.compile(r"(?<![0-9A-Za-z_])[A-Za-z_][A-Za-z0-9_]*")


def render_number(value: Value) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return repr(value)
    return str(value)


class FormulaEvaluator:
    """Stateless; one instance can serve any number of formulas."""

    def __init__(self, max_length: Optional[int] = None, max_depth: Optional[int] = None):
        self.max_length = max_length if max_length is not None else settings.FORMULA_MAX_LENGTH
        self.max_depth = max_depth if max_depth is not None else settings.FORMULA_MAX_DEPTH

    def extract_variable_names(self, expression: str) -> Set[str]:
        """Every identifier in the expression, known to the catalog or not."""
        return set(_IDENTIFIER_RE.findall(expression or ""))

    def validate(self, expression: str, conditions: Sequence[Condition] = ()) -> List[str]:
        """
        Check an expression and its conditions against the catalog.

        Returns:
            Sorted variable names referenced by the expression

        Raises:
            ValidationError: empty or oversized expression, unknown identifiers,
                or a condition field that is neither "result" nor a metric
        """
        if not expression or not expression.strip():
            raise ValidationError("expression required")
        if len(expression) > self.max_length:
            raise ValidationError(
                f"expression exceeds {self.max_length} characters ({len(expression)})"
            )

        names = self.extract_variable_names(expression)
        unknown = sorted(name for name in names if not is_known_metric(name))
        errors = [f"Unknown variable '{name}'" for name in unknown]

        bad_fields = []
        for condition in conditions:
            if condition.field != RESULT_FIELD and not is_known_metric(condition.field):
                bad_fields.append(condition.field)
                errors.append(f"Unknown condition field '{condition.field}'")

        if errors:
            identifiers = unknown + [field for field in bad_fields if field not in unknown]
            raise ValidationError(
                f"Unrecognized identifiers: {', '.join(identifiers)}",
                errors=errors,
                identifiers=identifiers,
            )
        return sorted(names)

    def substitute(self, expression: str, variables: Mapping[str, Value]) -> str:
        """
        Expression text with each supplied identifier replaced by its value.

        Works on whole tokens, so `total_messages` never matches inside
        `prev_total_messages`. Spacing between tokens is kept as written.
        """
        parts = []
        cursor = 0
        for token in tokenize(expression):
            if token.kind == TokenKind.END:
                break
            parts.append(expression[cursor:token.position])
            if token.kind == TokenKind.IDENTIFIER and token.text in variables:
                parts.append(render_number(variables[token.text]))
            else:
                parts.append(token.text)
            cursor = token.position + len(token.text)
        parts.append(expression[cursor:])
        return "".join(parts)

    def match_condition(self, condition: Condition, result: Value, variables: Mapping[str, Value]) -> ConditionResult:
        if condition.field == RESULT_FIELD:
            actual = result
        elif condition.field in variables:
            actual = variables[condition.field]
        else:
            raise EvaluationError(f"no value supplied for '{condition.field}'")

        number = int(actual) if isinstance(actual, bool) else actual
        expected = condition.value
        op = condition.operator
        if op == "gt":
            passed = number > expected
        elif op == "lt":
            passed = number < expected
        elif op == "gte":
            passed = number >= expected
        elif op == "lte":
            passed = number <= expected
        elif op == "eq":
            passed = math.isclose(number, expected, rel_tol=1e-9, abs_tol=1e-9)
        else:
            low, high = expected
            passed = low <= number <= high

        return ConditionResult(
            field=condition.field,
            operator=op,
            expected=expected,
            actual=actual,
            passed=bool(passed),
        )

    def evaluate(
        self,
        expression: str,
        variables: Mapping[str, Value],
        conditions: Sequence[Condition] = (),
    ) -> EvaluationResult:
        """
        Evaluate one formula.

        With no conditions the formula triggers when the result is truthy;
        otherwise every condition must pass.
        """
        try:
            names = self.validate(expression, conditions)
        except ValidationError as exc:
            formula_evaluations_total.inc(labels={"outcome": "invalid"})
            log_event(
                "info",
                "formula.invalid",
                event_type="formula.invalid",
                error_code=exc.code,
                extra={"identifiers": exc.identifiers, "errors": exc.errors},
            )
            raise

        substituted = expression
        try:
            substituted = self.substitute(expression, variables)
            tree = parse(expression, self.max_depth)
            result = evaluate_node(tree, variables)
            condition_results = [self.match_condition(c, result, variables) for c in conditions]
        except EvaluationError as exc:
            formula_evaluations_total.inc(labels={"outcome": "error"})
            log_event(
                "warning",
                "formula.evaluation_failed",
                event_type="formula.evaluation_failed",
                error_code=exc.code,
                extra={"expression": expression, "substituted": substituted, "error": exc.message},
            )
            return EvaluationResult(
                expression=expression,
                substituted_expression=substituted,
                variables=names,
                error=exc.message,
                error_code=exc.code,
            )

        if conditions:
            triggered = all(cr.passed for cr in condition_results)
        else:
            triggered = is_truthy(result)

        formula_evaluations_total.inc(labels={"outcome": "triggered" if triggered else "not_triggered"})
        return EvaluationResult(
            expression=expression,
            substituted_expression=substituted,
            result=result,
            triggered=triggered,
            condition_results=condition_results,
            variables=names,
        )

    def evaluate_formula(self, formula: FormulaExpression, variables: Mapping[str, Value]) -> EvaluationResult:
        return self.evaluate(formula.expression, variables, formula.conditions)

    def evaluate_many(
        self,
        formulas: Iterable[FormulaExpression],
        variables: Mapping[str, Value],
    ) -> List[EvaluationResult]:
        """Batch evaluation; a formula that fails validation yields an error result."""
        results = []
        for formula in formulas:
            try:
                results.append(self.evaluate_formula(formula, variables))
            except ValidationError as exc:
                results.append(EvaluationResult(
                    expression=formula.expression,
                    substituted_expression=formula.expression,
                    variables=sorted(exc.identifiers),
                    error=exc.message,
                    error_code=exc.code,
                ))
        return results


_default_evaluator = FormulaEvaluator()


def evaluate(
    expression: str,
    variables: Mapping[str, Value],
    conditions: Sequence[Condition] = (),
) -> EvaluationResult:
    return _default_evaluator.evaluate(expression, variables, conditions)


def extract_variable_names(expression: str) -> Set[str]:
    return _default_evaluator.extract_variable_names(expression)
