"""
Formula Evaluator Tests

Verify:
1. Validation happens before evaluation and names the offending identifiers
2. Substitution is whole-token and keeps the author's spacing
3. Conditions are AND-combined; no conditions means "result is truthy"
4. Evaluation failures come back as results, never as exceptions
"""

import math

import pytest
from pydantic import ValidationError as PydanticValidationError

from chatinsights.core.errors import ValidationError
from chatinsights.core.metrics import formula_evaluations_total
from chatinsights.features.formulas.models import Condition, FormulaExpression
from chatinsights.features.formulas.service import (
    FormulaEvaluator,
    evaluate,
    extract_variable_names,
    render_number,
)
from chatinsights.features.formulas.templates import FORMULA_TEMPLATES, get_template


class TestValidation:
    def test_unknown_identifier_rejected_before_evaluation(self):
        before = formula_evaluations_total.value({"outcome": "invalid"})
        with pytest.raises(ValidationError) as excinfo:
            evaluate("foo_bar > 10", {"foo_bar": 20})

        assert excinfo.value.identifiers == ["foo_bar"]
        assert "foo_bar" in str(excinfo.value)
        assert formula_evaluations_total.value({"outcome": "invalid"}) == before + 1

    @pytest.mark.parametrize("expression", ["", "   "])
    def test_empty_expression(self, expression):
        with pytest.raises(ValidationError) as excinfo:
            evaluate(expression, {})
        assert excinfo.value.message == "expression required"

    def test_oversized_expression(self):
        with pytest.raises(ValidationError):
            FormulaEvaluator(max_length=10).validate("total_messages > 1")

    def test_unknown_condition_field(self):
        conditions = [Condition(field="mood", operator="gt", value=1)]
        with pytest.raises(ValidationError) as excinfo:
            evaluate("total_messages", {"total_messages": 5}, conditions)
        assert excinfo.value.identifiers == ["mood"]

    def test_all_unknown_names_reported(self):
        with pytest.raises(ValidationError) as excinfo:
            FormulaEvaluator().validate("zeta + total_messages + alpha")
        assert excinfo.value.identifiers == ["alpha", "zeta"]
        assert len(excinfo.value.errors) == 2

    def test_period_suffixed_metrics_are_known(self):
        evaluator = FormulaEvaluator()
        assert evaluator.validate("total_messages_last_7_days > total_messages") == [
            "total_messages",
            "total_messages_last_7_days",
        ]
        with pytest.raises(ValidationError):
            evaluator.validate("total_messages_last_8_days > 1")

    def test_extract_variable_names(self):
        names = extract_variable_names("(top3_members_messages / total_messages) * 100")
        assert names == {"top3_members_messages", "total_messages"}

    def test_templates_validate(self):
        evaluator = FormulaEvaluator()
        assert len(FORMULA_TEMPLATES) == 5
        for template in FORMULA_TEMPLATES:
            assert evaluator.validate(template.expression, template.conditions)

    def test_get_template(self):
        assert get_template("low_quality").expression == "avg_message_length < 10 && media_ratio < 10"
        assert get_template("nope") is None


class TestSubstitution:
    def test_worked_example(self):
        result = evaluate(
            "total_messages > 100 && participation_rate > 50",
            {"total_messages": 150, "participation_rate": 62},
        )
        assert result.substituted_expression == "150 > 100 && 62 > 50"
        assert result.result is True
        assert result.triggered is True
        assert result.error is None

    def test_no_partial_name_collisions(self):
        result = evaluate(
            "prev_total_messages + total_messages",
            {"prev_total_messages": 10, "total_messages": 5},
        )
        assert result.substituted_expression == "10 + 5"
        assert result.result == 15

    def test_spacing_preserved(self):
        result = evaluate("(total_messages*2)  >  active_members", {"total_messages": 3, "active_members": 1})
        assert result.substituted_expression == "(3*2)  >  1"

    def test_rendering(self):
        assert render_number(3.0) == "3"
        assert render_number(2.5) == "2.5"
        assert render_number(True) == "1"
        assert render_number(False) == "0"
        assert render_number(7) == "7"


class TestConditions:
    def _conditions(self):
        return [
            Condition(field="result", operator="gt", value=100),
            Condition(field="active_members", operator="lt", value=5),
        ]

    def test_all_conditions_hold(self):
        result = evaluate("total_messages * 2", {"total_messages": 60, "active_members": 3}, self._conditions())
        assert result.triggered is True
        assert [c.passed for c in result.condition_results] == [True, True]
        assert result.condition_results[0].actual == 120

    def test_first_condition_fails(self):
        result = evaluate("total_messages * 2", {"total_messages": 40, "active_members": 3}, self._conditions())
        assert result.triggered is False
        assert [c.passed for c in result.condition_results] == [False, True]

    def test_second_condition_fails(self):
        result = evaluate("total_messages * 2", {"total_messages": 60, "active_members": 6}, self._conditions())
        assert result.triggered is False

    def test_no_conditions_uses_truthiness(self):
        assert evaluate("total_messages - 100", {"total_messages": 100}).triggered is False
        assert evaluate("total_messages - 100", {"total_messages": 101}).triggered is True

    def test_eq_tolerates_float_noise(self):
        conditions = [Condition(field="result", operator="eq", value=0.3)]
        result = evaluate("media_ratio + 0.2", {"media_ratio": 0.1}, conditions)
        assert result.triggered is True

    def test_between_is_inclusive(self):
        conditions = [Condition(field="result", operator="between", value=(100, 120))]
        assert evaluate("total_messages", {"total_messages": 120}, conditions).triggered is True
        assert evaluate("total_messages", {"total_messages": 100}, conditions).triggered is True
        assert evaluate("total_messages", {"total_messages": 121}, conditions).triggered is False

    def test_condition_on_missing_variable_is_an_evaluation_error(self):
        conditions = [Condition(field="active_members", operator="gt", value=1)]
        result = evaluate("total_messages", {"total_messages": 5}, conditions)
        assert result.triggered is False
        assert "active_members" in result.error

    def test_condition_shapes(self):
        with pytest.raises(PydanticValidationError):
            Condition(field="result", operator="between", value=5)
        with pytest.raises(PydanticValidationError):
            Condition(field="result", operator="gt", value=(1, 2))
        with pytest.raises(PydanticValidationError):
            Condition(field="result", operator="between", value=(5, 1))


class TestEvaluationFailures:
    def test_division_by_zero_returns_infinity(self):
        result = evaluate("total_messages / active_members", {"total_messages": 10, "active_members": 0})
        assert result.error is None
        assert result.result == math.inf
        assert result.substituted_expression == "10 / 0"

    def test_zero_over_zero_reported(self):
        before = formula_evaluations_total.value({"outcome": "error"})
        result = evaluate("total_messages / active_members", {"total_messages": 0, "active_members": 0})

        assert result.triggered is False
        assert result.result is None
        assert result.error == "division of zero by zero"
        assert result.error_code == "evaluation_error"
        assert result.substituted_expression == "0 / 0"
        assert formula_evaluations_total.value({"outcome": "error"}) == before + 1

    def test_malformed_expression_reported(self):
        result = evaluate("total_messages >", {"total_messages": 150})
        assert result.triggered is False
        assert result.error
        assert result.substituted_expression == "150 >"

    def test_bad_character_reported(self):
        result = evaluate("total_messages $ 3", {"total_messages": 150})
        assert result.triggered is False
        assert result.substituted_expression == "total_messages $ 3"

    def test_missing_value_reported(self):
        result = evaluate("total_messages > 1", {})
        assert result.error == "no value supplied for 'total_messages'"
        assert result.variables == ["total_messages"]


class TestBatch:
    def test_validation_failure_becomes_a_result(self):
        formulas = [
            FormulaExpression(expression="total_messages > 1"),
            FormulaExpression(expression="mystery > 1"),
            FormulaExpression(expression="0 / 0"),
        ]
        results = FormulaEvaluator().evaluate_many(formulas, {"total_messages": 5})

        assert [r.triggered for r in results] == [True, False, False]
        assert results[1].error_code == "validation_error"
        assert results[1].variables == ["mystery"]
        assert results[2].error_code == "evaluation_error"


class TestArithmeticSemantics:
    def test_remainder_keeps_sign_of_dividend(self):
        result = evaluate("message_growth_rate % 10", {"message_growth_rate": -7})
        assert result.substituted_expression == "-7 % 10"
        assert result.result == -7

    def test_float_remainder_keeps_sign_of_dividend(self):
        assert evaluate("message_growth_rate % 10", {"message_growth_rate": -7.5}).result == -7.5
        assert evaluate("total_messages % -3", {"total_messages": 7}).result == 1

    def test_modulo_by_zero_reported(self):
        result = evaluate("total_messages % active_members", {"total_messages": 7, "active_members": 0})
        assert result.error == "modulo by zero"
        assert result.triggered is False

    @pytest.mark.parametrize("expression", [
        "(total_messages / active_members - total_messages / active_members) > -1",
        "total_messages / active_members * 0 < 1",
        "(total_messages / active_members) / (total_messages / active_members)",
        "total_messages / active_members % 3 == 0",
    ])
    def test_nan_inside_expression_is_an_evaluation_error(self, expression):
        result = evaluate(expression, {"total_messages": 5, "active_members": 0})
        assert result.triggered is False
        assert result.result is None
        assert result.error == "expression evaluated to NaN"
        assert result.error_code == "evaluation_error"

    def test_nan_variable_is_an_evaluation_error(self):
        result = evaluate("total_messages > 1", {"total_messages": math.nan})
        assert result.triggered is False
        assert "NaN" in result.error
