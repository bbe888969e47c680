"""
Formula Parser Tests

Verify:
1. Tokens: identifiers, numbers and operators with their positions
2. Grammar: precedence and left-associativity
3. Rejections: stray characters, unbalanced parentheses, excessive nesting
4. Evaluation: division/modulo by zero, logical operators, missing values
"""

import math

import pytest

from chatinsights.core.errors import EvaluationError
from chatinsights.features.formulas.evaluator import evaluate_node
from chatinsights.features.formulas.nodes import BinaryOp, Identifier, Literal, UnaryOp
from chatinsights.features.formulas.parser import parse
from chatinsights.features.formulas.tokenizer import TokenKind, tokenize


def _eval(expression, **variables):
    return evaluate_node(parse(expression), variables)


class TestTokenizer:
    def test_kinds_and_positions(self):
        tokens = tokenize("active_members >= 10 && (x)")
        assert [t.kind for t in tokens] == [
            TokenKind.IDENTIFIER,
            TokenKind.OPERATOR,
            TokenKind.NUMBER,
            TokenKind.OPERATOR,
            TokenKind.LPAREN,
            TokenKind.IDENTIFIER,
            TokenKind.RPAREN,
            TokenKind.END,
        ]
        assert [t.text for t in tokens[:4]] == ["active_members", ">=", "10", "&&"]
        assert tokens[2].position == 18

    def test_decimals(self):
        tokens = tokenize("0.25 + .5")
        assert tokens[0].number == 0.25
        assert tokens[2].number == 0.5
        assert tokenize("42")[0].number == 42

    @pytest.mark.parametrize("expression, char", [("a & b", "&"), ("a | b", "|"), ("a = 1", "="), ("!a", "!")])
    def test_lone_halves_of_operators_rejected(self, expression, char):
        with pytest.raises(EvaluationError) as excinfo:
            tokenize(expression)
        assert f"'{char}'" in excinfo.value.message
        assert excinfo.value.position == expression.index(char)

    def test_unknown_character_rejected(self):
        with pytest.raises(EvaluationError) as excinfo:
            tokenize("total_messages $ 3")
        assert excinfo.value.position == 15

    def test_number_glued_to_identifier_rejected(self):
        with pytest.raises(EvaluationError):
            tokenize("2x")


class TestParser:
    def test_multiplication_binds_tighter(self):
        tree = parse("1 + 2 * 3")
        assert isinstance(tree, BinaryOp)
        assert tree.op == "+"
        assert isinstance(tree.left, Literal)
        assert isinstance(tree.right, BinaryOp) and tree.right.op == "*"

    def test_logical_precedence(self):
        tree = parse("a > 1 || b > 2 && c > 3")
        assert tree.op == "||"
        assert tree.right.op == "&&"

    def test_unary_minus(self):
        tree = parse("-a")
        assert isinstance(tree, UnaryOp)
        assert tree.operand == Identifier("a", 1)

    @pytest.mark.parametrize("expression", ["(1 + 2", "1 + 2)", ")", "1 +", "", "   ", "1 2", "* 3"])
    def test_malformed(self, expression):
        with pytest.raises(EvaluationError):
            parse(expression)

    def test_unbalanced_message(self):
        with pytest.raises(EvaluationError) as excinfo:
            parse("((total_messages + 1)")
        assert "Unbalanced" in excinfo.value.message

    def test_nesting_limit(self):
        nested = "(" * 5 + "1" + ")" * 5
        assert isinstance(parse(nested, max_depth=5), Literal)
        with pytest.raises(EvaluationError):
            parse(nested, max_depth=3)


class TestEvaluation:
    def test_arithmetic(self):
        assert _eval("1 + 2 * 3") == 7
        assert _eval("(1 + 2) * 3") == 9
        assert _eval("10 - 4 - 3") == 3
        assert _eval("7 % 3") == 1
        assert _eval("-3 + 5") == 2
        assert _eval("--3") == 3
        assert _eval("2.5 * 2") == 5.0

    def test_division_by_zero_is_signed_infinity(self):
        assert _eval("5 / 0") == math.inf
        assert _eval("-5 / 0") == -math.inf
        assert _eval("a / b", a=5, b=0) == math.inf

    def test_zero_over_zero_is_an_error(self):
        with pytest.raises(EvaluationError) as excinfo:
            _eval("0 / 0")
        assert excinfo.value.message == "division of zero by zero"

    def test_modulo_by_zero_is_an_error(self):
        with pytest.raises(EvaluationError) as excinfo:
            _eval("5 % 0")
        assert excinfo.value.message == "modulo by zero"

    def test_comparisons_and_logic_return_bool(self):
        assert _eval("1 < 2 && 3 > 4") is False
        assert _eval("0 || 2") is True
        assert _eval("2 == 2") is True
        assert _eval("2 != 2") is False
        assert _eval("3 >= 3 && 3 <= 3") is True

    def test_booleans_count_as_one_and_zero(self):
        assert _eval("(1 < 2) + 1") == 2
        assert _eval("flag * 10", flag=True) == 10

    def test_short_circuit_skips_missing_values(self):
        assert _eval("0 && missing") is False
        assert _eval("1 || missing") is True

    def test_missing_value(self):
        with pytest.raises(EvaluationError) as excinfo:
            _eval("total_messages + 1")
        assert "no value supplied for 'total_messages'" in excinfo.value.message

    def test_similar_names_resolve_independently(self):
        assert _eval("prev_total_messages + total_messages", prev_total_messages=10, total_messages=5) == 15
