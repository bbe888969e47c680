"""Tree-walking evaluator. Identifiers resolve against the variable map."""

import math
from typing import Mapping, Union

from chatinsights.core.errors import EvaluationError
from chatinsights.features.formulas.nodes import BinaryOp, Identifier, Literal, Node, UnaryOp

Number = Union[int, float]
Value = Union[int, float, bool]


def is_truthy(value: Value) -> bool:
    if isinstance(value, bool):
        return value
    return value != 0 and not math.isnan(value)


def _as_number(value: Value) -> Number:
    # bool is an int subclass; make 1/0 explicit
    return int(value) if isinstance(value, bool) else value


def _divide(left: Number, right: Number) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            raise EvaluationError("division of zero by zero")
        return math.inf if left > 0 else -math.inf
    return left / right


def _modulo(left: Number, right: Number) -> Number:
    # Remainder takes the sign of the dividend: -7 % 10 is -7.
    if right == 0:
        raise EvaluationError("modulo by zero")
    if isinstance(left, int) and isinstance(right, int):
        remainder = abs(left) % abs(right)
        return -remainder if left < 0 else remainder
    if math.isinf(left):
        raise EvaluationError("expression evaluated to NaN")
    return math.fmod(left, right)


_ARITHMETIC = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _modulo,
}

_COMPARISON = {
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def evaluate_node(node: Node, variables: Mapping[str, Value]) -> Value:
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Identifier):
        if node.name not in variables:
            raise EvaluationError(f"no value supplied for '{node.name}'", position=node.position)
        value = variables[node.name]
        if isinstance(value, float) and math.isnan(value):
            raise EvaluationError(f"value supplied for '{node.name}' is NaN", position=node.position)
        return value

    if isinstance(node, UnaryOp):
        return -_as_number(evaluate_node(node.operand, variables))

    if isinstance(node, BinaryOp):
        if node.op == "&&":
            return is_truthy(evaluate_node(node.left, variables)) and is_truthy(evaluate_node(node.right, variables))
        if node.op == "||":
            return is_truthy(evaluate_node(node.left, variables)) or is_truthy(evaluate_node(node.right, variables))

        left = _as_number(evaluate_node(node.left, variables))
        right = _as_number(evaluate_node(node.right, variables))
        if node.op in _COMPARISON:
            return _COMPARISON[node.op](left, right)
        if node.op in _ARITHMETIC:
            try:
                result = _ARITHMETIC[node.op](left, right)
            except EvaluationError as exc:
                exc.position = node.position
                raise
            except OverflowError as exc:
                raise EvaluationError(f"numeric overflow: {exc}", position=node.position) from exc
            if isinstance(result, float) and math.isnan(result):
                raise EvaluationError("expression evaluated to NaN", position=node.position)
            return result

    raise EvaluationError(f"Unsupported expression node {type(node).__name__}")
