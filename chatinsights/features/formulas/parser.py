"""
Recursive-descent parser for the formula language.

Precedence, lowest first:
    ||
    &&
    == !=
    > < >= <=
    + -
    * / %
    unary -
    number, identifier, ( expr )

All binary operators are left-associative.
"""

from typing import List, Optional

from chatinsights.core.config import settings
from chatinsights.core.errors import EvaluationError
from chatinsights.features.formulas.nodes import BinaryOp, Identifier, Literal, Node, UnaryOp
from chatinsights.features.formulas.tokenizer import Token, TokenKind, tokenize


_LEVELS = (
    ("||",),
    ("&&",),
    ("==", "!="),
    (">", "<", ">=", "<="),
    ("+", "-"),
    ("*", "/", "%"),
)


class Parser:
    def __init__(self, tokens: List[Token], expression: str = "", max_depth: Optional[int] = None):
        self.tokens = tokens
        self.expression = expression
        self.max_depth = max_depth if max_depth is not None else settings.FORMULA_MAX_DEPTH
        self.index = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != TokenKind.END:
            self.index += 1
        return token

    def _error(self, message: str, token: Token) -> EvaluationError:
        return EvaluationError(message, expression=self.expression, position=token.position)

    def _describe(self, token: Token) -> str:
        return "end of expression" if token.kind == TokenKind.END else f"'{token.text}'"

    def parse(self) -> Node:
        if self.current.kind == TokenKind.END:
            raise self._error("Empty expression", self.current)
        node = self._binary(0)
        if self.current.kind != TokenKind.END:
            raise self._error(
                f"Unexpected {self._describe(self.current)} at position {self.current.position}",
                self.current,
            )
        return node

    def _binary(self, level: int) -> Node:
        if level == len(_LEVELS):
            return self._unary()
        operators = _LEVELS[level]
        left = self._binary(level + 1)
        while self.current.kind == TokenKind.OPERATOR and self.current.text in operators:
            op_token = self._advance()
            right = self._binary(level + 1)
            left = BinaryOp(left, op_token.text, right, op_token.position)
        return left

    def _enter(self, token: Token) -> None:
        self.depth += 1
        if self.depth > self.max_depth:
            raise self._error(f"Expression nested deeper than {self.max_depth} levels", token)

    def _unary(self) -> Node:
        token = self.current
        if token.kind == TokenKind.OPERATOR and token.text == "-":
            self._advance()
            self._enter(token)
            operand = self._unary()
            self.depth -= 1
            return UnaryOp("-", operand, token.position)
        return self._primary()

    def _primary(self) -> Node:
        token = self.current
        if token.kind == TokenKind.NUMBER:
            self._advance()
            return Literal(token.number, token.position)
        if token.kind == TokenKind.IDENTIFIER:
            self._advance()
            return Identifier(token.text, token.position)
        if token.kind == TokenKind.LPAREN:
            self._advance()
            self._enter(token)
            node = self._binary(0)
            if self.current.kind != TokenKind.RPAREN:
                raise self._error(
                    f"Unbalanced parentheses: expected ')' but found {self._describe(self.current)}",
                    self.current,
                )
            self._advance()
            self.depth -= 1
            return node
        if token.kind == TokenKind.RPAREN:
            raise self._error(f"Unbalanced parentheses: unexpected ')' at position {token.position}", token)
        raise self._error(
            f"Expected a number, variable or '(' but found {self._describe(token)}",
            token,
        )


def parse(expression: str, max_depth: Optional[int] = None) -> Node:
    return Parser(tokenize(expression), expression, max_depth).parse()
