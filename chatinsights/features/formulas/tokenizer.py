"""Lexer for the formula language."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Union

from chatinsights.core.errors import EvaluationError


class TokenKind(str, Enum):
    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: int

    @property
    def number(self) -> Union[int, float]:
        return float(self.text) if "." in self.text else int(self.text)


TWO_CHAR_OPERATORS = ("&&", "||", "==", "!=", ">=", "<=")
ONE_CHAR_OPERATORS = "+-*/%<>"

# Characters that only exist as half of a two-character operator.
_PAIRED_ONLY = {"&": "&&", "|": "||", "=": "==", "!": "!="}


def _is_identifier_start(char: str) -> bool:
    return char.isascii() and (char.isalpha() or char == "_")


def _is_identifier_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


def tokenize(expression: str) -> List[Token]:
    """
    Split an expression into tokens, ending with an END token.

    Raises:
        EvaluationError: on any character outside the grammar
    """
    tokens: List[Token] = []
    i = 0
    length = len(expression)

    while i < length:
        char = expression[i]

        if char.isspace():
            i += 1
            continue

        if char.isdigit() or (char == "." and i + 1 < length and expression[i + 1].isdigit()):
            start = i
            while i < length and expression[i].isdigit():
                i += 1
            if i < length and expression[i] == ".":
                i += 1
                if i >= length or not expression[i].isdigit():
                    raise EvaluationError(
                        f"Malformed number at position {start}",
                        expression=expression,
                        position=start,
                    )
                while i < length and expression[i].isdigit():
                    i += 1
            if i < length and _is_identifier_char(expression[i]):
                raise EvaluationError(
                    f"Unexpected character '{expression[i]}' after number at position {i}",
                    expression=expression,
                    position=i,
                )
            tokens.append(Token(TokenKind.NUMBER, expression[start:i], start))
            continue

        if _is_identifier_start(char):
            start = i
            while i < length and _is_identifier_char(expression[i]):
                i += 1
            tokens.append(Token(TokenKind.IDENTIFIER, expression[start:i], start))
            continue

        pair = expression[i:i + 2]
        if pair in TWO_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, pair, i))
            i += 2
            continue

        if char in ONE_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, char, i))
            i += 1
            continue

        if char == "(":
            tokens.append(Token(TokenKind.LPAREN, char, i))
            i += 1
            continue

        if char == ")":
            tokens.append(Token(TokenKind.RPAREN, char, i))
            i += 1
            continue

        if char in _PAIRED_ONLY:
            raise EvaluationError(
                f"Unexpected '{char}' at position {i} (did you mean '{_PAIRED_ONLY[char]}'?)",
                expression=expression,
                position=i,
            )

        raise EvaluationError(
            f"Unexpected character '{char}' at position {i}",
            expression=expression,
            position=i,
        )

    tokens.append(Token(TokenKind.END, "", length))
    return tokens
