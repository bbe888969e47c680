"""Expression tree produced by the parser."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Literal:
    value: float
    position: int = 0


@dataclass(frozen=True)
class Identifier:
    name: str
    position: int = 0


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"
    position: int = 0


@dataclass(frozen=True)
class BinaryOp:
    left: "Node"
    op: str
    right: "Node"
    position: int = 0


Node = Union[Literal, Identifier, UnaryOp, BinaryOp]

