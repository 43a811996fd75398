"""Instruction variants making up a compiled postfix sequence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .operators import OPERATORS, OperatorInfo, OpKind


@dataclass(frozen=True)
class Constant:
    value: float


@dataclass(frozen=True)
class VariableRef:
    slot: int
    name: str


@dataclass(frozen=True)
class Operator:
    kind: OpKind

    @property
    def info(self) -> OperatorInfo:
        return OPERATORS[self.kind]


@dataclass(frozen=True)
class Bracket:
    text: str


# Compile-time markers only; never part of a finished sequence.
LEFT_BRACKET = Bracket("(")
RIGHT_BRACKET = Bracket(")")

Instruction = Union[Constant, VariableRef, Operator]

# Anything the scanner hands the compiler.
Token = Union[Constant, VariableRef, Operator, Bracket]
# Entries of the compiler's pending-operator stack.
StackEntry = Union[Operator, Bracket]
