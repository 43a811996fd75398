"""Operator registry and IEEE-754 numeric kernels."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Final

import numpy as np


class Priority(IntEnum):
    LEFT_BRACKET = 0
    ADD = 1
    SUBTRACT = 1
    MULTIPLY = 2
    DIVIDE = 2
    POWER = 3
    FUNCTION = 4


class Associativity(Enum):
    LEFT = "left"
    RIGHT = "right"


class OpKind(Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    POWER = "power"
    UNARY_PLUS = "unary_plus"
    UNARY_MINUS = "unary_minus"
    FACTORIAL = "factorial"
    SQRT = "sqrt"
    SIN = "sin"
    COS = "cos"
    TAN = "tan"
    ASIN = "asin"
    ACOS = "acos"
    ATAN = "atan"
    LOG = "log"


@dataclass(frozen=True)
class OperatorInfo:
    kind: OpKind
    symbol: str
    priority: Priority
    associativity: Associativity
    arity: int

    @property
    def is_binary(self) -> bool:
        return self.arity == 2


def _binary(kind: OpKind, symbol: str, priority: Priority, associativity: Associativity = Associativity.LEFT) -> OperatorInfo:
    return OperatorInfo(kind=kind, symbol=symbol, priority=priority, associativity=associativity, arity=2)


def _function(kind: OpKind, symbol: str) -> OperatorInfo:
    return OperatorInfo(kind=kind, symbol=symbol, priority=Priority.FUNCTION, associativity=Associativity.RIGHT, arity=1)


OPERATORS: Final[dict[OpKind, OperatorInfo]] = {
    OpKind.ADD: _binary(OpKind.ADD, "+", Priority.ADD),
    OpKind.SUBTRACT: _binary(OpKind.SUBTRACT, "-", Priority.SUBTRACT),
    OpKind.MULTIPLY: _binary(OpKind.MULTIPLY, "*", Priority.MULTIPLY),
    OpKind.DIVIDE: _binary(OpKind.DIVIDE, "/", Priority.DIVIDE),
    OpKind.POWER: _binary(OpKind.POWER, "^", Priority.POWER, Associativity.RIGHT),
    OpKind.UNARY_PLUS: _function(OpKind.UNARY_PLUS, "+"),
    OpKind.UNARY_MINUS: _function(OpKind.UNARY_MINUS, "-"),
    OpKind.FACTORIAL: _function(OpKind.FACTORIAL, "!"),
    OpKind.SQRT: _function(OpKind.SQRT, "sqrt"),
    OpKind.SIN: _function(OpKind.SIN, "sin"),
    OpKind.COS: _function(OpKind.COS, "cos"),
    OpKind.TAN: _function(OpKind.TAN, "tan"),
    OpKind.ASIN: _function(OpKind.ASIN, "asin"),
    OpKind.ACOS: _function(OpKind.ACOS, "acos"),
    OpKind.ATAN: _function(OpKind.ATAN, "atan"),
    OpKind.LOG: _function(OpKind.LOG, "log"),
}

FUNCTIONS: Final[dict[str, OpKind]] = {
    "sqrt": OpKind.SQRT,
    "sin": OpKind.SIN,
    "cos": OpKind.COS,
    "tan": OpKind.TAN,
    "log": OpKind.LOG,
    "asin": OpKind.ASIN,
    "acos": OpKind.ACOS,
    "atan": OpKind.ATAN,
}

BINARY_SYMBOLS: Final[dict[str, OpKind]] = {
    "+": OpKind.ADD,
    "-": OpKind.SUBTRACT,
    "*": OpKind.MULTIPLY,
    "/": OpKind.DIVIDE,
    "^": OpKind.POWER,
}

# Operands above this are reported as +inf without running the product loop.
FACTORIAL_LIMIT: Final[int] = 2**31 - 1
# 171! is the first factorial that overflows float64.
_FACTORIAL_OVERFLOW: Final[int] = 171


def factorial(x: float) -> np.float64:
    """Factorial of an integer-valued double, NaN outside the domain."""
    d = np.float64(x)
    if not np.isfinite(d) or d < 0 or d != np.floor(d):
        return np.float64(np.nan)
    if d > FACTORIAL_LIMIT:
        return np.float64(np.inf)
    n = int(d)
    result = np.float64(1.0)
    i = 2
    while i <= n and not np.isinf(result):
        result = result * i
        i += 1
    return result


def factorial_array(x: np.ndarray) -> np.ndarray:
    """Elementwise :func:`factorial` with the same product order."""
    d = np.asarray(x, dtype=np.float64)
    with np.errstate(all="ignore"):
        finite = np.isfinite(d)
        integral = finite & (np.floor(np.where(finite, d, 0.0)) == d)
        valid = integral & (d >= 0)
        result = np.where(valid, 1.0, np.nan)
        for i in range(2, _FACTORIAL_OVERFLOW + 1):
            result = np.where(valid & (d >= i), result * i, result)
        result = np.where(valid & (d > FACTORIAL_LIMIT), np.inf, result)
    return result


def _unary_plus(x):
    return x


def _unary_minus(x):
    return -x


def _factorial_any(x):
    if np.ndim(x) == 0:
        return factorial(x)
    return factorial_array(x)


_UNARY_KERNELS: Final[dict[OpKind, Callable]] = {
    OpKind.UNARY_PLUS: _unary_plus,
    OpKind.UNARY_MINUS: _unary_minus,
    OpKind.FACTORIAL: _factorial_any,
    OpKind.SQRT: np.sqrt,
    OpKind.SIN: np.sin,
    OpKind.COS: np.cos,
    OpKind.TAN: np.tan,
    OpKind.ASIN: np.arcsin,
    OpKind.ACOS: np.arccos,
    OpKind.ATAN: np.arctan,
    OpKind.LOG: np.log,
}

_BINARY_KERNELS: Final[dict[OpKind, Callable]] = {
    OpKind.ADD: np.add,
    OpKind.SUBTRACT: np.subtract,
    OpKind.MULTIPLY: np.multiply,
    OpKind.DIVIDE: np.true_divide,
    OpKind.POWER: np.power,
}


def unary_kernel(kind: OpKind) -> Callable:
    return _UNARY_KERNELS[kind]


def binary_kernel(kind: OpKind) -> Callable:
    return _BINARY_KERNELS[kind]


def apply_unary(kind: OpKind, x):
    """Apply a unary/function operator; domain errors produce NaN or infinity."""
    with np.errstate(all="ignore"):
        return _UNARY_KERNELS[kind](np.float64(x) if np.ndim(x) == 0 else x)


def apply_binary(kind: OpKind, left, right):
    """Apply a binary operator with IEEE-754 semantics (``1/0`` is ``inf``)."""
    with np.errstate(all="ignore"):
        return _BINARY_KERNELS[kind](left, right)
