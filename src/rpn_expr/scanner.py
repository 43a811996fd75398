"""Two-mode tokenizer for arithmetic expressions.

The compiler asks for either an operand-position token (value, prefix
operator, function or open bracket) or an operator-position token (binary
operator, close bracket or factorial suffix). Which grammar applies is the
only context needed to tell unary minus from subtraction.
"""

from __future__ import annotations

import math

from .errors import ExpressionCompileError
from .instructions import LEFT_BRACKET, RIGHT_BRACKET, Constant, Operator, Token, VariableRef
from .operators import BINARY_SYMBOLS, FUNCTIONS, OpKind
from .variables import VariableTable


_DIGITS = frozenset("0123456789")
_LETTERS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")


def _skip_spaces(source: str, pos: int) -> int:
    while pos < len(source) and source[pos] == " ":
        pos += 1
    return pos


def _scan_while(source: str, start: int, charset: frozenset[str]) -> int:
    i = start
    while i < len(source) and source[i] in charset:
        i += 1
    return i


def _scan_number(source: str, start: int) -> int:
    i = _scan_while(source, start, _DIGITS)
    if i < len(source) and source[i] == ".":
        frac_start = i + 1
        i = _scan_while(source, frac_start, _DIGITS)
        if i == frac_start:
            raise ExpressionCompileError(
                "Digit expected after the decimal point",
                start,
                i,
                found=source[start:i],
                source=source,
            )
    if i < len(source) and source[i] in {"e", "E"}:
        i += 1
        if i < len(source) and source[i] in {"+", "-"}:
            i += 1
        exp_start = i
        i = _scan_while(source, exp_start, _DIGITS)
        if i == exp_start:
            raise ExpressionCompileError(
                "Digit expected in exponent",
                start,
                i,
                found=source[start:i],
                source=source,
            )
    return i


def read_number(source: str, start: int) -> tuple[float, int]:
    """Read a decimal literal at ``start``; returns the value and end index."""
    end = _scan_number(source, start)
    text = source[start:end]
    try:
        value = float(text)
    except ValueError as exc:
        raise ExpressionCompileError(f"Invalid numeric literal {text!r}", start, end, found=text, source=source) from exc
    if math.isinf(value):
        raise ExpressionCompileError(f"Numeric literal {text!r} is out of range", start, end, found=text, source=source)
    return value, end


def read_operand_token(source: str, pos: int, variables: VariableTable) -> tuple[Token | None, int]:
    """Read a token valid where an operand is expected.

    Unknown identifiers are registered in ``variables`` as a side effect.
    """
    pos = _skip_spaces(source, pos)
    if pos >= len(source):
        return None, pos
    ch = source[pos]
    if ch == "(":
        return LEFT_BRACKET, pos + 1
    if ch in _DIGITS or ch == ".":
        value, end = read_number(source, pos)
        return Constant(value), end
    if ch in _LETTERS:
        end = _scan_while(source, pos, _LETTERS)
        word = source[pos:end]
        kind = FUNCTIONS.get(word)
        if kind is not None:
            return Operator(kind), end
        return VariableRef(variables.slot_for(word), word), end
    if ch == "-":
        return Operator(OpKind.UNARY_MINUS), pos + 1
    if ch == "+":
        return Operator(OpKind.UNARY_PLUS), pos + 1
    return None, pos


def read_operator_token(source: str, pos: int) -> tuple[Token | None, int]:
    """Read a binary operator, close bracket or factorial suffix."""
    pos = _skip_spaces(source, pos)
    if pos >= len(source):
        return None, pos
    ch = source[pos]
    kind = BINARY_SYMBOLS.get(ch)
    if kind is not None:
        return Operator(kind), pos + 1
    if ch == ")":
        return RIGHT_BRACKET, pos + 1
    if ch == "!":
        return Operator(OpKind.FACTORIAL), pos + 1
    return None, pos
