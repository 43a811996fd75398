"""Shunting-yard compiler from infix text to a folded postfix sequence."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Final

from .errors import ExpressionCompileError
from .instructions import LEFT_BRACKET, RIGHT_BRACKET, Constant, Instruction, Operator, StackEntry
from .operators import OPERATORS, Associativity, OpKind, apply_binary, apply_unary
from .scanner import read_operand_token, read_operator_token
from .variables import VariableTable

logger = logging.getLogger(__name__)

_USE_CONSTANT_FOLDING: Final[bool] = os.environ.get("RPN_EXPR_DISABLE_CONSTANT_FOLDING", "0") != "1"


def constant_folding_default() -> bool:
    return _USE_CONSTANT_FOLDING


@dataclass
class _Compiler:
    source: str
    variables: VariableTable
    fold_constants: bool = True
    pos: int = 0
    expect_operator: bool = False
    operators: list[StackEntry] = field(default_factory=list)
    output: list[Instruction] = field(default_factory=list)

    def _error(self, message: str, start: int | None = None, end: int | None = None) -> ExpressionCompileError:
        start = self.pos if start is None else start
        end = start if end is None else end
        found = self.source[start:end] if end > start else None
        return ExpressionCompileError(message, start, end, found=found, source=self.source)

    def _next_token(self):
        if self.expect_operator:
            token, self.pos = read_operator_token(self.source, self.pos)
        else:
            token, self.pos = read_operand_token(self.source, self.pos, self.variables)
        return token

    def compile(self) -> tuple[Instruction, ...]:
        while (token := self._next_token()) is not None:
            if token is LEFT_BRACKET:
                self.operators.append(token)
            elif token is RIGHT_BRACKET:
                self._close_bracket()
            elif isinstance(token, Operator):
                self._push_operator(token)
                if token.info.is_binary:
                    self.expect_operator = False
            else:
                self.output.append(token)
                self.expect_operator = True

        if not self.expect_operator:
            raise self._error("Syntax error: operand expected", self.pos, len(self.source))
        if self.pos < len(self.source):
            raise self._error("Syntax error: unexpected input", self.pos, len(self.source))

        while self.operators:
            top = self.operators.pop()
            if top is LEFT_BRACKET:
                raise self._error("Missing close bracket(s)", len(self.source))
            self._emit(top)
        return tuple(self.output)

    def _close_bracket(self) -> None:
        close_at = self.pos - 1
        while self.operators:
            top = self.operators.pop()
            if top is LEFT_BRACKET:
                return
            self._emit(top)
        raise self._error("Right bracket mismatch", close_at, close_at + 1)

    def _push_operator(self, op: Operator) -> None:
        info = op.info
        while self.operators:
            top = self.operators[-1]
            if top is LEFT_BRACKET:
                break
            top_priority = top.info.priority
            if info.associativity is Associativity.LEFT:
                evict = info.priority <= top_priority
            else:
                evict = info.priority < top_priority
            if not evict:
                break
            self._emit(self.operators.pop())
        self.operators.append(op)

    def _emit(self, op: Operator) -> None:
        """Append ``op`` to the output, folding it into trailing constants."""
        if op.kind is OpKind.UNARY_PLUS:
            return
        out = self.output
        if self.fold_constants:
            if OPERATORS[op.kind].is_binary:
                if len(out) >= 2 and isinstance(out[-2], Constant) and isinstance(out[-1], Constant):
                    right = out.pop()
                    left = out.pop()
                    out.append(Constant(float(apply_binary(op.kind, left.value, right.value))))
                    return
            elif out and isinstance(out[-1], Constant):
                operand = out.pop()
                out.append(Constant(float(apply_unary(op.kind, operand.value))))
                return
        out.append(op)


def compile_postfix(
    source: str,
    variables: VariableTable,
    *,
    fold_constants: bool | None = None,
) -> tuple[Instruction, ...]:
    """Compile ``source`` into postfix order, registering variables it names.

    Raises :class:`ExpressionCompileError` on any syntax problem; in that case
    no partial sequence is returned.
    """
    fold = _USE_CONSTANT_FOLDING if fold_constants is None else bool(fold_constants)
    compiler = _Compiler(source=source, variables=variables, fold_constants=fold)
    try:
        program = compiler.compile()
    except ExpressionCompileError as err:
        logger.debug("compile failed for %r: %s", source, err)
        raise
    logger.debug("compiled %r into %d instructions", source, len(program))
    return program
