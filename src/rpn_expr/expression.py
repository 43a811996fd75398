"""Compile-once, evaluate-many expression objects."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Final

import numpy as np

from .compiler import compile_postfix, constant_folding_default
from .errors import ExpressionCompileError
from .evaluator import evaluate_postfix, evaluate_postfix_batch
from .instructions import Instruction, VariableRef
from .variables import BUILTIN_CONSTANTS, VariableTable

_COMPILE_CACHE_MAX: Final[int] = max(1, int(os.environ.get("RPN_EXPR_COMPILE_CACHE_MAX", "512")))


@lru_cache(maxsize=_COMPILE_CACHE_MAX)
def _compile_cached(source: str, fold_constants: bool) -> tuple[tuple[Instruction, ...], VariableTable]:
    table = VariableTable()
    program = compile_postfix(source, table, fold_constants=fold_constants)
    return program, table


def compile_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    info = _compile_cached.cache_info()
    total = info.hits + info.misses
    stats: dict[str, float | int] = {
        "hits": int(info.hits),
        "misses": int(info.misses),
        "size": int(info.currsize),
        "max_size": int(info.maxsize) if info.maxsize is not None else 0,
        "hit_rate": float(info.hits / total) if total else 0.0,
    }
    if reset:
        _compile_cached.cache_clear()
    return stats


class Expression:
    """A compiled arithmetic expression bound to its own variables.

    Construction parses ``text`` once; :meth:`evaluate` then replays the
    postfix sequence against the current variable values. Instances are not
    safe for concurrent evaluation from several threads, but separate
    instances share no state and may run in parallel freely.

    >>> expr = Expression("a + b")
    >>> expr.set("a", 1); expr.set("b", 2)
    >>> expr.evaluate()
    3.0
    """

    __slots__ = ("_source", "_program", "_variables", "_stack")

    def __init__(self, text: str, *, fold_constants: bool | None = None) -> None:
        fold = constant_folding_default() if fold_constants is None else bool(fold_constants)
        program, template = _compile_cached(text, fold)
        self._source = text
        self._program = program
        self._variables = template.copy()
        self._stack: list[np.float64] = []

    @property
    def source(self) -> str:
        return self._source

    @property
    def variables(self) -> dict[str, float]:
        """Snapshot of every known variable, built-in constants included."""
        return self._variables.snapshot()

    @property
    def free_variables(self) -> tuple[str, ...]:
        """Names referenced by the expression that are not built-in constants."""
        seen: dict[str, None] = {}
        for instr in self._program:
            if isinstance(instr, VariableRef) and instr.name not in BUILTIN_CONSTANTS:
                seen.setdefault(instr.name, None)
        return tuple(seen)

    def set(self, name: str, value: float) -> None:
        """Bind ``name``; names this expression never mentioned are ignored."""
        self._variables.set(name, value)

    def get(self, name: str) -> float:
        """Current value of ``name``; raises :class:`UnknownVariableError` if unknown."""
        return self._variables.get(name)

    def lookup(self, name: str) -> float | None:
        return self._variables.lookup(name)

    def evaluate(self) -> float:
        return evaluate_postfix(self._program, self._variables.values, self._stack)

    def __call__(self, **bindings: float) -> float:
        for name, value in bindings.items():
            self._variables.set(name, value)
        return self.evaluate()

    def evaluate_batch(self, **columns) -> np.ndarray:
        """Evaluate over arrays of values without touching the variable slots.

        Variables not given in ``columns`` use their current scalar value;
        unknown names are ignored like :meth:`set`.
        """
        by_slot = {
            self._variables.index(name): np.asarray(values, dtype=np.float64)
            for name, values in columns.items()
            if name in self._variables
        }
        return evaluate_postfix_batch(self._program, self._variables.values, by_slot)

    def __repr__(self) -> str:
        return f"Expression({self._source!r})"


@dataclass(frozen=True)
class CompileResult:
    """Outcome of :func:`try_compile`: exactly one of the fields is set."""

    expression: Expression | None = None
    error: ExpressionCompileError | None = None

    @property
    def ok(self) -> bool:
        return self.expression is not None


def try_compile(text: str, *, fold_constants: bool | None = None) -> CompileResult:
    """Compile without raising for syntax problems."""
    try:
        return CompileResult(expression=Expression(text, fold_constants=fold_constants))
    except ExpressionCompileError as err:
        return CompileResult(error=err)
