"""Structured error types for compile-time and accessor failures."""

from __future__ import annotations


class ExpressionError(Exception):
    """Base class for structured rpn-expr errors."""


class ExpressionCompileError(ExpressionError, SyntaxError):
    """Compilation failed; no usable expression was produced."""

    def __init__(
        self,
        message: str,
        start: int,
        end: int,
        found: str | None = None,
        source: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.found = found
        self.source = source

    def __str__(self) -> str:
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found!r}"
        return f"{self.message} at span [{self.start}, {self.end}){found_text}"


class UnknownVariableError(ExpressionError, KeyError):
    """Variable lookup for a name never seen during compilation."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No such variable {self.name!r}"


class ExpressionArgumentError(ExpressionError, TypeError):
    """Arguments passed to a lowered expression do not match its signature."""
