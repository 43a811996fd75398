"""rpn-expr public API."""

from .errors import (
    ExpressionArgumentError,
    ExpressionCompileError,
    ExpressionError,
    UnknownVariableError,
)
from .expression import CompileResult, Expression, compile_cache_stats, try_compile

try:
    from .jax_backend import JaxFunction, lower_to_jax
except ModuleNotFoundError as exc:
    if exc.name and exc.name.startswith("jax"):
        _jax_import_error = exc

        def lower_to_jax(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for lower_to_jax(). Install runtime deps first."
            ) from _jax_import_error

        class JaxFunction:  # pragma: no cover - import-time fallback
            def __init__(self, *_args, **_kwargs) -> None:
                raise ModuleNotFoundError(
                    "jax is required for JaxFunction(). Install runtime deps first."
                ) from _jax_import_error

    else:
        raise

__all__ = [
    "Expression",
    "CompileResult",
    "try_compile",
    "compile_cache_stats",
    "lower_to_jax",
    "JaxFunction",
    "ExpressionError",
    "ExpressionCompileError",
    "ExpressionArgumentError",
    "UnknownVariableError",
]
