"""JAX lowering of compiled expressions with cached jit/vmap/grad transforms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Final

import jax
from jax import lax
import jax.numpy as jnp

from .errors import ExpressionArgumentError
from .expression import Expression
from .instructions import Constant, Instruction, Operator, VariableRef
from .operators import FACTORIAL_LIMIT, OpKind

# Products past 171! are infinite in float64, so the loop never needs more terms.
_FACTORIAL_TERMS: Final[int] = 172


def _as_float(value) -> jnp.ndarray:
    return jnp.asarray(value, dtype=jax.dtypes.canonicalize_dtype(jnp.float64))


def _factorial(x: jnp.ndarray) -> jnp.ndarray:
    valid = jnp.isfinite(x) & (jnp.floor(x) == x) & (x >= 0)

    def body(i, acc):
        return jnp.where(x >= i, acc * i, acc)

    result = lax.fori_loop(2, _FACTORIAL_TERMS, body, jnp.ones_like(x))
    result = jnp.where(valid & (x > FACTORIAL_LIMIT), jnp.inf, result)
    return jnp.where(valid, result, jnp.nan)


_UNARY_OPS: Final[dict[OpKind, Callable[[jnp.ndarray], jnp.ndarray]]] = {
    OpKind.UNARY_PLUS: lambda x: x,
    OpKind.UNARY_MINUS: lambda x: -x,
    OpKind.FACTORIAL: _factorial,
    OpKind.SQRT: jnp.sqrt,
    OpKind.SIN: jnp.sin,
    OpKind.COS: jnp.cos,
    OpKind.TAN: jnp.tan,
    OpKind.ASIN: jnp.arcsin,
    OpKind.ACOS: jnp.arccos,
    OpKind.ATAN: jnp.arctan,
    OpKind.LOG: jnp.log,
}

_BINARY_OPS: Final[dict[OpKind, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]]] = {
    OpKind.ADD: lambda w, x: w + x,
    OpKind.SUBTRACT: lambda w, x: w - x,
    OpKind.MULTIPLY: lambda w, x: w * x,
    OpKind.DIVIDE: lambda w, x: w / x,
    OpKind.POWER: lambda w, x: jnp.power(w, x),
}


def _run_program(program: tuple[Instruction, ...], bound: dict[int, object], args: tuple[object, ...], arg_slots: tuple[int, ...]):
    values = dict(zip(arg_slots, args))
    stack: list[jnp.ndarray] = []
    for instr in program:
        if isinstance(instr, Constant):
            stack.append(_as_float(instr.value))
        elif isinstance(instr, VariableRef):
            if instr.slot in values:
                stack.append(_as_float(values[instr.slot]))
            else:
                stack.append(_as_float(bound[instr.slot]))
        elif isinstance(instr, Operator):
            if instr.info.is_binary:
                right = stack.pop()
                left = stack.pop()
                stack.append(_BINARY_OPS[instr.kind](left, right))
            else:
                stack.append(_UNARY_OPS[instr.kind](stack.pop()))
    return stack.pop()


@dataclass
class JaxFunction:
    """Pure JAX callable over the expression's argument variables.

    Variables that are not arguments are captured with the values they had
    when the function was lowered. Precision follows JAX's configured
    default float type.
    """

    arg_names: tuple[str, ...]
    source: str
    _fn: Callable = field(repr=False)
    _jit_fn: Callable | None = field(default=None, init=False, repr=False)
    _vmap_cache: dict[str, Callable] = field(default_factory=dict, init=False, repr=False)
    _grad_cache: dict[int, Callable] = field(default_factory=dict, init=False, repr=False)

    def _resolve_call_args(self, args: tuple[object, ...], kwargs: dict[str, object]) -> tuple[object, ...]:
        if args and kwargs:
            raise ExpressionArgumentError("Use either positional or keyword arguments, not both")
        if kwargs:
            missing = [name for name in self.arg_names if name not in kwargs]
            extra = [name for name in kwargs if name not in self.arg_names]
            if missing or extra:
                details = []
                if missing:
                    details.append(f"missing={missing}")
                if extra:
                    details.append(f"extra={extra}")
                raise ExpressionArgumentError(f"Keyword arguments do not match signature ({', '.join(details)})")
            return tuple(kwargs[name] for name in self.arg_names)
        if len(args) != len(self.arg_names):
            raise ExpressionArgumentError(f"Expected {len(self.arg_names)} arguments, got {len(args)}")
        return args

    def __call__(self, *args, **kwargs):
        return self._fn(*self._resolve_call_args(args, kwargs))

    def trace(self, *args, **kwargs):
        """Emit the jaxpr for sample inputs."""
        return jax.make_jaxpr(self._fn)(*self._resolve_call_args(args, kwargs))

    def jit(self) -> Callable:
        if self._jit_fn is None:
            jitted = jax.jit(self._fn)

            def wrapped(*args, **kwargs):
                return jitted(*self._resolve_call_args(args, kwargs))

            self._jit_fn = wrapped
        return self._jit_fn

    def vmap(self, *, in_axes=0) -> Callable:
        key = repr(in_axes)
        cached = self._vmap_cache.get(key)
        if cached is not None:
            return cached
        vmapped = jax.vmap(self._fn, in_axes=in_axes)

        def wrapped(*args, **kwargs):
            return vmapped(*self._resolve_call_args(args, kwargs))

        self._vmap_cache[key] = wrapped
        return wrapped

    def grad(self, *, argnums: int | str = 0) -> Callable:
        """Gradient with respect to one argument, by position or name."""
        if isinstance(argnums, str):
            if argnums not in self.arg_names:
                raise ExpressionArgumentError(f"Unknown argument {argnums!r}")
            argnums = self.arg_names.index(argnums)
        cached = self._grad_cache.get(argnums)
        if cached is not None:
            return cached
        grad_fn = jax.jit(jax.grad(self._fn, argnums=argnums))

        def wrapped(*args, **kwargs):
            return grad_fn(*self._resolve_call_args(args, kwargs))

        self._grad_cache[argnums] = wrapped
        return wrapped


def lower_to_jax(expression: Expression, *, arg_names: tuple[str, ...] | None = None) -> JaxFunction:
    """Lower a compiled expression to a JAX function of ``arg_names``.

    ``arg_names`` defaults to the expression's free variables in order of
    first use.
    """
    names = expression.free_variables if arg_names is None else tuple(arg_names)
    table = expression._variables
    unknown = [name for name in names if name not in table]
    if unknown:
        raise ExpressionArgumentError(f"Expression has no variables named {unknown}")
    arg_slots = tuple(table.index(name) for name in names)
    bound = {slot: float(value) for slot, value in enumerate(table.values)}
    program = expression._program

    def _fn(*args):
        return _run_program(program, bound, args, arg_slots)

    return JaxFunction(arg_names=names, source=expression.source, _fn=_fn)
