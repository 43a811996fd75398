"""Stack machine executing compiled postfix sequences."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np

from .instructions import Constant, Instruction, Operator, VariableRef
from .operators import OpKind, binary_kernel, factorial, factorial_array, unary_kernel


def evaluate_postfix(program: Sequence[Instruction], slots: Sequence[np.float64], stack: list) -> float:
    """Run ``program`` against the current ``slots`` using ``stack`` as workspace.

    The compiler guarantees arity balance, so each run leaves exactly one
    value, which is popped and returned. Numeric anomalies come back as
    ``inf``/``nan``; nothing here raises for them.
    """
    push = stack.append
    pop = stack.pop
    with np.errstate(all="ignore"):
        for instr in program:
            if type(instr) is Constant:
                push(np.float64(instr.value))
            elif type(instr) is VariableRef:
                push(slots[instr.slot])
            else:
                kind = instr.kind
                if instr.info.is_binary:
                    right = pop()
                    left = pop()
                    push(binary_kernel(kind)(left, right))
                elif kind is OpKind.FACTORIAL:
                    push(factorial(pop()))
                else:
                    push(unary_kernel(kind)(pop()))
    return float(pop())


def evaluate_postfix_batch(
    program: Sequence[Instruction],
    slots: Sequence[np.float64],
    columns: Mapping[int, np.ndarray],
) -> np.ndarray:
    """Evaluate ``program`` elementwise over broadcast arrays.

    ``columns`` maps slot indices to arrays that override the scalar slot
    values; all inputs broadcast together under numpy rules.
    """
    stack: list[np.ndarray] = []
    with np.errstate(all="ignore"):
        for instr in program:
            if isinstance(instr, Constant):
                stack.append(np.asarray(instr.value, dtype=np.float64))
            elif isinstance(instr, VariableRef):
                column = columns.get(instr.slot)
                if column is None:
                    stack.append(np.asarray(slots[instr.slot], dtype=np.float64))
                else:
                    stack.append(np.asarray(column, dtype=np.float64))
            elif isinstance(instr, Operator):
                kind = instr.kind
                if instr.info.is_binary:
                    right = stack.pop()
                    left = stack.pop()
                    stack.append(binary_kernel(kind)(left, right))
                elif kind is OpKind.FACTORIAL:
                    stack.append(factorial_array(stack.pop()))
                else:
                    stack.append(unary_kernel(kind)(stack.pop()))
    return np.asarray(stack.pop(), dtype=np.float64)
