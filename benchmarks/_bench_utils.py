"""Shared benchmark runtime helpers."""

from __future__ import annotations

import math
import platform
import time
from typing import Any, Callable

import numpy as np


def host_metadata() -> dict[str, Any]:
    return {
        "platform": platform.platform(),
        "python": platform.python_version(),
        "numpy": getattr(np, "__version__", "unknown"),
    }


def time_calls(fn: Callable[[], object], repeats: int) -> tuple[object, float]:
    """Call ``fn`` ``repeats`` times; returns the last result and elapsed seconds."""
    result = None
    start_ns = time.perf_counter_ns()
    for _ in range(repeats):
        result = fn()
    elapsed_ns = time.perf_counter_ns() - start_ns
    return result, elapsed_ns / 1e9


def calls_per_second(repeats: int, elapsed_s: float) -> float:
    if elapsed_s <= 0:
        return math.inf
    return repeats / elapsed_s


def percentile(values: list[float], q: float) -> float:
    ordered = sorted(values)
    if len(ordered) == 1:
        return ordered[0]
    pos = (len(ordered) - 1) * q
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return ordered[lo]
    alpha = pos - lo
    return ordered[lo] * (1.0 - alpha) + ordered[hi] * alpha
