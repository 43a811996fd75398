"""Named mutable numeric slots shared by every reference in one expression."""

from __future__ import annotations

import sys
from typing import Final, Iterator

import numpy as np

from .errors import UnknownVariableError

BUILTIN_CONSTANTS: Final[dict[str, float]] = {
    "pi": float(np.pi),
    "e": float(np.e),
    "inf": float(np.inf),
    "NaN": float(np.nan),
    "Epsilon": 5e-324,
    "MinValue": -sys.float_info.max,
    "MaxValue": sys.float_info.max,
}


class VariableTable:
    """Name to slot mapping; the table is the sole owner of slot storage.

    Slots are addressed by a stable integer index so compiled instructions
    can refer to them without holding the values themselves. New names get
    a NaN slot, which is what an unbound variable evaluates to.
    """

    def __init__(self, *, builtins: bool = True) -> None:
        self._index: dict[str, int] = {}
        self.values: list[np.float64] = []
        if builtins:
            for name, value in BUILTIN_CONSTANTS.items():
                self._index[name] = len(self.values)
                self.values.append(np.float64(value))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def names(self) -> tuple[str, ...]:
        return tuple(self._index)

    def slot_for(self, name: str) -> int:
        slot = self._index.get(name)
        if slot is None:
            slot = len(self.values)
            self._index[name] = slot
            self.values.append(np.float64(np.nan))
        return slot

    def index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise UnknownVariableError(name) from None

    def set(self, name: str, value: float) -> None:
        slot = self._index.get(name)
        if slot is not None:
            self.values[slot] = np.float64(value)

    def get(self, name: str) -> float:
        return float(self.values[self.index(name)])

    def lookup(self, name: str) -> float | None:
        slot = self._index.get(name)
        if slot is None:
            return None
        return float(self.values[slot])

    def snapshot(self) -> dict[str, float]:
        return {name: float(self.values[slot]) for name, slot in self._index.items()}

    def copy(self) -> "VariableTable":
        clone = VariableTable(builtins=False)
        clone._index = dict(self._index)
        clone.values = list(self.values)
        return clone
