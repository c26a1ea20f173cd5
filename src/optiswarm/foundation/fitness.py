"""
Comparable fitness values.

Ordering operators mean *better than* / *worse than* under the configured
mode, so ``a > b`` reads "a is a better outcome than b" for both
maximisation and minimisation.
"""

from __future__ import annotations

import math
from typing import Any, Callable

CompareFunc = Callable[["Fitness", "Fitness"], int]

MODES = ("maximize", "minimize")


def compare_by_mode(mode: str, a: float, b: float) -> int:
    """Return +1 if ``a`` is better than ``b`` under ``mode``, -1 if worse, 0 if equal."""
    if a == b:
        return 0
    if mode == "maximize":
        return 1 if a > b else -1
    return 1 if a < b else -1


class Fitness:
    """Scalar outcome of a solution evaluation.

    Parameters
    ----------
    value : float, optional
        Evaluated value; ``None`` until the solution has been evaluated.
        An unset (or NaN) value is worse than every set value.
    mode : str
        ``"maximize"`` (default) or ``"minimize"``.
    comparator : callable, optional
        Custom ordering ``f(a, b) -> int`` replacing the mode rule. Installed
        via :meth:`override_compare` and shared by clones.
    """

    __slots__ = ("value", "mode", "comparator", "user_data")

    def __init__(
        self,
        value: float | None = None,
        mode: str = "maximize",
        comparator: CompareFunc | None = None,
    ) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown fitness mode '{mode}'; expected one of {', '.join(MODES)}")
        self.value = value
        self.mode = mode
        self.comparator = comparator
        self.user_data: dict[str, Any] = {}

    @property
    def is_set(self) -> bool:
        return self.value is not None and not math.isnan(self.value)

    def override_compare(self, func: CompareFunc | None) -> None:
        self.comparator = func

    def compare(self, other: "Fitness") -> int:
        if not self.is_set or not other.is_set:
            return int(self.is_set) - int(other.is_set)
        if self.comparator is not None:
            return int(self.comparator(self, other))
        return compare_by_mode(self.mode, float(self.value), float(other.value))

    def __gt__(self, other: "Fitness") -> bool:
        return self.compare(other) > 0

    def __lt__(self, other: "Fitness") -> bool:
        return self.compare(other) < 0

    def __ge__(self, other: "Fitness") -> bool:
        return self.compare(other) >= 0

    def __le__(self, other: "Fitness") -> bool:
        return self.compare(other) <= 0

    def clone(self) -> "Fitness":
        ret = Fitness(self.value, self.mode, self.comparator)
        ret.user_data = dict(self.user_data)
        return ret

    def __repr__(self) -> str:
        return f"Fitness({self.value!r}, mode={self.mode!r})"


__all__ = ["Fitness", "compare_by_mode", "MODES"]
