"""Named scalar parameters and their boundaries."""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import BoundsError


@dataclass(frozen=True)
class Boundary:
    """Inclusive ``[min, max]`` range of a parameter.

    ``min_initial``/``max_initial`` narrow the range used to seed new
    solutions; they default to the full boundary.
    """

    name: str
    min: float
    max: float
    min_initial: float | None = None
    max_initial: float | None = None

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise BoundsError(f"Boundary '{self.name}' has min {self.min} > max {self.max}")
        if self.min_initial is None:
            object.__setattr__(self, "min_initial", float(self.min))
        if self.max_initial is None:
            object.__setattr__(self, "max_initial", float(self.max))
        lo, hi = self.min_initial, self.max_initial
        if lo > hi or lo < self.min or hi > self.max:
            raise BoundsError(
                f"Initial range [{lo}, {hi}] of boundary '{self.name}' is not inside [{self.min}, {self.max}]"
            )

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def initial_span(self) -> float:
        return self.max_initial - self.min_initial

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass
class Parameter:
    name: str
    boundary: Boundary
    value: float = field(default=0.0)

    def copy(self) -> "Parameter":
        # Boundaries are immutable and shared.
        return Parameter(self.name, self.boundary, self.value)

    def __repr__(self) -> str:
        return f"Parameter({self.name}={self.value:g} in [{self.boundary.min:g}, {self.boundary.max:g}])"


__all__ = ["Boundary", "Parameter"]
