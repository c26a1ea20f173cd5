"""Candidate points in parameter space."""

from __future__ import annotations

import copy
from typing import Any, Iterable

import numpy as np

from .fitness import Fitness
from .parameter import Parameter


class Solution:
    """An ordered set of parameters with a fitness and a scratch ``data`` dict.

    The parameter order is shared across a population. ``data`` holds
    per-solution bookkeeping (extension scratch fields) and is persisted
    alongside the parameter values every iteration.
    """

    def __init__(self, id: int, parameters: Iterable[Parameter], fitness: Fitness) -> None:
        self.id = int(id)
        self.parameters: list[Parameter] = [p.copy() for p in parameters]
        self.fitness = fitness
        self.data: dict[str, Any] = {}

    @property
    def values(self) -> np.ndarray:
        return np.array([p.value for p in self.parameters], dtype=float)

    @values.setter
    def values(self, values: Iterable[float]) -> None:
        vals = list(values)
        if len(vals) != len(self.parameters):
            raise ValueError(f"Expected {len(self.parameters)} values, got {len(vals)}")
        for param, val in zip(self.parameters, vals):
            param.value = float(val)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.parameters]

    def value_map(self) -> dict[str, float]:
        return {p.name: p.value for p in self.parameters}

    def index_of(self, name: str) -> int:
        for i, param in enumerate(self.parameters):
            if param.name == name:
                return i
        return -1

    def parameter(self, name: str) -> Parameter | None:
        idx = self.index_of(name)
        return self.parameters[idx] if idx >= 0 else None

    def _copy_into(self, other: "Solution") -> None:
        other.parameters = [p.copy() for p in self.parameters]
        other.fitness = self.fitness.clone()
        other.data = copy.deepcopy(self.data)

    def clone(self) -> "Solution":
        ret = Solution.__new__(type(self))
        ret.id = self.id
        self._copy_into(ret)
        return ret

    def __repr__(self) -> str:
        vals = ", ".join(f"{p.name}={p.value:g}" for p in self.parameters)
        return f"{type(self).__name__}(id={self.id}, {vals}, fitness={self.fitness.value!r})"


__all__ = ["Solution"]
