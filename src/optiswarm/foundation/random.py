"""Seedable uniform sampling service shared by an optimizer run."""

from __future__ import annotations

from typing import Any

import numpy as np


class RandomSource:
    """Thin wrapper over :func:`numpy.random.default_rng`.

    Every draw of a run goes through one instance so that the draw order
    (per dimension, per particle, per iteration) is reproducible from the
    seed.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next_double(self) -> float:
        """Uniform draw in ``[0, 1)``."""
        return float(self._rng.random())

    def range(self, lo: float, hi: float) -> float:
        """Uniform draw between ``lo`` and ``hi``."""
        return float(lo + (hi - lo) * self._rng.random())

    def doubles(self, n: int) -> np.ndarray:
        return self._rng.random(int(n))

    @property
    def state(self) -> dict[str, Any]:
        return self._rng.bit_generator.state

    @state.setter
    def state(self, value: dict[str, Any]) -> None:
        self._rng.bit_generator.state = value


__all__ = ["RandomSource"]
