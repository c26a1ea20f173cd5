"""Stagnation detection.

Every ``window`` iterations the relative change of the best fitness is
compared with the relative change of the swarm's accumulated normalized
velocity. Once fitness stops moving relative to velocity (ratio below
``threshold``) the run is reported as finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from optiswarm.engine.algorithm.config.base import _SerializableConfig, setting
from optiswarm.engine.algorithm.pso.extension import Extension
from optiswarm.foundation.exceptions import InvalidSettingError

__all__ = ["StagnationDetection", "StagnationSettings"]


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass(frozen=True)
class StagnationSettings(_SerializableConfig):
    window: int = setting(10, "window", "The window size (in iterations) to measure stagnation over")
    threshold: float = setting(0.00001, "threshold", "The threshold after which to stop the optimization")

    def __post_init__(self) -> None:
        if self.window < 1:
            raise InvalidSettingError("stagnation", "window", "must be positive")


class StagnationDetection(Extension):
    """Stops the run when the best fitness stagnates relative to swarm velocity."""

    name = "stagnation"
    description = "Stagnation detection"
    settings_class = StagnationSettings
    pso_only = True

    def __init__(self, settings: StagnationSettings | None = None) -> None:
        super().__init__(settings)
        self._reset()

    def _reset(self) -> None:
        self.previous_fitness = 0.0
        self.previous_velocity = 0.0
        self.current_velocity = 0.0
        self.stop = False

    def initialize(self) -> None:
        self._reset()

    def restore(self) -> None:
        self._reset()

    def finished(self) -> bool:
        return self.stop

    def record_velocity(self) -> None:
        """Add the swarm's velocity, each component normalized by its span and averaged per particle."""
        total = 0.0
        for sol in self.optimizer.population:
            n = len(sol.parameters)
            for i, param in enumerate(sol.parameters):
                span = param.boundary.span
                if span > 0:
                    total += sol.velocity[i] / span / n  # type: ignore[attr-defined]
        self.current_velocity += total

    def _check(self) -> None:
        best = self.optimizer.best
        fitness = best.fitness.value if best is not None and best.fitness.is_set else 0.0
        if self.previous_fitness != 0 and self.previous_velocity != 0:
            df = 1.0 - fitness / self.previous_fitness
            dv = 1.0 - self.current_velocity / self.previous_velocity
            if dv != 0:
                ratio = abs(df / dv)
                self.stop = ratio < self.settings.threshold
                if self.stop:
                    _logger().info(
                        "Stagnation detected at iteration %d (ratio %.3g < %.3g)",
                        self.optimizer.iteration,
                        ratio,
                        self.settings.threshold,
                    )
        self.previous_fitness = fitness
        self.previous_velocity = self.current_velocity
        self.current_velocity = 0.0

    def next_iteration(self) -> None:
        iteration = self.optimizer.iteration
        if iteration == 0:
            return
        self.record_velocity()
        if iteration % self.settings.window == 0:
            self._check()
