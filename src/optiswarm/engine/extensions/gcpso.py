"""GCPSO: guaranteed convergence for the best particle.

The particle holding the global best keeps its momentum but replaces the
cognitive/social terms with a jump back to its personal best plus a random
search of ``sample_size`` times the parameter span. The sample size halves
after a run of successes and doubles after a run of failures.

Reference:
    van den Bergh, F. and Engelbrecht, A.P. (2002). A new locally convergent
    particle swarm optimiser. IEEE SMC 2002, vol. 3.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from optiswarm.engine.algorithm.config.base import _SerializableConfig, setting
from optiswarm.engine.algorithm.pso.extension import PSOExtension
from optiswarm.engine.algorithm.pso.state import VelocityUpdate
from optiswarm.foundation.exceptions import InvalidSettingError

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.pso.particle import Particle
    from optiswarm.foundation.solution import Solution

__all__ = ["GCPSO", "GCPSOSettings", "MAX_SAMPLE_SIZE"]

MAX_SAMPLE_SIZE = 0.1


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass(frozen=True)
class GCPSOSettings(_SerializableConfig):
    sample_size: float = setting(1.0, "sample-size", "Random sample size for best particle (fraction of parameter space)")
    success_threshold: int = setting(15, "success-threshold", "Number of successes before decreasing sample size")
    failure_threshold: int = setting(5, "failure-threshold", "Number of failures before increasing sample size")
    minimum_sample_size: float = setting(0.0, "minimum-sample-size", "Minimum sample size")

    def __post_init__(self) -> None:
        if self.sample_size < 0 or self.minimum_sample_size < 0:
            raise InvalidSettingError("gcpso", "sample-size", "must not be negative")


def sample_search(particle: "Particle", i: int, sample_size: float, draw: float) -> float:
    """``-x_i + pbest_i + sample_size * span_i * (1 - 2 draw)``."""
    x = particle.parameters[i].value
    pbest = particle.personal_best.parameters[i].value if particle.personal_best is not None else x
    span = particle.parameters[i].boundary.span
    return -x + pbest + sample_size * span * (1.0 - 2.0 * draw)


class GCPSO(PSOExtension):
    """Guaranteed Convergence Particle Swarm Optimization."""

    name = "gcpso"
    description = "Guaranteed Convergence Particle Swarm Optimization"
    settings_class = GCPSOSettings
    table = "gcpso_samplesize"

    def __init__(self, settings: GCPSOSettings | None = None) -> None:
        super().__init__(settings)
        self.sample_size = self.settings.sample_size
        self.successes = 0
        self.failures = 0
        self._last_best: "Solution | None" = None

    def initialize(self) -> None:
        self.storage.create_table(self.table)
        self.sample_size = self.settings.sample_size
        self.successes = 0
        self.failures = 0
        self._last_best = None

    def velocity_update_components(self, particle: "Particle") -> VelocityUpdate:
        if not self.is_best(particle):
            return VelocityUpdate.DEFAULT
        # Momentum is kept.
        return VelocityUpdate.DISABLE_GLOBAL | VelocityUpdate.DISABLE_LOCAL

    def calculate_velocity_update(self, particle: "Particle", best: "Particle | None", i: int) -> float:
        if not self.is_best(particle):
            return 0.0
        return sample_search(particle, i, self.sample_size, self.rng.next_double())

    def next_iteration(self) -> None:
        best = self.optimizer.best
        if best is None or self._last_best is None or best.fitness > self._last_best.fitness:
            self.successes += 1
            self.failures = 0
        else:
            self.failures += 1
            self.successes = 0

        if self.successes > self.settings.success_threshold:
            self.sample_size *= 0.5
            self.successes = 0
        elif self.failures > self.settings.failure_threshold:
            self.sample_size *= 2.0
            self.failures = 0

        self.sample_size = max(self.settings.minimum_sample_size, min(MAX_SAMPLE_SIZE, self.sample_size))
        self.storage.append(
            self.table,
            {
                "iteration": self.optimizer.iteration,
                "successes": self.successes,
                "failures": self.failures,
                "sample_size": self.sample_size,
            },
        )
        self._last_best = best

    def restore(self) -> None:
        self._last_best = self.optimizer.best
        last = self.storage.last(self.table) if self.storage.has_table(self.table) else None
        if last is not None:
            self.sample_size = float(last["sample_size"])
            self.successes = int(last["successes"])
            self.failures = int(last["failures"])
