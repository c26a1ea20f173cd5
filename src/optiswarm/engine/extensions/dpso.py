"""DPSO: dispersion by energy injection.

Particles that keep failing to improve their personal best get their base
velocity multiplied by an energy injection factor; particles that improve
are slowed by its inverse. The best particle performs a GCPSO-style random
search whose sample size grows while the swarm stagnates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from optiswarm.engine.algorithm.config.base import _SerializableConfig, setting
from optiswarm.engine.algorithm.pso.extension import PSOExtension
from optiswarm.engine.algorithm.pso.state import VelocityUpdate
from optiswarm.foundation.exceptions import InvalidSettingError

from .gcpso import sample_search

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.pso.particle import Particle
    from optiswarm.foundation.solution import Solution

__all__ = ["DPSO", "DPSOSettings"]

MULTIPLIER = "dpso::multiplier"
FAILURES = "dpso::failures"


@dataclass(frozen=True)
class DPSOSettings(_SerializableConfig):
    energy_injection_factor: float = setting(2.0, "energy-injection-factor", "Velocity multiplier of stagnating particles")
    failure_threshold: int = setting(5, "failure-threshold", "Number of failures before injecting energy")
    minimum_sample_size: float = setting(1e-3, "minimum-sample-size", "Minimum sample size of the best particle")
    maximum_sample_size: float = setting(0.5, "maximum-sample-size", "Maximum sample size of the best particle")
    sample_size_increase_factor: float = setting(
        2.0, "sample-size-increase-factor", "Sample size growth when the global best stagnates"
    )

    def __post_init__(self) -> None:
        if self.energy_injection_factor <= 0:
            raise InvalidSettingError("dpso", "energy-injection-factor", "must be positive")
        if self.minimum_sample_size > self.maximum_sample_size:
            raise InvalidSettingError("dpso", "minimum-sample-size", "must not exceed maximum-sample-size")


class DPSO(PSOExtension):
    """Dispersion Particle Swarm Optimization."""

    name = "dpso"
    description = "Dispersion Particle Swarm Optimization"
    settings_class = DPSOSettings
    table = "dpso_samplesize"

    def __init__(self, settings: DPSOSettings | None = None) -> None:
        super().__init__(settings)
        self.sample_size = self.settings.minimum_sample_size
        self.failures = 0
        self._last_best: "Solution | None" = None

    def initialize(self) -> None:
        self.storage.create_table(self.table)
        self.sample_size = self.settings.minimum_sample_size
        self.failures = 0
        self._last_best = None

    def initialize_solution(self, solution: "Solution") -> None:
        solution.data[MULTIPLIER] = 1.0
        solution.data[FAILURES] = 0

    def velocity_update_components(self, particle: "Particle") -> VelocityUpdate:
        if not self.is_best(particle):
            return VelocityUpdate.DEFAULT
        return VelocityUpdate.DISABLE_GLOBAL | VelocityUpdate.DISABLE_LOCAL

    def update_particle_best(self, particle: "Particle") -> bool:
        factor = self.settings.energy_injection_factor
        particle.data[MULTIPLIER] = 1.0
        if particle.personal_best is None or particle.fitness > particle.personal_best.fitness:
            particle.data[FAILURES] = 0
            particle.data[MULTIPLIER] = 1.0 / factor
        else:
            failures = int(particle.data.get(FAILURES, 0)) + 1
            particle.data[FAILURES] = failures
            if failures > self.settings.failure_threshold:
                particle.data[MULTIPLIER] = factor
                particle.data[FAILURES] = 0
        return False

    def calculate_velocity_update(self, particle: "Particle", best: "Particle | None", i: int) -> float:
        if not self.is_best(particle):
            multiplier = float(particle.data.get(MULTIPLIER, 1.0))
            return (multiplier - 1.0) * particle.base_update[i]
        return sample_search(particle, i, self.sample_size, self.rng.next_double())

    def next_iteration(self) -> None:
        best = self.optimizer.best
        if best is None or self._last_best is None or best.fitness > self._last_best.fitness:
            self.failures = 0
            self.sample_size = self.settings.minimum_sample_size
        else:
            self.failures += 1

        if self.failures > self.settings.failure_threshold:
            self.sample_size *= self.settings.sample_size_increase_factor
            self.failures = 0

        self.sample_size = max(self.settings.minimum_sample_size, min(self.settings.maximum_sample_size, self.sample_size))
        self.storage.append(
            self.table,
            {"iteration": self.optimizer.iteration, "failures": self.failures, "sample_size": self.sample_size},
        )
        self._last_best = best

    def restore(self) -> None:
        self._last_best = self.optimizer.best
        last = self.storage.last(self.table) if self.storage.has_table(self.table) else None
        if last is not None:
            self.sample_size = float(last["sample_size"])
            self.failures = int(last["failures"])
