"""PSO particles: position/velocity state machine and personal best."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Sequence

import numpy as np

from optiswarm.foundation.fitness import Fitness
from optiswarm.foundation.parameter import Parameter
from optiswarm.foundation.random import RandomSource
from optiswarm.foundation.solution import Solution

from .state import VelocityUpdate

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.config.pso import PSOConfigData

    from .extension import PSOExtension

# Reflections allowed per position update before falling back to a hard clamp.
MAX_BOUNCES = 100
# Overshoot (relative to the span) treated as rounding error: clamped, never reflected.
OVERSHOOT_EPS = 1e-9


class Particle(Solution):
    """A solution with a velocity vector and an owned personal-best snapshot.

    Parameters
    ----------
    id : int
        Index of the particle in the population.
    parameters : iterable of Parameter
        Parameter template (copied).
    fitness : Fitness
        Fitness instance owned by this particle.
    settings : PSOConfigData
        Velocity rule constants and boundary policy.
    """

    def __init__(
        self,
        id: int,
        parameters: Iterable[Parameter],
        fitness: Fitness,
        settings: "PSOConfigData",
    ) -> None:
        super().__init__(id, parameters, fitness)
        self.settings = settings
        n = len(self.parameters)
        self.velocity = np.zeros(n, dtype=float)
        self.base_update = np.zeros(n, dtype=float)
        self.personal_best: Particle | None = None

    def _copy_into(self, other: "Particle") -> None:  # type: ignore[override]
        super()._copy_into(other)
        other.settings = self.settings
        other.velocity = self.velocity.copy()
        other.base_update = self.base_update.copy()
        other.personal_best = self.personal_best.clone() if self.personal_best is not None else None

    def snapshot(self) -> "Particle":
        """Deep copy without the personal-best slot, used for stored bests."""
        saved, self.personal_best = self.personal_best, None
        try:
            return self.clone()  # type: ignore[return-value]
        finally:
            self.personal_best = saved

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def reset(self, rng: RandomSource) -> None:
        """Uniform position in the initial range, velocity in ``[-span, span] * factor``."""
        for param in self.parameters:
            b = param.boundary
            param.value = rng.range(b.min_initial, b.max_initial)

        factor = self.settings.max_velocity
        if factor <= 0:
            factor = 1.0
        self.velocity = np.array(
            [rng.range(-p.boundary.span, p.boundary.span) * factor for p in self.parameters], dtype=float
        )
        self.base_update = np.zeros(len(self.parameters), dtype=float)
        self.personal_best = None

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def max_velocity(self, i: int) -> float:
        """Velocity cap of dimension ``i``; not positive when capping is disabled."""
        return self.settings.max_velocity * self.parameters[i].boundary.span

    def limit_velocity(self, i: int) -> None:
        mv = self.max_velocity(i)
        if mv > 0 and abs(self.velocity[i]) > mv:
            self.velocity[i] = mv if self.velocity[i] > 0 else -mv

    def set_position(self, i: int, newpos: float) -> None:
        """Move dimension ``i`` to ``newpos`` under the configured boundary condition."""
        param = self.parameters[i]
        b = param.boundary
        condition = self.settings.boundary_condition

        if condition == "none" or b.contains(newpos):
            param.value = float(newpos)
            return
        excess = max(newpos - b.max, b.min - newpos)
        if condition == "stick" or excess <= OVERSHOOT_EPS * max(b.span, 1.0):
            param.value = float(min(max(newpos, b.min), b.max))
            return

        damping = self.settings.boundary_damping
        bounces = 0
        while (newpos > b.max or newpos < b.min) and bounces < MAX_BOUNCES:
            if newpos > b.max:
                newpos = b.max - damping * (newpos - b.max)
            else:
                newpos = b.min + damping * (b.min - newpos)
            self.velocity[i] = -damping * self.velocity[i]
            bounces += 1
        param.value = float(min(max(newpos, b.min), b.max))

    def update_position(self, i: int) -> None:
        self.set_position(i, self.parameters[i].value + self.velocity[i])

    def velocity_update(
        self,
        best: "Particle | None",
        i: int,
        r1: float,
        r2: float,
        components: VelocityUpdate = VelocityUpdate.DEFAULT,
    ) -> float:
        """Base rule ``constriction * (momentum + r1*c1*(pbest - x) + r2*c2*(best - x))`` for dimension ``i``."""
        s = self.settings
        x = self.parameters[i].value
        momentum = 0.0 if components & VelocityUpdate.DISABLE_MOMENTUM else self.velocity[i]

        pl = 0.0
        if not components & VelocityUpdate.DISABLE_LOCAL and self.personal_best is not None:
            pl = self.personal_best.parameters[i].value - x

        pg = 0.0
        if not components & VelocityUpdate.DISABLE_GLOBAL and best is not None:
            pg = best.parameters[i].value - x

        return s.constriction * (momentum + r1 * s.cognitive_factor * pl + r2 * s.social_factor * pg)

    def update(
        self,
        best: "Particle | None",
        components: VelocityUpdate,
        extensions: Sequence["PSOExtension"],
        rng: RandomSource,
    ) -> None:
        """Accumulate the new velocity, let extensions validate it, then integrate the position."""
        n = len(self.parameters)
        velocity = np.zeros(n, dtype=float)

        for i in range(n):
            r1 = rng.next_double()
            r2 = rng.next_double()
            self.base_update[i] = self.velocity_update(best, i, r1, r2, components)
            velocity[i] = self.base_update[i]
            for ext in extensions:
                velocity[i] += ext.calculate_velocity_update(self, best, i)

        for ext in extensions:
            ext.validate_velocity_update(self, velocity)

        self.velocity = velocity
        for i in range(n):
            self.limit_velocity(i)
            self.update_position(i)

    # -------------------------------------------------------------------------
    # Personal best
    # -------------------------------------------------------------------------

    def update_personal_best(self) -> bool:
        """Replace the personal best with a snapshot when the current fitness is better."""
        if self.personal_best is None or self.fitness > self.personal_best.fitness:
            self.personal_best = self.snapshot()
            return True
        return False


__all__ = ["Particle", "MAX_BOUNCES"]
