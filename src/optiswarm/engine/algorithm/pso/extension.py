"""
Extension capability.

Extensions are attached to an optimizer in a fixed order and receive the
run lifecycle callbacks. :class:`PSOExtension` adds the closed set of
velocity-rule hooks the PSO engine queries for every particle and update:

* ``velocity_update_components``: flags OR-ed into the base-rule mask
* ``update_best``: replacement social best (first non-None answer wins)
* ``calculate_velocity_update``: additive per-dimension velocity term
* ``validate_velocity_update``: in-place rescaling of the velocity vector
* ``update_particle_best``: take over the personal-best refresh
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

import numpy as np

from optiswarm.foundation.exceptions import ConfigurationError, NotInitializedError

from .state import VelocityUpdate

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.base import Optimizer
    from optiswarm.foundation.random import RandomSource
    from optiswarm.foundation.solution import Solution
    from optiswarm.foundation.storage import Storage

    from .particle import Particle
    from .pso import PSO


class Extension:
    """Base class for optimizer extensions; every hook is a no-op by default."""

    name = "extension"
    description = ""
    settings_class: Any = None
    pso_only = False

    def __init__(self, settings: Any = None) -> None:
        if settings is None and self.settings_class is not None:
            settings = self.settings_class()
        self.settings = settings
        self._optimizer: "Optimizer | None" = None

    @classmethod
    def from_spec(cls, entry: Mapping[str, Any]) -> "Extension":
        """Build from a job-spec entry ``{"name": ..., "settings": {...}}``."""
        from optiswarm.engine.algorithm.config.base import settings_from_mapping

        unknown = sorted(set(entry) - {"name", "settings"})
        if unknown:
            raise ConfigurationError(
                f"Unknown keys for extension '{cls.name}': {', '.join(unknown)}.",
                suggestion="Extension entries accept 'name' and 'settings'",
            )
        settings = None
        if cls.settings_class is not None:
            settings = settings_from_mapping(cls.settings_class, entry.get("settings"), owner=cls.name)
        return cls(settings)

    @property
    def optimizer(self) -> "Optimizer":
        if self._optimizer is None:
            raise NotInitializedError(f"Extension '{self.name}'")
        return self._optimizer

    @property
    def storage(self) -> "Storage":
        return self.optimizer.storage

    @property
    def rng(self) -> "RandomSource":
        return self.optimizer.rng

    def is_best(self, solution: "Solution") -> bool:
        """Whether ``solution`` is the particle currently holding the global best."""
        best = self.optimizer.best
        return best is not None and solution.id == best.id

    def attach(self, optimizer: "Optimizer") -> None:
        if self.pso_only:
            from .pso import PSO

            if not isinstance(optimizer, PSO):
                raise ConfigurationError(
                    f"Extension '{self.name}' applies to PSO optimizers only, not {type(optimizer).__name__}."
                )
        self._optimizer = optimizer

    # Lifecycle -----------------------------------------------------------------

    def initialize(self) -> None:
        """Run start, before the population exists."""

    def initialize_solution(self, solution: "Solution") -> None:
        """A freshly reset solution."""

    def initialize_population(self) -> None:
        """All solutions initialized, before the first evaluation."""

    def before_update(self) -> None:
        pass

    def after_update(self) -> None:
        pass

    def update_fitness(self, solution: "Solution") -> None:
        """``solution`` received its evaluated fitness, before bests are refreshed."""

    def next_iteration(self) -> None:
        """Fitness received and bests refreshed."""

    def finished(self) -> bool:
        return False

    def suppress_convergence(self) -> bool:
        """Whether the optimizer's own convergence test should be skipped."""
        return False

    def restore(self) -> None:
        """The optimizer was resumed from storage."""


class PSOExtension(Extension):
    """Extension that also takes part in the PSO velocity rule."""

    pso_only = True

    @property
    def pso(self) -> "PSO":
        return self.optimizer  # type: ignore[return-value]

    def velocity_update_components(self, particle: "Particle") -> VelocityUpdate:
        return VelocityUpdate.DEFAULT

    def update_best(self, particle: "Particle") -> "Particle | None":
        return None

    def calculate_velocity_update(self, particle: "Particle", best: "Particle | None", i: int) -> float:
        return 0.0

    def validate_velocity_update(self, particle: "Particle", velocity: np.ndarray) -> None:
        pass

    def update_particle_best(self, particle: "Particle") -> bool:
        return False


__all__ = ["Extension", "PSOExtension"]
