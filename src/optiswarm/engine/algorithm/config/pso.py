"""PSO and ADPSO configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from optiswarm.foundation.exceptions import InvalidSettingError
from optiswarm.foundation.fitness import MODES

from .base import _require_fields, _SerializableConfig, setting

BOUNDARY_CONDITIONS = ("none", "stick", "bounce")
TOPOLOGIES = ("global", "ring")


@dataclass(frozen=True)
class PSOConfigData(_SerializableConfig):
    population_size: int = setting(20, "population-size", "Number of particles in the swarm")
    max_iterations: int = setting(100, "max-iterations", "Maximum number of iterations")
    min_iterations: int = setting(0, "min-iterations", "Iterations to run before convergence may stop the run")
    convergence_threshold: float = setting(
        0.0, "convergence-threshold", "Best fitness spread over the window that counts as converged (0 disables)"
    )
    convergence_window: int = setting(10, "convergence-window", "Iterations over which convergence is measured")
    max_velocity: float = setting(
        -1.0, "max-velocity", "Maximum particle velocity (in fraction of parameter space, <= 0 disables)"
    )
    cognitive_factor: float = setting(1.49455, "cognitive-factor", "Cognitive factor constant")
    social_factor: float = setting(1.49455, "social-factor", "Social factor constant")
    constriction: float = setting(0.729, "constriction", "Velocity update constriction")
    boundary_condition: str = setting("bounce", "boundary-condition", "Boundary condition (none, stick, bounce)")
    boundary_damping: float = setting(0.95, "boundary-damping", "Boundary velocity damping when condition is bounce")
    topology: str = setting("global", "topology", "Social best topology (global, ring)")
    neighborhood_size: int = setting(2, "neighborhood-size", "Ring neighborhood size (particles on both sides)")
    fitness_mode: str = setting("maximize", "fitness-mode", "Fitness comparison mode (maximize, minimize)")

    def __post_init__(self) -> None:
        owner = type(self).__name__
        if self.population_size < 1:
            raise InvalidSettingError(owner, "population-size", "must be positive")
        if self.max_iterations < 0:
            raise InvalidSettingError(owner, "max-iterations", "must not be negative")
        if self.convergence_window < 1:
            raise InvalidSettingError(owner, "convergence-window", "must be positive")
        _choice(self, "boundary_condition", "boundary-condition", BOUNDARY_CONDITIONS)
        _choice(self, "topology", "topology", TOPOLOGIES)
        _choice(self, "fitness_mode", "fitness-mode", MODES)
        if not 0.0 < self.boundary_damping <= 1.0:
            raise InvalidSettingError(owner, "boundary-damping", "must lie in (0, 1]")
        if self.neighborhood_size <= 0:
            raise InvalidSettingError(owner, "neighborhood-size", "must be positive")


@dataclass(frozen=True)
class ADPSOConfigData(PSOConfigData):
    collision_radius: float = setting(
        0.1, "collision-radius", "Distance (normalized parameter space) below which two particles collide"
    )
    adaptation_constant: float = setting(
        0.5, "adaptation-constant", "Collision radius decay per bounce (<= 0 keeps it fixed)"
    )

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.collision_radius < 0:
            raise InvalidSettingError(type(self).__name__, "collision-radius", "must not be negative")


def _choice(cfg: Any, attr: str, key: str, options: tuple[str, ...]) -> None:
    value = str(getattr(cfg, attr)).strip().lower()
    if value not in options:
        raise InvalidSettingError(type(cfg).__name__, key, f"expected one of {', '.join(options)}, got {value!r}")
    object.__setattr__(cfg, attr, value)


class PSOConfig:
    """Declarative configuration holder for PSO settings.

    Examples
    --------
    >>> cfg = PSOConfig().population_size(30).max_iterations(200).max_velocity(0.2).fixed()
    """

    _data_class: type[PSOConfigData] = PSOConfigData
    _name = "PSO"

    def __init__(self) -> None:
        self._cfg: Dict[str, Any] = {}

    def population_size(self, value: int) -> "PSOConfig":
        self._cfg["population_size"] = int(value)
        return self

    def max_iterations(self, value: int) -> "PSOConfig":
        self._cfg["max_iterations"] = int(value)
        return self

    def min_iterations(self, value: int) -> "PSOConfig":
        self._cfg["min_iterations"] = int(value)
        return self

    def convergence(self, threshold: float, window: int = 10) -> "PSOConfig":
        self._cfg["convergence_threshold"] = float(threshold)
        self._cfg["convergence_window"] = int(window)
        return self

    def max_velocity(self, value: float) -> "PSOConfig":
        self._cfg["max_velocity"] = float(value)
        return self

    def cognitive_factor(self, value: float) -> "PSOConfig":
        self._cfg["cognitive_factor"] = float(value)
        return self

    def social_factor(self, value: float) -> "PSOConfig":
        self._cfg["social_factor"] = float(value)
        return self

    def constriction(self, value: float) -> "PSOConfig":
        self._cfg["constriction"] = float(value)
        return self

    def boundary_condition(self, value: str, damping: float | None = None) -> "PSOConfig":
        self._cfg["boundary_condition"] = value
        if damping is not None:
            self._cfg["boundary_damping"] = float(damping)
        return self

    def topology(self, value: str, neighborhood_size: int | None = None) -> "PSOConfig":
        self._cfg["topology"] = value
        if neighborhood_size is not None:
            self._cfg["neighborhood_size"] = int(neighborhood_size)
        return self

    def minimize(self) -> "PSOConfig":
        self._cfg["fitness_mode"] = "minimize"
        return self

    def maximize(self) -> "PSOConfig":
        self._cfg["fitness_mode"] = "maximize"
        return self

    def fixed(self) -> PSOConfigData:
        _require_fields(self._cfg, ("population_size", "max_iterations"), self._name)
        return self._data_class(**self._cfg)


class ADPSOConfig(PSOConfig):
    """PSO settings plus collision handling."""

    _data_class = ADPSOConfigData
    _name = "ADPSO"

    def collision_radius(self, value: float) -> "ADPSOConfig":
        self._cfg["collision_radius"] = float(value)
        return self

    def adaptation_constant(self, value: float) -> "ADPSOConfig":
        self._cfg["adaptation_constant"] = float(value)
        return self


__all__ = [
    "BOUNDARY_CONDITIONS",
    "TOPOLOGIES",
    "PSOConfigData",
    "PSOConfig",
    "ADPSOConfigData",
    "ADPSOConfig",
]
