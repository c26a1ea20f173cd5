"""LPSO: linear equality and inequality constraints on parameter subsets.

Each constraint group names a parameter subset and one or more linear
equations over it. Particles are initialized as random convex combinations
of the vertices of the group's feasible polytope, the base cognitive/social
terms are replaced by a rule using one ``r1``/``r2`` pair per particle and
group (so the move stays inside the equality subspace), and the velocity of
each group is rescaled uniformly so the new position stays feasible.

Job-spec form::

    extensions:
      - name: lpso
        settings: {guaranteed-convergence: 0.05}
        constraints:
          - parameters: x1, x2, x3
            equations:
              - coefficients: 1, 1, 1
                value: 1
                equality: yes

Reference:
    Paquet, U. and Engelbrecht, A.P. (2003). A new particle swarm optimiser
    for linearly constrained optimisation. CEC'03, vol. 1, pp. 227-233.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence

import numpy as np

from optiswarm.engine.algorithm.config.base import _SerializableConfig, setting, settings_from_mapping
from optiswarm.engine.algorithm.pso.extension import PSOExtension
from optiswarm.engine.algorithm.pso.state import VelocityUpdate
from optiswarm.foundation.constraints import TOLERANCE, ConstraintMatrix, LinearConstraint
from optiswarm.foundation.exceptions import (
    BadDimensionError,
    ConfigurationError,
    ConstraintViolationError,
    DuplicateConstraintParameterError,
    InfeasibleConstraintsError,
    InvalidSettingError,
    UnknownParameterError,
)

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.base import Optimizer
    from optiswarm.engine.algorithm.pso.particle import Particle
    from optiswarm.foundation.solution import Solution

__all__ = ["LPSO", "LPSOSettings", "parse_constraint_group"]


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass(frozen=True)
class LPSOSettings(_SerializableConfig):
    guaranteed_convergence: float = setting(
        0.0, "guaranteed-convergence", "Sample size of the nullspace search of the best particle (0 disables)"
    )
    has_initial_velocity: bool = setting(
        False, "has-initial-velocity", "Initialize constrained velocities with a random nullspace direction"
    )
    strict: bool = setting(False, "strict", "Raise when a particle violates a constraint after an update")
    tolerance: float = setting(TOLERANCE, "tolerance", "Numerical tolerance of constraint validation")

    def __post_init__(self) -> None:
        if self.guaranteed_convergence < 0:
            raise InvalidSettingError("lpso", "guaranteed-convergence", "must not be negative")
        if self.tolerance <= 0:
            raise InvalidSettingError("lpso", "tolerance", "must be positive")


def _split(value: Any) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in (value or [])]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"yes", "true", "1"}:
        return True
    if text in {"no", "false", "0"}:
        return False
    raise ConfigurationError(f"Invalid equality flag {value!r}.", suggestion="Use yes or no")


def parse_constraint_group(entry: Mapping[str, Any]) -> tuple[list[str], list[LinearConstraint]]:
    """Parse one ``constraints`` block into parameter names and equations."""
    names = _split(entry.get("parameters"))
    if not names:
        raise ConfigurationError("No parameters were specified for a linear constraint group.")

    equations: list[LinearConstraint] = []
    for eq in entry.get("equations") or []:
        coefficients = _split(eq.get("coefficients"))
        if len(coefficients) != len(names):
            raise BadDimensionError(
                "The number of coefficients is not equal to the number of parameters "
                f"(expected {len(names)}, but got {len(coefficients)})",
                len(names),
                len(coefficients),
            )
        try:
            values = [float(c) for c in coefficients]
            value = float(eq.get("value", 0.0))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid number in linear equation: {exc}.") from exc
        equations.append(LinearConstraint(values, value, _as_bool(eq.get("equality", True))))
    return names, equations


class LPSO(PSOExtension):
    """Linear Constraint PSO."""

    name = "lpso"
    description = "Linear Constraint PSO"
    settings_class = LPSOSettings

    def __init__(
        self,
        settings: LPSOSettings | None = None,
        constraints: Iterable[tuple[Sequence[str], Sequence[LinearConstraint]]] = (),
    ) -> None:
        super().__init__(settings)
        self._groups: list[tuple[list[str], list[LinearConstraint]]] = []
        self.matrices: list[ConstraintMatrix] = []
        self._constraint_for: dict[int, ConstraintMatrix] = {}
        self.violations = 0
        for names, equations in constraints:
            self.add_constraint(names, equations)

    @classmethod
    def from_spec(cls, entry: Mapping[str, Any]) -> "LPSO":
        unknown = sorted(set(entry) - {"name", "settings", "constraints"})
        if unknown:
            raise ConfigurationError(f"Unknown keys for extension 'lpso': {', '.join(unknown)}.")
        settings = settings_from_mapping(LPSOSettings, entry.get("settings"), owner=cls.name)
        groups = [parse_constraint_group(group) for group in entry.get("constraints") or []]
        return cls(settings, groups)

    def add_constraint(self, names: Sequence[str], equations: Iterable[LinearConstraint]) -> None:
        """Add a constraint group; resolved when attached (immediately if already attached)."""
        names = [str(n).strip() for n in names]
        if not names:
            raise ConfigurationError("No parameters were specified for a linear constraint group.")
        equations = list(equations)
        for eq in equations:
            if len(eq) != len(names):
                raise BadDimensionError(
                    f"Number of coefficients ({len(eq)}) does not match number of parameters ({len(names)})",
                    len(names),
                    len(eq),
                )
        self._groups.append((names, equations))
        if self._optimizer is not None:
            self._resolve(names, equations)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def attach(self, optimizer: "Optimizer") -> None:
        super().attach(optimizer)
        self.matrices = []
        self._constraint_for = {}
        for names, equations in self._groups:
            self._resolve(names, equations)

    def _resolve(self, names: list[str], equations: list[LinearConstraint]) -> ConstraintMatrix:
        opt = self.optimizer
        indices = []
        for pname in names:
            idx = opt.parameter_index(pname)
            if idx < 0:
                raise UnknownParameterError(pname, opt.names)
            if idx in self._constraint_for or idx in indices:
                raise DuplicateConstraintParameterError(pname)
            indices.append(idx)

        matrix = ConstraintMatrix(names, indices, [opt.parameters[i].boundary for i in indices], self.settings.tolerance)
        matrix.extend(equations)
        if not matrix.solve():
            raise InfeasibleConstraintsError(names)

        self.matrices.append(matrix)
        for idx in indices:
            self._constraint_for[idx] = matrix
        _logger().debug("Constraint group %s: %d vertices", names, matrix.n_vertices)
        return matrix

    def constraint_for(self, index: int) -> ConstraintMatrix | None:
        return self._constraint_for.get(index)

    def initialize(self) -> None:
        self.violations = 0
        storage = self.storage
        for table in ("constraints", "constraint_parameters", "constraint_equations", "constraint_coefficients"):
            storage.create_table(table)

        for matrix in self.matrices:
            cid = storage.append("constraints", {"parameters": list(matrix.names)})
            for idx in matrix.indices:
                storage.append("constraint_parameters", {"constraint": cid, "parameter": idx})
            for eq in matrix.constraints:
                eqid = storage.append(
                    "constraint_equations", {"constraint": cid, "equality": int(eq.equality), "value": eq.value}
                )
                for idx, coefficient in zip(matrix.indices, eq.coefficients):
                    storage.append(
                        "constraint_coefficients", {"equation": eqid, "parameter": idx, "value": float(coefficient)}
                    )

    def _initial_velocity_scale(self, matrix: ConstraintMatrix) -> float:
        min_span = min(b.span for b in matrix.boundaries)
        max_velocity = self.pso.cfg.max_velocity
        return max_velocity * min_span if max_velocity > 0 else min_span

    def initialize_solution(self, solution: "Solution") -> None:
        particle: "Particle" = solution  # type: ignore[assignment]
        for matrix in self.matrices:
            position = matrix.sample_position(self.rng)
            if self.settings.has_initial_velocity:
                velocity = matrix.sample_direction(self.rng) * self._initial_velocity_scale(matrix)
            else:
                velocity = np.zeros(len(matrix), dtype=float)
            for k, idx in enumerate(matrix.indices):
                particle.parameters[idx].value = float(position[k])
                particle.velocity[idx] = float(velocity[k])

    def initialize_population(self) -> None:
        if not self.validate_constraints():
            raise ConstraintViolationError(
                "Initial population violates the linear constraints.", violations=self.violations
            )

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def _guaranteed(self, particle: "Particle") -> bool:
        return self.settings.guaranteed_convergence > 0 and self.is_best(particle)

    def before_update(self) -> None:
        ids = [sol.id for sol in self.optimizer.population]
        for matrix in self.matrices:
            matrix.draw_coefficients(self.rng, ids, direction=self.settings.guaranteed_convergence > 0)

    def velocity_update_components(self, particle: "Particle") -> VelocityUpdate:
        components = VelocityUpdate.DEFAULT | VelocityUpdate.DISABLE_LOCAL | VelocityUpdate.DISABLE_GLOBAL
        if self._guaranteed(particle):
            components |= VelocityUpdate.DISABLE_MOMENTUM
        return components

    def calculate_velocity_update(self, particle: "Particle", best: "Particle | None", i: int) -> float:
        cfg = self.pso.cfg
        matrix = self._constraint_for.get(i)
        x = particle.parameters[i].value
        pbest = particle.personal_best.parameters[i].value if particle.personal_best is not None else x
        guaranteed = self._guaranteed(particle)

        if matrix is None:
            r1 = self.rng.next_double()
            r2 = self.rng.next_double()
            momentum = particle.velocity[i] if guaranteed else 0.0
        elif guaranteed:
            k = matrix.indices.index(i)
            min_span = min(b.span for b in matrix.boundaries)
            return -x + pbest + self.settings.guaranteed_convergence * min_span * matrix.direction[k]
        else:
            r1 = matrix.r1.get(particle.id, 0.0)
            r2 = matrix.r2.get(particle.id, 0.0)
            momentum = 0.0

        pl = pbest - x
        pg = best.parameters[i].value - x if best is not None else 0.0
        return cfg.constriction * (momentum + r1 * cfg.cognitive_factor * pl + r2 * cfg.social_factor * pg)

    def _scale_factor(self, particle: "Particle", velocity: np.ndarray, matrix: ConstraintMatrix) -> float:
        max_velocity = self.pso.cfg.max_velocity
        x = np.array([particle.parameters[idx].value for idx in matrix.indices], dtype=float)
        v = velocity[matrix.indices]

        sc = 1.0
        for k, b in enumerate(matrix.boundaries):
            if v[k] == 0.0:
                continue
            mv = max_velocity * b.span
            if max_velocity > 0 and abs(v[k]) > mv:
                sc = min(sc, mv / abs(v[k]))
            newpos = x[k] + v[k]
            if newpos < b.min:
                sc = min(sc, (b.min - x[k]) / v[k])
            elif newpos > b.max:
                sc = min(sc, (b.max - x[k]) / v[k])

        for eq in matrix.constraints:
            if eq.equality:
                continue
            rate = float(np.dot(eq.coefficients, v))
            slack = eq.value - float(np.dot(eq.coefficients, x))
            if rate > 0 and rate > slack:
                sc = min(sc, slack / rate)
        return max(sc, 0.0)

    def validate_velocity_update(self, particle: "Particle", velocity: np.ndarray) -> None:
        """Project each group's velocity onto the equality nullspace, then scale it
        uniformly so the new position stays feasible and clip rounding overshoot.
        """
        for matrix in self.matrices:
            velocity[matrix.indices] = matrix.project_nullspace(velocity[matrix.indices])
            sc = self._scale_factor(particle, velocity, matrix)
            if sc >= 1.0:
                continue
            for k, idx in enumerate(matrix.indices):
                b = matrix.boundaries[k]
                x = particle.parameters[idx].value
                velocity[idx] *= sc
                if x + velocity[idx] > b.max:
                    velocity[idx] = b.max - x
                elif x + velocity[idx] < b.min:
                    velocity[idx] = b.min - x

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _report(self, message: str, *args: Any) -> None:
        self.violations += 1
        _logger().warning(message, *args)

    def validate_constraints(self) -> bool:
        """Check every particle against the constraints; log each violation with its expansion."""
        cfg = self.pso.cfg
        tolerance = self.settings.tolerance
        ok = True
        for sol in self.optimizer.population:
            particle: "Particle" = sol  # type: ignore[assignment]
            if cfg.max_velocity > 0:
                for i, param in enumerate(particle.parameters):
                    mv = cfg.max_velocity * param.boundary.span
                    if abs(particle.velocity[i]) > mv + tolerance:
                        self._report("Velocity boundary violated: %s = %s", param.name, particle.velocity[i])
                        ok = False

            for matrix in self.matrices:
                values = [particle.parameters[idx].value for idx in matrix.indices]
                violated = matrix.validate(values)
                if violated is not None:
                    self._report("Constraint violated: %s", matrix.describe(violated, values))
                    ok = False
                velocity = [particle.velocity[idx] for idx in matrix.indices]
                violated = matrix.validate_nullspace(velocity)
                if violated is not None:
                    self._report("Velocity left the constraint nullspace: %s", matrix.describe(violated, velocity))
                    ok = False
        return ok

    def after_update(self) -> None:
        if not self.validate_constraints() and self.settings.strict:
            raise ConstraintViolationError(
                f"Particles violate the linear constraints at iteration {self.optimizer.iteration}.",
                violations=self.violations,
            )
