"""
Constraint groups over a named subset of parameters.

A :class:`ConstraintMatrix` owns the linear constraints of one group, the
vertices of its feasible polytope (positions) and the vertices of its
nullspace system (velocity directions), both stored transposed: one row per
parameter, one column per vertex.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

import numpy as np

from ..exceptions import BadDimensionError
from ..parameter import Boundary
from ..random import RandomSource
from .linear import TOLERANCE, LinearConstraint, box_constraints, vertices


def _transpose(found: list[np.ndarray], n: int) -> np.ndarray:
    if not found:
        return np.zeros((n, 0), dtype=float)
    return np.column_stack(found)


class ConstraintMatrix:
    """Linear (in)equalities over a parameter subset and their vertex tables.

    Parameters
    ----------
    names : sequence of str
        Constrained parameter names, in constraint-coefficient order.
    indices : sequence of int
        Positions of those parameters in the solution parameter list.
    boundaries : sequence of Boundary
        Boundaries of those parameters. The box rows use the initial range.
    tolerance : float
        Feasibility tolerance.
    """

    def __init__(
        self,
        names: Sequence[str],
        indices: Sequence[int],
        boundaries: Sequence[Boundary],
        tolerance: float = TOLERANCE,
    ) -> None:
        if not (len(names) == len(indices) == len(boundaries)):
            raise BadDimensionError("Names, indices and boundaries must have the same length")
        self.names = list(names)
        self.indices = [int(i) for i in indices]
        self.boundaries = list(boundaries)
        self.tolerance = float(tolerance)

        self.constraints: list[LinearConstraint] = []
        self.nullspace_constraints: list[LinearConstraint] = []
        self.equations = np.zeros((len(self.names), 0), dtype=float)
        self.nullspace_equations = np.zeros((len(self.names), 0), dtype=float)

        self.r1: dict[int, float] = {}
        self.r2: dict[int, float] = {}
        self.direction = np.zeros(len(self.names), dtype=float)

    def __len__(self) -> int:
        return len(self.names)

    def add(self, constraint: LinearConstraint) -> None:
        if len(constraint) != len(self.names):
            raise BadDimensionError(
                f"Number of coefficients ({len(constraint)}) does not match number of parameters ({len(self.names)})",
                len(self.names),
                len(constraint),
            )
        self.constraints.append(constraint)

    def extend(self, constraints: Iterable[LinearConstraint]) -> None:
        for constraint in constraints:
            self.add(constraint)

    @property
    def system(self) -> list[LinearConstraint]:
        """Position system: user constraints plus box rows over the initial range."""
        lower = [b.min_initial for b in self.boundaries]
        upper = [b.max_initial for b in self.boundaries]
        return self.constraints + box_constraints(lower, upper)

    def solve(self) -> bool:
        """Compute both vertex tables. Returns False when the position system is infeasible."""
        n = len(self.names)
        self.nullspace_constraints = [
            LinearConstraint(c.coefficients, 0.0, equality=True) for c in self.constraints if c.equality
        ]

        found = vertices(self.system, self.tolerance)
        if not found:
            return False

        nullspace_system = self.nullspace_constraints + box_constraints([-1.0] * n, [1.0] * n)
        self.equations = _transpose(found, n)
        self.nullspace_equations = _transpose(vertices(nullspace_system, self.tolerance), n)
        return True

    @property
    def is_solved(self) -> bool:
        return self.equations.shape[1] > 0

    @property
    def n_vertices(self) -> int:
        return int(self.equations.shape[1])

    def sample_position(self, rng: RandomSource) -> np.ndarray:
        """Random convex combination of the position vertices."""
        weights = np.array([rng.next_double() for _ in range(self.equations.shape[1])])
        total = weights.sum()
        if total <= 0.0:
            weights = np.full(weights.shape[0], 1.0 / weights.shape[0])
        else:
            weights /= total
        return self.equations @ weights

    def sample_direction(self, rng: RandomSource) -> np.ndarray:
        """Random direction in the nullspace with every component in ``[-1, 1]``."""
        m = self.nullspace_equations.shape[1]
        if m == 0:
            return np.zeros(len(self.names), dtype=float)
        weights = np.array([rng.range(-1.0, 1.0) for _ in range(m)])
        total = np.abs(weights).sum()
        if total <= 0.0:
            return np.zeros(len(self.names), dtype=float)
        return self.nullspace_equations @ (weights / total)

    def draw_coefficients(self, rng: RandomSource, ids: Iterable[int], direction: bool = True) -> None:
        """Draw the shared per-particle ``r1``/``r2`` (and the nullspace direction) for one iteration."""
        for pid in ids:
            self.r1[pid] = rng.next_double()
            self.r2[pid] = rng.next_double()
        if direction:
            self.direction = self.sample_direction(rng)
        else:
            self.direction = np.zeros(len(self.names), dtype=float)

    def _values(self, values: np.ndarray | Mapping[str, float]) -> np.ndarray:
        if isinstance(values, Mapping):
            return np.array([values[name] for name in self.names], dtype=float)
        return np.asarray(values, dtype=float)

    def _first_violated(self, x: np.ndarray, system: list[LinearConstraint]) -> LinearConstraint | None:
        for constraint in system:
            if not constraint.validate(x, self.tolerance):
                return constraint
        return None

    def validate(self, values: np.ndarray | Mapping[str, float]) -> LinearConstraint | None:
        """Return the first user constraint violated by ``values`` (subset order), or None."""
        return self._first_violated(self._values(values), self.constraints)

    def validate_nullspace(self, velocity: np.ndarray | Mapping[str, float]) -> LinearConstraint | None:
        """Return the first homogeneous equality violated by ``velocity``, or None."""
        return self._first_violated(self._values(velocity), self.nullspace_constraints)

    def project_nullspace(self, velocity: np.ndarray) -> np.ndarray:
        """Orthogonal projection of a group velocity onto the nullspace of the equality rows."""
        v = np.asarray(velocity, dtype=float).copy()
        if not self.nullspace_constraints:
            return v
        A = np.vstack([c.coefficients for c in self.nullspace_constraints])
        residual = A @ v
        if not np.any(residual):
            return v
        return v - A.T @ np.linalg.lstsq(A @ A.T, residual, rcond=None)[0]

    def describe(self, constraint: LinearConstraint, values: Sequence[float] | None = None) -> str:
        return constraint.expression(self.names, values)

    def __repr__(self) -> str:
        return (
            f"ConstraintMatrix(parameters={self.names}, constraints={len(self.constraints)}, "
            f"vertices={self.equations.shape[1]}, nullspace={self.nullspace_equations.shape[1]})"
        )


__all__ = ["ConstraintMatrix"]
