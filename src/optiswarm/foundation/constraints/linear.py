"""
Linear constraints and vertex enumeration of the feasible polytope.

A system of ``m`` linear (in)equalities over ``n`` unknowns is searched for
its vertices by solving every exactly-determined ``n``-subset of the system
and keeping the solutions that satisfy the whole system. The constraint
groups handled here are small (a few parameters each) and the search runs
once per job setup, so the ``C(m, n)`` solves are affordable.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, Iterator, Sequence

import numpy as np

from ..exceptions import BadDimensionError, SingularSystemError

TOLERANCE = 1e-6
PIVOT_EPS = 1e-12


class LinearConstraint:
    """``coefficients . x == value`` (equality) or ``coefficients . x <= value``."""

    __slots__ = ("coefficients", "value", "equality")

    def __init__(self, coefficients: Iterable[float], value: float, equality: bool = True) -> None:
        self.coefficients = np.array(list(coefficients), dtype=float)
        self.value = float(value)
        self.equality = bool(equality)

    def __len__(self) -> int:
        return int(self.coefficients.shape[0])

    def residual(self, x: np.ndarray) -> float:
        """Signed amount by which ``x`` violates the constraint (<= 0 means satisfied for inequalities)."""
        x = np.asarray(x, dtype=float)
        if x.shape[0] != len(self):
            raise BadDimensionError("Number of dimensions have to be equal", len(self), int(x.shape[0]))
        s = float(np.dot(self.coefficients, x))
        if self.equality:
            return abs(s - self.value)
        return s - self.value

    def validate(self, x: np.ndarray, tolerance: float = TOLERANCE) -> bool:
        x = np.asarray(x, dtype=float)
        if x.shape[0] != len(self):
            return False
        res = self.residual(x)
        # NaN compares False, so degenerate solves are rejected here.
        return bool(res <= tolerance)

    def expression(self, names: Sequence[str], values: Sequence[float] | None = None) -> str:
        """Algebraic expansion, e.g. ``1.000 * x (0.250) + 1.000 * y (0.750) = 1.000``."""
        terms = []
        for i, coef in enumerate(self.coefficients):
            term = f"{coef:.3f} * {names[i]}"
            if values is not None:
                term += f" ({values[i]:.3f})"
            terms.append(term)
        op = "=" if self.equality else "<="
        return f"{' + '.join(terms)} {op} {self.value:.3f}"

    def __repr__(self) -> str:
        op = "==" if self.equality else "<="
        return f"LinearConstraint({self.coefficients.tolist()} {op} {self.value:g})"


def box_constraints(lower: Sequence[float], upper: Sequence[float]) -> list[LinearConstraint]:
    """Two inequality rows per unknown: ``x_i <= upper_i`` and ``-x_i <= -lower_i``."""
    n = len(lower)
    rows: list[LinearConstraint] = []
    for i in range(n):
        coefficients = np.zeros(n)
        coefficients[i] = 1.0
        rows.append(LinearConstraint(coefficients, upper[i], equality=False))
        coefficients[i] = -1.0
        rows.append(LinearConstraint(coefficients, -lower[i], equality=False))
    return rows


def solve_square(constraints: Sequence[LinearConstraint]) -> np.ndarray:
    """
    Solve the square system formed by treating every constraint as an equality.

    Gaussian elimination to upper-triangular form with partial pivoting,
    followed by back substitution.

    Raises
    ------
    BadDimensionError
        If the coefficient matrix is not square.
    SingularSystemError
        If a pivot is (numerically) zero.
    """
    n = len(constraints)
    A = np.empty((n, n), dtype=float)
    b = np.empty(n, dtype=float)
    for i, constraint in enumerate(constraints):
        if len(constraint) != n:
            raise BadDimensionError("Constraint coefficients must be square", n, len(constraint))
        A[i] = constraint.coefficients
        b[i] = constraint.value

    for k in range(n):
        pivot = k + int(np.argmax(np.abs(A[k:, k])))
        if abs(A[pivot, k]) <= PIVOT_EPS:
            raise SingularSystemError(k)
        if pivot != k:
            A[[k, pivot]] = A[[pivot, k]]
            b[[k, pivot]] = b[[pivot, k]]
        factors = A[k + 1 :, k] / A[k, k]
        A[k + 1 :, k:] -= np.outer(factors, A[k, k:])
        b[k + 1 :] -= factors * b[k]

    x = np.zeros(n, dtype=float)
    for i in range(n - 1, -1, -1):
        x[i] = (b[i] - np.dot(A[i, i + 1 :], x[i + 1 :])) / A[i, i]
    return x


def constraint_subsets(system: Sequence[LinearConstraint], k: int) -> Iterator[tuple[LinearConstraint, ...]]:
    """Every ``k``-combination of the system, in lexicographic index order."""
    return combinations(system, k)


def _contains(found: list[np.ndarray], candidate: np.ndarray, tolerance: float) -> bool:
    return any(np.all(np.abs(v - candidate) <= tolerance) for v in found)


def is_feasible(system: Sequence[LinearConstraint], x: np.ndarray, tolerance: float = TOLERANCE) -> bool:
    return all(c.validate(x, tolerance) for c in system)


def vertices(system: Sequence[LinearConstraint], tolerance: float = TOLERANCE) -> list[np.ndarray]:
    """
    Enumerate the vertices of the polytope described by ``system``.

    Parameters
    ----------
    system : sequence of LinearConstraint
        Full system (box rows included). All constraints must have the same
        number of coefficients.
    tolerance : float
        Feasibility and deduplication tolerance.

    Returns
    -------
    list of np.ndarray
        Distinct feasible vertices in discovery order. Empty when the system
        has fewer constraints than unknowns or no feasible vertex.

    Raises
    ------
    BadDimensionError
        If constraints disagree on the number of unknowns.
    """
    if not system:
        return []

    n = len(system[0])
    for constraint in system[1:]:
        if len(constraint) != n:
            raise BadDimensionError("Number of dimensions of constraints is not the same", n, len(constraint))

    if len(system) < n:
        return []

    found: list[np.ndarray] = []
    for subset in constraint_subsets(system, n):
        try:
            candidate = solve_square(subset)
        except SingularSystemError:
            continue
        if not is_feasible(system, candidate, tolerance):
            continue
        if not _contains(found, candidate, tolerance):
            found.append(candidate)
    return found


def compute_violation(system: Sequence[LinearConstraint], X: np.ndarray) -> np.ndarray:
    """Sum of positive residuals per row of ``X`` (shape ``(N, n)``); zero means feasible."""
    X = np.atleast_2d(np.asarray(X, dtype=float))
    total = np.zeros(X.shape[0], dtype=float)
    for constraint in system:
        s = X @ constraint.coefficients - constraint.value
        total += np.abs(s) if constraint.equality else np.maximum(s, 0.0)
    return total


__all__ = [
    "TOLERANCE",
    "LinearConstraint",
    "box_constraints",
    "solve_square",
    "constraint_subsets",
    "is_feasible",
    "vertices",
    "compute_violation",
]
