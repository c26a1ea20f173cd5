"""
Linear constraint handling: vertex enumeration and constraint groups.
"""

from __future__ import annotations

from .linear import (
    TOLERANCE,
    LinearConstraint,
    box_constraints,
    compute_violation,
    is_feasible,
    solve_square,
    vertices,
)
from .matrix import ConstraintMatrix

__all__ = [
    "TOLERANCE",
    "LinearConstraint",
    "ConstraintMatrix",
    "box_constraints",
    "compute_violation",
    "is_feasible",
    "solve_square",
    "vertices",
]
