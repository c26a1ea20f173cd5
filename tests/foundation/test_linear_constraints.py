from __future__ import annotations

import numpy as np
import pytest

from optiswarm.foundation.constraints import (
    TOLERANCE,
    LinearConstraint,
    box_constraints,
    compute_violation,
    is_feasible,
    solve_square,
    vertices,
)
from optiswarm.foundation.constraints.linear import constraint_subsets
from optiswarm.foundation.exceptions import BadDimensionError, SingularSystemError


class TestLinearConstraint:
    def test_equality_residual_is_absolute(self):
        c = LinearConstraint([1.0, 1.0], 1.0)
        assert c.residual(np.array([0.5, 0.75])) == pytest.approx(0.25)
        assert c.residual(np.array([0.25, 0.5])) == pytest.approx(0.25)
        assert c.validate(np.array([0.3, 0.7]))

    def test_inequality_residual_is_signed(self):
        c = LinearConstraint([1.0, 2.0], 4.0, equality=False)
        assert c.residual(np.array([1.0, 1.0])) == pytest.approx(-1.0)
        assert c.validate(np.array([1.0, 1.0]))
        assert not c.validate(np.array([1.0, 2.0]))

    def test_validate_uses_tolerance(self):
        c = LinearConstraint([1.0], 1.0)
        assert c.validate(np.array([1.0 + TOLERANCE / 2]))
        assert not c.validate(np.array([1.0 + 10 * TOLERANCE]))

    def test_validate_rejects_wrong_length(self):
        c = LinearConstraint([1.0, 1.0], 1.0)
        assert not c.validate(np.array([1.0]))
        with pytest.raises(BadDimensionError):
            c.residual(np.array([1.0]))

    def test_validate_rejects_nan(self):
        assert not LinearConstraint([1.0], 0.0, equality=False).validate(np.array([np.nan]))

    def test_expression(self):
        eq = LinearConstraint([1.0, 1.0], 1.0)
        assert eq.expression(["x", "y"], [0.25, 0.75]) == "1.000 * x (0.250) + 1.000 * y (0.750) = 1.000"
        ineq = LinearConstraint([2.0, -1.0], 0.5, equality=False)
        assert ineq.expression(["a", "b"]) == "2.000 * a + -1.000 * b <= 0.500"


def test_box_constraints_two_rows_per_unknown():
    rows = box_constraints([0.0, -1.0], [1.0, 2.0])
    assert len(rows) == 4
    assert all(not r.equality for r in rows)
    assert is_feasible(rows, np.array([0.5, 0.0]))
    assert not is_feasible(rows, np.array([1.5, 0.0]))
    assert not is_feasible(rows, np.array([0.5, -1.5]))


class TestSolveSquare:
    def test_solves_with_pivoting(self):
        system = [LinearConstraint([0.0, 1.0], 2.0), LinearConstraint([1.0, 1.0], 3.0)]
        np.testing.assert_allclose(solve_square(system), [1.0, 2.0])

    def test_singular_pivot(self):
        system = [LinearConstraint([1.0, 1.0], 1.0), LinearConstraint([2.0, 2.0], 2.0)]
        with pytest.raises(SingularSystemError):
            solve_square(system)

    def test_non_square(self):
        with pytest.raises(BadDimensionError):
            solve_square([LinearConstraint([1.0, 1.0], 1.0)])


def test_constraint_subsets_are_lexicographic():
    items = ["a", "b", "c"]
    assert list(constraint_subsets(items, 2)) == [("a", "b"), ("a", "c"), ("b", "c")]


class TestVertices:
    def test_single_fixed_parameter(self):
        system = [LinearConstraint([1.0], 5.0)] + box_constraints([0.0], [10.0])
        found = vertices(system)
        assert len(found) == 1
        np.testing.assert_allclose(found[0], [5.0])

    def test_segment_endpoints_in_discovery_order(self):
        system = [LinearConstraint([1.0, 1.0], 1.0)] + box_constraints([0.0, 0.0], [1.0, 1.0])
        found = vertices(system)
        assert len(found) == 2
        np.testing.assert_allclose(found[0], [1.0, 0.0])
        np.testing.assert_allclose(found[1], [0.0, 1.0])

    def test_triangle_with_inequality(self):
        system = [LinearConstraint([1.0, 1.0], 1.0, equality=False)] + box_constraints([0.0, 0.0], [1.0, 1.0])
        found = vertices(system)
        np.testing.assert_allclose(np.array(found), [[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])

    def test_fewer_constraints_than_unknowns(self):
        assert vertices([LinearConstraint([1.0, 1.0, 1.0], 1.0)]) == []
        assert vertices([]) == []

    def test_infeasible_system_has_no_vertices(self):
        system = [LinearConstraint([1.0, 1.0], 3.0)] + box_constraints([0.0, 0.0], [1.0, 1.0])
        assert vertices(system) == []

    def test_mismatched_dimensions(self):
        with pytest.raises(BadDimensionError):
            vertices([LinearConstraint([1.0, 1.0], 1.0), LinearConstraint([1.0], 1.0)])

    def test_every_vertex_feasible_and_distinct(self):
        system = [
            LinearConstraint([1.0, 1.0, 1.0], 1.0),
            LinearConstraint([1.0, -1.0, 0.0], 0.2, equality=False),
        ] + box_constraints([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])
        found = vertices(system)
        assert found
        for v in found:
            assert all(c.validate(v) for c in system)
        for i in range(len(found)):
            for j in range(i + 1, len(found)):
                assert np.max(np.abs(found[i] - found[j])) > TOLERANCE

    def test_convex_combinations_stay_feasible(self):
        system = [
            LinearConstraint([1.0, 2.0, -1.0], 0.5),
            LinearConstraint([1.0, 1.0, 1.0], 2.0, equality=False),
        ] + box_constraints([-1.0, -1.0, -1.0], [2.0, 2.0, 2.0])
        V = np.array(vertices(system))
        assert V.shape[0] >= 2

        rng = np.random.default_rng(4)
        weights = rng.random((100, V.shape[0]))
        weights /= weights.sum(axis=1, keepdims=True)
        X = weights @ V
        assert np.all(compute_violation(system, X) <= 1e-8)


def test_compute_violation_sums_positive_residuals():
    system = [LinearConstraint([1.0], 1.0), LinearConstraint([1.0], 0.5, equality=False)]
    np.testing.assert_allclose(compute_violation(system, np.array([[1.0], [2.0], [0.25]])), [0.5, 2.5, 0.75])
