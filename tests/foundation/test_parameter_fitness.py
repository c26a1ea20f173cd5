from __future__ import annotations

import math

import pytest

from optiswarm.foundation.exceptions import BoundsError
from optiswarm.foundation.fitness import Fitness, compare_by_mode
from optiswarm.foundation.parameter import Boundary, Parameter


class TestBoundary:
    def test_initial_range_defaults_to_full_boundary(self):
        b = Boundary("x", -2.0, 3.0)
        assert b.min_initial == -2.0
        assert b.max_initial == 3.0
        assert b.span == 5.0
        assert b.initial_span == 5.0

    def test_narrowed_initial_range(self):
        b = Boundary("x", 0.0, 10.0, 2.0, 4.0)
        assert b.initial_span == 2.0
        assert b.span == 10.0

    def test_contains_is_inclusive(self):
        b = Boundary("x", 0.0, 1.0)
        assert b.contains(0.0)
        assert b.contains(1.0)
        assert not b.contains(1.0000001)

    def test_min_above_max_rejected(self):
        with pytest.raises(BoundsError):
            Boundary("x", 1.0, 0.0)

    def test_initial_range_outside_boundary_rejected(self):
        with pytest.raises(BoundsError):
            Boundary("x", 0.0, 1.0, -0.5, 0.5)

    def test_zero_width_boundary_allowed(self):
        b = Boundary("x", 5.0, 5.0)
        assert b.span == 0.0


def test_parameter_copy_shares_boundary():
    b = Boundary("x", 0.0, 1.0)
    p = Parameter("x", b, 0.25)
    q = p.copy()
    q.value = 0.75
    assert p.value == 0.25
    assert q.boundary is b


class TestFitness:
    def test_maximize_by_default(self):
        assert Fitness(2.0) > Fitness(1.0)
        assert Fitness(1.0) < Fitness(2.0)

    def test_minimize(self):
        assert Fitness(1.0, "minimize") > Fitness(2.0, "minimize")
        assert compare_by_mode("minimize", 1.0, 2.0) == 1
        assert compare_by_mode("maximize", 1.0, 2.0) == -1
        assert compare_by_mode("maximize", 1.0, 1.0) == 0

    def test_unset_is_worse_than_any_value(self):
        unset = Fitness()
        assert not unset.is_set
        assert Fitness(-1e300) > unset
        assert Fitness(math.nan).compare(Fitness(0.0)) < 0
        assert Fitness().compare(Fitness()) == 0

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            Fitness(1.0, "sideways")

    def test_override_compare_replaces_mode(self):
        # Prefer values closest to 3.
        def closest_to_three(a, b):
            da, db = abs(a.value - 3.0), abs(b.value - 3.0)
            return (da < db) - (da > db)

        a = Fitness(2.9)
        b = Fitness(10.0)
        assert b > a
        a.override_compare(closest_to_three)
        assert a > b

    def test_clone_keeps_comparator_and_copies_user_data(self):
        f = Fitness(1.0, "minimize")
        f.user_data["evals"] = 3
        g = f.clone()
        g.user_data["evals"] = 4
        g.value = 0.5
        assert f.user_data["evals"] == 3
        assert f.value == 1.0
        assert g.mode == "minimize"
