from __future__ import annotations

import logging

import numpy as np
import pytest

from optiswarm.engine.algorithm import PSO, PSOConfig, VelocityUpdate
from optiswarm.engine.extensions import DPSO, GCPSO, LPSO, LPSOSettings
from optiswarm.engine.extensions.lpso import parse_constraint_group
from optiswarm.foundation.constraints import LinearConstraint
from optiswarm.foundation.exceptions import (
    BadDimensionError,
    ConfigurationError,
    ConstraintViolationError,
    DuplicateConstraintParameterError,
    InfeasibleConstraintsError,
    UnknownParameterError,
)
from optiswarm.foundation.parameter import Boundary
from optiswarm.foundation.problem import FunctionProblem

SUM_TO_ONE = (["x", "y"], [LinearConstraint([1.0, 1.0], 1.0)])
TRIANGLE = (["x", "y"], [LinearConstraint([1.0, 1.0], 1.0, equality=False)])


def _build(groups, space=None, settings=None, pop=10, iters=30, problem=None, **cfg_kw):
    builder = PSOConfig().population_size(pop).max_iterations(iters).minimize()
    if "max_velocity" in cfg_kw:
        builder = builder.max_velocity(cfg_kw["max_velocity"])
    space = space or [Boundary("x", 0.0, 1.0), Boundary("y", 0.0, 1.0)]
    opt = PSO(space, builder.fixed(), seed=cfg_kw.get("seed", 0))
    lpso = opt.add_extension(LPSO(settings or LPSOSettings(strict=True), groups))
    if problem is not None:
        opt.initialize(problem)
    return opt, lpso


class TestFixedParameter:
    def test_single_vertex_and_zero_motion(self):
        problem = FunctionProblem(lambda p: p["x"])
        opt, lpso = _build([(["x"], [LinearConstraint([1.0], 5.0)])], space=[Boundary("x", 0.0, 10.0)], problem=problem)
        np.testing.assert_allclose(lpso.matrices[0].equations, [[5.0]])
        assert np.all(opt.positions() == 5.0)
        for _ in range(10):
            opt.step()
            assert np.all(opt.positions() == 5.0)

    def test_guaranteed_convergence_keeps_value(self):
        problem = FunctionProblem(lambda p: p["x"])
        settings = LPSOSettings(guaranteed_convergence=0.1, strict=True)
        opt, _ = _build(
            [(["x"], [LinearConstraint([1.0], 5.0)])], space=[Boundary("x", 0.0, 10.0)], settings=settings, problem=problem
        )
        opt.run(problem)
        assert np.all(opt.positions() == 5.0)


class TestSumToOne:
    def test_vertices(self):
        opt, lpso = _build([SUM_TO_ONE])
        np.testing.assert_allclose(lpso.matrices[0].equations.T, [[1.0, 0.0], [0.0, 1.0]])

    @pytest.mark.parametrize("gc", [0.0, 0.05])
    def test_positions_stay_on_segment(self, gc):
        problem = FunctionProblem(lambda p: (p["x"] - 0.3) ** 2 + p["z"] ** 2)
        space = [Boundary("x", 0.0, 1.0), Boundary("z", -1.0, 1.0), Boundary("y", 0.0, 1.0)]
        settings = LPSOSettings(guaranteed_convergence=gc, strict=True)
        opt, _ = _build([SUM_TO_ONE], space=space, settings=settings, problem=problem)
        for _ in range(40):
            opt.step()
            X = opt.positions()
            np.testing.assert_allclose(X[:, 0] + X[:, 2], 1.0, atol=1e-6)
            assert np.all((X[:, [0, 2]] >= 0.0) & (X[:, [0, 2]] <= 1.0))
        assert abs(opt.best.values[0] - 0.3) < 0.1

    def test_initial_velocity_lies_in_nullspace(self):
        settings = LPSOSettings(has_initial_velocity=True, strict=True)
        opt, _ = _build([SUM_TO_ONE], settings=settings, problem=FunctionProblem(lambda p: p["x"]))
        V = np.vstack([sol.velocity for sol in opt.population])
        np.testing.assert_allclose(V.sum(axis=1), 0.0, atol=1e-12)
        assert np.any(V != 0.0)
        assert np.all(np.abs(V) <= 1.0)

    def test_gating(self):
        settings = LPSOSettings(guaranteed_convergence=0.1)
        opt, lpso = _build([SUM_TO_ONE], settings=settings, problem=FunctionProblem(lambda p: p["x"]))
        best = opt.population[opt.best.id]
        other = next(sol for sol in opt.population if sol.id != opt.best.id)
        assert lpso.velocity_update_components(other) == (
            VelocityUpdate.DEFAULT | VelocityUpdate.DISABLE_LOCAL | VelocityUpdate.DISABLE_GLOBAL
        )
        assert lpso.velocity_update_components(best) & VelocityUpdate.DISABLE_MOMENTUM

    def test_persists_constraint_tables(self):
        opt, _ = _build([SUM_TO_ONE], problem=FunctionProblem(lambda p: p["x"]))
        store = opt.storage
        assert store.rows("constraints")[0]["parameters"] == ["x", "y"]
        assert len(store.rows("constraint_parameters")) == 2
        eq = store.rows("constraint_equations")[0]
        assert eq["equality"] == 1 and eq["value"] == 1.0
        assert [r["value"] for r in store.rows("constraint_coefficients", equation=eq["id"])] == [1.0, 1.0]


class TestRescaling:
    def _check(self, group, make_velocity, feasible):
        opt, lpso = _build([group], problem=FunctionProblem(lambda p: p["x"]))
        rng = np.random.default_rng(17)
        particle = opt.population[0]
        for _ in range(300):
            x = lpso.matrices[0].sample_position(opt.rng)
            particle.values = x
            velocity = make_velocity(rng)
            lpso.validate_velocity_update(particle, velocity)
            newpos = x + velocity
            assert np.all(newpos >= -1e-12) and np.all(newpos <= 1.0 + 1e-12)
            assert feasible(newpos)

    def test_arbitrary_velocities_respect_box_and_inequality(self):
        self._check(
            TRIANGLE,
            lambda rng: rng.normal(scale=rng.choice([0.01, 1.0, 100.0]), size=2),
            lambda pos: pos.sum() <= 1.0 + 1e-9,
        )

    def test_nullspace_velocities_keep_equality(self):
        def make(rng):
            d = rng.normal(scale=rng.choice([0.01, 1.0, 100.0]))
            return np.array([d, -d])

        self._check(SUM_TO_ONE, make, lambda pos: abs(pos.sum() - 1.0) <= 1e-9)

    def test_scale_is_uniform_across_group(self):
        opt, lpso = _build([TRIANGLE], problem=FunctionProblem(lambda p: p["x"]))
        particle = opt.population[0]
        particle.values = [0.2, 0.2]
        velocity = np.array([2.0, 1.0])
        lpso.validate_velocity_update(particle, velocity)
        # x hits its bound first (0.8 / 2.0 = 0.4), but x + y <= 1 caps at 0.6 / 3.0 = 0.2.
        np.testing.assert_allclose(velocity, [0.4, 0.2])

    def test_max_velocity_is_part_of_the_scale(self):
        opt, lpso = _build([TRIANGLE], problem=FunctionProblem(lambda p: p["x"]), max_velocity=0.05)
        particle = opt.population[0]
        particle.values = [0.2, 0.2]
        velocity = np.array([0.1, 0.05])
        lpso.validate_velocity_update(particle, velocity)
        np.testing.assert_allclose(velocity, [0.05, 0.025])


class TestViolations:
    def test_warning_carries_expansion(self, caplog):
        opt, lpso = _build([SUM_TO_ONE], settings=LPSOSettings(), problem=FunctionProblem(lambda p: p["x"]))
        opt.population[0].values = [0.9, 0.9]
        with caplog.at_level(logging.WARNING, logger="optiswarm.engine.extensions.lpso"):
            lpso.after_update()
        assert "Constraint violated: 1.000 * x (0.900) + 1.000 * y (0.900) = 1.000" in caplog.text
        assert lpso.violations == 1

    def test_nullspace_and_velocity_bound_reported(self, caplog):
        settings = LPSOSettings()
        opt, lpso = _build([SUM_TO_ONE], settings=settings, problem=FunctionProblem(lambda p: p["x"]), max_velocity=0.1)
        opt.population[0].velocity[:] = [0.5, 0.5]
        with caplog.at_level(logging.WARNING, logger="optiswarm.engine.extensions.lpso"):
            assert not lpso.validate_constraints()
        assert "Velocity boundary violated" in caplog.text
        assert "Velocity left the constraint nullspace" in caplog.text

    def test_strict_mode_raises(self):
        opt, lpso = _build([SUM_TO_ONE], problem=FunctionProblem(lambda p: p["x"]))
        opt.population[1].values = [0.0, 0.0]
        with pytest.raises(ConstraintViolationError):
            lpso.after_update()


class TestSetupErrors:
    def test_unknown_parameter(self):
        with pytest.raises(UnknownParameterError):
            _build([(["x", "w"], [LinearConstraint([1.0, 1.0], 1.0)])])

    def test_parameter_in_two_groups(self):
        with pytest.raises(DuplicateConstraintParameterError):
            _build([SUM_TO_ONE, (["y"], [LinearConstraint([1.0], 0.5)])])

    def test_parameter_twice_in_one_group(self):
        with pytest.raises(DuplicateConstraintParameterError):
            _build([(["x", "x"], [LinearConstraint([1.0, 1.0], 1.0)])])

    def test_infeasible_group(self):
        with pytest.raises(InfeasibleConstraintsError):
            _build([(["x", "y"], [LinearConstraint([1.0, 1.0], 3.0)])])

    def test_coefficient_count(self):
        with pytest.raises(BadDimensionError):
            LPSO(constraints=[(["x", "y"], [LinearConstraint([1.0], 1.0)])])

    def test_group_added_after_attach_is_resolved(self):
        opt, lpso = _build([])
        lpso.add_constraint(["x", "y"], [LinearConstraint([1.0, 1.0], 1.0)])
        assert lpso.constraint_for(1) is lpso.matrices[0]
        assert lpso.constraint_for(5) is None


class TestParseConstraintGroup:
    def test_comma_separated_strings(self):
        names, eqs = parse_constraint_group(
            {"parameters": "x, y , z", "equations": [{"coefficients": "1, 2, 3", "value": 4, "equality": "no"}]}
        )
        assert names == ["x", "y", "z"]
        np.testing.assert_allclose(eqs[0].coefficients, [1.0, 2.0, 3.0])
        assert eqs[0].value == 4.0
        assert not eqs[0].equality

    def test_lists_and_default_equality(self):
        names, eqs = parse_constraint_group({"parameters": ["a"], "equations": [{"coefficients": [2], "value": 1}]})
        assert names == ["a"] and eqs[0].equality

    def test_mismatched_coefficients(self):
        with pytest.raises(BadDimensionError):
            parse_constraint_group({"parameters": "x, y", "equations": [{"coefficients": "1", "value": 1}]})

    def test_bad_values(self):
        with pytest.raises(ConfigurationError):
            parse_constraint_group({"parameters": "x", "equations": [{"coefficients": "a", "value": 1}]})
        with pytest.raises(ConfigurationError):
            parse_constraint_group({"parameters": "x", "equations": [{"coefficients": "1", "equality": "maybe"}]})
        with pytest.raises(ConfigurationError):
            parse_constraint_group({"parameters": ""})

    def test_from_spec(self):
        lpso = LPSO.from_spec(
            {
                "name": "lpso",
                "settings": {"guaranteed-convergence": 0.05, "strict": "yes"},
                "constraints": [{"parameters": "x, y", "equations": [{"coefficients": "1, 1", "value": 1}]}],
            }
        )
        assert lpso.settings.guaranteed_convergence == 0.05
        assert lpso.settings.strict is True
        with pytest.raises(ConfigurationError):
            LPSO.from_spec({"name": "lpso", "constraint": []})


class TestComposition:
    @pytest.mark.parametrize("extension", [GCPSO, DPSO])
    def test_constraints_hold_with_search_extensions(self, extension):
        problem = FunctionProblem(lambda p: (p["x"] - 0.2) ** 2 + (p["y"] - 0.8) ** 2 + abs(p["z"]))
        space = [Boundary("x", 0.0, 1.0), Boundary("y", 0.0, 1.0), Boundary("z", -2.0, 2.0)]
        cfg = PSOConfig().population_size(8).max_iterations(30).minimize().fixed()
        opt = PSO(space, cfg, seed=21)
        lpso = opt.add_extension(LPSO(LPSOSettings(strict=True), [SUM_TO_ONE]))
        opt.add_extension(extension())
        opt.initialize(problem)
        for _ in range(20):
            opt.step()
            X = opt.positions()
            assert np.abs(X[:, 0] + X[:, 1] - 1.0).max() <= 1e-6
            assert np.all((X[:, :2] >= 0.0) & (X[:, :2] <= 1.0))
        assert lpso.violations == 0

    def test_off_nullspace_term_is_projected(self):
        opt, lpso = _build([SUM_TO_ONE], problem=FunctionProblem(lambda p: p["x"]))
        particle = opt.population[0]
        particle.values = [0.5, 0.5]
        velocity = np.array([0.2, 0.0])
        lpso.validate_velocity_update(particle, velocity)
        np.testing.assert_allclose(velocity, [0.1, -0.1])
