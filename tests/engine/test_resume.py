from __future__ import annotations

import numpy as np
import pytest

from optiswarm.engine.algorithm import PSO, PSOConfig
from optiswarm.engine.extensions import GCPSO, LPSO, LPSOSettings
from optiswarm.foundation.constraints import LinearConstraint
from optiswarm.foundation.exceptions import OptimizationError
from optiswarm.foundation.parameter import Boundary
from optiswarm.foundation.problem import FunctionProblem
from optiswarm.foundation.storage import MemoryStorage


def _problem() -> FunctionProblem:
    return FunctionProblem(lambda p: (p["x"] - 0.2) ** 2 + (p["y"] - 0.8) ** 2 + abs(p["z"]))


def _make(storage=None, iters=12) -> PSO:
    cfg = PSOConfig().population_size(8).max_iterations(iters).minimize().fixed()
    space = [Boundary("x", 0.0, 1.0), Boundary("y", 0.0, 1.0), Boundary("z", -2.0, 2.0)]
    opt = PSO(space, cfg, storage=storage, seed=21)
    opt.add_extension(LPSO(LPSOSettings(strict=True), [(["x", "y"], [LinearConstraint([1.0, 1.0], 1.0)])]))
    opt.add_extension(GCPSO())
    return opt


def test_resume_continues_the_same_trajectory(tmp_path):
    reference = _make().run(_problem())

    first = _make(storage=MemoryStorage())
    first.initialize(_problem())
    for _ in range(5):
        first.step()
    path = first.storage.save(tmp_path / "run")

    resumed = _make(storage=MemoryStorage.load(path))
    resumed.restore(_problem())
    assert resumed.iteration == 5
    np.testing.assert_array_equal(resumed.positions(), first.positions())
    result = resumed.run(_problem())

    assert result["iterations"] == reference["iterations"]
    np.testing.assert_array_equal(result["X"], reference["X"])
    assert result["history"] == reference["history"]


def test_restore_recovers_particles_and_extension_state():
    first = _make(storage=MemoryStorage())
    first.initialize(_problem())
    for _ in range(3):
        first.step()

    resumed = _make(storage=first.storage)
    resumed.restore()
    for a, b in zip(first.population, resumed.population):
        np.testing.assert_array_equal(a.velocity, b.velocity)
        np.testing.assert_array_equal(a.personal_best.values, b.personal_best.values)
        assert a.personal_best.fitness.value == b.personal_best.fitness.value
    assert resumed.best.id == first.best.id
    assert resumed.extensions[1].sample_size == first.extensions[1].sample_size


def test_restore_needs_persisted_iterations():
    opt = _make(storage=MemoryStorage())
    with pytest.raises(OptimizationError):
        opt.restore()
