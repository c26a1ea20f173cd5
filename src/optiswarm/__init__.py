"""
optiswarm: particle swarm optimization with composable extensions and
linear constraint handling.

Quick start:

>>> from optiswarm import PSO, PSOConfig, Boundary, FunctionProblem
>>> cfg = PSOConfig().population_size(20).max_iterations(100).minimize().fixed()
>>> pso = PSO([Boundary("x", -5, 5), Boundary("y", -5, 5)], cfg, seed=1)
>>> result = pso.run(FunctionProblem(lambda p: p["x"] ** 2 + p["y"] ** 2))
"""

from __future__ import annotations

from typing import Any

from .engine.algorithm import (
    ADPSO,
    PSO,
    ADPSOConfig,
    ADPSOConfigData,
    Extension,
    Optimizer,
    Particle,
    PSOConfig,
    PSOConfigData,
    PSOExtension,
    VelocityUpdate,
)
from .engine.config import build_optimizer, load_job_spec
from .engine.extensions import DPSO, GCPSO, LPSO, RegPSO, StagePSO, StagnationDetection
from .foundation.constraints import ConstraintMatrix, LinearConstraint, vertices
from .foundation.exceptions import OptiSwarmError
from .foundation.fitness import Fitness
from .foundation.logging import configure_optiswarm_logging
from .foundation.parameter import Boundary, Parameter
from .foundation.problem import FunctionProblem, ProblemProtocol
from .foundation.random import RandomSource
from .foundation.solution import Solution
from .foundation.storage import MemoryStorage, Storage


def __getattr__(name: str) -> Any:
    if name == "__version__":
        from .foundation.version import get_version

        return get_version()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Boundary",
    "Parameter",
    "Fitness",
    "Solution",
    "Particle",
    "RandomSource",
    "Storage",
    "MemoryStorage",
    "ProblemProtocol",
    "FunctionProblem",
    "LinearConstraint",
    "ConstraintMatrix",
    "vertices",
    "Optimizer",
    "PSO",
    "ADPSO",
    "VelocityUpdate",
    "Extension",
    "PSOExtension",
    "PSOConfig",
    "PSOConfigData",
    "ADPSOConfig",
    "ADPSOConfigData",
    "LPSO",
    "GCPSO",
    "DPSO",
    "RegPSO",
    "StagePSO",
    "StagnationDetection",
    "load_job_spec",
    "build_optimizer",
    "configure_optiswarm_logging",
    "OptiSwarmError",
]
