"""Population-based optimizer driver.

The :class:`Optimizer` owns the population, the run's random source, the
ordered extension list and the best-so-far snapshot. Subclasses supply the
solution type and the per-solution update rule.

Ask/tell usage:

>>> opt = PSO(parameters, PSOConfig().population_size(20).max_iterations(50).fixed(), seed=1)
>>> opt.initialize(problem)
>>> while not opt.should_terminate():
...     X = opt.ask()
...     opt.tell(problem.evaluate(X))
>>> result = opt.result()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Sequence

import numpy as np

from optiswarm.foundation.exceptions import ConfigurationError, NotInitializedError, OptimizationError
from optiswarm.foundation.fitness import CompareFunc, Fitness
from optiswarm.foundation.parameter import Boundary, Parameter
from optiswarm.foundation.problem import FunctionProblem, evaluate_problem
from optiswarm.foundation.random import RandomSource
from optiswarm.foundation.solution import Solution
from optiswarm.foundation.storage import MemoryStorage, Storage

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.config.pso import PSOConfigData
    from optiswarm.engine.algorithm.pso.extension import Extension
    from optiswarm.foundation.problem import ProblemProtocol


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


def _as_parameters(items: Iterable[Parameter | Boundary]) -> list[Parameter]:
    params: list[Parameter] = []
    seen: set[str] = set()
    for item in items:
        param = Parameter(item.name, item) if isinstance(item, Boundary) else item.copy()
        if param.name in seen:
            raise ConfigurationError(f"Duplicate parameter '{param.name}'.")
        seen.add(param.name)
        params.append(param)
    if not params:
        raise ConfigurationError("An optimizer needs at least one parameter.")
    return params


class Optimizer:
    """Base class for population-based optimizers.

    Parameters
    ----------
    parameters : iterable of Parameter or Boundary
        Parameter space, in the order shared by every solution.
    config : PSOConfigData
        Frozen run settings (population size, iteration budget, fitness mode).
    storage : Storage, optional
        Persistence collaborator; a fresh :class:`MemoryStorage` by default.
    seed : int
        Seed of the run's :class:`RandomSource`.
    """

    name = "optimizer"
    tables: tuple[str, ...] = ("parameters", "solutions", "iterations")

    def __init__(
        self,
        parameters: Iterable[Parameter | Boundary],
        config: "PSOConfigData",
        storage: Storage | None = None,
        seed: int | None = 0,
    ) -> None:
        self.cfg = config
        self.parameters = _as_parameters(parameters)
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self.seed = seed
        self.rng = RandomSource(seed)
        self.extensions: list["Extension"] = []
        self.population: list[Solution] = []
        self.best: Solution | None = None
        self.iteration = 0
        self.history: list[float | None] = []
        self.fitness_comparator: CompareFunc | None = None
        self._problem: Any = None
        self._initialized = False
        self._pending = False

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.parameters]

    @property
    def boundaries(self) -> list[Boundary]:
        return [p.boundary for p in self.parameters]

    def parameter(self, name: str) -> Parameter | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def parameter_index(self, name: str) -> int:
        for i, param in enumerate(self.parameters):
            if param.name == name:
                return i
        return -1

    def add_extension(self, extension: "Extension") -> "Extension":
        """Attach an extension; extensions run in the order they are added."""
        if self._initialized:
            raise OptimizationError("Extensions must be added before initialization.")
        extension.attach(self)
        self.extensions.append(extension)
        return extension

    def override_fitness_compare(self, func: CompareFunc | None) -> None:
        """Install a custom fitness ordering used by every solution of this run."""
        self.fitness_comparator = func
        for sol in self.population:
            sol.fitness.override_compare(func)
        if self.best is not None:
            self.best.fitness.override_compare(func)

    def new_fitness(self, value: float | None = None) -> Fitness:
        return Fitness(value, self.cfg.fitness_mode, self.fitness_comparator)

    def create_solution(self, index: int) -> Solution:
        return Solution(index, self.parameters, self.new_fitness())

    def reset_solution(self, solution: Solution) -> None:
        solution.values = [self.rng.range(b.min_initial, b.max_initial) for b in self.boundaries]

    def snapshot(self, solution: Solution) -> Solution:
        return solution.clone()

    def update(self, solution: Solution) -> None:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Main run method (batch mode)
    # -------------------------------------------------------------------------

    def run(self, problem: "ProblemProtocol") -> dict[str, Any]:
        """Run until :meth:`should_terminate`, initializing first when needed."""
        if not self._initialized:
            self.initialize(problem)
        else:
            self._problem = self._bind(problem)
        _logger().info(
            "%s run started: %d particles, %d parameters", self.name, len(self.population), len(self.parameters)
        )
        while not self.should_terminate():
            self.step()
        result = self.result()
        _logger().info("%s run finished after %d iterations: best fitness %s", self.name, self.iteration, result["best_F"])
        return result

    # -------------------------------------------------------------------------
    # Ask/Tell Interface
    # -------------------------------------------------------------------------

    def _bind(self, problem: Any) -> Any:
        if isinstance(problem, FunctionProblem) and problem.names is None:
            problem.bind(self.names)
        return problem

    def initialize(self, problem: "ProblemProtocol | None" = None) -> None:
        """Create, seed and evaluate the initial population (iteration 0)."""
        self._problem = self._bind(problem) if problem is not None else None
        self._create_tables()

        for ext in self.extensions:
            ext.initialize()

        self.population = [self.create_solution(i) for i in range(self.cfg.population_size)]
        for sol in self.population:
            self.reset_solution(sol)
            for ext in self.extensions:
                ext.initialize_solution(sol)
        for ext in self.extensions:
            ext.initialize_population()

        self.iteration = 0
        self.best = None
        self.history = []
        self._initialized = True
        self._pending = False

        if self._problem is not None:
            self._receive(evaluate_problem(self._problem, self.positions()))
        else:
            self._pending = True

    def ask(self) -> np.ndarray:
        """Apply one synchronous update to the whole population and return the new positions."""
        if not self._initialized:
            raise NotInitializedError(type(self).__name__)
        if self._pending:
            raise OptimizationError("Previous positions not yet consumed by tell().")

        for ext in self.extensions:
            ext.before_update()
        for sol in self.population:
            self.update(sol)
        self.post_update()
        for ext in self.extensions:
            ext.after_update()

        self._pending = True
        return self.positions()

    def tell(self, F: Sequence[float] | np.ndarray) -> None:
        """Receive fitness values for the positions returned by the last :meth:`ask`."""
        if not self._initialized or not self._pending:
            raise OptimizationError("Call ask() before tell().")
        F = np.asarray(F, dtype=float).reshape(-1)
        if F.shape[0] != len(self.population):
            raise OptimizationError(f"Expected {len(self.population)} fitness values, got {F.shape[0]}.")
        if self.history:
            self.iteration += 1
        self._receive(F)

    def step(self, problem: "ProblemProtocol | None" = None) -> None:
        if problem is not None:
            self._problem = self._bind(problem)
        if self._problem is None:
            raise OptimizationError("No problem to evaluate; pass one to step() or initialize().")
        X = self.ask()
        self.tell(evaluate_problem(self._problem, X))

    def post_update(self) -> None:
        """Hook run after every solution has been updated, before extensions' ``after_update``."""

    def _receive(self, F: np.ndarray) -> None:
        for sol, value in zip(self.population, F):
            sol.fitness.value = float(value)
            for ext in self.extensions:
                ext.update_fitness(sol)
        self._pending = False
        self.update_bests()
        self.history.append(self.best.fitness.value if self.best is not None else None)
        self._persist_iteration()
        for ext in self.extensions:
            ext.next_iteration()
        _logger().debug(
            "Iteration %d: best fitness %s", self.iteration, self.best.fitness.value if self.best else None
        )

    def update_bests(self) -> None:
        for sol in self.population:
            if self.best is None or sol.fitness > self.best.fitness:
                self.best = self.snapshot(sol)

    # -------------------------------------------------------------------------
    # Termination and results
    # -------------------------------------------------------------------------

    def converged(self) -> bool:
        threshold = self.cfg.convergence_threshold
        window = self.cfg.convergence_window
        if threshold <= 0 or self.iteration < self.cfg.min_iterations:
            return False
        recent = [v for v in self.history[-(window + 1) :] if v is not None]
        if len(recent) < window + 1:
            return False
        return bool(max(recent) - min(recent) <= threshold)

    def should_terminate(self) -> bool:
        if not self._initialized:
            return True
        if self.iteration >= self.cfg.max_iterations:
            return True
        if any(ext.finished() for ext in self.extensions):
            return True
        if any(ext.suppress_convergence() for ext in self.extensions):
            return False
        return self.converged()

    def positions(self) -> np.ndarray:
        if not self.population:
            return np.zeros((0, len(self.parameters)), dtype=float)
        return np.vstack([sol.values for sol in self.population])

    def fitness_values(self) -> np.ndarray:
        return np.array(
            [np.nan if sol.fitness.value is None else sol.fitness.value for sol in self.population], dtype=float
        )

    def result(self) -> dict[str, Any]:
        if not self._initialized:
            raise NotInitializedError(type(self).__name__)
        best = self.best.clone() if self.best is not None else None
        return {
            "X": self.positions(),
            "F": self.fitness_values(),
            "best_X": best.values if best is not None else None,
            "best_F": best.fitness.value if best is not None else None,
            "best": best,
            "iterations": self.iteration,
            "history": list(self.history),
        }

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _create_tables(self) -> None:
        for table in self.tables:
            self.storage.create_table(table)
        for param in self.parameters:
            b = param.boundary
            self.storage.append(
                "parameters",
                {"name": param.name, "min": b.min, "max": b.max, "min_initial": b.min_initial, "max_initial": b.max_initial},
            )

    def solution_record(self, solution: Solution) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "index": solution.id,
            "values": solution.values.tolist(),
            "fitness": solution.fitness.value,
            "data": dict(solution.data),
        }

    def _persist_iteration(self) -> None:
        for sol in self.population:
            self.storage.append("solutions", self.solution_record(sol))
        best = self.best
        self.storage.append(
            "iterations",
            {
                "iteration": self.iteration,
                "best_id": best.id if best is not None else None,
                "best_values": best.values.tolist() if best is not None else None,
                "best_fitness": best.fitness.value if best is not None else None,
                "best_data": dict(best.data) if best is not None else {},
                "rng_state": self.rng.state,
            },
        )

    def restore_solution(self, solution: Solution, row: dict[str, Any]) -> None:
        solution.values = row["values"]
        solution.fitness.value = row["fitness"]
        solution.data = dict(row.get("data") or {})

    def restore(self, problem: "ProblemProtocol | None" = None) -> None:
        """Resume from the last iteration persisted in :attr:`storage`."""
        last = self.storage.last("iterations") if self.storage.has_table("iterations") else None
        if last is None:
            raise OptimizationError("Storage holds no persisted iteration to restore from.")
        iteration = int(last["iteration"])
        rows = sorted(self.storage.rows("solutions", iteration=iteration), key=lambda r: r["index"])
        if len(rows) != self.cfg.population_size:
            raise OptimizationError(
                f"Persisted iteration {iteration} has {len(rows)} solutions, expected {self.cfg.population_size}."
            )

        self.population = []
        for row in rows:
            sol = self.create_solution(int(row["index"]))
            self.restore_solution(sol, row)
            self.population.append(sol)

        self.best = None
        if last.get("best_values") is not None:
            best = self.create_solution(int(last["best_id"]))
            best.values = last["best_values"]
            best.fitness.value = last["best_fitness"]
            best.data = dict(last.get("best_data") or {})
            self.best = self.snapshot(best)

        self.iteration = iteration
        self.history = [row["best_fitness"] for row in self.storage.rows("iterations")]
        self.rng.state = last["rng_state"]
        self._problem = self._bind(problem) if problem is not None else None
        self._initialized = True
        self._pending = False

        for ext in self.extensions:
            ext.restore()
        _logger().info("%s restored at iteration %d", self.name, self.iteration)


__all__ = ["Optimizer"]
