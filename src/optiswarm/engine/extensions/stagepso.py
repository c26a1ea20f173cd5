"""StagePSO: staged fitness.

A cascade of stages, each with a fitness expression and (except the first)
a condition. A particle is scored by the last stage whose condition holds,
walking from the first stage; a later stage always ranks above an earlier
one, so criteria are satisfied one after another instead of being mixed in
a single weighted sum.

Expressions and conditions read the particle's parameter values by name
and the raw problem value as ``fitness``.

Job-spec form::

    extensions:
      - name: stagepso
        stages:
          - fitness
          - expression: 1 / torque
            condition: speed >= 1.1 and speed <= 1.3
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from optiswarm.engine.algorithm.pso.extension import Extension
from optiswarm.foundation.exceptions import ConfigurationError, UnknownParameterError
from optiswarm.foundation.expression import Expression
from optiswarm.foundation.fitness import Fitness, compare_by_mode

if TYPE_CHECKING:
    from optiswarm.engine.algorithm.base import Optimizer
    from optiswarm.foundation.solution import Solution

__all__ = ["Stage", "StagePSO", "STAGE", "RAW_FITNESS"]

# Stage index, kept in ``Fitness.user_data`` and mirrored in ``Solution.data``.
STAGE = "stagepso::stage"
RAW_FITNESS = "stagepso::fitness"

Evaluator = Callable[[Mapping[str, float]], Any]


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


def _describe(func: Evaluator | None) -> str | None:
    if func is None:
        return None
    if isinstance(func, Expression):
        return func.text
    return getattr(func, "__name__", repr(func))


class Stage:
    """One fitness stage.

    Parameters
    ----------
    expression : str or callable
        Stage fitness, evaluated on the particle context.
    condition : str or callable, optional
        Entry condition; a stage without one always applies.
    """

    def __init__(self, expression: str | Evaluator, condition: str | Evaluator | None = None) -> None:
        self.expression: Evaluator = Expression(expression) if isinstance(expression, str) else expression
        self.condition: Evaluator | None = Expression(condition) if isinstance(condition, str) else condition

    @classmethod
    def from_spec(cls, entry: Any) -> "Stage":
        if isinstance(entry, Stage):
            return entry
        if isinstance(entry, str) or callable(entry):
            return cls(entry)
        if isinstance(entry, Mapping):
            unknown = sorted(set(entry) - {"expression", "condition"})
            if unknown or "expression" not in entry:
                raise ConfigurationError(
                    f"Invalid stage {dict(entry)!r}.", suggestion="Stages take 'expression' and optional 'condition'"
                )
            return cls(entry["expression"], entry.get("condition"))
        raise ConfigurationError(f"Invalid stage {entry!r}.")

    @property
    def names(self) -> set[str]:
        found: set[str] = set()
        for func in (self.expression, self.condition):
            if isinstance(func, Expression):
                found |= func.names
        return found

    def validate(self, context: Mapping[str, float]) -> bool:
        return True if self.condition is None else bool(self.condition(context))

    def value(self, context: Mapping[str, float]) -> float:
        return float(self.expression(context))

    def __repr__(self) -> str:
        return f"Stage({_describe(self.expression)!r}, condition={_describe(self.condition)!r})"


class StagePSO(Extension):
    """Staged Fitness PSO."""

    name = "stagepso"
    description = "Staged Fitness PSO"
    pso_only = True
    table = "stages"

    def __init__(self, stages: Iterable[Stage | str | Evaluator | Mapping[str, Any]] = ()) -> None:
        super().__init__()
        self.stages = [Stage.from_spec(stage) for stage in stages]
        if not self.stages:
            raise ConfigurationError("StagePSO needs at least one stage.")
        self.last_best: list[float | None] = []

    @classmethod
    def from_spec(cls, entry: Mapping[str, Any]) -> "StagePSO":
        unknown = sorted(set(entry) - {"name", "stages"})
        if unknown:
            raise ConfigurationError(f"Unknown keys for extension 'stagepso': {', '.join(unknown)}.")
        return cls(entry.get("stages") or [])

    def attach(self, optimizer: "Optimizer") -> None:
        super().attach(optimizer)
        known = set(optimizer.names) | {"fitness"}
        missing = sorted(set().union(*(stage.names for stage in self.stages)) - known)
        if missing:
            raise UnknownParameterError(missing[0], sorted(known))
        optimizer.override_fitness_compare(self.compare)

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def compare(self, a: Fitness, b: Fitness) -> int:
        """Higher stage wins; within a stage the configured mode decides."""
        sa = a.user_data.get(STAGE, -1)
        sb = b.user_data.get(STAGE, -1)
        if sa != sb:
            return 1 if sa > sb else -1
        return compare_by_mode(a.mode, float(a.value), float(b.value))

    def stage_of(self, solution: "Solution") -> Stage | None:
        index = solution.fitness.user_data.get(STAGE)
        return self.stages[index] if index is not None else None

    def context(self, solution: "Solution", raw: float) -> dict[str, float]:
        ctx = {param.name: float(param.value) for param in solution.parameters}
        ctx["fitness"] = raw
        return ctx

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        self.last_best = []
        self.storage.create_table(self.table)
        for stage in self.stages:
            self.storage.append(
                self.table, {"expression": _describe(stage.expression), "condition": _describe(stage.condition)}
            )

    def update_fitness(self, solution: "Solution") -> None:
        raw = float(solution.fitness.value)
        ctx = self.context(solution, raw)
        last = len(self.stages) - 1
        for i, stage in enumerate(self.stages):
            if i == last or not self.stages[i + 1].validate(ctx):
                solution.fitness.user_data[STAGE] = i
                solution.fitness.value = stage.value(ctx)
                solution.data[STAGE] = i
                solution.data[RAW_FITNESS] = raw
                return

    def next_iteration(self) -> None:
        best = self.optimizer.best
        in_last = best is not None and best.fitness.user_data.get(STAGE) == len(self.stages) - 1
        self.last_best.append(best.fitness.value if in_last else None)
        if best is not None:
            _logger().debug(
                "Best particle in stage %s at iteration %d", best.fitness.user_data.get(STAGE), self.optimizer.iteration
            )

    def suppress_convergence(self) -> bool:
        return True

    def best_difference(self, window: int) -> float | None:
        """Spread of the last ``window + 1`` last-stage best values, or None if there are fewer."""
        recent = [v for v in self.last_best if v is not None][-(window + 1) :]
        if len(recent) < window + 1:
            return None
        return max(recent) - min(recent)

    def finished(self) -> bool:
        opt = self.optimizer
        cfg = opt.cfg
        if opt.iteration < cfg.min_iterations:
            return False
        threshold = cfg.convergence_threshold
        window = cfg.convergence_window
        if threshold <= 0 or opt.iteration < window:
            return False
        diff = self.best_difference(window)
        return diff is not None and diff <= threshold

    def restore(self) -> None:
        opt = self.optimizer
        solutions: list["Solution"] = list(opt.population)
        solutions += [p.personal_best for p in opt.population if getattr(p, "personal_best", None) is not None]
        if opt.best is not None:
            solutions.append(opt.best)
        for sol in solutions:
            if STAGE in sol.data:
                sol.fitness.user_data[STAGE] = int(sol.data[STAGE])

        last = len(self.stages) - 1
        self.last_best = []
        for row in self.storage.rows("iterations"):
            data = row.get("best_data") or {}
            self.last_best.append(row["best_fitness"] if data.get(STAGE) == last else None)
