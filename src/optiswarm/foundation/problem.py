"""Problem protocol consumed by the optimizers."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np


@runtime_checkable
class ProblemProtocol(Protocol):
    """Evaluates a batch of candidate positions.

    ``X`` has shape ``(n_solutions, n_parameters)`` with columns in the
    optimizer's parameter order; the return value holds one fitness value
    per row.
    """

    def evaluate(self, X: np.ndarray) -> np.ndarray: ...


class FunctionProblem:
    """Adapts a per-solution callable ``func({name: value}) -> float``."""

    def __init__(self, func: Callable[[Mapping[str, float]], float], names: Sequence[str] | None = None) -> None:
        self.func = func
        self.names = list(names) if names is not None else None

    def bind(self, names: Sequence[str]) -> "FunctionProblem":
        self.names = list(names)
        return self

    def evaluate(self, X: np.ndarray) -> np.ndarray:
        if self.names is None:
            raise ValueError("FunctionProblem has no parameter names; call bind() first")
        X = np.atleast_2d(np.asarray(X, dtype=float))
        out = np.empty(X.shape[0], dtype=float)
        for row, x in enumerate(X):
            out[row] = float(self.func(dict(zip(self.names, x))))
        return out


def evaluate_problem(problem: Any, X: np.ndarray) -> np.ndarray:
    F = np.asarray(problem.evaluate(X), dtype=float).reshape(-1)
    if F.shape[0] != X.shape[0]:
        raise ValueError(f"Problem returned {F.shape[0]} fitness values for {X.shape[0]} solutions")
    return F


__all__ = ["ProblemProtocol", "FunctionProblem", "evaluate_problem"]
