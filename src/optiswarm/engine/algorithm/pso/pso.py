"""Particle Swarm Optimization with composable extensions.

One synchronous update per iteration. For every particle the optimizer
ORs the gating flags of all PSO extensions, selects the social best (first
extension answer, else the topology best), and lets the particle accumulate
base rule plus extension terms, validate and integrate.

Reference:
    Clerc, M. and Kennedy, J. (2002). The particle swarm - explosion,
    stability, and convergence in a multidimensional complex space.
    IEEE Transactions on Evolutionary Computation, 6(1), pp. 58-73.
"""

from __future__ import annotations

from typing import Any

from optiswarm.engine.algorithm.base import Optimizer
from optiswarm.engine.algorithm.config.pso import PSOConfigData
from optiswarm.foundation.solution import Solution

from .extension import PSOExtension
from .particle import Particle
from .state import VelocityUpdate

__all__ = ["PSO"]


class PSO(Optimizer):
    """Standard Particle Swarm Optimization.

    Examples
    --------
    >>> cfg = PSOConfig().population_size(20).max_iterations(100).minimize().fixed()
    >>> pso = PSO([Boundary("x", -5, 5), Boundary("y", -5, 5)], cfg, seed=3)
    >>> result = pso.run(FunctionProblem(lambda p: p["x"] ** 2 + p["y"] ** 2))
    """

    name = "pso"
    description = "Standard Particle Swarm Optimization"
    config_class = PSOConfigData
    tables = Optimizer.tables + ("personal_bests",)

    @property
    def pso_extensions(self) -> list[PSOExtension]:
        return [ext for ext in self.extensions if isinstance(ext, PSOExtension)]

    def create_solution(self, index: int) -> Particle:
        return Particle(index, self.parameters, self.new_fitness(), self.cfg)

    def reset_solution(self, solution: Solution) -> None:
        solution.reset(self.rng)  # type: ignore[attr-defined]

    def snapshot(self, solution: Solution) -> Solution:
        return solution.snapshot()  # type: ignore[attr-defined]

    # -------------------------------------------------------------------------
    # Update rule
    # -------------------------------------------------------------------------

    def velocity_update_components(self, particle: Particle) -> VelocityUpdate:
        components = VelocityUpdate.DEFAULT
        for ext in self.pso_extensions:
            components |= ext.velocity_update_components(particle)
        return components

    def neighborhood_best(self, particle: Particle) -> Particle | None:
        """Best personal best within ``neighborhood_size // 2`` particles on each side (ring)."""
        n = len(self.population)
        if n == 0:
            return None
        pos = next((k for k, sol in enumerate(self.population) if sol is particle), particle.id % n)
        half = self.cfg.neighborhood_size // 2
        if 2 * half + 1 >= n:
            offsets = range(n)
        else:
            offsets = [(pos + k) % n for k in range(-half, half + 1)]

        best: Particle | None = None
        for k in offsets:
            other = self.population[k]
            candidate = other.personal_best if other.personal_best is not None else other  # type: ignore[attr-defined]
            if best is None or candidate.fitness > best.fitness:
                best = candidate
        return best

    def update_best_for(self, particle: Particle) -> Particle | None:
        """Social best for ``particle``: first extension answer, else the topology best."""
        for ext in self.pso_extensions:
            best = ext.update_best(particle)
            if best is not None:
                return best
        if self.cfg.topology == "ring":
            return self.neighborhood_best(particle)
        return self.best  # type: ignore[return-value]

    def update(self, solution: Solution) -> None:
        particle: Particle = solution  # type: ignore[assignment]
        components = self.velocity_update_components(particle)
        best = self.update_best_for(particle)
        particle.update(best, components, self.pso_extensions, self.rng)

    def update_bests(self) -> None:
        extensions = self.pso_extensions
        for sol in self.population:
            particle: Particle = sol  # type: ignore[assignment]
            handled = False
            for ext in extensions:
                handled = ext.update_particle_best(particle) or handled
            if not handled:
                particle.update_personal_best()
        super().update_bests()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def solution_record(self, solution: Solution) -> dict[str, Any]:
        record = super().solution_record(solution)
        record["velocity"] = solution.velocity.tolist()  # type: ignore[attr-defined]
        return record

    def _persist_iteration(self) -> None:
        super()._persist_iteration()
        for sol in self.population:
            pbest = sol.personal_best  # type: ignore[attr-defined]
            if pbest is None:
                continue
            self.storage.append(
                "personal_bests",
                {
                    "iteration": self.iteration,
                    "index": sol.id,
                    "values": pbest.values.tolist(),
                    "fitness": pbest.fitness.value,
                    "data": dict(pbest.data),
                },
            )

    def restore_solution(self, solution: Solution, row: dict[str, Any]) -> None:
        super().restore_solution(solution, row)
        particle: Particle = solution  # type: ignore[assignment]
        if row.get("velocity") is not None:
            particle.velocity[:] = row["velocity"]

        pbest_rows = self.storage.rows("personal_bests", iteration=row["iteration"], index=row["index"])
        if pbest_rows:
            pb = self.create_solution(particle.id)
            pb.values = pbest_rows[-1]["values"]
            pb.fitness.value = pbest_rows[-1]["fitness"]
            pb.data = dict(pbest_rows[-1].get("data") or {})
            particle.personal_best = pb.snapshot()
