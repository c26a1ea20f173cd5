"""Adaptive Diversity PSO.

PSO with collision handling: after every swarm update, particles closer than
an (adaptive) collision radius bounce off each other. The radius shrinks per
particle with every bounce when an adaptation constant in ``(0, 1)`` is set.
"""

from __future__ import annotations

import numpy as np

from optiswarm.engine.algorithm.config.pso import ADPSOConfigData

from .pso import PSO, Particle

__all__ = ["ADPSO"]


class ADPSO(PSO):
    """Adaptive Diversity Particle Swarm Optimization."""

    name = "adpso"
    description = "Adaptive Diversity Particle Swarm Optimization"
    config_class = ADPSOConfigData

    def create_solution(self, index: int) -> Particle:
        particle = super().create_solution(index)
        particle.data["bounced"] = 0
        return particle

    @staticmethod
    def bounced(particle: Particle) -> int:
        return int(particle.data.get("bounced", 0))

    def distance(self, a: Particle, b: Particle) -> float:
        """Euclidean distance with every dimension scaled to its span, times the total span."""
        spans = np.array([bd.span for bd in self.boundaries], dtype=float)
        dd = a.values - b.values
        scaled = np.divide(dd * dd, spans, out=np.zeros_like(dd), where=spans > 0)
        return float(np.sqrt(scaled.sum() * spans.sum()))

    def collides(self, a: Particle, b: Particle) -> bool:
        c = self.cfg.adaptation_constant
        match = 2.0
        if c > 0:
            match = c ** self.bounced(a) + c ** self.bounced(b)
        return self.distance(a, b) < match * self.cfg.collision_radius

    def bounce(self, p1: Particle, p2: Particle) -> None:
        c = self.cfg.adaptation_constant
        f1 = 1.0 + c ** -self.bounced(p1) if c > 0 else 2.0
        f2 = 1.0 + c ** -self.bounced(p2) if c > 0 else 2.0
        for i in range(len(self.parameters)):
            ov1 = p1.velocity[i]
            ov2 = p2.velocity[i]
            p1.velocity[i] = -ov1
            p2.velocity[i] = -ov2
            p1.set_position(i, p1.parameters[i].value - f1 * ov1)
            p2.set_position(i, p2.parameters[i].value - f2 * ov2)
        p1.data["bounced"] = self.bounced(p1) + 1
        p2.data["bounced"] = self.bounced(p2) + 1

    def post_update(self) -> None:
        n = len(self.population)
        for i in range(n):
            p1: Particle = self.population[i]  # type: ignore[assignment]
            for j in range(i + 1, n):
                p2: Particle = self.population[j]  # type: ignore[assignment]
                if self.collides(p1, p2):
                    self.bounce(p1, p2)
