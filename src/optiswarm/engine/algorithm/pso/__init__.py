"""PSO engine: particles, velocity-rule flags, extension capability and the optimizer."""

from .extension import Extension, PSOExtension
from .particle import MAX_BOUNCES, Particle
from .pso import PSO
from .state import VelocityUpdate

__all__ = ["PSO", "Particle", "MAX_BOUNCES", "VelocityUpdate", "Extension", "PSOExtension"]
