"""
Engine layer: optimizer implementations.

This package contains the optimizer driver, the PSO engine with its
extension capability, the ADPSO variant and the settings builders.
"""

from .adpso import ADPSO
from .base import Optimizer
from .config import ADPSOConfig, ADPSOConfigData, PSOConfig, PSOConfigData
from .pso import PSO, Extension, Particle, PSOExtension, VelocityUpdate
from .registry import get_optimizers_registry, resolve_optimizer

__all__ = [
    "Optimizer",
    "PSO",
    "ADPSO",
    "Particle",
    "VelocityUpdate",
    "Extension",
    "PSOExtension",
    "PSOConfig",
    "PSOConfigData",
    "ADPSOConfig",
    "ADPSOConfigData",
    "get_optimizers_registry",
    "resolve_optimizer",
]
