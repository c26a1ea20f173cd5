"""
Optimizer configuration: fluent builders and frozen settings dataclasses.
"""

from .base import describe_settings, settings_from_mapping
from .pso import ADPSOConfig, ADPSOConfigData, PSOConfig, PSOConfigData

__all__ = [
    "PSOConfig",
    "PSOConfigData",
    "ADPSOConfig",
    "ADPSOConfigData",
    "settings_from_mapping",
    "describe_settings",
]
