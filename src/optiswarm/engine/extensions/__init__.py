"""
Optimizer extensions and their registry.

Extensions are looked up by name when building an optimizer from a job
spec; each registered class provides ``from_spec(entry)``.
"""

from __future__ import annotations

from typing import Any

from optiswarm.engine.algorithm.pso.extension import Extension
from optiswarm.foundation.registry import Registry

from .dpso import DPSO, DPSOSettings
from .gcpso import GCPSO, GCPSOSettings
from .lpso import LPSO, LPSOSettings
from .regpso import RegPSO, RegPSOSettings
from .stagepso import Stage, StagePSO
from .stagnation import StagnationDetection, StagnationSettings

_EXTENSIONS: Registry[type[Extension]] | None = None


def _register_extensions(registry: Registry[type[Extension]]) -> None:
    registry.register("lpso", LPSO)
    registry.register("gcpso", GCPSO)
    registry.register("dpso", DPSO)
    registry.register("regpso", RegPSO)
    registry.register("stagepso", StagePSO)
    registry.register("stagnation", StagnationDetection)
    registry.register("psodd", StagnationDetection)


def get_extensions_registry() -> Registry[type[Extension]]:
    global _EXTENSIONS
    if _EXTENSIONS is None:
        registry: Registry[type[Extension]] = Registry("extension")
        _register_extensions(registry)
        _EXTENSIONS = registry
    return _EXTENSIONS


def resolve_extension(name: str) -> type[Extension]:
    return get_extensions_registry().get(name)


def __getattr__(name: str) -> Any:
    if name == "EXTENSIONS":
        return get_extensions_registry()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "LPSO",
    "LPSOSettings",
    "GCPSO",
    "GCPSOSettings",
    "DPSO",
    "DPSOSettings",
    "RegPSO",
    "RegPSOSettings",
    "Stage",
    "StagePSO",
    "StagnationDetection",
    "StagnationSettings",
    "get_extensions_registry",
    "resolve_extension",
]
