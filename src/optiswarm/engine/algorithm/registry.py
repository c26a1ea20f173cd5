"""
Optimizer registry.

Maps optimizer names to optimizer classes so the job-spec builder avoids
hard-coded conditionals. Every registered class exposes ``config_class``
(its frozen settings dataclass) and accepts
``(parameters, config, storage=None, seed=0)``.
"""

from __future__ import annotations

from typing import Any

from optiswarm.foundation.registry import Registry

from .base import Optimizer

_OPTIMIZERS: Registry[type[Optimizer]] | None = None


def _register_optimizers(registry: Registry[type[Optimizer]]) -> None:
    from .adpso import ADPSO
    from .pso import PSO

    registry.register("pso", PSO)
    registry.register("adpso", ADPSO)


def get_optimizers_registry() -> Registry[type[Optimizer]]:
    global _OPTIMIZERS
    if _OPTIMIZERS is None:
        registry: Registry[type[Optimizer]] = Registry("optimizer")
        _register_optimizers(registry)
        _OPTIMIZERS = registry
    return _OPTIMIZERS


def resolve_optimizer(name: str) -> type[Optimizer]:
    """Return the optimizer class registered under ``name`` (UnknownComponentError otherwise)."""
    return get_optimizers_registry().get(name)


def __getattr__(name: str) -> Any:
    if name == "OPTIMIZERS":
        return get_optimizers_registry()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["get_optimizers_registry", "resolve_optimizer"]
