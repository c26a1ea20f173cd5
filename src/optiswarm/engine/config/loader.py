"""
Job-spec loading and optimizer construction.

A job spec is a YAML or JSON document::

    parameters:
      - {name: x, min: -5, max: 5}
      - {name: y, min: -5, max: 5, initial-min: 0, initial-max: 1}
    optimizer:
      name: pso
      seed: 7
      settings: {population-size: 30, max-iterations: 200, max-velocity: 0.2}
    extensions:
      - name: gcpso
        settings: {sample-size: 0.05}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping

from optiswarm.engine.algorithm.base import Optimizer
from optiswarm.engine.algorithm.config.base import settings_from_mapping
from optiswarm.engine.algorithm.registry import resolve_optimizer
from optiswarm.engine.extensions import resolve_extension
from optiswarm.foundation.exceptions import ConfigurationError
from optiswarm.foundation.parameter import Boundary

if TYPE_CHECKING:
    from optiswarm.foundation.problem import ProblemProtocol
    from optiswarm.foundation.storage import Storage


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


def load_job_spec(path: str | Path) -> Dict[str, Any]:
    """
    Load a YAML or JSON job specification.
    """
    spec_path = Path(path).expanduser().resolve()
    if not spec_path.exists():
        raise FileNotFoundError(f"Config file '{spec_path}' does not exist.")
    suffix = spec_path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise ImportError("YAML config requested but PyYAML is not installed. Install with 'pip install pyyaml'.") from exc
        with spec_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    else:
        with spec_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Job spec '{spec_path}' must be a mapping at the top level.")
    return data


def _number(entry: Mapping[str, Any], key: str, name: str) -> float:
    try:
        return float(entry[key])
    except KeyError:
        raise ConfigurationError(f"Parameter '{name}' is missing '{key}'.") from None
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{name}' has a non-numeric '{key}': {entry[key]!r}.") from None


def parse_parameters(spec: Any) -> list[Boundary]:
    """Parse the ``parameters`` section (a list of entries or a ``{name: entry}`` mapping)."""
    if isinstance(spec, Mapping):
        entries = [{"name": name, **(entry or {})} for name, entry in spec.items()]
    elif isinstance(spec, list):
        entries = list(spec)
    else:
        raise ConfigurationError("The job spec needs a 'parameters' list.")

    boundaries: list[Boundary] = []
    for entry in entries:
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise ConfigurationError(f"Invalid parameter entry {entry!r}; every parameter needs a name.")
        name = str(entry["name"]).strip()
        lo = _number(entry, "min", name)
        hi = _number(entry, "max", name)
        initial_min = _number(entry, "initial-min", name) if "initial-min" in entry else None
        initial_max = _number(entry, "initial-max", name) if "initial-max" in entry else None
        boundaries.append(Boundary(name, lo, hi, initial_min, initial_max))
    if not boundaries:
        raise ConfigurationError("The job spec defines no parameters.")
    return boundaries


def build_optimizer(
    spec: Mapping[str, Any],
    problem: "ProblemProtocol | None" = None,
    storage: "Storage | None" = None,
    seed: int | None = None,
) -> Optimizer:
    """
    Validate a job spec and build the optimizer with its extensions attached.

    Configuration errors (unknown names, bad dimensions, duplicate or
    infeasible constraint groups, invalid settings) are raised here, before
    any evaluation. When ``problem`` is given the optimizer is also
    initialized on it.
    """
    boundaries = parse_parameters(spec.get("parameters"))

    opt_spec = spec.get("optimizer") or {}
    if isinstance(opt_spec, str):
        opt_spec = {"name": opt_spec}
    cls = resolve_optimizer(str(opt_spec.get("name", "pso")))
    config = settings_from_mapping(cls.config_class, opt_spec.get("settings"), owner=cls.name)  # type: ignore[attr-defined]

    if seed is None:
        seed = opt_spec.get("seed", spec.get("seed", 0))
    optimizer = cls(boundaries, config, storage=storage, seed=seed)

    for entry in spec.get("extensions") or []:
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, Mapping) or "name" not in entry:
            raise ConfigurationError(f"Invalid extension entry {entry!r}; every extension needs a name.")
        ext_cls = resolve_extension(str(entry["name"]))
        optimizer.add_extension(ext_cls.from_spec(entry))

    _logger().debug(
        "Built %s with %d parameters and extensions %s",
        cls.name,
        len(boundaries),
        [ext.name for ext in optimizer.extensions],
    )
    if problem is not None:
        optimizer.initialize(problem)
    return optimizer


__all__ = ["load_job_spec", "parse_parameters", "build_optimizer"]
