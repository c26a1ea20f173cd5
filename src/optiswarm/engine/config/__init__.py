"""Job-spec loading (YAML/JSON) and optimizer construction."""

from .loader import build_optimizer, load_job_spec, parse_parameters

__all__ = ["load_job_spec", "parse_parameters", "build_optimizer"]
