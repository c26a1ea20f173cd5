"""
optiswarm exception hierarchy.

Provides user-friendly exceptions with helpful error messages and suggestions.
All optiswarm-specific exceptions inherit from OptiSwarmError for easy catching.

Example:
    try:
        optimizer = build_optimizer(spec)
    except OptiSwarmError as e:
        logger.error("Job rejected: %s", e)
"""

from __future__ import annotations

from typing import Any


class OptiSwarmError(Exception):
    """
    Base exception for all optiswarm errors.

    Attributes:
        message: Human-readable error description
        suggestion: Optional suggestion for fixing the error
        details: Optional dict with additional context
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message with suggestion."""
        msg = self.message
        if self.suggestion:
            msg += f"\n\nSuggestion: {self.suggestion}"
        return msg


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(OptiSwarmError):
    """Raised when a job description or setting is invalid. Never retried."""

    pass


class InvalidSettingError(ConfigurationError):
    """Raised when a setting is unknown or has an unusable value."""

    def __init__(self, owner: str, key: str, reason: str, available: list[str] | None = None) -> None:
        message = f"Invalid setting '{key}' for {owner}: {reason}."
        suggestion = f"Known settings: {', '.join(available)}" if available else None
        super().__init__(message, suggestion, {"owner": owner, "key": key})


class UnknownComponentError(ConfigurationError):
    """Raised when an optimizer or extension name is not registered."""

    def __init__(self, kind: str, name: str, available: list[str], close: list[str] | None = None) -> None:
        message = f"Unknown {kind} '{name}'."
        suggestion = f"Available: {', '.join(available)}"
        if close:
            suggestion += ". Did you mean " + " or ".join(f"'{item}'" for item in close) + "?"
        super().__init__(message, suggestion, {"kind": kind, "name": name, "available": available})


class UnknownParameterError(ConfigurationError):
    """Raised when a constraint names a parameter that does not exist."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        message = f"The parameter '{name}' could not be found."
        suggestion = f"Defined parameters: {', '.join(available)}" if available else None
        super().__init__(message, suggestion, {"parameter": name})


class DuplicateConstraintParameterError(ConfigurationError):
    """Raised when a parameter appears in more than one constraint group."""

    def __init__(self, name: str) -> None:
        message = f"The parameter '{name}' is already part of another constraint group."
        suggestion = "Merge the equations of both groups into a single constraint block"
        super().__init__(message, suggestion, {"parameter": name})


class InfeasibleConstraintsError(ConfigurationError):
    """Raised when a system of linear constraints has no feasible vertex."""

    def __init__(self, parameters: list[str]) -> None:
        message = f"Could not solve system of linear constraints over {', '.join(parameters)}."
        suggestion = "Check that the equations are consistent with the parameter boundaries"
        super().__init__(message, suggestion, {"parameters": parameters})


class BadDimensionError(ConfigurationError):
    """Raised when vectors or coefficient lists have mismatching lengths."""

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None) -> None:
        suggestion = "Provide exactly one coefficient per constrained parameter"
        super().__init__(message, suggestion, {"expected": expected, "actual": actual})


class BoundsError(ConfigurationError):
    """Raised when bounds are invalid or inconsistent."""

    def __init__(self, message: str) -> None:
        suggestion = "Ensure min <= max and that the initial range lies inside the boundary"
        super().__init__(message, suggestion)


# =============================================================================
# Numerical Errors
# =============================================================================


class SingularSystemError(OptiSwarmError):
    """Raised by the Gaussian solver on a (numerically) zero pivot."""

    def __init__(self, column: int) -> None:
        super().__init__(f"Singular linear system (zero pivot in column {column}).", details={"column": column})


# =============================================================================
# Runtime Errors
# =============================================================================


class OptimizationError(OptiSwarmError):
    """Raised when optimization fails during execution."""

    pass


class NotInitializedError(OptimizationError):
    """Raised when an optimizer is stepped before initialization."""

    def __init__(self, name: str) -> None:
        suggestion = "Call initialize() or run() first"
        super().__init__(f"{name} is not initialized.", suggestion)


class ConstraintViolationError(OptimizationError):
    """Raised when particles leave the constrained subspace."""

    def __init__(self, message: str, violations: Any = None) -> None:
        suggestion = "Check constraint definitions or relax constraint bounds"
        super().__init__(message, suggestion, {"violations": violations})


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(OptiSwarmError):
    """Raised when the persistence collaborator cannot serve a request."""

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message, details={"table": table})


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Base
    "OptiSwarmError",
    # Configuration
    "ConfigurationError",
    "InvalidSettingError",
    "UnknownComponentError",
    "UnknownParameterError",
    "DuplicateConstraintParameterError",
    "InfeasibleConstraintsError",
    "BadDimensionError",
    "BoundsError",
    # Numerical
    "SingularSystemError",
    # Runtime
    "OptimizationError",
    "NotInitializedError",
    "ConstraintViolationError",
    # Storage
    "StorageError",
]
