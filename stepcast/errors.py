"""
Exception types raised by stepcast.

Only configuration errors, the initial launch failure and inconsistent
meta-step data ever reach the caller. Failures of individual item
operations are logged and swallowed by the reporting core.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config.validation import ValidationResult


class StepcastError(Exception):
    """Base class for all stepcast errors."""


class ConfigError(StepcastError):
    """Reporter configuration is missing required fields or is malformed."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(str(result))


class ReportingError(StepcastError):
    """A call to the remote reporting service failed."""

    def __init__(self, message: str, status: int | None = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class MetaStepCycleError(StepcastError):
    """A step's chain of enclosing meta-steps loops back onto itself."""
