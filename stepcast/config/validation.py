"""
Validation of reporter configuration.

Errors are collected with their path and a suggestion rather than
raised one at a time, so a misconfigured file reports every problem
at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ConfigError
from .models import ReporterConfig


# ─────────────────────────────────────────────────────────────────────────────
# Validation Result Types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ValidationError:
    """Represents a single validation error with context."""
    path: str  # e.g., "attributes[0].key"
    message: str
    value: Any = None
    suggestion: str | None = None

    def __str__(self) -> str:
        parts = [f"❌ {self.path}: {self.message}"]
        if self.value is not None:
            parts.append(f"   Got: {repr(self.value)}")
        if self.suggestion:
            parts.append(f"   💡 {self.suggestion}")
        return "\n".join(parts)


@dataclass
class ValidationResult:
    """Result of validation."""
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(
        self,
        path: str,
        message: str,
        value: Any = None,
        suggestion: str | None = None
    ) -> None:
        self.errors.append(ValidationError(path, message, value, suggestion))

    def __str__(self) -> str:
        if self.is_valid:
            return "✅ Validation passed"
        lines = [f"Validation failed with {len(self.errors)} error(s):\n"]
        lines.extend(str(e) for e in self.errors)
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Config Validator
# ─────────────────────────────────────────────────────────────────────────────

class ConfigValidator:
    """Validates a ReporterConfig before any remote call is made."""

    REQUIRED_FIELDS = ("endpoint", "token", "project")

    def __init__(self, config: ReporterConfig):
        self.config = config
        self.result = ValidationResult()

    def validate(self) -> ValidationResult:
        """Run all validation checks and return result."""
        self._validate_required()
        self._validate_endpoint()
        self._validate_attributes()
        self._validate_timeout()
        return self.result

    def _validate_required(self) -> None:
        for name in self.REQUIRED_FIELDS:
            value = getattr(self.config, name)
            if not value:
                self.result.add_error(
                    name,
                    f"Required field '{name}' is missing",
                    suggestion=f"Required fields: {', '.join(self.REQUIRED_FIELDS)}"
                )
            elif not isinstance(value, str):
                self.result.add_error(name, "Must be a string", value=value)

    def _validate_endpoint(self) -> None:
        endpoint = self.config.endpoint
        if not endpoint or not isinstance(endpoint, str):
            return
        if not (endpoint.startswith("http://") or endpoint.startswith("https://")):
            self.result.add_error(
                "endpoint",
                "Must be a valid HTTP(S) URL",
                value=endpoint,
                suggestion="URL should start with 'http://' or 'https://'"
            )
        elif "/api" not in endpoint:
            self.result.add_error(
                "endpoint",
                "No '/api' path specified",
                value=endpoint,
                suggestion="Use format https://reportportalhost/api/v1 for endpoint"
            )

    def _validate_attributes(self) -> None:
        attributes = self.config.attributes
        if not isinstance(attributes, list):
            self.result.add_error(
                "attributes",
                "Must be a list of {key, value} objects",
                value=attributes
            )
            return

        for i, attribute in enumerate(attributes):
            path = f"attributes[{i}]"
            if not isinstance(attribute, dict):
                self.result.add_error(path, "Attribute must be an object", value=attribute)
                continue
            if "value" not in attribute:
                self.result.add_error(
                    f"{path}.value",
                    "Attribute requires a 'value' field",
                    suggestion="Use '{key: os, value: linux}' or '{value: smoke}'"
                )
            unknown = set(attribute) - {"key", "value", "system"}
            if unknown:
                self.result.add_error(
                    path,
                    f"Unknown attribute field(s): {', '.join(sorted(unknown))}",
                    suggestion="Valid fields are: key, value, system"
                )

    def _validate_timeout(self) -> None:
        timeout = self.config.timeout_ms
        if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
            self.result.add_error(
                "timeout_ms",
                "Must be a positive integer (milliseconds)",
                value=timeout
            )


def validate_config(config: ReporterConfig) -> ReporterConfig:
    """
    Validate a config, raising on the first invalid one.

    Raises:
        ConfigError: If any check fails; carries the full ValidationResult
    """
    result = ConfigValidator(config).validate()
    if not result.is_valid:
        raise ConfigError(result)
    return config
