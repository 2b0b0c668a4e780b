"""
Reporter configuration.

Usage:
    from stepcast.config import load_config, validate_config

    config, result = load_config("reportportal.yaml")
    if not result.is_valid:
        print(result)

    # Or build in code; validate_config raises ConfigError when invalid
    config = validate_config(ReporterConfig(
        endpoint="https://rp.example.com/api/v1",
        token="...",
        project="web",
    ))
"""

from .loader import interpolate_value, load_config, parse_config
from .models import DEFAULT_LAUNCH_NAME, ReporterConfig
from .validation import ConfigValidator, ValidationError, ValidationResult, validate_config

__all__ = [
    # Loader functions
    "load_config",
    "parse_config",
    "interpolate_value",
    # Models
    "ReporterConfig",
    "DEFAULT_LAUNCH_NAME",
    # Validation
    "ConfigValidator",
    "ValidationError",
    "ValidationResult",
    "validate_config",
]
