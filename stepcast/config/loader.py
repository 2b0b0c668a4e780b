"""
Config loader for reporter settings.

This module provides the public API for loading reporter configuration
from YAML files or already-parsed dicts. String values may reference
environment variables as {{env.NAME}} so tokens stay out of the file.
"""

from __future__ import annotations

import os
import re
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import ReporterConfig
from .validation import ConfigValidator, ValidationResult

ENV_PATTERN = re.compile(r"\{\{env\.(\w+)\}\}")

KNOWN_FIELDS = {f.name for f in fields(ReporterConfig)}


def interpolate_value(value: Any, env: Mapping[str, str]) -> Any:
    """Interpolate {{env.NAME}} references in a value."""
    if isinstance(value, str):
        def replace_env(match: re.Match) -> str:
            return str(env.get(match.group(1), match.group(0)))
        return ENV_PATTERN.sub(replace_env, value)
    elif isinstance(value, dict):
        return {k: interpolate_value(v, env) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_value(v, env) for v in value]
    return value


def parse_config(
    data: dict[str, Any],
    env: Mapping[str, str] | None = None,
) -> tuple[ReporterConfig | None, ValidationResult]:
    """
    Build and validate a ReporterConfig from a dict.

    Args:
        data: Raw settings, keys matching ReporterConfig fields
        env: Variables for {{env.NAME}} interpolation (defaults to os.environ)

    Returns:
        Tuple of (ReporterConfig or None, ValidationResult)
    """
    result = ValidationResult()
    unknown = set(data) - KNOWN_FIELDS
    for key in sorted(unknown):
        result.add_error(
            key,
            f"Unknown field '{key}'",
            suggestion=f"Valid fields are: {', '.join(sorted(KNOWN_FIELDS))}"
        )
    if not result.is_valid:
        return None, result

    values = interpolate_value(dict(data), os.environ if env is None else env)
    if "output_dir" in values and values["output_dir"] is not None:
        values["output_dir"] = Path(values["output_dir"])
    if values.get("attributes") is None:
        values.pop("attributes", None)

    config = ReporterConfig(**values)
    result = ConfigValidator(config).validate()
    if not result.is_valid:
        return None, result
    return config, result


def load_config(
    path: str | Path,
    env: Mapping[str, str] | None = None,
) -> tuple[ReporterConfig | None, ValidationResult]:
    """
    Load and validate reporter configuration from a YAML file.

    Example:
        config, result = load_config("reportportal.yaml")
        if not result.is_valid:
            print(result)
            sys.exit(1)
    """
    path = Path(path)

    if not path.exists():
        result = ValidationResult()
        result.add_error(
            str(path),
            "File not found",
            suggestion="Check the file path is correct"
        )
        return None, result

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        result = ValidationResult()
        result.add_error(
            str(path),
            f"Invalid YAML syntax: {e}",
            suggestion="Check YAML formatting (indentation, colons, etc.)"
        )
        return None, result

    if not isinstance(data, dict):
        result = ValidationResult()
        result.add_error(
            str(path),
            "File must contain a YAML object (not a list or scalar)",
            value=type(data).__name__
        )
        return None, result

    return parse_config(data, env)
