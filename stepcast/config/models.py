"""
Typed reporter configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_LAUNCH_NAME = "stepcast tests"


@dataclass
class ReporterConfig:
    """
    Connection and launch settings for the reporting service.

    `endpoint`, `token` and `project` are required; the endpoint must
    point at the API root, e.g. https://reportportal.example.com/api/v1
    """
    endpoint: str = ""
    token: str = ""
    project: str = ""
    # Launch
    launch_name: str = DEFAULT_LAUNCH_NAME
    launch_description: str = ""
    attributes: list[dict[str, Any]] = field(default_factory=list)
    rerun: bool = False
    rerun_of: str | None = None
    # Runtime
    debug: bool = False
    output_dir: Path = field(default_factory=lambda: Path("output"))
    timeout_ms: int = 30000
