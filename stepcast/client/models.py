"""
Data structures exchanged with the remote reporting service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class LogLevel(str, Enum):
    """Log levels accepted by the reporting service."""
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


@dataclass
class Artifact:
    """A binary file attached to a log entry (e.g. a screenshot)."""
    name: str
    content: bytes
    mime: str = "image/png"


@dataclass
class LaunchResult:
    """Outcome of finishing a launch."""
    id: str
    number: int | None = None
    link: str | None = None

    @classmethod
    def from_dict(cls, launch_id: str, data: dict[str, Any]) -> LaunchResult:
        return cls(
            id=data.get("id", launch_id),
            number=data.get("number"),
            link=data.get("link"),
        )


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(moment: datetime | None = None) -> int:
    """Milliseconds since the epoch, as the reporting API expects."""
    moment = moment or now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)
