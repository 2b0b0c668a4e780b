"""
In-memory reporting client.

Records every call instead of talking to a server. Used for dry runs
from the CLI and as the reporting service double in tests.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..errors import ReportingError
from .base import BaseReportingClient
from .models import Artifact, LaunchResult, LogLevel

logger = logging.getLogger(__name__)


@dataclass
class ClientCall:
    """One recorded client operation."""
    operation: str  # "start_item", "finish_item", ...
    handle: str | None = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class RecordedLog:
    level: LogLevel
    message: str
    time: datetime | None = None
    artifact: Artifact | None = None


@dataclass
class RecordedItem:
    """An item as the service would store it."""
    handle: str
    name: str
    item_type: str
    has_stats: bool
    parent_handle: str | None = None
    status: str | None = None
    finished: bool = False
    children: list[str] = field(default_factory=list)
    logs: list[RecordedLog] = field(default_factory=list)


class MemoryClient(BaseReportingClient):
    """
    Reporting client that keeps everything in memory.

    Args:
        fail_on: Operation names that raise ReportingError, e.g. {"start_launch"}
        fail_items: Item names whose start or finish raises ReportingError
    """

    def __init__(
        self,
        fail_on: set[str] | None = None,
        fail_items: set[str] | None = None,
    ):
        self.fail_on = set(fail_on or ())
        self.fail_items = set(fail_items or ())
        self.calls: list[ClientCall] = []
        self.items: dict[str, RecordedItem] = {}
        self.roots: list[str] = []
        self.launch_id: str | None = None
        self.launch_status: str | None = None
        self._connected = False
        self._counter = itertools.count(1)

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def _record(self, operation: str, handle: str | None = None, **params: Any) -> None:
        self.calls.append(ClientCall(operation, handle, params))
        if operation in self.fail_on:
            raise ReportingError(f"{operation} rejected")

    def operations(self, *names: str) -> list[ClientCall]:
        """Recorded calls, optionally filtered by operation name."""
        if not names:
            return list(self.calls)
        return [call for call in self.calls if call.operation in names]

    def find(self, name: str) -> RecordedItem | None:
        """First item with the given name."""
        for item in self.items.values():
            if item.name == name:
                return item
        return None

    async def start_launch(
        self,
        name: str,
        description: str = "",
        attributes: list[dict[str, Any]] | None = None,
        rerun: bool = False,
        rerun_of: str | None = None,
    ) -> str:
        self._record(
            "start_launch",
            name=name,
            description=description,
            attributes=attributes or [],
            rerun=rerun,
            rerun_of=rerun_of,
        )
        self.launch_id = f"launch-{next(self._counter)}"
        return self.launch_id

    async def finish_launch(self, handle: str, status: str | None = None) -> LaunchResult:
        self._record("finish_launch", handle, status=status)
        self.launch_status = status
        return LaunchResult(id=handle, number=1, link=f"memory://launches/{handle}")

    async def start_item(
        self,
        name: str,
        item_type: str,
        has_stats: bool = True,
        parent_handle: str | None = None,
        start_time: datetime | None = None,
    ) -> str:
        self._record(
            "start_item",
            name=name,
            item_type=item_type,
            has_stats=has_stats,
            parent_handle=parent_handle,
        )
        if name in self.fail_items:
            raise ReportingError(f"start of '{name}' rejected")
        if parent_handle is not None and parent_handle not in self.items:
            raise ReportingError(f"Unknown parent item '{parent_handle}'", status=404)

        handle = f"item-{next(self._counter)}"
        self.items[handle] = RecordedItem(handle, name, item_type, has_stats, parent_handle)
        if parent_handle is None:
            self.roots.append(handle)
        else:
            self.items[parent_handle].children.append(handle)
        # Reflect the handle on the call so tests can match opens to parents
        self.calls[-1].handle = handle
        return handle

    async def finish_item(
        self,
        handle: str,
        status: str | None = None,
        message: str | None = None,
        end_time: datetime | None = None,
    ) -> None:
        self._record("finish_item", handle, status=status, message=message)
        item = self.items.get(handle)
        if item is None:
            raise ReportingError(f"Unknown item '{handle}'", status=404)
        if item.name in self.fail_items:
            raise ReportingError(f"finish of '{item.name}' rejected")
        item.status = status
        item.finished = True

    async def send_log(
        self,
        handle: str,
        level: LogLevel,
        message: str,
        time: datetime | None = None,
        artifact: Artifact | None = None,
    ) -> None:
        self._record("send_log", handle, level=level, message=message, time=time, artifact=artifact)
        item = self.items.get(handle)
        if item is None:
            raise ReportingError(f"Unknown item '{handle}'", status=404)
        item.logs.append(RecordedLog(level, message, time, artifact))

    def __repr__(self) -> str:
        return f"MemoryClient(items={len(self.items)}, calls={len(self.calls)})"
