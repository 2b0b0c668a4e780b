"""
Base client interface for the remote reporting service.

This module defines the abstract base class that every reporting client
implementation must follow. The reporting core only talks to this
interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Artifact, LaunchResult, LogLevel


class BaseReportingClient(ABC):
    """
    Abstract base class for reporting clients.

    Every operation is a coroutine. Failures raise ReportingError; the
    client never retries on its own.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying connection (HTTP session, ...)."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the underlying connection."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Return True if the client is currently connected."""
        pass

    @abstractmethod
    async def start_launch(
        self,
        name: str,
        description: str = "",
        attributes: list[dict[str, Any]] | None = None,
        rerun: bool = False,
        rerun_of: str | None = None,
    ) -> str:
        """
        Start a launch and return its handle.

        Every item started afterwards belongs to this launch.
        """
        pass

    @abstractmethod
    async def finish_launch(self, handle: str, status: str | None = None) -> LaunchResult:
        """Finish the launch, returning its number and a link to the report."""
        pass

    @abstractmethod
    async def start_item(
        self,
        name: str,
        item_type: str,
        has_stats: bool = True,
        parent_handle: str | None = None,
        start_time: datetime | None = None,
    ) -> str:
        """
        Start a test item and return its handle.

        Items without a parent handle are created at the launch root.
        """
        pass

    @abstractmethod
    async def finish_item(
        self,
        handle: str,
        status: str | None = None,
        message: str | None = None,
        end_time: datetime | None = None,
    ) -> None:
        """Finish a test item. A None status lets the service derive one."""
        pass

    @abstractmethod
    async def send_log(
        self,
        handle: str,
        level: LogLevel,
        message: str,
        time: datetime | None = None,
        artifact: Artifact | None = None,
    ) -> None:
        """Attach a log entry, optionally with a file, to an item."""
        pass

    async def __aenter__(self) -> BaseReportingClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()
