"""
Start, finish and log calls for single report items.

Errors raised by the client are logged and swallowed here: a broken
node must not abort reporting of the rest of the run.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from .models import ReportItem, Status, wire_status

if TYPE_CHECKING:
    from ..client import Artifact, BaseReportingClient, LogLevel

logger = logging.getLogger(__name__)


async def open_item(client: BaseReportingClient, item: ReportItem) -> bool:
    """
    Start an item under its parent.

    Returns:
        True if the service assigned a handle
    """
    if item.parent is not None and not item.parent.is_started:
        logger.debug(f"Not starting {item!r}: parent {item.parent!r} has no handle")
        return False

    try:
        item.handle = await client.start_item(
            item.title,
            item.kind.wire_type,
            has_stats=item.has_stats,
            parent_handle=item.parent_handle,
            start_time=item.started_at,
        )
    except Exception:
        logger.debug(f"Failed to start {item!r}", exc_info=True)
        return False

    logger.debug(f"{item.handle}: {item.kind.value} '{item.title}' started (parent {item.parent_handle})")
    return True


async def close_item(
    client: BaseReportingClient,
    item: ReportItem,
    status: Status | None = None,
    message: str | None = None,
    end_time: datetime | None = None,
) -> bool:
    """
    Finish an item once.

    Args:
        status: Overrides the item's own status when given

    Returns:
        True if the finish call succeeded
    """
    if item.finished:
        return False
    item.finished = True
    if status is not None:
        item.status = status

    if not item.is_started:
        logger.debug(f"Not finishing {item!r}: it was never started")
        return False

    try:
        await client.finish_item(
            item.handle,
            status=wire_status(item.status),
            message=message,
            end_time=end_time,
        )
    except Exception:
        logger.debug(f"Failed to finish {item!r}", exc_info=True)
        return False

    logger.debug(f"{item.handle}: {item.kind.value} '{item.title}' finished {item.status}")
    return True


async def log_to_item(
    client: BaseReportingClient,
    item: ReportItem,
    level: LogLevel,
    message: str,
    time: datetime | None = None,
    artifact: Artifact | None = None,
) -> bool:
    """Attach a log entry to an item."""
    if not item.is_started:
        logger.debug(f"Not logging to {item!r}: it was never started")
        return False

    try:
        await client.send_log(item.handle, level, message, time=time, artifact=artifact)
    except Exception:
        logger.debug(f"Failed to send log to {item!r}", exc_info=True)
        return False
    return True
