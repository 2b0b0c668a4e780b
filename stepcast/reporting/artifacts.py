"""
Failure artifacts: screenshots and error text attached to failing steps.
"""

from __future__ import annotations

import logging
import traceback
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable

from ..client.models import Artifact, to_timestamp

logger = logging.getLogger(__name__)


class ScreenshotCapture(ABC):
    """Capability that produces a screenshot of the system under test."""

    @abstractmethod
    async def capture(self, file_name: str) -> bytes:
        """Take a screenshot and return its PNG bytes."""
        pass


class FileScreenshotCapture(ScreenshotCapture):
    """
    Adapts a framework helper that saves screenshots to disk.

    The helper is called with a file name and must write the image to
    `output_dir / file_name`. The file is read back and removed.
    """

    def __init__(self, save: Callable[[str], Awaitable[Any]], output_dir: str | Path):
        self._save = save
        self.output_dir = Path(output_dir)

    async def capture(self, file_name: str) -> bytes:
        await self._save(file_name)
        path = self.output_dir / file_name
        try:
            return path.read_bytes()
        finally:
            path.unlink(missing_ok=True)


def screenshot_file_name(moment: datetime | None = None) -> str:
    return f"{to_timestamp(moment)}_failed.png"


async def capture_artifact(capture: ScreenshotCapture | None) -> Artifact | None:
    """
    Capture a screenshot artifact.

    Returns:
        The artifact, or None if no capture is configured or it failed
    """
    if capture is None:
        return None

    file_name = screenshot_file_name()
    try:
        content = await capture.capture(file_name)
    except Exception:
        logger.debug("Couldn't save screenshot", exc_info=True)
        return None
    return Artifact(name=file_name, content=content, mime="image/png")


def format_error(error: BaseException | str | None) -> str:
    """Error text sent to the service: the full traceback for exceptions."""
    if error is None:
        return ""
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()
    return str(error)
