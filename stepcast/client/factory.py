"""
Client factory for creating reporting clients from configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BaseReportingClient
from .http import ReportPortalClient
from .memory import MemoryClient

if TYPE_CHECKING:
    from ..config import ReporterConfig


def create_client(config: ReporterConfig, dry_run: bool = False) -> BaseReportingClient:
    """
    Create a reporting client from ReporterConfig.

    Args:
        config: Validated reporter configuration
        dry_run: Record calls in memory instead of contacting the service

    Returns:
        MemoryClient for dry runs, ReportPortalClient otherwise

    Example:
        client = create_client(config)
        async with client:
            launch = await client.start_launch(config.launch_name)
    """
    if dry_run:
        return MemoryClient()

    return ReportPortalClient(
        endpoint=config.endpoint,
        token=config.token,
        project=config.project,
        timeout_ms=config.timeout_ms,
    )
