"""
Remote Reporting Client

This package provides the clients the reporting core talks to: a
ReportPortal HTTP client and an in-memory recorder for dry runs.

Usage:
    from stepcast.client import create_client

    client = create_client(config)
    async with client:
        launch = await client.start_launch("nightly")
        suite = await client.start_item("Login", "SUITE")
        await client.finish_item(suite, status="PASSED")
        result = await client.finish_launch(launch, "PASSED")
        print(result.number, result.link)
"""

# Factory
from .factory import create_client

# Client implementations
from .base import BaseReportingClient
from .http import ReportPortalClient
from .memory import ClientCall, MemoryClient, RecordedItem, RecordedLog

# Models
from .models import Artifact, LaunchResult, LogLevel, to_timestamp

__all__ = [
    # Factory
    "create_client",
    # Base
    "BaseReportingClient",
    # Implementations
    "ReportPortalClient",
    "MemoryClient",
    "ClientCall",
    "RecordedItem",
    "RecordedLog",
    # Models
    "Artifact",
    "LaunchResult",
    "LogLevel",
    "to_timestamp",
]
