"""Pytest fixtures for stepcast tests."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from stepcast.client import MemoryClient
from stepcast.config import ReporterConfig
from stepcast.events import EventDispatcher
from stepcast.reporting import RunReporter


@pytest.fixture
def config() -> ReporterConfig:
    return ReporterConfig(
        endpoint="https://rp.example.com/api/v1",
        token="secret-token",
        project="web",
        launch_name="nightly",
        launch_description="Nightly regression",
        attributes=[{"key": "browser", "value": "chromium"}],
    )


@pytest.fixture
def client() -> MemoryClient:
    return MemoryClient()


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(console_output: io.StringIO) -> Console:
    return Console(file=console_output, width=200, color_system=None)


@pytest.fixture
def reporter(config: ReporterConfig, client: MemoryClient, console: Console) -> RunReporter:
    return RunReporter(config, client=client, console=console)


@pytest.fixture
def dispatcher(reporter: RunReporter) -> EventDispatcher:
    dispatcher = EventDispatcher()
    reporter.attach(dispatcher)
    return dispatcher
