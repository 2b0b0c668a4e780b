"""
Real-time reporting core

This package turns lifecycle events into reporting calls:

    - ReportItem / ItemKind / ItemStatus: the report tree data model
    - OperationSequencer: serializes every reporting call of a run
    - HierarchyReconciler: keeps open meta-step items in line with the
      running step's meta-step chain
    - StatusTracker: propagates failures to meta-steps, suites and the launch
    - RunReporter: the per-run event handlers

Usage:
    from stepcast.events import EventDispatcher
    from stepcast.reporting import RunReporter

    reporter = RunReporter(config, screenshots=FileScreenshotCapture(helper.save_screenshot, "output"))
    dispatcher = EventDispatcher()
    reporter.attach(dispatcher)
"""

# Models
from .models import (
    AggregateStatus,
    ItemKind,
    ItemStatus,
    ReportItem,
    Status,
    map_status,
    wire_status,
)

# Core components
from .artifacts import (
    FileScreenshotCapture,
    ScreenshotCapture,
    capture_artifact,
    format_error,
    screenshot_file_name,
)
from .operations import close_item, log_to_item, open_item
from .reconciler import HierarchyReconciler
from .sequencer import OperationSequencer
from .status import FailedStep, StatusTracker

# Reporter
from .reporter import RunReporter

__all__ = [
    # Models
    "AggregateStatus",
    "ItemKind",
    "ItemStatus",
    "ReportItem",
    "Status",
    "map_status",
    "wire_status",
    # Artifacts
    "FileScreenshotCapture",
    "ScreenshotCapture",
    "capture_artifact",
    "format_error",
    "screenshot_file_name",
    # Item operations
    "open_item",
    "close_item",
    "log_to_item",
    # Core components
    "HierarchyReconciler",
    "OperationSequencer",
    "FailedStep",
    "StatusTracker",
    # Reporter
    "RunReporter",
]
