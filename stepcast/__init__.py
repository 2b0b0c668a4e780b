"""
stepcast - Real-time test run reporting

This package reports a running test suite to a ReportPortal-compatible
service while it executes, including nested meta-steps.

Subpackages:
    - events: Lifecycle events and the suite/test/step models
    - config: Reporter configuration loading and validation
    - client: Remote reporting clients (ReportPortal HTTP, in-memory)
    - reporting: Hierarchy reconciliation, status propagation, run reporter
    - replay: Drive the reporter from a recorded run file

Usage:
    from stepcast import EventDispatcher, RunReporter, load_config

    config, result = load_config("reportportal.yaml")
    reporter = RunReporter(config)
    dispatcher = EventDispatcher()
    reporter.attach(dispatcher)

    await dispatcher.emit(Event.RUN_START)
    await dispatcher.emit(Event.SUITE_START, suite)
    ...
    await dispatcher.emit(Event.RUN_END)
"""

__version__ = "0.1.0"

# Re-export errors for convenience
from .errors import ConfigError, MetaStepCycleError, ReportingError, StepcastError

# Re-export events for convenience
from .events import (
    Event,
    EventDispatcher,
    MetaStepKey,
    Step,
    Suite,
    Test,
    meta_step_chain,
)

# Re-export config for convenience
from .config import (
    ReporterConfig,
    ValidationError,
    ValidationResult,
    load_config,
    parse_config,
    validate_config,
)

# Re-export client for convenience
from .client import (
    Artifact,
    BaseReportingClient,
    LaunchResult,
    LogLevel,
    MemoryClient,
    ReportPortalClient,
    create_client,
)

# Re-export reporting for convenience
from .reporting import (
    FileScreenshotCapture,
    HierarchyReconciler,
    ItemKind,
    ItemStatus,
    OperationSequencer,
    ReportItem,
    RunReporter,
    ScreenshotCapture,
    StatusTracker,
    map_status,
)

__all__ = [
    # Package info
    "__version__",
    # Errors
    "StepcastError",
    "ConfigError",
    "ReportingError",
    "MetaStepCycleError",
    # Events
    "Event",
    "EventDispatcher",
    "MetaStepKey",
    "Step",
    "Suite",
    "Test",
    "meta_step_chain",
    # Config
    "ReporterConfig",
    "ValidationError",
    "ValidationResult",
    "load_config",
    "parse_config",
    "validate_config",
    # Client
    "Artifact",
    "BaseReportingClient",
    "LaunchResult",
    "LogLevel",
    "MemoryClient",
    "ReportPortalClient",
    "create_client",
    # Reporting
    "FileScreenshotCapture",
    "HierarchyReconciler",
    "ItemKind",
    "ItemStatus",
    "OperationSequencer",
    "ReportItem",
    "RunReporter",
    "ScreenshotCapture",
    "StatusTracker",
    "map_status",
]
