"""
Replay of recorded runs.

Usage:
    from stepcast.replay import load_run, replay_run

    run, result = load_run("runs/nightly.yaml")
    if result.is_valid:
        await replay_run(run, dispatcher)
"""

from .loader import (
    RecordedRun,
    RecordedSuite,
    RecordedTest,
    RunValidator,
    load_run,
    parse_run,
)
from .player import replay_run, replay_test

__all__ = [
    # Loader
    "load_run",
    "parse_run",
    "RunValidator",
    # Models
    "RecordedRun",
    "RecordedSuite",
    "RecordedTest",
    # Player
    "replay_run",
    "replay_test",
]
