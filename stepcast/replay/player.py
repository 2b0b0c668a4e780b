"""
Replays a recorded run as lifecycle events.
"""

from __future__ import annotations

import logging

from ..events import Event, EventDispatcher
from .loader import RecordedRun, RecordedTest

logger = logging.getLogger(__name__)


async def replay_test(recorded: RecordedTest, dispatcher: EventDispatcher) -> None:
    """Emit the events of one test, steps in recorded order."""
    test = recorded.test
    test.start()
    await dispatcher.emit(Event.TEST_START, test)

    for step in recorded.steps:
        status = step.status
        step.start()
        await dispatcher.emit(Event.STEP_START, step)
        step.complete(status)
        if status == "failed":
            await dispatcher.emit(Event.STEP_FAILED, step)
        elif status == "success":
            await dispatcher.emit(Event.STEP_PASSED, step)
        await dispatcher.emit(Event.STEP_END, step)

    test.complete(recorded.status, recorded.error)
    if recorded.status == "failed":
        await dispatcher.emit(Event.TEST_FAILED, test, recorded.error)
    elif recorded.status == "passed":
        await dispatcher.emit(Event.TEST_PASSED, test)
    await dispatcher.emit(Event.TEST_END, test)


async def replay_run(run: RecordedRun, dispatcher: EventDispatcher) -> None:
    """
    Emit the full ordered event stream of a recorded run.

    run.start and run.end handlers are awaited like every other handler.
    """
    logger.debug(f"Replaying {len(run.suites)} suite(s), {run.test_count} test(s)")
    await dispatcher.emit(Event.RUN_START)
    for recorded_suite in run.suites:
        await dispatcher.emit(Event.SUITE_START, recorded_suite.suite)
        for recorded_test in recorded_suite.tests:
            await replay_test(recorded_test, dispatcher)
        await dispatcher.emit(Event.SUITE_END, recorded_suite.suite)
    await dispatcher.emit(Event.RUN_END)
