"""
Lifecycle event names and a minimal dispatcher.

Test frameworks (or the replay player) emit events in execution order;
the reporter subscribes to them. Handlers may be plain functions or
coroutine functions; `emit()` awaits whatever a handler returns if it is
awaitable, so handlers run in subscription order.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Event(str, Enum):
    """Lifecycle events consumed by the reporter."""
    RUN_START = "run.start"
    SUITE_START = "suite.start"
    TEST_START = "test.start"
    STEP_START = "step.start"
    STEP_END = "step.end"
    STEP_FAILED = "step.failed"
    STEP_PASSED = "step.passed"
    TEST_FAILED = "test.failed"
    TEST_PASSED = "test.passed"
    TEST_END = "test.end"
    SUITE_END = "suite.end"
    RUN_END = "run.end"


Handler = Callable[..., Any]


class EventDispatcher:
    """
    Routes lifecycle events to subscribed handlers.

    Example:
        dispatcher = EventDispatcher()
        dispatcher.on(Event.TEST_START, lambda test: print(test.title))
        await dispatcher.emit(Event.TEST_START, test)
    """

    def __init__(self):
        self._handlers: dict[Event, list[Handler]] = defaultdict(list)

    def on(self, event: Event | str, handler: Handler) -> None:
        """Subscribe a handler to an event."""
        self._handlers[Event(event)].append(handler)

    def off(self, event: Event | str, handler: Handler) -> None:
        """Remove a previously subscribed handler."""
        handlers = self._handlers.get(Event(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers(self, event: Event | str) -> list[Handler]:
        return list(self._handlers.get(Event(event), []))

    async def emit(self, event: Event | str, *args: Any) -> None:
        """
        Call every handler of an event with the given arguments.

        Exceptions raised by handlers propagate to the emitter.
        """
        event = Event(event)
        logger.debug(f"Emitting {event.value}")
        for handler in self.handlers(event):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
