"""
Event-source boundary.

This package defines what the reporter consumes from a test framework:
the ordered lifecycle events and the suite/test/step objects that come
with them.

Usage:
    from stepcast.events import Event, EventDispatcher, Step, Test

    dispatcher = EventDispatcher()
    reporter.attach(dispatcher)

    login = Step(name="login", actor="loginPage", args=["admin"])
    step = Step(name="fillField", args=["user", "admin"], meta_step=login)

    await dispatcher.emit(Event.STEP_START, step)
"""

from .dispatcher import Event, EventDispatcher, Handler
from .models import MetaStepKey, Step, Suite, Test, meta_step_chain

__all__ = [
    # Dispatcher
    "Event",
    "EventDispatcher",
    "Handler",
    # Models
    "MetaStepKey",
    "Step",
    "Suite",
    "Test",
    "meta_step_chain",
]
