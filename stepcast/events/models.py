"""
Run objects handed over by the test framework with each lifecycle event.

Frameworks adapt their own suite/test/step objects into these dataclasses.
They compare by identity: two distinct steps are never equal, even with the
same action and arguments. Meta-steps are compared through `MetaStepKey`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..errors import MetaStepCycleError

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


@dataclass(frozen=True)
class MetaStepKey:
    """
    Identity of a meta-step for reuse decisions.

    Two meta-steps describe the same open item iff actor, method name and
    serialized arguments all match.
    """
    actor: str
    name: str
    args: str


@dataclass(eq=False)
class Suite:
    """A test suite (file, feature or describe block)."""
    title: str
    ended_at: datetime | None = None


@dataclass(eq=False)
class Test:
    """A single test case."""
    __test__ = False  # not a pytest test class

    title: str
    status: str | None = None
    error: BaseException | str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    def start(self) -> None:
        self.started_at = datetime.now(timezone.utc)

    def complete(self, status: str, error: BaseException | str | None = None) -> None:
        self.status = status
        self.error = error
        self.ended_at = datetime.now(timezone.utc)


@dataclass(eq=False)
class Step:
    """
    An executed action, or a meta-step grouping other steps.

    `meta_step` points at the directly enclosing meta-step, forming the
    chain walked by `meta_step_chain()`.
    """
    name: str
    actor: str = "I"
    args: list[Any] = field(default_factory=list)
    status: str | None = None  # "success", "failed" or framework specific
    meta_step: Step | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def key(self) -> MetaStepKey:
        return MetaStepKey(
            actor=self.actor,
            name=self.name,
            args=",".join(str(arg) for arg in self.args),
        )

    def start(self) -> None:
        self.started_at = datetime.now(timezone.utc)

    def complete(self, status: str) -> None:
        self.status = status
        self.ended_at = datetime.now(timezone.utc)

    def humanize(self) -> str:
        """Method name split into lowercase words: amOnPage -> am on page."""
        return _CAMEL_BOUNDARY.sub(r"\1 \2", self.name).replace("_", " ").lower()

    def humanize_args(self) -> str:
        return ", ".join(_format_arg(arg) for arg in self.args)

    def __str__(self) -> str:
        text = f"{self.actor} {self.humanize()}"
        if self.args:
            text += f" {self.humanize_args()}"
        return text


def meta_step_chain(step: Step) -> list[Step]:
    """
    Return the meta-steps enclosing a step, root ancestor first.

    The step itself is not part of the chain.

    Raises:
        MetaStepCycleError: If an enclosing meta-step is reached twice
    """
    chain: list[Step] = []
    seen: set[int] = {id(step)}
    current = step.meta_step
    while current is not None:
        if id(current) in seen:
            raise MetaStepCycleError(
                f"Meta-step chain of '{step}' loops back at '{current}'"
            )
        seen.add(id(current))
        chain.append(current)
        current = current.meta_step
    chain.reverse()
    return chain


def _format_arg(arg: Any) -> str:
    if isinstance(arg, str):
        return f'"{arg}"'
    try:
        return json.dumps(arg, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(arg)
