"""
Report item data model.

A ReportItem mirrors one node of the remote report tree: a launch, a
suite, a test, a step or a meta-step. Items are created before their
start call resolves, so the handle stays None until the service has
acknowledged the item (or forever, if the start call failed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ..events import MetaStepKey


class ItemKind(str, Enum):
    """Level of an item in the report hierarchy."""
    LAUNCH = "launch"
    SUITE = "suite"
    TEST = "test"
    STEP = "step"
    META_STEP = "meta_step"

    @property
    def has_stats(self) -> bool:
        """Steps and meta-steps do not count toward statistics."""
        return self not in (ItemKind.STEP, ItemKind.META_STEP)

    @property
    def wire_type(self) -> str:
        return {
            ItemKind.SUITE: "SUITE",
            ItemKind.TEST: "TEST",
            ItemKind.STEP: "STEP",
            ItemKind.META_STEP: "STEP",
        }.get(self, "LAUNCH")


class ItemStatus(str, Enum):
    """Canonical item outcome. An unset status is represented by None."""
    PASSED = "passed"
    FAILED = "failed"

    @property
    def wire(self) -> str:
        return self.value.upper()


# A recognised status, or a raw framework value passed through unchanged
Status = Union[ItemStatus, str]


def map_status(raw: Status | None) -> Status | None:
    """
    Map a framework result value to an item status.

    success -> passed, failed -> failed; anything unrecognised is
    returned unchanged.
    """
    if raw is None or isinstance(raw, ItemStatus):
        return raw
    if raw == "success":
        return ItemStatus.PASSED
    if raw == "failed":
        return ItemStatus.FAILED
    return raw


def wire_status(status: Status | None) -> str | None:
    """Status as sent to the reporting service."""
    if isinstance(status, ItemStatus):
        return status.wire
    return status


@dataclass(eq=False)
class ReportItem:
    """
    One node reported to the remote service.

    Attributes:
        kind: Hierarchy level
        title: Display name sent to the service
        parent: Enclosing item (None for the launch and top-level suites)
        handle: Identifier assigned by the service once started
        status: Tri-state outcome, mutable until finished
        key: Identity used for reuse decisions (meta-steps only)
    """
    kind: ItemKind
    title: str
    parent: ReportItem | None = None
    handle: str | None = None
    status: Status | None = None
    key: MetaStepKey | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished: bool = False

    @property
    def parent_handle(self) -> str | None:
        return self.parent.handle if self.parent else None

    @property
    def has_stats(self) -> bool:
        return self.kind.has_stats

    @property
    def is_started(self) -> bool:
        return self.handle is not None

    def mark_failed(self) -> None:
        self.status = ItemStatus.FAILED

    def mark_passed(self) -> None:
        """Set passed unless a failure was already recorded."""
        if self.status != ItemStatus.FAILED:
            self.status = ItemStatus.PASSED

    def __repr__(self) -> str:
        return f"ReportItem({self.kind.value}, {self.title!r}, handle={self.handle})"


@dataclass
class AggregateStatus:
    """
    Pass/fail aggregate of a suite or the launch.

    Starts passed and is downgraded to failed the first time a contained
    test fails; it is never upgraded back.
    """
    status: ItemStatus = ItemStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status == ItemStatus.FAILED

    def fail(self) -> None:
        self.status = ItemStatus.FAILED

    def reset(self) -> None:
        self.status = ItemStatus.PASSED
