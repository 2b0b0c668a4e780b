"""
Status propagation from steps up to meta-steps, suites and the launch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from .models import AggregateStatus, ReportItem

if TYPE_CHECKING:
    from ..events import Step


@dataclass(eq=False)
class FailedStep:
    """The failing step whose artifacts are attached if its test fails."""
    step: Step
    item: ReportItem
    ended: bool = False


class StatusTracker:
    """
    Tracks step, suite and launch outcomes for one run.

    Meta-step statuses only ever move towards failed within a test, as
    do the suite and launch aggregates.
    """

    def __init__(self):
        self.suite_status = AggregateStatus()
        self.launch_status = AggregateStatus()
        self.active_failure: FailedStep | None = None

    def start_suite(self) -> None:
        self.suite_status.reset()

    def start_test(self) -> None:
        self.active_failure = None

    def is_active_failure(self, step: Step) -> bool:
        return self.active_failure is not None and self.active_failure.step is step

    def step_failed(
        self,
        step: Step,
        item: ReportItem | None,
        open_items: Iterable[ReportItem],
    ) -> FailedStep | None:
        """
        Record a failing step.

        Every open meta-step is marked failed, not only the innermost.

        Returns:
            The previous active failure displaced by this one, if any
        """
        for meta_item in open_items:
            meta_item.mark_failed()

        if item is None:
            return None
        item.mark_failed()

        previous = self.active_failure
        if previous is not None and previous.step is step:
            return None
        self.active_failure = FailedStep(step, item)
        return previous

    def step_passed(self, step: Step, open_items: Iterable[ReportItem]) -> FailedStep | None:
        """
        Record a passing step.

        Returns:
            The active failure if it was this very step and got cleared
        """
        for meta_item in open_items:
            meta_item.mark_passed()

        if self.is_active_failure(step):
            cleared = self.active_failure
            self.active_failure = None
            return cleared
        return None

    def test_failed(self) -> None:
        self.suite_status.fail()
        self.launch_status.fail()
