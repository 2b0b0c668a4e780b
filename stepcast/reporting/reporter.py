"""
Run reporter: the lifecycle event handlers.

This module provides the RunReporter class, the per-run context that
translates lifecycle events into reporting calls. Everything a run needs
(open items, the open meta-step stack, aggregate statuses) lives on the
instance; nothing is kept in module globals.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from rich.console import Console

from ..client import BaseReportingClient, LaunchResult, LogLevel, create_client
from ..config import ReporterConfig, validate_config
from ..events import Event, EventDispatcher, Step, Suite, Test, meta_step_chain
from .artifacts import FileScreenshotCapture, ScreenshotCapture, capture_artifact, format_error
from .models import ItemKind, ItemStatus, ReportItem, Status, map_status
from .operations import close_item, log_to_item, open_item
from .reconciler import HierarchyReconciler
from .sequencer import OperationSequencer
from .status import StatusTracker

if TYPE_CHECKING:
    from ..events import MetaStepKey

logger = logging.getLogger(__name__)


class RunReporter:
    """
    Reports one test run to the reporting service as it executes.

    `on_run_start` and `on_run_end` are coroutines and must be awaited by
    the event source. Every other handler only enqueues its work on the
    run's OperationSequencer, so reporting calls are issued in event order
    no matter how fast events arrive.

    Example:
        reporter = RunReporter(config)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)

        await dispatcher.emit(Event.RUN_START)
        ...
        await dispatcher.emit(Event.RUN_END)
    """

    def __init__(
        self,
        config: ReporterConfig,
        client: BaseReportingClient | None = None,
        screenshots: ScreenshotCapture | None = None,
        console: Console | None = None,
        dry_run: bool = False,
        save_screenshot: Callable[[str], Awaitable[Any]] | None = None,
    ):
        """
        Initialize the reporter.

        Args:
            screenshots: Capture used for failing steps
            save_screenshot: Framework helper writing a screenshot file into
                `config.output_dir`; used when `screenshots` is not given

        Raises:
            ConfigError: If the configuration is invalid; no remote call
                has been made at that point
        """
        self.config = validate_config(config)
        self.client = client or create_client(config, dry_run=dry_run)
        if screenshots is None and save_screenshot is not None:
            screenshots = FileScreenshotCapture(save_screenshot, config.output_dir)
        self.screenshots = screenshots
        self.console = console or Console()

        self.sequencer = OperationSequencer()
        self.reconciler = HierarchyReconciler(self.client)
        self.tracker = StatusTracker()

        self.launch: ReportItem | None = None
        self.suite: ReportItem | None = None
        self.test: ReportItem | None = None
        self.result: LaunchResult | None = None
        self._step_items: dict[Step, ReportItem] = {}

    @property
    def status(self) -> ItemStatus:
        """Aggregate status of the launch so far."""
        return self.tracker.launch_status.status

    def attach(self, dispatcher: EventDispatcher) -> None:
        """Subscribe every handler to the dispatcher."""
        handlers = {
            Event.RUN_START: self.on_run_start,
            Event.SUITE_START: self.on_suite_start,
            Event.TEST_START: self.on_test_start,
            Event.STEP_START: self.on_step_start,
            Event.STEP_END: self.on_step_end,
            Event.STEP_FAILED: self.on_step_failed,
            Event.STEP_PASSED: self.on_step_passed,
            Event.TEST_FAILED: self.on_test_failed,
            Event.TEST_PASSED: self.on_test_passed,
            Event.TEST_END: self.on_test_end,
            Event.SUITE_END: self.on_suite_end,
            Event.RUN_END: self.on_run_end,
        }
        for event, handler in handlers.items():
            dispatcher.on(event, handler)

    # ─────────────────────────────────────────────────────────────────────
    # Run
    # ─────────────────────────────────────────────────────────────────────

    async def on_run_start(self) -> None:
        """
        Start the launch.

        Without a launch nothing else can be reported, so any failure here
        terminates the process.
        """
        config = self.config
        try:
            await self.client.connect()
            handle = await self.client.start_launch(
                name=config.launch_name,
                description=config.launch_description,
                attributes=config.attributes,
                rerun=config.rerun,
                rerun_of=config.rerun_of,
            )
        except Exception as e:
            self.console.print("[red]❌ Can't connect to ReportPortal, exiting...[/red]")
            self.console.print(f"{type(e).__name__}: {e}", style="red", markup=False)
            logger.debug("Launch start failed", exc_info=True)
            await self.client.disconnect()
            raise SystemExit(1) from e

        self.launch = ReportItem(ItemKind.LAUNCH, config.launch_name, handle=handle)
        self.console.print(
            f"📋 Writing results to ReportPortal: {config.project} > {config.endpoint}",
            markup=False,
        )

    async def on_run_end(self) -> LaunchResult | None:
        """Wait for queued operations, then finish the suite and the launch."""
        await self.sequencer.drain()
        if self.launch is None:
            return None

        logger.debug("Finishing launch...")
        if self.suite is not None and not self.suite.finished:
            await close_item(self.client, self.suite, self.tracker.suite_status.status)

        try:
            status = self.tracker.launch_status.status
            logger.debug(f"{self.launch.handle}: Finished launch: {status.value}")
            self.result = await self.client.finish_launch(self.launch.handle, status.wire)
            self.launch.status = status
            self.launch.finished = True
            self.console.print(f"📋 Report #{self.result.number} saved ➡ {self.result.link}", markup=False)
        except Exception:
            logger.debug("Failed to finish launch", exc_info=True)
        finally:
            await self.sequencer.close()
            await self.client.disconnect()
        return self.result

    # ─────────────────────────────────────────────────────────────────────
    # Suites and tests
    # ─────────────────────────────────────────────────────────────────────

    def on_suite_start(self, suite: Suite) -> None:
        async def start() -> None:
            self.tracker.start_suite()
            self.suite = ReportItem(ItemKind.SUITE, suite.title)
            await open_item(self.client, self.suite)

        self.sequencer.add(start, f"start suite '{suite.title}'")

    def on_suite_end(self, suite: Suite) -> None:
        async def finish() -> None:
            if self.suite is None:
                return
            logger.debug(f"{self.suite.handle}: Suite '{suite.title}' finished {self.tracker.suite_status.status.value}")
            await close_item(
                self.client,
                self.suite,
                self.tracker.suite_status.status,
                end_time=suite.ended_at,
            )

        self.sequencer.add(finish, f"finish suite '{suite.title}'")

    def on_test_start(self, test: Test) -> None:
        async def start() -> None:
            self.reconciler.reset()
            self.tracker.start_test()
            self._step_items.clear()
            self.test = ReportItem(ItemKind.TEST, test.title, parent=self.suite)
            if test.started_at:
                self.test.started_at = test.started_at
            await open_item(self.client, self.test)

        self.sequencer.add(start, f"start test '{test.title}'")

    def on_test_failed(self, test: Test, error: BaseException | str | None = None) -> None:
        if error is None:
            error = test.error

        async def fail() -> None:
            self.tracker.test_failed()
            message = format_error(error)
            failure = self.tracker.active_failure

            if failure is not None and failure.item.is_started:
                logger.debug("Attaching screenshot & error to failed step")
                artifact = await capture_artifact(self.screenshots)
                await log_to_item(
                    self.client,
                    failure.item,
                    LogLevel.ERROR,
                    message,
                    time=failure.step.started_at or failure.item.started_at,
                    artifact=artifact,
                )
            elif self.test is not None:
                await log_to_item(self.client, self.test, LogLevel.ERROR, message)

            await self._finish_test(test, ItemStatus.FAILED, message)

        self.sequencer.add(fail, f"fail test '{test.title}'")

    def on_test_passed(self, test: Test) -> None:
        async def passed() -> None:
            await self._finish_test(test, ItemStatus.PASSED)

        self.sequencer.add(passed, f"pass test '{test.title}'")

    def on_test_end(self, test: Test) -> None:
        async def end() -> None:
            status = map_status(test.status)
            message = None
            if status == ItemStatus.FAILED and self.test is not None and not self.test.finished:
                # Failed without a test.failed event
                self.tracker.test_failed()
                message = format_error(test.error)
                if message:
                    await log_to_item(self.client, self.test, LogLevel.ERROR, message)
            await self._finish_test(test, status, message or None)

        self.sequencer.add(end, f"end test '{test.title}'")

    async def _finish_test(self, test: Test, status: Status | None, message: str | None = None) -> None:
        """Close the pending failing step, the open meta-steps, then the test."""
        failure = self.tracker.active_failure
        if failure is not None:
            await close_item(self.client, failure.item)
        await self.reconciler.close_all()
        if self.test is not None and not self.test.finished:
            logger.debug(f"{self.test.handle}: Test '{test.title}' finished {status}")
            await close_item(self.client, self.test, status, message=message, end_time=test.ended_at)

    # ─────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────

    def on_step_start(self, step: Step) -> None:
        """
        Open the step under its meta-step chain.

        The chain is captured at event time. A cyclic chain raises
        MetaStepCycleError to the event source.
        """
        chain = meta_step_chain(step)
        keys = [meta.key for meta in chain]
        titles = [str(meta) for meta in chain]

        async def start() -> None:
            if self.test is None:
                logger.debug(f"Ignoring step '{step}' outside of a test")
                return
            await self._release_failure_before(keys)
            parent = await self.reconciler.reconcile(keys, self.test, titles)
            item = ReportItem(ItemKind.STEP, str(step), parent=parent)
            if step.started_at:
                item.started_at = step.started_at
            self._step_items[step] = item
            await open_item(self.client, item)

        self.sequencer.add(start, f"start step '{step}'")

    async def _release_failure_before(self, keys: list[MetaStepKey]) -> None:
        """Finish a held failing step whose parent is about to be closed."""
        failure = self.tracker.active_failure
        if failure is None or not failure.ended or failure.item.finished:
            return
        depth = self.reconciler.depth_of(failure.item.parent)
        if depth >= self.reconciler.divergence_index(keys):
            await close_item(self.client, failure.item)

    def on_step_end(self, step: Step) -> None:
        async def finish() -> None:
            item = self._step_items.get(step)
            if item is None:
                return
            failure = self.tracker.active_failure
            if failure is not None and failure.step is step:
                # Held open until the test outcome decides what to attach
                failure.ended = True
                return
            logger.debug(f"Finishing '{step}' step")
            await close_item(self.client, item, map_status(step.status), end_time=step.ended_at)

        self.sequencer.add(finish, f"finish step '{step}'")

    def on_step_failed(self, step: Step, *args: Any) -> None:
        async def fail() -> None:
            item = self._step_items.get(step)
            displaced = self.tracker.step_failed(step, item, self.reconciler.stack)
            if displaced is not None and displaced.ended:
                await close_item(self.client, displaced.item)

        self.sequencer.add(fail, f"fail step '{step}'")

    def on_step_passed(self, step: Step, *args: Any) -> None:
        async def passed() -> None:
            cleared = self.tracker.step_passed(step, self.reconciler.stack)
            if cleared is not None and cleared.ended:
                await close_item(self.client, cleared.item, map_status(step.status))

        self.sequencer.add(passed, f"pass step '{step}'")
