"""Tests for the RunReporter event handlers."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from stepcast.client import LogLevel, MemoryClient
from stepcast.config import ReporterConfig
from stepcast.errors import ConfigError, MetaStepCycleError
from stepcast.events import Event, EventDispatcher, Step, Suite, Test
from stepcast.reporting import ItemStatus, RunReporter, ScreenshotCapture


class FakeScreenshots(ScreenshotCapture):
    def __init__(self, content: bytes = b"\x89PNG", error: Exception | None = None):
        self.content = content
        self.error = error
        self.file_names: list[str] = []

    async def capture(self, file_name: str) -> bytes:
        self.file_names.append(file_name)
        if self.error is not None:
            raise self.error
        return self.content


async def emit_step(dispatcher: EventDispatcher, step: Step, status: str = "success") -> None:
    step.start()
    await dispatcher.emit(Event.STEP_START, step)
    step.complete(status)
    if status == "failed":
        await dispatcher.emit(Event.STEP_FAILED, step)
    elif status == "success":
        await dispatcher.emit(Event.STEP_PASSED, step)
    await dispatcher.emit(Event.STEP_END, step)


async def emit_test(
    dispatcher: EventDispatcher,
    test: Test,
    steps: list[tuple[Step, str]],
    error: str | None = None,
) -> None:
    await dispatcher.emit(Event.TEST_START, test)
    for step, status in steps:
        await emit_step(dispatcher, step, status)
    if error is not None:
        test.complete("failed", error)
        await dispatcher.emit(Event.TEST_FAILED, test, error)
    else:
        test.complete("passed")
        await dispatcher.emit(Event.TEST_PASSED, test)
    await dispatcher.emit(Event.TEST_END, test)


def summary(client: MemoryClient, start: int = 0) -> list[tuple[str, str | None]]:
    """Operation plus item name for each recorded call."""
    result = []
    for call in client.calls[start:]:
        if call.operation == "start_item":
            result.append((call.operation, call.params["name"]))
        elif call.handle in client.items:
            result.append((call.operation, client.items[call.handle].name))
        else:
            result.append((call.operation, call.handle))
    return result


class TestRunLifecycle:
    """Tests for launch start and finish."""

    @pytest.mark.asyncio
    async def test_run_start_starts_launch(self, reporter, client, console_output) -> None:
        await reporter.on_run_start()

        (call,) = client.operations("start_launch")
        assert call.params["name"] == "nightly"
        assert call.params["description"] == "Nightly regression"
        assert call.params["attributes"] == [{"key": "browser", "value": "chromium"}]
        assert call.params["rerun"] is False
        assert reporter.launch.handle == client.launch_id
        assert client.is_connected
        assert "Writing results to ReportPortal: web > https://rp.example.com/api/v1" in console_output.getvalue()

    @pytest.mark.asyncio
    async def test_run_start_passes_rerun_settings(self, config, client, console) -> None:
        config.rerun = True
        config.rerun_of = "b0c6a4e2"
        reporter = RunReporter(config, client=client, console=console)

        await reporter.on_run_start()

        call = client.operations("start_launch")[0]
        assert call.params["rerun"] is True
        assert call.params["rerun_of"] == "b0c6a4e2"

    @pytest.mark.asyncio
    async def test_launch_failure_exits(self, config, console, console_output) -> None:
        client = MemoryClient(fail_on={"start_launch"})
        reporter = RunReporter(config, client=client, console=console)

        with pytest.raises(SystemExit) as exc_info:
            await reporter.on_run_start()

        assert exc_info.value.code == 1
        assert [call.operation for call in client.calls] == ["start_launch"]
        assert "Can't connect to ReportPortal, exiting..." in console_output.getvalue()

    @pytest.mark.asyncio
    async def test_launch_failure_disconnects(self, config, console) -> None:
        client = MemoryClient(fail_on={"start_launch"})
        reporter = RunReporter(config, client=client, console=console)

        with pytest.raises(SystemExit):
            await reporter.on_run_start()

        assert not client.is_connected

    def test_invalid_config_raises_before_any_call(self, client, console) -> None:
        config = ReporterConfig(endpoint="https://rp.example.com/api/v1", project="web")

        with pytest.raises(ConfigError) as exc_info:
            RunReporter(config, client=client, console=console)

        assert "token" in str(exc_info.value)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_run_end_finishes_launch(self, reporter, client, dispatcher, console_output) -> None:
        await dispatcher.emit(Event.RUN_START)
        suite = Suite("Login")
        await dispatcher.emit(Event.SUITE_START, suite)
        await emit_test(dispatcher, Test("opens page"), [(Step("amOnPage", args=["/"]), "success")])
        await dispatcher.emit(Event.SUITE_END, suite)

        await dispatcher.emit(Event.RUN_END)

        (call,) = client.operations("finish_launch")
        assert call.params["status"] == "PASSED"
        assert reporter.result.number == 1
        assert "Report #1 saved ➡ memory://launches/launch-1" in console_output.getvalue()
        assert not client.is_connected
        assert not reporter.sequencer.is_running

    @pytest.mark.asyncio
    async def test_run_end_closes_unfinished_suite(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))

        await dispatcher.emit(Event.RUN_END)

        assert client.find("Login").finished
        assert client.find("Login").status == "PASSED"

    @pytest.mark.asyncio
    async def test_run_end_survives_finish_failure(self, config, console) -> None:
        client = MemoryClient(fail_on={"finish_launch"})
        reporter = RunReporter(config, client=client, console=console)
        await reporter.on_run_start()

        assert await reporter.on_run_end() is None
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_run_end_without_launch(self, reporter, client) -> None:
        assert await reporter.on_run_end() is None
        assert client.calls == []


class TestHierarchy:
    """Tests for the suite > test > meta-step > step tree."""

    @pytest.mark.asyncio
    async def test_suite_and_test_items(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("opens page"), [(Step("amOnPage", args=["/login"]), "success")])
        await dispatcher.emit(Event.RUN_END)

        suite = client.find("Login")
        test = client.find("opens page")
        step = client.find('I am on page "/login"')
        assert suite.parent_handle is None
        assert suite.item_type == "SUITE" and suite.has_stats
        assert test.parent_handle == suite.handle
        assert test.item_type == "TEST" and test.has_stats
        assert step.parent_handle == test.handle
        assert step.item_type == "STEP" and not step.has_stats
        assert step.status == "PASSED"
        assert test.status == "PASSED"

    @pytest.mark.asyncio
    async def test_meta_step_reused_across_steps(self, client, dispatcher) -> None:
        login = Step("login", actor="loginPage", args=["admin"])
        steps = [
            (Step("fillField", args=["user", "admin"], meta_step=login), "success"),
            (Step("fillField", args=["password", "123456"], meta_step=login), "success"),
            (Step("click", args=["Sign in"], meta_step=login), "success"),
        ]
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), steps)
        await dispatcher.emit(Event.RUN_END)

        meta_starts = [c for c in client.operations("start_item") if c.params["name"] == 'loginPage login "admin"']
        assert len(meta_starts) == 1
        meta = client.items[meta_starts[0].handle]
        assert meta.has_stats is False
        assert len(meta.children) == 3
        assert meta.status == "PASSED"
        assert meta.finished

    @pytest.mark.asyncio
    async def test_equal_meta_steps_are_reused_across_instances(self, client, dispatcher) -> None:
        first = Step("login", actor="loginPage", args=["admin"])
        second = Step("login", actor="loginPage", args=["admin"])
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), [
            (Step("fillField", meta_step=first), "success"),
            (Step("click", meta_step=second), "success"),
        ])
        await dispatcher.emit(Event.RUN_END)

        starts = [c.params["name"] for c in client.operations("start_item")]
        assert starts.count('loginPage login "admin"') == 1

    @pytest.mark.asyncio
    async def test_nested_meta_steps(self, client, dispatcher) -> None:
        outer = Step("signIn", actor="userFlow")
        inner = Step("fillCredentials", actor="loginPage", meta_step=outer)
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), [
            (Step("fillField", args=["user", "admin"], meta_step=inner), "success"),
            (Step("see", args=["Dashboard"]), "success"),
        ])
        await dispatcher.emit(Event.RUN_END)

        test = client.find("signs in")
        outer_item = client.find("userFlow sign in")
        inner_item = client.find("loginPage fill credentials")
        assert outer_item.parent_handle == test.handle
        assert inner_item.parent_handle == outer_item.handle
        assert client.find('I fill field "user", "admin"').parent_handle == inner_item.handle
        assert client.find('I see "Dashboard"').parent_handle == test.handle
        # Both meta-steps are closed before the next top-level step opens
        assert summary(client)[-8:-4] == [
            ("finish_item", 'I fill field "user", "admin"'),
            ("finish_item", "loginPage fill credentials"),
            ("finish_item", "userFlow sign in"),
            ("start_item", 'I see "Dashboard"'),
        ]

    @pytest.mark.asyncio
    async def test_meta_steps_reset_between_tests(self, client, dispatcher) -> None:
        login = Step("login", actor="loginPage")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("first"), [(Step("click", meta_step=login), "success")])
        await emit_test(dispatcher, Test("second"), [(Step("click", meta_step=login), "success")])
        await dispatcher.emit(Event.RUN_END)

        metas = [c for c in client.operations("start_item") if c.params["name"] == "loginPage login"]
        assert len(metas) == 2
        assert metas[0].params["parent_handle"] == client.find("first").handle
        assert metas[1].params["parent_handle"] == client.find("second").handle
        assert all(client.items[c.handle].finished for c in metas)

    @pytest.mark.asyncio
    async def test_cyclic_meta_steps_raise(self, dispatcher) -> None:
        first = Step("first")
        second = Step("second", meta_step=first)
        first.meta_step = second
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Loop"))
        await dispatcher.emit(Event.TEST_START, Test("loops"))

        with pytest.raises(MetaStepCycleError):
            await dispatcher.emit(Event.STEP_START, Step("click", meta_step=first))

        await dispatcher.emit(Event.RUN_END)

    @pytest.mark.asyncio
    async def test_unmapped_step_status_is_passed_through(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("skips"), [(Step("wait", args=[1]), "skipped")])
        await dispatcher.emit(Event.RUN_END)

        assert client.find("I wait 1").status == "skipped"

    @pytest.mark.asyncio
    async def test_test_end_uses_framework_status(self, client, dispatcher) -> None:
        test = Test("pending")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await dispatcher.emit(Event.TEST_START, test)
        test.complete("skipped")
        await dispatcher.emit(Event.TEST_END, test)
        await dispatcher.emit(Event.RUN_END)

        assert client.find("pending").status == "skipped"

    @pytest.mark.asyncio
    async def test_test_end_failure_downgrades_suite_and_launch(self, reporter, client, dispatcher) -> None:
        suite, test = Suite("Checkout"), Test("pays")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, suite)
        await dispatcher.emit(Event.TEST_START, test)
        test.complete("failed", "declined")
        await dispatcher.emit(Event.TEST_END, test)
        await dispatcher.emit(Event.SUITE_END, suite)
        await dispatcher.emit(Event.RUN_END)

        assert client.find("pays").status == "FAILED"
        assert [log.message for log in client.find("pays").logs] == ["declined"]
        assert client.operations("finish_item")[0].params["message"] == "declined"
        assert client.find("Checkout").status == "FAILED"
        assert client.launch_status == "FAILED"
        assert reporter.status == ItemStatus.FAILED

    @pytest.mark.asyncio
    async def test_test_end_after_test_failed_does_not_log_twice(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Checkout"))
        await emit_test(dispatcher, Test("pays"), [], error="declined")
        await dispatcher.emit(Event.RUN_END)

        assert len(client.find("pays").logs) == 1

    @pytest.mark.asyncio
    async def test_failed_item_start_does_not_stop_run(self, config, console) -> None:
        client = MemoryClient(fail_items={"broken"})
        reporter = RunReporter(config, client=client, console=console)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("broken"), [(Step("click"), "success")])
        await emit_test(dispatcher, Test("works"), [(Step("click"), "success")])
        await dispatcher.emit(Event.RUN_END)

        assert client.find("works").finished
        assert client.find("works").children
        assert client.launch_status == "PASSED"


class TestFailures:
    """Tests for failure propagation and failure artifacts."""

    @pytest.mark.asyncio
    async def test_failing_step_reporting_order(self, config, client, console) -> None:
        screenshots = FakeScreenshots()
        reporter = RunReporter(config, client=client, screenshots=screenshots, console=console)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)
        login = Step("login", actor="loginPage", args=["admin"])
        failing = Step("see", args=["Dashboard"], meta_step=login)

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await reporter.sequencer.drain()
        mark = len(client.calls)
        await emit_test(
            dispatcher,
            Test("signs in"),
            [(Step("fillField", args=["user", "admin"], meta_step=login), "success"), (failing, "failed")],
            error="expected Dashboard",
        )
        await dispatcher.emit(Event.RUN_END)

        assert summary(client, mark) == [
            ("start_item", "signs in"),
            ("start_item", 'loginPage login "admin"'),
            ("start_item", 'I fill field "user", "admin"'),
            ("finish_item", 'I fill field "user", "admin"'),
            ("start_item", 'I see "Dashboard"'),
            ("send_log", 'I see "Dashboard"'),
            ("finish_item", 'I see "Dashboard"'),
            ("finish_item", 'loginPage login "admin"'),
            ("finish_item", "signs in"),
            ("finish_item", "Login"),
            ("finish_launch", client.launch_id),
        ]
        assert client.find('I see "Dashboard"').status == "FAILED"
        assert client.find('loginPage login "admin"').status == "FAILED"
        assert client.find("signs in").status == "FAILED"
        assert client.find("Login").status == "FAILED"
        assert client.launch_status == "FAILED"
        assert reporter.status == ItemStatus.FAILED

    @pytest.mark.asyncio
    async def test_failure_log_carries_screenshot(self, config, client, console) -> None:
        screenshots = FakeScreenshots(content=b"image-bytes")
        reporter = RunReporter(config, client=client, screenshots=screenshots, console=console)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)
        failing = Step("see", args=["Dashboard"])

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), [(failing, "failed")], error="expected Dashboard")
        await dispatcher.emit(Event.RUN_END)

        (log,) = client.find('I see "Dashboard"').logs
        assert log.level == LogLevel.ERROR
        assert log.message == "expected Dashboard"
        assert log.time == failing.started_at
        assert log.artifact.content == b"image-bytes"
        assert log.artifact.mime == "image/png"
        assert log.artifact.name == screenshots.file_names[0]
        assert log.artifact.name.endswith("_failed.png")
        assert client.find("signs in").logs == []

    @pytest.mark.asyncio
    async def test_screenshot_helper_saves_into_output_dir(self, config, client, console, tmp_path) -> None:
        config.output_dir = tmp_path / "output"
        config.output_dir.mkdir()
        saved: list[str] = []

        async def save_screenshot(file_name: str) -> None:
            saved.append(file_name)
            (config.output_dir / file_name).write_bytes(b"screen")

        reporter = RunReporter(config, client=client, console=console, save_screenshot=save_screenshot)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), [(Step("see"), "failed")], error="boom")
        await dispatcher.emit(Event.RUN_END)

        (log,) = client.find("I see").logs
        assert log.artifact.content == b"screen"
        assert log.artifact.name == saved[0]
        assert list(config.output_dir.iterdir()) == []

    def test_explicit_capture_wins_over_helper(self, config, client, console) -> None:
        screenshots = FakeScreenshots()
        reporter = RunReporter(
            config, client=client, console=console, screenshots=screenshots, save_screenshot=AsyncMock()
        )
        assert reporter.screenshots is screenshots

    @pytest.mark.asyncio
    async def test_screenshot_failure_still_logs_error(self, config, client, console) -> None:
        screenshots = FakeScreenshots(error=RuntimeError("browser closed"))
        reporter = RunReporter(config, client=client, screenshots=screenshots, console=console)
        dispatcher = EventDispatcher()
        reporter.attach(dispatcher)

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("signs in"), [(Step("see"), "failed")], error="boom")
        await dispatcher.emit(Event.RUN_END)

        (log,) = client.find("I see").logs
        assert log.message == "boom"
        assert log.artifact is None
        assert client.find("I see").status == "FAILED"

    @pytest.mark.asyncio
    async def test_exception_error_is_formatted(self, reporter, client, dispatcher) -> None:
        try:
            raise AssertionError("expected Dashboard")
        except AssertionError as e:
            error = e
        test = Test("signs in")

        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await dispatcher.emit(Event.TEST_START, test)
        await emit_step(dispatcher, Step("see"), "failed")
        test.complete("failed", error)
        await dispatcher.emit(Event.TEST_FAILED, test, error)
        await dispatcher.emit(Event.RUN_END)

        (log,) = client.find("I see").logs
        assert log.message.startswith("Traceback")
        assert "AssertionError: expected Dashboard" in log.message

    @pytest.mark.asyncio
    async def test_error_logged_to_test_without_failing_step(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("hook fails"), [(Step("click"), "success")], error="before hook failed")
        await dispatcher.emit(Event.RUN_END)

        (log,) = client.find("hook fails").logs
        assert log.message == "before hook failed"
        assert log.artifact is None
        assert client.find("hook fails").status == "FAILED"

    @pytest.mark.asyncio
    async def test_error_falls_back_to_test_error(self, client, dispatcher) -> None:
        test = Test("fails")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await dispatcher.emit(Event.TEST_START, test)
        test.complete("failed", "stored error")
        await dispatcher.emit(Event.TEST_FAILED, test)
        await dispatcher.emit(Event.RUN_END)

        assert client.find("fails").logs[0].message == "stored error"

    @pytest.mark.asyncio
    async def test_later_failure_takes_the_artifacts(self, client, dispatcher) -> None:
        first = Step("see", args=["Dashboard"])
        second = Step("see", args=["Profile"])
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("soft asserts"), [(first, "failed"), (second, "failed")], error="2 failures")
        await dispatcher.emit(Event.RUN_END)

        assert client.find('I see "Dashboard"').logs == []
        assert client.find('I see "Dashboard"').status == "FAILED"
        assert client.find('I see "Dashboard"').finished
        assert len(client.find('I see "Profile"').logs) == 1

    @pytest.mark.asyncio
    async def test_held_failure_closed_before_its_meta_step(self, reporter, client, dispatcher) -> None:
        login = Step("login", actor="loginPage")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await reporter.sequencer.drain()
        mark = len(client.calls)
        await emit_test(
            dispatcher,
            Test("retries"),
            [(Step("see", meta_step=login), "failed"), (Step("click"), "success")],
            error="expected text",
        )
        await dispatcher.emit(Event.RUN_END)

        assert summary(client, mark)[:7] == [
            ("start_item", "retries"),
            ("start_item", "loginPage login"),
            ("start_item", "I see"),
            ("finish_item", "I see"),
            ("finish_item", "loginPage login"),
            ("start_item", "I click"),
            ("finish_item", "I click"),
        ]
        # Logged to the failing step even though it was finished early
        assert client.find("I see").logs[0].message == "expected text"
        assert client.find("retries").logs == []
        assert client.find("loginPage login").status == "FAILED"

    @pytest.mark.asyncio
    async def test_passing_test_closes_held_failure(self, client, dispatcher) -> None:
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("tolerates"), [(Step("see"), "failed")])
        await dispatcher.emit(Event.RUN_END)

        step = client.find("I see")
        assert step.finished
        assert step.status == "FAILED"
        assert step.logs == []
        assert client.find("tolerates").status == "PASSED"
        assert client.launch_status == "PASSED"

    @pytest.mark.asyncio
    async def test_meta_step_stays_failed_after_passing_step(self, client, dispatcher) -> None:
        login = Step("login", actor="loginPage")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, Suite("Login"))
        await emit_test(dispatcher, Test("recovers"), [
            (Step("see", meta_step=login), "failed"),
            (Step("click", meta_step=login), "success"),
        ], error="expected text")
        await dispatcher.emit(Event.RUN_END)

        assert client.find("loginPage login").status == "FAILED"

    @pytest.mark.asyncio
    async def test_suite_and_launch_aggregates(self, client, dispatcher) -> None:
        failing_suite, passing_suite = Suite("Checkout"), Suite("Search")
        await dispatcher.emit(Event.RUN_START)
        await dispatcher.emit(Event.SUITE_START, failing_suite)
        await emit_test(dispatcher, Test("pays"), [(Step("click"), "failed")], error="declined")
        await emit_test(dispatcher, Test("cancels"), [(Step("click"), "success")])
        await dispatcher.emit(Event.SUITE_END, failing_suite)
        await dispatcher.emit(Event.SUITE_START, passing_suite)
        await emit_test(dispatcher, Test("finds"), [(Step("fillField"), "success")])
        await dispatcher.emit(Event.SUITE_END, passing_suite)
        await dispatcher.emit(Event.RUN_END)

        assert client.find("Checkout").status == "FAILED"
        assert client.find("Search").status == "PASSED"
        assert client.find("cancels").status == "PASSED"
        assert client.launch_status == "FAILED"
