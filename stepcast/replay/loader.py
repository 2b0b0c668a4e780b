"""
Loader for recorded runs.

A recorded run is a YAML file describing suites, tests and steps as they
executed, including each step's meta-step chain:

    suites:
      - title: Login
        tests:
          - title: signs in with valid credentials
            status: failed
            error: "AssertionError: expected dashboard"
            steps:
              - name: amOnPage
                args: ["/login"]
              - name: fillField
                args: ["user", "admin"]
                meta:
                  - {actor: loginPage, name: login, args: [admin]}
              - name: see
                args: ["Dashboard"]
                status: failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..config.validation import ValidationResult
from ..events import Step, Suite, Test


# ─────────────────────────────────────────────────────────────────────────────
# Recorded run structure
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class RecordedTest:
    test: Test
    steps: list[Step] = field(default_factory=list)
    status: str = "passed"
    error: str | None = None


@dataclass
class RecordedSuite:
    suite: Suite
    tests: list[RecordedTest] = field(default_factory=list)


@dataclass
class RecordedRun:
    suites: list[RecordedSuite] = field(default_factory=list)

    @property
    def test_count(self) -> int:
        return sum(len(suite.tests) for suite in self.suites)

    @property
    def step_count(self) -> int:
        return sum(len(test.steps) for suite in self.suites for test in suite.tests)


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

class RunValidator:
    """Validates the raw structure of a recorded run."""

    STEP_FIELDS = {"name", "actor", "args", "status", "meta"}
    META_FIELDS = {"name", "actor", "args"}

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.result = ValidationResult()

    def validate(self) -> ValidationResult:
        suites = self.data.get("suites")
        if not isinstance(suites, list) or not suites:
            self.result.add_error(
                "suites",
                "Must be a non-empty list",
                value=suites,
                suggestion="Add 'suites:' with at least one suite"
            )
            return self.result

        for i, suite in enumerate(suites):
            self._validate_suite(f"suites[{i}]", suite)
        return self.result

    def _validate_title(self, path: str, node: dict) -> None:
        title = node.get("title")
        if not isinstance(title, str) or not title.strip():
            self.result.add_error(f"{path}.title", "Must be a non-empty string", value=title)

    def _validate_suite(self, path: str, suite: Any) -> None:
        if not isinstance(suite, dict):
            self.result.add_error(path, "Suite must be an object", value=suite)
            return
        self._validate_title(path, suite)

        tests = suite.get("tests", [])
        if not isinstance(tests, list):
            self.result.add_error(f"{path}.tests", "Must be a list", value=tests)
            return
        for i, test in enumerate(tests):
            self._validate_test(f"{path}.tests[{i}]", test)

    def _validate_test(self, path: str, test: Any) -> None:
        if not isinstance(test, dict):
            self.result.add_error(path, "Test must be an object", value=test)
            return
        self._validate_title(path, test)

        for name in ("status", "error"):
            value = test.get(name)
            if value is not None and not isinstance(value, str):
                self.result.add_error(f"{path}.{name}", "Must be a string", value=value)

        steps = test.get("steps", [])
        if not isinstance(steps, list):
            self.result.add_error(f"{path}.steps", "Must be a list", value=steps)
            return
        for i, step in enumerate(steps):
            self._validate_step(f"{path}.steps[{i}]", step)

    def _validate_step(self, path: str, step: Any) -> None:
        if not isinstance(step, dict):
            self.result.add_error(path, "Step must be an object", value=step)
            return
        self._validate_action(path, step, self.STEP_FIELDS)

        status = step.get("status")
        if status is not None and not isinstance(status, str):
            self.result.add_error(f"{path}.status", "Must be a string", value=status)

        meta = step.get("meta", [])
        if not isinstance(meta, list):
            self.result.add_error(
                f"{path}.meta",
                "Must be a list of meta-steps, outermost first",
                value=meta
            )
            return
        for i, meta_step in enumerate(meta):
            meta_path = f"{path}.meta[{i}]"
            if not isinstance(meta_step, dict):
                self.result.add_error(meta_path, "Meta-step must be an object", value=meta_step)
                continue
            self._validate_action(meta_path, meta_step, self.META_FIELDS)

    def _validate_action(self, path: str, node: dict, allowed: set[str]) -> None:
        name = node.get("name")
        if not isinstance(name, str) or not name:
            self.result.add_error(
                f"{path}.name",
                "Requires a 'name' field",
                value=name,
                suggestion="Use the method name, e.g. 'name: click'"
            )

        actor = node.get("actor")
        if actor is not None and not isinstance(actor, str):
            self.result.add_error(f"{path}.actor", "Must be a string", value=actor)

        args = node.get("args")
        if args is not None and not isinstance(args, list):
            self.result.add_error(f"{path}.args", "Must be a list", value=args)

        unknown = set(node) - allowed
        if unknown:
            self.result.add_error(
                path,
                f"Unknown field(s): {', '.join(sorted(unknown))}",
                suggestion=f"Valid fields are: {', '.join(sorted(allowed))}"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────

def _build_meta_chain(meta: list[dict[str, Any]]) -> Step | None:
    """Link meta-step descriptors (outermost first) through meta_step."""
    parent: Step | None = None
    for descriptor in meta:
        parent = Step(
            name=descriptor["name"],
            actor=descriptor.get("actor", "I"),
            args=list(descriptor.get("args") or []),
            meta_step=parent,
        )
    return parent


def _parse_test(data: dict[str, Any]) -> RecordedTest:
    steps = [
        Step(
            name=step["name"],
            actor=step.get("actor", "I"),
            args=list(step.get("args") or []),
            status=step.get("status", "success"),
            meta_step=_build_meta_chain(step.get("meta") or []),
        )
        for step in data.get("steps") or []
    ]

    status = data.get("status")
    if status is None:
        status = "failed" if any(step.status == "failed" for step in steps) else "passed"

    error = data.get("error")
    if status == "failed" and error is None:
        failed = next((step for step in steps if step.status == "failed"), None)
        error = f"Step '{failed}' failed" if failed else "Test failed"

    return RecordedTest(test=Test(title=data["title"]), steps=steps, status=status, error=error)


def parse_run(data: Any) -> tuple[RecordedRun | None, ValidationResult]:
    """
    Validate and build a recorded run from parsed YAML.

    Returns:
        Tuple of (RecordedRun or None, ValidationResult)
    """
    if not isinstance(data, dict):
        result = ValidationResult()
        result.add_error(
            "run",
            "Content must be a YAML object",
            value=type(data).__name__
        )
        return None, result

    result = RunValidator(data).validate()
    if not result.is_valid:
        return None, result

    run = RecordedRun(
        suites=[
            RecordedSuite(
                suite=Suite(title=suite["title"]),
                tests=[_parse_test(test) for test in suite.get("tests") or []],
            )
            for suite in data["suites"]
        ]
    )
    return run, result


def load_run(path: str | Path) -> tuple[RecordedRun | None, ValidationResult]:
    """
    Load and validate a recorded run from a YAML file.

    Example:
        run, result = load_run("runs/nightly.yaml")
        if not result.is_valid:
            print(result)
    """
    path = Path(path)

    if not path.exists():
        result = ValidationResult()
        result.add_error(
            str(path),
            "File not found",
            suggestion="Check the file path is correct"
        )
        return None, result

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        result = ValidationResult()
        result.add_error(
            str(path),
            f"Invalid YAML syntax: {e}",
            suggestion="Check YAML formatting (indentation, colons, etc.)"
        )
        return None, result

    return parse_run(data)
