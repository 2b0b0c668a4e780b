#!/usr/bin/env python3
"""
stepcast CLI - real-time test run reporting

Usage:
    stepcast replay <run.yaml> --config <reportportal.yaml> [OPTIONS]
    stepcast validate <reportportal.yaml> [--run <run.yaml>]
    stepcast --version
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .client import MemoryClient
from .config import load_config
from .events import EventDispatcher
from .log import configure_logging
from .replay import RecordedRun, load_run, replay_run
from .reporting import ItemStatus, RunReporter

app = typer.Typer(
    name="stepcast",
    help="📋 stepcast - real-time test run reporting",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    "PASSED": "green",
    "FAILED": "red",
}


def version_callback(value: bool):
    if value:
        console.print(f"📋 stepcast v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
):
    """
    📋 stepcast - real-time test run reporting

    Report suites, tests and nested steps to ReportPortal as they execute.
    """
    pass


async def replay_with_reporter(run: RecordedRun, reporter: RunReporter) -> None:
    """Drive a reporter with the events of a recorded run."""
    dispatcher = EventDispatcher()
    reporter.attach(dispatcher)
    await replay_run(run, dispatcher)


def render_tree(client: MemoryClient, title: str = "Launch") -> Tree:
    """Render what a MemoryClient recorded as a rich tree."""
    launch_status = client.launch_status or "?"
    tree = Tree(f"[bold]{title}[/bold] [{STATUS_STYLES.get(launch_status, 'yellow')}]{launch_status}[/]")

    def add(node: Tree, handle: str) -> None:
        item = client.items[handle]
        status = item.status or "-"
        style = STATUS_STYLES.get(status, "yellow")
        label = f"{item.name} [dim]{item.item_type.lower()}[/dim] [{style}]{status}[/]"
        if item.logs:
            label += f" [dim]({len(item.logs)} log)[/dim]"
        child = node.add(label)
        for child_handle in item.children:
            add(child, child_handle)

    for handle in client.roots:
        add(tree, handle)
    return tree


@app.command()
def replay(
    run_file: Path = typer.Argument(
        ...,
        help="Path to the recorded run YAML file",
        exists=True,
        readable=True,
    ),
    config_file: Path = typer.Option(
        ..., "--config", "-c",
        help="Path to the reporter config YAML file",
        exists=True,
        readable=True,
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Record calls in memory and print the report tree"
    ),
    debug: bool = typer.Option(
        False, "--debug",
        help="Show debug logging, including swallowed reporting errors"
    ),
):
    """
    Report a recorded run.

    Exits with code 1 when any test failed or the launch could not be started.
    """
    config, validation = load_config(config_file)
    if not validation.is_valid:
        console.print("\n[red]❌ Invalid config:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)

    run, run_validation = load_run(run_file)
    if not run_validation.is_valid:
        console.print("\n[red]❌ Invalid run file:[/red]")
        console.print(str(run_validation))
        raise typer.Exit(code=1)

    configure_logging(debug or config.debug)
    console.print(
        f"\n▶ Replaying {run.test_count} test(s), {run.step_count} step(s) from {run_file}",
        markup=False,
    )

    reporter = RunReporter(config, console=console, dry_run=dry_run)
    asyncio.run(replay_with_reporter(run, reporter))

    if dry_run and isinstance(reporter.client, MemoryClient):
        console.print()
        console.print(render_tree(reporter.client, config.launch_name))

    if reporter.status == ItemStatus.PASSED:
        raise typer.Exit(code=0)
    else:
        raise typer.Exit(code=1)


@app.command()
def validate(
    config_file: Path = typer.Argument(
        ...,
        help="Path to the reporter config YAML file",
        exists=True,
        readable=True,
    ),
    run_file: Optional[Path] = typer.Option(
        None, "--run", "-r",
        help="Also validate a recorded run file",
        exists=True,
        readable=True,
    ),
):
    """
    Validate a reporter config (and optionally a recorded run).
    """
    console.print(f"\n📄 Validating: {config_file}")

    config, validation = load_config(config_file)
    if not validation.is_valid:
        console.print("\n[red]❌ Validation failed:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)

    console.print(f"\n[green]✅ Valid config:[/green] {config.project}")

    table = Table(title="Settings")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("endpoint", config.endpoint)
    table.add_row("project", config.project)
    table.add_row("token", "*" * 8)
    table.add_row("launch_name", config.launch_name)
    table.add_row("attributes", ", ".join(
        f"{a.get('key')}:{a.get('value')}" if a.get("key") else str(a.get("value"))
        for a in config.attributes
    ) or "-")
    table.add_row("rerun", f"{config.rerun} ({config.rerun_of})" if config.rerun_of else str(config.rerun))
    console.print()
    console.print(table)

    if run_file is not None:
        run, run_validation = load_run(run_file)
        if not run_validation.is_valid:
            console.print(f"\n[red]❌ Invalid run file:[/red] {run_file}")
            console.print(str(run_validation))
            raise typer.Exit(code=1)
        console.print(f"\n[green]✅ Valid run:[/green] {run.test_count} test(s), {run.step_count} step(s)")

    raise typer.Exit(code=0)


@app.command()
def info():
    """
    Show information about stepcast.
    """
    console.print(f"""
📋 [bold]stepcast[/bold] v{__version__}

Real-time test run reporting to ReportPortal

[bold]Features:[/bold]
  • Launch > suite > test > step hierarchy, reported live
  • Nested meta-steps (page-object actions) reused across steps
  • Failure propagation to meta-steps, suites and the launch
  • Screenshots attached to the failing step

[bold]Quick Start:[/bold]
  stepcast validate reportportal.yaml
  stepcast replay runs/nightly.yaml -c reportportal.yaml --dry-run
""")


if __name__ == "__main__":
    app()
