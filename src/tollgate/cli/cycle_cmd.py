"""Cycle commands: run an unattended cycle, inspect a saved report, seed a queue."""

import json
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from tollgate.audit.auditor import load_cycle_report
from tollgate.cli.async_runner import run_async
from tollgate.cli.error_handler import handle_error
from tollgate.cli.helpers import (
    DEFAULT_EXECUTOR,
    get_config,
    get_data_dir,
    get_project_root,
    load_executor_factory,
)
from tollgate.context import create_gate_context
from tollgate.cycle.orchestrator import CycleOrchestrator
from tollgate.cycle.queue import DEFAULT_QUEUE_FILE, JsonTaskQueue
from tollgate.cycle.reports import print_cycle_summary
from tollgate.foundation.errors import ErrorCode, TollgateError
from tollgate.gate.sinks import RichConsoleSink

console = Console()


@click.group()
def cycle() -> None:
    """Unattended work cycles under hard caps."""


@cycle.command("run")
@click.option("--queue", "queue_path", type=click.Path(path_type=Path), default=None,
              help="Task queue JSON (default: <data_dir>/queue/tasks.json)")
@click.option("--executor", default=DEFAULT_EXECUTOR, show_default=True,
              help="Agent executor factory as module:callable")
@click.option("--max-iterations", type=int, default=None, help="Override the iteration cap")
@click.option("--max-duration", type=float, default=None, help="Override the duration cap (minutes)")
@click.option("--baseline", is_flag=True, help="Bypass the delegate's quality gate")
@click.option("--no-save", is_flag=True, help="Do not persist the cycle report")
@click.option("--json", "json_output", is_flag=True, help="Output the report as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    queue_path: Path | None,
    executor: str,
    max_iterations: int | None,
    max_duration: float | None,
    baseline: bool,
    no_save: bool,
    json_output: bool,
) -> None:
    """Run one cycle over the task queue."""
    config = get_config(ctx, json_output)
    caps = config.caps
    if max_iterations is not None:
        caps = replace(caps, max_iterations=max_iterations)
    if max_duration is not None:
        caps = replace(caps, max_duration_minutes=max_duration)
    problems = caps.problems()
    if problems:
        handle_error(
            TollgateError(
                code=ErrorCode.CONFIG_INVALID,
                context={"key": "caps", "detail": "; ".join(problems)},
            ),
            json_output,
        )

    sink = None if json_output else RichConsoleSink(console)
    context = create_gate_context(get_project_root(ctx), config, sink=sink)

    def on_event(event: str, message: str) -> None:
        if not json_output:
            console.print(f"[dim]{event:>8}[/dim] {escape(message)}")

    try:
        factory = load_executor_factory(executor)
        orchestrator = CycleOrchestrator(
            context,
            factory(context),
            caps=caps,
            baseline_mode=baseline,
            persist=not no_save,
            console=None if json_output else console,
            on_event=on_event,
        )
        report = run_async(orchestrator.run(queue_path=queue_path))
    except TollgateError as e:
        handle_error(e, json_output)

    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))
    elif orchestrator.report_path:
        console.print(f"[dim]Report saved: {orchestrator.report_path}[/dim]")


@cycle.command("show")
@click.argument("report_path", type=click.Path(path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, report_path: Path, json_output: bool) -> None:
    """Print a saved cycle report."""
    report = load_cycle_report(report_path)
    if report is None:
        handle_error(
            TollgateError(
                code=ErrorCode.REPORT_NOT_FOUND,
                context={"path": str(report_path), "data_dir": get_data_dir(ctx, json_output)},
            ),
            json_output,
        )
    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        caps = get_config(ctx).caps
        print_cycle_summary(report, console, max_prs=caps.max_prs, max_reviews=caps.max_reviews)


@cycle.command("init-queue")
@click.option("--path", "path", type=click.Path(path_type=Path), default=None,
              help="Destination (default: <data_dir>/queue/tasks.json)")
@click.option("--force", is_flag=True, help="Overwrite an existing queue")
@click.pass_context
def init_queue(ctx: click.Context, path: Path | None, force: bool) -> None:
    """Write the built-in starter tasks as an editable queue file."""
    backend = JsonTaskQueue(default_path=get_data_dir(ctx) / DEFAULT_QUEUE_FILE)
    target = path or backend.default_path
    if target.exists() and not force:
        raise click.ClickException(f"{target} already exists (use --force to overwrite)")
    queue = backend.default_tasks()
    if not backend.save(queue, target):
        raise click.ClickException(f"Could not write {target}")
    console.print(f"[green]✓[/green] Wrote {len(queue)} tasks to {escape(str(target))}")
