"""A/B comparison command."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from tollgate.cli.async_runner import run_async
from tollgate.cli.error_handler import handle_error
from tollgate.cli.helpers import (
    DEFAULT_EXECUTOR,
    get_config,
    get_data_dir,
    get_project_root,
    load_executor_factory,
)
from tollgate.foundation.errors import TollgateError
from tollgate.harness.ab import ABHarness, print_ab_comparison, save_ab_comparison

console = Console()


@click.group()
def ab() -> None:
    """Compare gated (FULL) and ungated (BASELINE) cycles."""


@ab.command("run")
@click.option("--queue", "queue_path", type=click.Path(path_type=Path), default=None,
              help="Task queue JSON shared by both conditions")
@click.option("--executor", default=DEFAULT_EXECUTOR, show_default=True,
              help="Agent executor factory as module:callable")
@click.option("--cycles", default=3, show_default=True, help="Cycles per condition")
@click.option("--max-iterations", default=5, show_default=True, help="Iteration cap per cycle")
@click.option("--no-save", is_flag=True, help="Do not persist reports")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    queue_path: Path | None,
    executor: str,
    cycles: int,
    max_iterations: int,
    no_save: bool,
    json_output: bool,
) -> None:
    """Run the same queue under both conditions and diff the metrics."""
    config = get_config(ctx, json_output)
    data_dir = get_data_dir(ctx, json_output)

    def on_event(event: str, message: str) -> None:
        if not json_output and event in ("cycle", "audit", "stop"):
            console.print(f"[dim]{event:>8}[/dim] {escape(message)}")

    try:
        harness = ABHarness(
            load_executor_factory(executor),
            project_root=get_project_root(ctx),
            config=config,
            cycles_per_condition=cycles,
            max_iterations=max_iterations,
            data_dir=data_dir,
            persist_cycles=not no_save,
            on_event=on_event,
        )
        comparison = run_async(harness.run(queue_path=queue_path))
    except TollgateError as e:
        handle_error(e, json_output)

    saved = None if no_save else save_ab_comparison(comparison, data_dir)

    if json_output:
        click.echo(json.dumps(comparison.to_dict(), indent=2))
        return

    print_ab_comparison(comparison, console)
    console.print(escape(comparison.summary))
    if saved:
        console.print(f"[dim]Comparison saved: {saved}[/dim]")
