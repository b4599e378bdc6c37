"""Critical event commands."""

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tollgate.cli.helpers import get_data_dir
from tollgate.cycle.orchestrator import EVENTS_DIRNAME
from tollgate.events.critical import CriticalEventLog, EventSeverity

console = Console()


def _event_log(ctx: click.Context, json_output: bool) -> CriticalEventLog:
    return CriticalEventLog(get_data_dir(ctx, json_output) / EVENTS_DIRNAME)


@click.group()
def events() -> None:
    """Inspect the append-only critical event log."""


@events.command("tail")
@click.option("-n", "--limit", default=10, show_default=True, help="Number of events")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def tail(ctx: click.Context, limit: int, json_output: bool) -> None:
    """Show the most recent critical events."""
    recent = _event_log(ctx, json_output).tail(limit)

    if json_output:
        click.echo(json.dumps([e.to_dict() for e in recent], indent=2))
        return

    if not recent:
        console.print("[green]No critical events recorded[/green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time", style="dim", width=19)
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Description")
    table.add_column("Task", style="dim")
    for event in recent:
        severity_style = "bold red" if event.severity is EventSeverity.CRITICAL else "yellow"
        table.add_row(
            f"{event.timestamp:%Y-%m-%d %H:%M:%S}",
            event.type.value,
            f"[{severity_style}]{event.severity.value}[/]",
            escape(event.description),
            event.task_id or "-",
        )
    console.print(table)


@events.command("recent")
@click.option("--minutes", default=60.0, show_default=True, help="Look-back window")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def recent(ctx: click.Context, minutes: float, json_output: bool) -> None:
    """Check for critical events within the window. Exits 1 if any exist."""
    found = _event_log(ctx, json_output).has_recent(minutes=minutes)

    if json_output:
        click.echo(json.dumps({"minutes": minutes, "recent": found}))
    elif found:
        console.print(f"[bold red]Critical events within the last {minutes:g} minutes[/]")
    else:
        console.print(f"[green]No critical events within the last {minutes:g} minutes[/green]")

    if found:
        ctx.exit(1)
