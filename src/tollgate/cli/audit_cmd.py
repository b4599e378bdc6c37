"""Audit command: replay-audit a saved cycle report."""

import json
from pathlib import Path

import click
from rich.console import Console

from tollgate.audit.auditor import (
    audit_cycle,
    load_cycle_report,
    print_audit_report,
    save_audit_report,
)
from tollgate.cli.error_handler import handle_error
from tollgate.cli.helpers import get_config, get_data_dir
from tollgate.cycle.orchestrator import EVENTS_DIRNAME
from tollgate.events.critical import CriticalEventLog
from tollgate.foundation.errors import ErrorCode, TollgateError

console = Console()


@click.command("audit")
@click.argument("report_path", type=click.Path(path_type=Path))
@click.option("--with-events", is_flag=True,
              help="Also check the critical event log for this cycle's events")
@click.option("--save/--no-save", default=True, show_default=True,
              help="Write audits/audit-<cycle_id>.json")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def audit(
    ctx: click.Context,
    report_path: Path,
    with_events: bool,
    save: bool,
    json_output: bool,
) -> None:
    """Verify a cycle report against the safety invariants.

    Exits 1 when the verdict is FAIL.

    \b
    Examples:
        tollgate audit .tollgate/cycles/cycle-2026-01-01T10-00-00-000000.json
        tollgate audit report.json --with-events --json
    """
    config = get_config(ctx, json_output)
    data_dir = get_data_dir(ctx, json_output)

    report = load_cycle_report(report_path)
    if report is None:
        handle_error(
            TollgateError(
                code=ErrorCode.REPORT_NOT_FOUND,
                context={"path": str(report_path), "data_dir": data_dir},
            ),
            json_output,
        )

    events = CriticalEventLog(data_dir / EVENTS_DIRNAME).all() if with_events else ()
    result = audit_cycle(report, config.caps, events=events)

    saved = save_audit_report(result, data_dir) if save else None

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        print_audit_report(result, console)
        if saved:
            console.print(f"[dim]Audit saved: {saved}[/dim]")

    if not result.passed:
        ctx.exit(1)
