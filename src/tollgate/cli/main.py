"""Main CLI entry point.

    tollgate gate check run_command --command "ls -la"
    tollgate cycle run --queue tasks.json
    tollgate audit .tollgate/cycles/cycle-<id>.json
"""

import sys
from pathlib import Path

import click
from rich.console import Console

from tollgate.cli.ab_cmd import ab
from tollgate.cli.audit_cmd import audit
from tollgate.cli.config_cmd import config
from tollgate.cli.cycle_cmd import cycle
from tollgate.cli.events_cmd import events
from tollgate.cli.gate_cmd import gate
from tollgate.cli.helpers import get_data_dir
from tollgate.foundation.logging import configure_logging

console = Console()


def cli_entrypoint() -> None:
    """Wrapped entrypoint with global error handling.

    Catches TollgateError and displays it instead of a traceback.
    Called from pyproject.toml [project.scripts].
    """
    try:
        rv = main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("\n  [dim]Interrupted[/]")
        sys.exit(130)
    except Exception as e:
        from tollgate.cli.error_handler import handle_error

        handle_error(e, json_output=False)
    if isinstance(rv, int):
        sys.exit(rv)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--persist-logs", is_flag=True, help="Keep session logs under <data_dir>/logs")
@click.option("--project-root", "-C", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Project root (default: current directory)")
@click.version_option(prog_name="tollgate")
@click.pass_context
def main(ctx: click.Context, debug: bool, persist_logs: bool, project_root: Path | None) -> None:
    """Tollgate - admission control and audit for autonomous coding agents.

    \b
    COMMANDS:
        gate      Check, classify and inspect the admission gate
        cycle     Run unattended cycles under hard caps
        audit     Replay-audit a saved cycle report
        events    Inspect the critical event log
        ab        Compare gated and ungated cycles
        config    Show or initialise configuration
    """
    ctx.ensure_object(dict)
    ctx.obj["project_root"] = project_root
    configure_logging(
        debug=debug,
        log_dir=get_data_dir(ctx) / "logs" if persist_logs else None,
    )


main.add_command(gate)
main.add_command(cycle)
main.add_command(audit)
main.add_command(events)
main.add_command(ab)
main.add_command(config)
