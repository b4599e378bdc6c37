"""Gate commands: admission checks, classification, budget and pattern tables."""

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tollgate.cli.helpers import get_config, get_project_root, parse_params
from tollgate.context import create_gate_context
from tollgate.gate.patterns import ALLOWED_COMMANDS, DANGEROUS_COMMANDS, MUTATION_COMMANDS
from tollgate.gate.sinks import CollectingSink, format_block_message
from tollgate.gate.types import Severity

console = Console()

_SEVERITY_STYLE = {
    Severity.SAFE: "green",
    Severity.WARN: "yellow",
    Severity.BLOCK: "bold red",
}


def _tool_params(command: str | None, path: str | None, param: tuple[str, ...]) -> dict:
    params: dict = parse_params(param)
    if command is not None:
        params["command"] = command
    if path is not None:
        params["path"] = path
    return params


@click.group()
def gate() -> None:
    """Admission gate checks.

    \b
    Examples:
        tollgate gate check run_command --command "ls -la"
        tollgate gate check write_file --path package.json --confirm
        tollgate gate classify run_command --command "git push --force"
    """


@gate.command("check")
@click.argument("tool_name")
@click.option("--command", "-c", default=None, help="Command line (for run_command)")
@click.option("--path", default=None, help="Target file (for write_file / delete_file)")
@click.option("--param", "-P", multiple=True, help="Extra parameter as key=value")
@click.option("--token", default=None, help="Confirmation token for a critical file")
@click.option("--confirm", is_flag=True, help="Issue a token first and pass it (two-step)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def check(
    ctx: click.Context,
    tool_name: str,
    command: str | None,
    path: str | None,
    param: tuple[str, ...],
    token: str | None,
    confirm: bool,
    json_output: bool,
) -> None:
    """Ask the gate whether TOOL_NAME may run. Exits 1 when blocked."""
    config = get_config(ctx, json_output)
    sink = CollectingSink()
    context = create_gate_context(get_project_root(ctx), config, sink=sink)
    params = _tool_params(command, path, param)

    if confirm:
        token = context.issue_token()

    decision = context.check_admission(tool_name, params, token)
    tier = context.classify(tool_name, params)

    if json_output:
        click.echo(json.dumps({**decision.to_dict(), "tier": tier.value}, indent=2))
    elif decision.allowed:
        style = _SEVERITY_STYLE[decision.severity]
        console.print(f"[{style}]✓ {decision.severity.value.upper()}[/] {escape(decision.reason)}")
        console.print(f"  Tier: {tier.value}")
        for line in decision.evidence:
            console.print(f"  • {escape(line)}")
    else:
        console.print(f"[bold red]{escape(format_block_message(decision))}[/]")

    if not decision.allowed:
        ctx.exit(1)


@gate.command("classify")
@click.argument("tool_name")
@click.option("--command", "-c", default=None, help="Command line (for run_command)")
@click.option("--path", default=None, help="Target file (for write_file / delete_file)")
@click.option("--param", "-P", multiple=True, help="Extra parameter as key=value")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def classify_cmd(
    ctx: click.Context,
    tool_name: str,
    command: str | None,
    path: str | None,
    param: tuple[str, ...],
    json_output: bool,
) -> None:
    """Print the risk tier of a tool call."""
    context = create_gate_context(get_project_root(ctx), get_config(ctx, json_output))
    tier = context.classify(tool_name, _tool_params(command, path, param))
    if json_output:
        click.echo(json.dumps({"tool_name": tool_name, "tier": tier.value}))
    else:
        console.print(f"{tool_name}: [bold]{tier.value}[/bold]")


@gate.command("budget")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def budget(ctx: click.Context, json_output: bool) -> None:
    """Show the exploration budget a fresh session starts with."""
    context = create_gate_context(get_project_root(ctx), get_config(ctx, json_output))
    if json_output:
        click.echo(json.dumps(context.budget_status().to_dict(), indent=2))
    else:
        console.print(escape(context.budget.render_report()))


@gate.command("patterns")
def patterns() -> None:
    """List the built-in command pattern tables."""
    for title, rules in (
        ("Denylist (always wins)", DANGEROUS_COMMANDS),
        ("Allowlist", ALLOWED_COMMANDS),
        ("Mutations (classified write_normal)", MUTATION_COMMANDS),
    ):
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Rule", style="cyan")
        table.add_column("Pattern")
        for rule in rules:
            table.add_row(rule.name, escape(rule.pattern))
        console.print(table)
