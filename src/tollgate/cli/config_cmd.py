"""Config commands: show effective configuration, write a starter file."""

import json
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape

from tollgate.cli.helpers import get_config, get_project_root
from tollgate.config import GovernanceConfig, save_config

console = Console()


@click.group()
def config() -> None:
    """Governance configuration."""


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, json_output: bool) -> None:
    """Show the effective configuration (pyproject > tollgate.yaml > defaults)."""
    cfg = get_config(ctx, json_output)
    if json_output:
        click.echo(json.dumps(cfg.to_dict(), indent=2))
    else:
        console.print(escape(yaml.safe_dump(cfg.to_dict(), default_flow_style=False, sort_keys=False)))


@config.command("init")
@click.option("--path", "path", type=click.Path(path_type=Path), default=None,
              help="Destination (default: <project root>/tollgate.yaml)")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def init(ctx: click.Context, path: Path | None, force: bool) -> None:
    """Write the default configuration as YAML."""
    path = path or get_project_root(ctx) / "tollgate.yaml"
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    save_config(GovernanceConfig(), path)
    console.print(f"[green]✓[/green] Wrote {path}")
