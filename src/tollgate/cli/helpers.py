"""Shared helpers for CLI commands."""

import importlib
from pathlib import Path

import click

from tollgate.cli.error_handler import handle_error
from tollgate.config import GovernanceConfig, load_config
from tollgate.cycle.protocols import ExecutorFactory
from tollgate.foundation.errors import ErrorCode, TollgateError

DEFAULT_EXECUTOR = "tollgate.cycle.dry_run:dry_run_factory"


def get_project_root(ctx: click.Context) -> Path:
    """Project root from the group option, else the current directory."""
    if ctx.obj and isinstance(ctx.obj, dict) and ctx.obj.get("project_root"):
        return Path(ctx.obj["project_root"])
    return Path.cwd()


def get_config(ctx: click.Context, json_output: bool = False) -> GovernanceConfig:
    """Load (once) and cache the governance config on the click context."""
    ctx.ensure_object(dict)
    config = ctx.obj.get("config")
    if config is None:
        try:
            config = load_config(get_project_root(ctx))
        except TollgateError as e:
            handle_error(e, json_output)
        ctx.obj["config"] = config
    return config


def get_data_dir(ctx: click.Context, json_output: bool = False) -> Path:
    return get_config(ctx, json_output).resolve_data_dir(get_project_root(ctx))


def load_executor_factory(target: str) -> ExecutorFactory:
    """Resolve ``package.module:factory`` to a callable.

    Raises:
        TollgateError: EXECUTOR_LOAD_FAILED if the target cannot be imported
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise TollgateError(
            code=ErrorCode.EXECUTOR_LOAD_FAILED,
            context={"target": target, "detail": "expected 'module:factory'"},
        )
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise TollgateError(
            code=ErrorCode.EXECUTOR_LOAD_FAILED,
            context={"target": target, "detail": str(e)},
            cause=e,
        ) from e
    if not callable(factory):
        raise TollgateError(
            code=ErrorCode.EXECUTOR_LOAD_FAILED,
            context={"target": target, "detail": f"{attr} is not callable"},
        )
    return factory


def parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    """Turn ``key=value`` pairs into a parameter dict."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--param")
        params[key] = value
    return params
