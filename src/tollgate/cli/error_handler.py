"""CLI Error Handler.

Unified error output for the CLI:
- Human-readable output with recovery hints (default)
- JSON output for machine consumption (``--json``)
"""

import json
import sys
from typing import NoReturn

from rich.console import Console
from rich.markup import escape
from rich.text import Text

from tollgate.foundation.errors import ErrorCode, TollgateError

_CATEGORY_ICONS = {
    "cycle": "🔄",
    "audit": "🔍",
    "config": "⚙️",
}


def as_tollgate_error(error: Exception) -> TollgateError:
    """Wrap foreign exceptions so every failure renders the same way."""
    if isinstance(error, TollgateError):
        return error
    return TollgateError(
        code=ErrorCode.CYCLE_FATAL_ERROR,
        context={"detail": f"{type(error).__name__}: {error}"},
        cause=error,
    )


def handle_error(
    error: TollgateError | Exception,
    json_output: bool = False,
) -> NoReturn:
    """Report an error and exit.

    Args:
        error: The error to handle (TollgateError or generic Exception)
        json_output: If True, print a JSON object to stderr instead

    Raises:
        SystemExit: Always exits with code 1
    """
    error = as_tollgate_error(error)

    if json_output:
        error_dict = error.to_dict()
        if error.cause:
            error_dict["cause"] = str(error.cause)
        print(json.dumps(error_dict), file=sys.stderr)
        sys.exit(1)

    _print_human_error(error)
    sys.exit(1)


def _print_human_error(error: TollgateError) -> None:
    console = Console(stderr=True)

    header = Text()
    header.append(f"{_CATEGORY_ICONS.get(error.category, '❌')} ", style="bold")
    header.append(error.error_id, style="bold red")
    header.append(f" {error.message}")
    console.print(header)

    if error.recovery_hints:
        console.print("\n[bold]What you can do:[/]")
        for i, hint in enumerate(error.recovery_hints, 1):
            console.print(f"  {i}. {escape(hint)}")
