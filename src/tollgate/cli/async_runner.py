"""Unified async execution for CLI commands.

Cycles and A/B runs are async; Click commands are not. Every command runs
its coroutine through ``run_async`` instead of scattering asyncio.run()
calls across the CLI.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async code with proper event loop handling.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Raises:
        Any exception raised by the coroutine is propagated
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop - the normal case for CLI commands
        return asyncio.run(coro)

    # Invoked from inside a running loop (notebooks, embedding apps)
    import nest_asyncio

    nest_asyncio.apply()
    loop = asyncio.get_event_loop()
    return loop.run_until_complete(coro)
