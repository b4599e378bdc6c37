"""Tollgate CLI.

Command groups live in ``*_cmd.py`` modules; shared plumbing in
``helpers``, ``error_handler`` and ``async_runner``.
"""

from tollgate.cli.main import cli_entrypoint, main

__all__ = ["cli_entrypoint", "main"]
