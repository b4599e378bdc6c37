"""Logging setup for the tollgate CLI.

The console stays at WARNING unless asked otherwise. The level comes from,
in order: the ``level`` argument, ``TOLLGATE_LOG_LEVEL``, ``TOLLGATE_DEBUG``,
then the ``--debug`` flag.

With ``log_dir`` set, every record is also written to a per-invocation
session file there, and only the newest sessions are kept.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

_DEBUG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"
_DEFAULT_FORMAT = "%(name)s: %(message)s"

SESSION_GLOB = "session-*.log"
KEEP_SESSIONS = 10


def resolve_level(*, debug: bool = False, level: int | str | None = None) -> int:
    """Effective console level for this invocation."""
    if level is not None:
        return _parse_level(level)
    if env_level := os.environ.get("TOLLGATE_LOG_LEVEL"):
        return _parse_level(env_level)
    if debug or os.environ.get("TOLLGATE_DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG
    return logging.WARNING


def prune_sessions(log_dir: Path, keep: int = KEEP_SESSIONS) -> list[Path]:
    """Delete all but the ``keep`` newest session logs. Returns what was removed."""
    sessions = sorted(log_dir.glob(SESSION_GLOB), key=lambda p: p.stat().st_mtime, reverse=True)
    removed = []
    for old in sessions[keep:]:
        try:
            old.unlink()
        except OSError as e:
            logging.getLogger(__name__).debug("Could not remove %s: %s", old, e)
        else:
            removed.append(old)
    return removed


def _session_handler(log_dir: Path) -> logging.Handler | None:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        prune_sessions(log_dir, KEEP_SESSIONS - 1)
        name = f"session-{datetime.now():%Y%m%dT%H%M%S}-{os.getpid()}.log"
        handler = logging.FileHandler(log_dir / name, mode="w", encoding="utf-8")
    except OSError as e:
        sys.stderr.write(f"Warning: session log disabled ({log_dir}): {e}\n")
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
    return handler


def configure_logging(
    *,
    debug: bool = False,
    level: int | str | None = None,
    stream: TextIO | None = None,
    log_dir: Path | None = None,
) -> Path | None:
    """Install the console handler and, with ``log_dir``, a session file.

    Returns:
        Path of the session log, or None when not persisting
    """
    console_level = resolve_level(debug=debug, level=level)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(
        logging.Formatter(_DEBUG_FORMAT if console_level <= logging.DEBUG else _DEFAULT_FORMAT)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    session = _session_handler(log_dir) if log_dir is not None else None
    if session is not None:
        root.addHandler(session)
    # Session files capture DEBUG regardless of the console level.
    root.setLevel(logging.DEBUG if session is not None else console_level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Console level %s, session log %s",
        logging.getLevelName(console_level),
        session.baseFilename if session is not None else "off",
    )
    return Path(session.baseFilename) if session is not None else None


def _parse_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        return numeric
    try:
        return int(level)
    except ValueError:
        return logging.WARNING
