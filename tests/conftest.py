"""Pytest fixtures for Tollgate tests."""

import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from tollgate.context import GateContext, create_gate_context
from tollgate.gate.sinks import CollectingSink


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 9, 30, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at 2026-01-15 09:30 until advanced."""
    return FakeClock()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """An empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def context(project_root: Path, sink: CollectingSink, clock: FakeClock) -> GateContext:
    """A fresh gate context rooted at ``project_root``."""
    return create_gate_context(project_root, sink=sink, clock=clock)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest left it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
