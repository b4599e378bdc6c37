"""Collaborator interfaces consumed by the Cycle Orchestrator.

The code-editing agent, its quality gate and the task source live outside
this package. The orchestrator only sees these protocols.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tollgate.cycle.types import QualityGateStats

if TYPE_CHECKING:
    from tollgate.context import GateContext
    from tollgate.cycle.queue import MicroTask, TaskQueue


@dataclass(frozen=True, slots=True)
class AgentResult:
    """What the delegate reports back for one task."""

    success: bool
    answer: str
    pr_url: str | None = None
    issue_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class AgentExecutor(Protocol):
    """Runs one task to completion, consulting the gate per tool call."""

    async def execute(
        self,
        intent: str,
        max_sub_iterations: int,
        history: list[dict[str, Any]],
        timeout: float,
        task_context: dict[str, Any],
        baseline_mode: bool,
    ) -> AgentResult:
        """Execute a task.

        Args:
            intent: What the task should achieve
            max_sub_iterations: Iteration limit for the agent's own loop
            history: Prior conversation turns (empty for fresh tasks)
            timeout: Wall-clock budget in seconds
            task_context: File, function and zone the task targets
            baseline_mode: Bypass the quality gate (A/B baseline arm only)
        """
        ...


@runtime_checkable
class QualityGateSession(Protocol):
    """Opaque counters the orchestrator diffs to infer task outcomes."""

    def init_session(self) -> None: ...

    def session_stats(self) -> QualityGateStats | None: ...


class TaskQueueBackend(Protocol):
    """Source of micro-tasks for a cycle."""

    def load(self, path: Path | None = None) -> TaskQueue | None: ...

    def next(self, queue: TaskQueue) -> MicroTask | None: ...

    def remove(self, queue: TaskQueue, task_id: str) -> TaskQueue: ...

    def is_protected(self, file: str) -> bool: ...

    def default_tasks(self) -> TaskQueue: ...


class NullQualityGateSession:
    """Session for executors that expose no quality gate. Every task is SKIP."""

    def init_session(self) -> None:
        pass

    def session_stats(self) -> QualityGateStats | None:
        return None


GoldenBenchmark = Callable[[], None]
"""Zero-argument call that raises GoldenSetRegression below 100% accuracy."""

ExecutorFactory = Callable[["GateContext"], AgentExecutor]
"""Builds an executor bound to one gate context."""
