"""Task queue for unattended cycles.

Tasks are loaded from a JSON file (``{"tasks": [...], "source": ...}``),
picked highest-priority first, and removed once attempted. Queues are
immutable: ``remove`` returns a new queue.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from tollgate.foundation.errors import ErrorCode, TollgateError
from tollgate.foundation.serialization import safe_json_dump

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_FILE = Path("queue") / "tasks.json"
"""Queue location relative to the data directory."""


@dataclass(frozen=True, slots=True)
class MicroTask:
    """One small, independently reviewable unit of work."""

    id: str
    intent: str
    priority: float = 0.5
    file: str | None = None
    function: str | None = None
    zone: str | None = None
    rule: str | None = None
    estimated_benefit: str | None = None

    @property
    def context(self) -> dict[str, Any]:
        """Targeting facts handed to the executor."""
        ctx = {"file": self.file, "function": self.function, "zone": self.zone, "rule": self.rule}
        return {k: v for k, v in ctx.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "intent": self.intent,
            "context": {
                k: v
                for k, v in (("file", self.file), ("function", self.function), ("zone", self.zone))
                if v is not None
            },
            "priority": self.priority,
        }
        if self.rule:
            data["rule"] = self.rule
        if self.estimated_benefit:
            data["estimated_benefit"] = self.estimated_benefit
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MicroTask:
        if not isinstance(data, dict):
            raise TypeError(f"task must be an object, got {type(data).__name__}")
        context = data.get("context") or {}
        if not isinstance(context, dict):
            raise TypeError(f"task {data.get('id')!r}: context must be an object")
        return cls(
            id=str(data["id"]),
            intent=str(data["intent"]),
            priority=float(data.get("priority", 0.5)),
            file=context.get("file"),
            function=context.get("function"),
            zone=context.get("zone"),
            rule=data.get("rule"),
            estimated_benefit=data.get("estimated_benefit"),
        )


@dataclass(frozen=True, slots=True)
class TaskQueue:
    """Ordered set of pending tasks."""

    tasks: tuple[MicroTask, ...] = ()
    source: str = "manual"
    created_at: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.tasks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "source": self.source,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskQueue:
        if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
            raise TypeError("queue must be an object with a 'tasks' list")
        created = data.get("created_at")
        return cls(
            tasks=tuple(MicroTask.from_dict(t) for t in data["tasks"]),
            source=data.get("source", "file"),
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
        )


class JsonTaskQueue:
    """File-backed task queue with substring-based file protection.

    Example:
        >>> backend = JsonTaskQueue(protected_patterns=("src/tollgate/gate/",))
        >>> queue = backend.load(Path("tasks.json")) or backend.default_tasks()
        >>> task = backend.next(queue)
        >>> backend.is_protected("src/tollgate/gate/admission.py")
        True
    """

    def __init__(
        self,
        protected_patterns: tuple[str, ...] = (),
        default_path: Path | None = None,
    ):
        self.protected_patterns = tuple(p.lower() for p in protected_patterns)
        self.default_path = default_path

    def load(self, path: Path | None = None) -> TaskQueue | None:
        """Load a queue file. None if absent.

        Raises:
            TollgateError: QUEUE_INVALID if the file exists but is malformed
        """
        path = path or self.default_path
        if path is None or not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            queue = TaskQueue.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise TollgateError(
                code=ErrorCode.QUEUE_INVALID,
                context={"path": str(path), "detail": str(e)},
                cause=e,
            ) from e

        logger.info("Loaded %d tasks from %s", len(queue), path)
        return queue

    def save(self, queue: TaskQueue, path: Path | None = None) -> bool:
        path = path or self.default_path
        if path is None:
            return False
        return safe_json_dump(queue.to_dict(), path)

    def next(self, queue: TaskQueue) -> MicroTask | None:
        """Highest-priority task; ties keep file order."""
        if not queue.tasks:
            return None
        return max(queue.tasks, key=lambda t: t.priority)

    def remove(self, queue: TaskQueue, task_id: str) -> TaskQueue:
        return replace(queue, tasks=tuple(t for t in queue.tasks if t.id != task_id))

    def protection_reason(self, file: str) -> str | None:
        """The pattern that protects ``file``, or None."""
        normalized = file.replace("\\", "/").lower()
        for pattern in self.protected_patterns:
            if pattern in normalized:
                return pattern
        return None

    def is_protected(self, file: str) -> bool:
        return self.protection_reason(file) is not None

    def default_tasks(self) -> TaskQueue:
        """Fallback queue used when no queue file exists."""
        return TaskQueue(
            tasks=(
                MicroTask(
                    id="T-DEFAULT-001",
                    intent="Improve error handling in report serialization",
                    priority=0.7,
                    file="src/tollgate/foundation/serialization.py",
                    zone="error handling",
                    rule="R9",
                    estimated_benefit="Improved robustness",
                ),
                MicroTask(
                    id="T-DEFAULT-002",
                    intent="Extract magic numbers to constants in the A/B harness",
                    priority=0.6,
                    file="src/tollgate/harness/ab.py",
                    zone="constants",
                    rule="R9",
                    estimated_benefit="Improved maintainability",
                ),
                MicroTask(
                    id="T-DEFAULT-003",
                    intent="Add docstrings to public CLI commands",
                    priority=0.5,
                    file="src/tollgate/cli/main.py",
                    zone="documentation",
                    rule="R9",
                    estimated_benefit="Improved clarity",
                ),
            ),
            source="manual",
        )
