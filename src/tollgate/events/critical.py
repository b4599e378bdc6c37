"""Critical Event Log.

Append-only JSON Lines record of safety-relevant events: protected-file
attempts, golden-set regressions, gate bypass attempts, unauthorized core
modifications, and generic safety violations. Records are never rewritten
or deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from tollgate.foundation.serialization import safe_jsonl_append, safe_jsonl_load

logger = logging.getLogger(__name__)

EVENTS_FILENAME = "events.jsonl"


class CriticalEventType(Enum):
    """Kinds of safety-relevant events."""

    PROTECTED_FILE_ATTEMPT = "PROTECTED_FILE_ATTEMPT"
    GOLDEN_REGRESSION = "GOLDEN_REGRESSION"
    GATE_BYPASS_ATTEMPT = "GATE_BYPASS_ATTEMPT"
    UNAUTHORIZED_CORE_MODIFICATION = "UNAUTHORIZED_CORE_MODIFICATION"
    SAFETY_VIOLATION = "SAFETY_VIOLATION"


class EventSeverity(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"


@dataclass(frozen=True, slots=True)
class CriticalEvent:
    """One line in the critical event log."""

    timestamp: datetime
    type: CriticalEventType
    severity: EventSeverity
    description: str
    context: dict[str, Any] = field(default_factory=dict)
    cycle_id: str | None = None
    task_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "context": self.context,
        }
        if self.cycle_id is not None:
            data["cycle_id"] = self.cycle_id
        if self.task_id is not None:
            data["task_id"] = self.task_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CriticalEvent:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            type=CriticalEventType(data["type"]),
            severity=EventSeverity(data["severity"]),
            description=data.get("description", ""),
            context=data.get("context") or {},
            cycle_id=data.get("cycle_id"),
            task_id=data.get("task_id"),
        )


class CriticalEventLog:
    """Append-only JSONL store for critical events.

    Example:
        >>> log = CriticalEventLog(Path(".tollgate/critical_events"))
        >>> log.log(
        ...     CriticalEventType.PROTECTED_FILE_ATTEMPT,
        ...     "Task targeted src/tollgate/gate/admission.py",
        ...     task_id="task-7",
        ... )
        >>> log.has_recent(minutes=60)
        True
    """

    def __init__(
        self,
        storage_dir: Path,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.path = storage_dir / EVENTS_FILENAME
        self._clock = clock

    def log(
        self,
        event_type: CriticalEventType,
        description: str,
        *,
        severity: EventSeverity = EventSeverity.CRITICAL,
        context: dict[str, Any] | None = None,
        cycle_id: str | None = None,
        task_id: str | None = None,
    ) -> CriticalEvent:
        """Append an event. A failed write is logged, never raised."""
        event = CriticalEvent(
            timestamp=self._clock(),
            type=event_type,
            severity=severity,
            description=description,
            context=context or {},
            cycle_id=cycle_id,
            task_id=task_id,
        )
        if not safe_jsonl_append(event.to_dict(), self.path):
            logger.error("Critical event could not be persisted: %s", description)

        logger.error(
            "CRITICAL SAFETY EVENT [%s/%s] %s%s",
            event.type.value,
            event.severity.value,
            description,
            f" (task {task_id})" if task_id else "",
        )
        return event

    def all(self) -> list[CriticalEvent]:
        events = []
        for record in safe_jsonl_load(self.path):
            try:
                events.append(CriticalEvent.from_dict(record))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed critical event in %s: %s", self.path, e)
        return events

    def tail(self, limit: int = 10) -> list[CriticalEvent]:
        """The last ``limit`` events, oldest first."""
        if limit <= 0:
            return []
        return self.all()[-limit:]

    def has_recent(self, minutes: float = 60, scan: int = 50) -> bool:
        """Whether any of the last ``scan`` events happened within ``minutes``."""
        cutoff = self._clock() - timedelta(minutes=minutes)
        return any(event.timestamp >= cutoff for event in self.tail(scan))
