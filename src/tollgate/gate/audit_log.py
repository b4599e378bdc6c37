"""In-memory audit trail of gate decisions.

A bounded ring buffer: once full, the oldest entry is evicted first.
"""

import json
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from tollgate.gate.types import GateDecision, GateLogEntry, GateStats, Severity

DEFAULT_CAPACITY = 1000
PARAMS_SNAPSHOT_CHARS = 200


def snapshot_params(params: dict[str, Any] | None, limit: int = PARAMS_SNAPSHOT_CHARS) -> str:
    """Serialize ``params`` for the log, truncated to ``limit`` characters."""
    try:
        text = json.dumps(params or {}, default=str, sort_keys=True)
    except (TypeError, ValueError):
        text = repr(params)
    return text[:limit]


class GateAuditLog:
    """Bounded FIFO log of admission decisions."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.capacity = capacity
        self._entries: deque[GateLogEntry] = deque(maxlen=capacity)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def record(
        self,
        tool_name: str,
        params: dict[str, Any] | None,
        decision: GateDecision,
    ) -> GateLogEntry:
        entry = GateLogEntry(
            timestamp=self._clock(),
            tool_name=tool_name,
            params=snapshot_params(params),
            decision=decision,
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> list[GateLogEntry]:
        """Copy of the buffer, oldest first."""
        return list(self._entries)

    def stats(self) -> GateStats:
        blocked = warned = safe = 0
        for entry in self._entries:
            match entry.decision.severity:
                case Severity.BLOCK:
                    blocked += 1
                case Severity.WARN:
                    warned += 1
                case Severity.SAFE:
                    safe += 1
        return GateStats(total=len(self._entries), blocked=blocked, warned=warned, safe=safe)

    def clear(self) -> None:
        self._entries.clear()
