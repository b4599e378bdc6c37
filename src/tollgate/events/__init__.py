"""Append-only log of safety-relevant events."""

from tollgate.events.critical import (
    CriticalEvent,
    CriticalEventLog,
    CriticalEventType,
    EventSeverity,
)

__all__ = [
    "CriticalEvent",
    "CriticalEventLog",
    "CriticalEventType",
    "EventSeverity",
]
