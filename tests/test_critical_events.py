"""Tests for the Critical Event Log."""

import json

import pytest

from tollgate.events import CriticalEventLog, CriticalEventType, EventSeverity


@pytest.fixture
def events(tmp_path, clock) -> CriticalEventLog:
    return CriticalEventLog(tmp_path / "critical_events", clock=clock)


class TestAppend:

    def test_log_appends_one_line(self, events, clock):
        event = events.log(
            CriticalEventType.PROTECTED_FILE_ATTEMPT,
            "Task targeted src/tollgate/gate/admission.py",
            task_id="T-1",
            cycle_id="c-1",
        )
        assert event.timestamp == clock.now
        assert event.severity is EventSeverity.CRITICAL

        lines = events.path.read_text().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["type"] == "PROTECTED_FILE_ATTEMPT"
        assert record["task_id"] == "T-1"
        assert record["cycle_id"] == "c-1"

    def test_append_only(self, events):
        """Earlier records are never rewritten."""
        events.log(CriticalEventType.GOLDEN_REGRESSION, "first")
        before = events.path.read_text()
        events.log(CriticalEventType.SAFETY_VIOLATION, "second", severity=EventSeverity.HIGH)
        assert events.path.read_text().startswith(before)
        assert [e.description for e in events.all()] == ["first", "second"]

    def test_optional_ids_omitted(self, events):
        events.log(CriticalEventType.GATE_BYPASS_ATTEMPT, "bypass")
        record = json.loads(events.path.read_text())
        assert "task_id" not in record
        assert "cycle_id" not in record


class TestRead:

    def test_missing_file(self, events):
        assert events.all() == []
        assert not events.has_recent()

    def test_tail(self, events):
        for i in range(5):
            events.log(CriticalEventType.SAFETY_VIOLATION, f"event {i}")
        assert [e.description for e in events.tail(2)] == ["event 3", "event 4"]
        assert events.tail(0) == []

    def test_malformed_lines_skipped(self, events):
        events.log(CriticalEventType.SAFETY_VIOLATION, "good")
        with open(events.path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write('{"type": "NOT_A_TYPE", "timestamp": "2026-01-01T00:00:00"}\n')
        events.log(CriticalEventType.SAFETY_VIOLATION, "also good")
        assert [e.description for e in events.all()] == ["good", "also good"]


class TestHasRecent:

    def test_recent_within_window(self, events, clock):
        events.log(CriticalEventType.SAFETY_VIOLATION, "x")
        clock.advance(minutes=30)
        assert events.has_recent(minutes=60)
        assert not events.has_recent(minutes=10)

    def test_old_events_ignored(self, events, clock):
        events.log(CriticalEventType.SAFETY_VIOLATION, "x")
        clock.advance(hours=2)
        assert not events.has_recent(minutes=60)
