"""Tests for cycle report types and the stop-reason vocabulary."""

from datetime import datetime

import pytest

from tollgate.cycle.types import (
    CycleReport,
    CycleResults,
    StopReason,
    TaskDecision,
    TaskResult,
    classify_stop_reason,
    format_stop_reason,
)
from tollgate.foundation.errors import ErrorCode, TollgateError

RENDER_CONTEXT = {
    "limit": 3,
    "count": 3,
    "file": "src/tollgate/gate/admission.py",
    "message": "ERR_DISK",
    "minutes": 60,
}


def make_report(**overrides) -> CycleReport:
    results = (
        TaskResult("a", TaskDecision.PASS, "ok", pr_url="https://example.test/pr/1"),
        TaskResult("b", TaskDecision.REVIEW, "review"),
    )
    values = dict(
        cycle_id="2026-01-15T09-30-00-000000",
        start_time=datetime(2026, 1, 15, 9, 30),
        end_time=datetime(2026, 1, 15, 9, 31),
        iterations=2,
        max_iterations=40,
        stop_reason="All tasks completed",
        results=CycleResults.tally(results),
        task_results=results,
        prs_created=("https://example.test/pr/1",),
    )
    values.update(overrides)
    return CycleReport(**values)


class TestStopReasons:
    """The rendered text round-trips to the same vocabulary entry."""

    @pytest.mark.parametrize("reason", list(StopReason))
    def test_render_then_classify(self, reason):
        text = format_stop_reason(reason, **RENDER_CONTEXT)
        assert reason.phrase in text
        assert classify_stop_reason(text) is reason

    def test_rendered_examples(self):
        assert format_stop_reason(StopReason.PR_CAP, count=3, limit=3) == "PR cap reached (3/3)"
        assert format_stop_reason(StopReason.MAX_ITERATIONS, limit=40) == "Max iterations reached (40)"
        assert (
            format_stop_reason(StopReason.MAX_DURATION, limit=120.0)
            == "Max duration exceeded (120 minutes)"
        )

    def test_unknown_text(self):
        assert classify_stop_reason("The cat sat on the keyboard") is None

    def test_partial_reasons(self):
        assert StopReason.GOLDEN_FAILED.is_partial
        assert StopReason.CANCELLED.is_partial
        assert not StopReason.PR_CAP.is_partial
        assert not StopReason.ALL_TASKS_COMPLETED.is_partial


class TestResults:

    def test_tally(self):
        results = [
            TaskResult("a", TaskDecision.PASS, ""),
            TaskResult("b", TaskDecision.PASS, ""),
            TaskResult("c", TaskDecision.SKIP, ""),
            TaskResult("d", TaskDecision.ERROR, ""),
        ]
        tally = CycleResults.tally(results)
        assert (tally.passed, tally.skipped, tally.errored, tally.total) == (2, 1, 1, 4)
        assert tally.count(TaskDecision.REVIEW) == 0
        assert tally.to_dict() == {"pass": 2, "review": 0, "reject": 0, "skip": 1, "error": 1}


class TestCycleReport:

    def test_round_trip(self):
        report = make_report()
        data = report.to_dict()
        assert data["duration_ms"] == 60_000
        assert data["results"]["pass"] == 1
        assert "quality_gate_stats" not in data
        assert CycleReport.from_dict(data) == report

    def test_reason(self):
        assert make_report().reason is StopReason.ALL_TASKS_COMPLETED
        assert make_report(stop_reason="something odd").reason is None

    def test_missing_field(self):
        data = make_report().to_dict()
        del data["iterations"]
        with pytest.raises(TollgateError) as exc:
            CycleReport.from_dict(data)
        assert exc.value.code is ErrorCode.REPORT_INVALID
        assert "iterations" in str(exc.value)

    def test_bad_values(self):
        data = make_report().to_dict()
        data["task_results"][0]["decision"] = "MAYBE"
        with pytest.raises(TollgateError):
            CycleReport.from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(TollgateError, match="expected a JSON object"):
            CycleReport.from_dict(["not", "a", "report"])
