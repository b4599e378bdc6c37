"""Types for unattended work cycles.

A cycle report is the only artifact the Replay Auditor sees, so every field
here is serialized with snake_case keys and read back strictly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tollgate.foundation.errors import report_error
from tollgate.gate.budget import BudgetStatus


class TaskDecision(Enum):
    """Outcome of one task within a cycle."""

    PASS = "PASS"
    REVIEW = "REVIEW"
    REJECT = "REJECT"
    SKIP = "SKIP"
    ERROR = "ERROR"


# =============================================================================
# Stop reasons
# =============================================================================


class StopReason(Enum):
    """Why a cycle stopped. The rendered text is the auditable vocabulary."""

    ALL_TASKS_COMPLETED = "all_tasks_completed"
    NO_MORE_TASKS = "no_more_tasks"
    MAX_ITERATIONS = "max_iterations"
    MAX_DURATION = "max_duration"
    PR_CAP = "pr_cap"
    REVIEW_CAP = "review_cap"
    CONSECUTIVE_REVIEWS = "consecutive_reviews"
    PROTECTED_FILE = "protected_file"
    GOLDEN_FAILED = "golden_failed"
    FATAL_ERROR = "fatal_error"
    CONSECUTIVE_ERRORS = "consecutive_errors"
    CANCELLED = "cancelled"
    RECENT_CRITICAL_EVENTS = "recent_critical_events"

    @property
    def phrase(self) -> str:
        """Fixed text every rendering of this reason contains."""
        return STOP_REASON_PHRASES[self]

    @property
    def is_partial(self) -> bool:
        """Whether a cycle stopped for this reason is saved as a partial report."""
        return self in PARTIAL_STOP_REASONS


STOP_REASON_TEMPLATES: dict[StopReason, str] = {
    StopReason.ALL_TASKS_COMPLETED: "All tasks completed",
    StopReason.NO_MORE_TASKS: "No more tasks in queue",
    StopReason.MAX_ITERATIONS: "Max iterations reached ({limit})",
    StopReason.MAX_DURATION: "Max duration exceeded ({limit:g} minutes)",
    StopReason.PR_CAP: "PR cap reached ({count}/{limit})",
    StopReason.REVIEW_CAP: "REVIEW cap reached ({count}/{limit})",
    StopReason.CONSECUTIVE_REVIEWS: "{limit} consecutive REVIEW outcomes",
    StopReason.PROTECTED_FILE: "Protected file touched: {file}",
    StopReason.GOLDEN_FAILED: "Golden set validation failed (quality gate regression)",
    StopReason.FATAL_ERROR: "Critical error: {message}",
    StopReason.CONSECUTIVE_ERRORS: "Consecutive task errors ({limit})",
    StopReason.CANCELLED: "Cycle cancelled",
    StopReason.RECENT_CRITICAL_EVENTS: "Recent critical events (within {minutes:g} minutes)",
}

STOP_REASON_PHRASES: dict[StopReason, str] = {
    StopReason.ALL_TASKS_COMPLETED: "All tasks completed",
    StopReason.NO_MORE_TASKS: "No more tasks in queue",
    StopReason.MAX_ITERATIONS: "Max iterations reached",
    StopReason.MAX_DURATION: "Max duration exceeded",
    StopReason.PR_CAP: "PR cap reached",
    StopReason.REVIEW_CAP: "REVIEW cap reached",
    StopReason.CONSECUTIVE_REVIEWS: "consecutive REVIEW outcomes",
    StopReason.PROTECTED_FILE: "Protected file touched",
    StopReason.GOLDEN_FAILED: "Golden set validation failed",
    StopReason.FATAL_ERROR: "Critical error",
    StopReason.CONSECUTIVE_ERRORS: "Consecutive task errors",
    StopReason.CANCELLED: "Cycle cancelled",
    StopReason.RECENT_CRITICAL_EVENTS: "Recent critical events",
}

PARTIAL_STOP_REASONS = frozenset({
    StopReason.GOLDEN_FAILED,
    StopReason.FATAL_ERROR,
    StopReason.CONSECUTIVE_ERRORS,
    StopReason.CANCELLED,
    StopReason.RECENT_CRITICAL_EVENTS,
})

FATAL_ERROR_MARKER = "ERR_"
"""Executor answers containing this marker stop the cycle immediately."""


def format_stop_reason(reason: StopReason, **context: Any) -> str:
    """Render a stop reason into its human-readable text.

    Example:
        >>> format_stop_reason(StopReason.PR_CAP, count=3, limit=3)
        'PR cap reached (3/3)'
    """
    return STOP_REASON_TEMPLATES[reason].format(**context)


def classify_stop_reason(text: str) -> StopReason | None:
    """Map stop-reason text back to its vocabulary entry (None if unknown)."""
    for reason, phrase in STOP_REASON_PHRASES.items():
        if phrase in text:
            return reason
    return None


# =============================================================================
# Report parts
# =============================================================================


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Outcome of one iteration."""

    task_id: str
    decision: TaskDecision
    message: str
    duration_ms: int = 0
    pr_url: str | None = None
    issue_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "task_id": self.task_id,
            "decision": self.decision.value,
            "message": self.message,
            "duration_ms": self.duration_ms,
        }
        if self.pr_url:
            data["pr_url"] = self.pr_url
        if self.issue_url:
            data["issue_url"] = self.issue_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskResult:
        return cls(
            task_id=str(data["task_id"]),
            decision=TaskDecision(data["decision"]),
            message=data.get("message", ""),
            duration_ms=int(data.get("duration_ms", 0)),
            pr_url=data.get("pr_url"),
            issue_url=data.get("issue_url"),
        )


@dataclass(frozen=True, slots=True)
class CycleResults:
    """Per-decision tallies as recorded in the report."""

    passed: int = 0
    reviewed: int = 0
    rejected: int = 0
    skipped: int = 0
    errored: int = 0

    @classmethod
    def tally(cls, results: list[TaskResult] | tuple[TaskResult, ...]) -> CycleResults:
        """Count decisions from per-task results."""
        counts = {decision: 0 for decision in TaskDecision}
        for result in results:
            counts[result.decision] += 1
        return cls(
            passed=counts[TaskDecision.PASS],
            reviewed=counts[TaskDecision.REVIEW],
            rejected=counts[TaskDecision.REJECT],
            skipped=counts[TaskDecision.SKIP],
            errored=counts[TaskDecision.ERROR],
        )

    def count(self, decision: TaskDecision) -> int:
        match decision:
            case TaskDecision.PASS:
                return self.passed
            case TaskDecision.REVIEW:
                return self.reviewed
            case TaskDecision.REJECT:
                return self.rejected
            case TaskDecision.SKIP:
                return self.skipped
            case TaskDecision.ERROR:
                return self.errored

    @property
    def total(self) -> int:
        return self.passed + self.reviewed + self.rejected + self.skipped + self.errored

    def to_dict(self) -> dict[str, int]:
        return {
            "pass": self.passed,
            "review": self.reviewed,
            "reject": self.rejected,
            "skip": self.skipped,
            "error": self.errored,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CycleResults:
        return cls(
            passed=int(data.get("pass", 0)),
            reviewed=int(data.get("review", 0)),
            rejected=int(data.get("reject", 0)),
            skipped=int(data.get("skip", 0)),
            errored=int(data.get("error", 0)),
        )


@dataclass(frozen=True, slots=True)
class QualityGateStats:
    """Counter snapshot from the delegate's quality-gate session."""

    prs_created: int = 0
    reviews_created: int = 0
    rejects_logged: int = 0
    consecutive_reviews: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "prs_created": self.prs_created,
            "reviews_created": self.reviews_created,
            "rejects_logged": self.rejects_logged,
            "consecutive_reviews": self.consecutive_reviews,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QualityGateStats:
        return cls(
            prs_created=int(data.get("prs_created", 0)),
            reviews_created=int(data.get("reviews_created", 0)),
            rejects_logged=int(data.get("rejects_logged", 0)),
            consecutive_reviews=int(data.get("consecutive_reviews", 0)),
        )


@dataclass(frozen=True, slots=True)
class BudgetSnapshot:
    """Exploration budget at the end of a cycle."""

    current: float
    actions_in_window: int
    risky_actions_in_window: int

    @classmethod
    def from_status(cls, status: BudgetStatus) -> BudgetSnapshot:
        return cls(
            current=status.budget,
            actions_in_window=status.actions_in_window,
            risky_actions_in_window=status.risky_actions_in_window,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "actions_in_window": self.actions_in_window,
            "risky_actions_in_window": self.risky_actions_in_window,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BudgetSnapshot:
        return cls(
            current=float(data["current"]),
            actions_in_window=int(data.get("actions_in_window", 0)),
            risky_actions_in_window=int(data.get("risky_actions_in_window", 0)),
        )


# =============================================================================
# Cycle report
# =============================================================================


@dataclass(frozen=True, slots=True)
class CycleReport:
    """Persisted record of one cycle.

    ``results`` is written from the same task list as ``task_results``; the
    auditor re-derives the tally rather than trusting it.
    """

    cycle_id: str
    start_time: datetime
    end_time: datetime
    iterations: int
    max_iterations: int
    stop_reason: str
    results: CycleResults
    task_results: tuple[TaskResult, ...] = ()
    prs_created: tuple[str, ...] = ()
    issues_created: tuple[str, ...] = ()
    tasks_remaining: int = 0
    quality_gate_stats: QualityGateStats | None = None
    exploration_budget: BudgetSnapshot | None = None
    baseline_mode: bool = False
    partial: bool = False
    extra: dict[str, Any] = field(default_factory=dict)
    """Free-form metadata (executor name, queue source)."""

    @property
    def duration_ms(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    @property
    def reason(self) -> StopReason | None:
        return classify_stop_reason(self.stop_reason)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "cycle_id": self.cycle_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_ms": self.duration_ms,
            "iterations": self.iterations,
            "max_iterations": self.max_iterations,
            "stop_reason": self.stop_reason,
            "results": self.results.to_dict(),
            "task_results": [r.to_dict() for r in self.task_results],
            "prs_created": list(self.prs_created),
            "issues_created": list(self.issues_created),
            "tasks_remaining": self.tasks_remaining,
            "baseline_mode": self.baseline_mode,
            "partial": self.partial,
        }
        if self.quality_gate_stats is not None:
            data["quality_gate_stats"] = self.quality_gate_stats.to_dict()
        if self.exploration_budget is not None:
            data["exploration_budget"] = self.exploration_budget.to_dict()
        if self.extra:
            data["extra"] = self.extra
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CycleReport:
        """Parse a persisted report.

        Raises:
            TollgateError: REPORT_INVALID if required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise report_error(f"expected a JSON object, got {type(data).__name__}")
        try:
            qg = data.get("quality_gate_stats")
            budget = data.get("exploration_budget")
            return cls(
                cycle_id=str(data["cycle_id"]),
                start_time=datetime.fromisoformat(data["start_time"]),
                end_time=datetime.fromisoformat(data["end_time"]),
                iterations=int(data["iterations"]),
                max_iterations=int(data["max_iterations"]),
                stop_reason=str(data["stop_reason"]),
                results=CycleResults.from_dict(data["results"]),
                task_results=tuple(TaskResult.from_dict(r) for r in data.get("task_results", [])),
                prs_created=tuple(data.get("prs_created", [])),
                issues_created=tuple(data.get("issues_created", [])),
                tasks_remaining=int(data.get("tasks_remaining", 0)),
                quality_gate_stats=QualityGateStats.from_dict(qg) if qg else None,
                exploration_budget=BudgetSnapshot.from_dict(budget) if budget else None,
                baseline_mode=bool(data.get("baseline_mode", False)),
                partial=bool(data.get("partial", False)),
                extra=data.get("extra") or {},
            )
        except KeyError as e:
            raise report_error(f"missing field {e.args[0]!r}", cause=e) from e
        except (TypeError, ValueError, AttributeError) as e:
            raise report_error(str(e), cause=e) from e
