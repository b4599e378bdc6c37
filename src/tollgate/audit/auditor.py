"""Replay Auditor.

Read-only verifier for persisted cycle reports. ``audit_cycle`` is a pure
function of its arguments: it never executes code, never calls the agent or
the network, and never touches the system it inspects. Running it twice on
the same report yields the same findings; only the timestamp differs.

Checks:
- Golden set was not bypassed (inferred from stop reason and iterations)
- PR / REVIEW / consecutive-REVIEW / iteration counts within caps
- No cycle-terminating protected-file violation (blocked attempts are MAJOR)
- Stop reason drawn from the fixed vocabulary
- Result counters match the per-task tally
- No bypass or unauthorized-core events for the cycle (when events are given)

Verdict is FAIL iff at least one CRITICAL violation was found.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from tollgate.config import CycleCaps
from tollgate.cycle.types import (
    STOP_REASON_PHRASES,
    CycleReport,
    CycleResults,
    TaskDecision,
    classify_stop_reason,
)
from tollgate.events.critical import CriticalEvent, CriticalEventType
from tollgate.foundation.errors import TollgateError
from tollgate.foundation.serialization import safe_json_dump, safe_json_load

logger = logging.getLogger(__name__)

AUDITS_DIRNAME = "audits"


class AuditVerdict(Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class ViolationSeverity(Enum):
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"


class ViolationCategory(Enum):
    GOLDEN = "GOLDEN"
    CAPS = "CAPS"
    PROTECTED_SURFACE = "PROTECTED_SURFACE"
    STOP_REASON = "STOP_REASON"
    CRITICAL_EVENTS = "CRITICAL_EVENTS"
    DATA_INTEGRITY = "DATA_INTEGRITY"


class InvariantStatus(Enum):
    OK = "OK"
    VIOLATED = "VIOLATED"


@dataclass(frozen=True, slots=True)
class Violation:
    """A finding against one invariant."""

    severity: ViolationSeverity
    category: ViolationCategory
    message: str
    evidence: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "evidence": list(self.evidence),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Violation:
        return cls(
            severity=ViolationSeverity(data["severity"]),
            category=ViolationCategory(data["category"]),
            message=data["message"],
            evidence=tuple(data.get("evidence", [])),
        )


@dataclass(frozen=True, slots=True)
class InvariantCheck:
    name: str
    status: InvariantStatus
    evidence: str

    @property
    def ok(self) -> bool:
        return self.status is InvariantStatus.OK

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "status": self.status.value, "evidence": self.evidence}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InvariantCheck:
        return cls(
            name=data["name"],
            status=InvariantStatus(data["status"]),
            evidence=data.get("evidence", ""),
        )


@dataclass(frozen=True, slots=True)
class AuditReport:
    """Verdict plus every invariant checked and every violation found."""

    verdict: AuditVerdict
    cycle_id: str
    timestamp: datetime
    violations: tuple[Violation, ...] = ()
    invariants: tuple[InvariantCheck, ...] = ()
    summary: str = ""

    @property
    def passed(self) -> bool:
        return self.verdict is AuditVerdict.PASS

    def count(self, severity: ViolationSeverity) -> int:
        return sum(1 for v in self.violations if v.severity is severity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "cycle_id": self.cycle_id,
            "timestamp": self.timestamp.isoformat(),
            "violations": [v.to_dict() for v in self.violations],
            "invariants": [i.to_dict() for i in self.invariants],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditReport:
        return cls(
            verdict=AuditVerdict(data["verdict"]),
            cycle_id=data["cycle_id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            violations=tuple(Violation.from_dict(v) for v in data.get("violations", [])),
            invariants=tuple(InvariantCheck.from_dict(i) for i in data.get("invariants", [])),
            summary=data.get("summary", ""),
        )


@dataclass(slots=True)
class _Findings:
    violations: list[Violation] = field(default_factory=list)
    invariants: list[InvariantCheck] = field(default_factory=list)

    def ok(self, name: str, evidence: str) -> None:
        self.invariants.append(InvariantCheck(name, InvariantStatus.OK, evidence))

    def violated(
        self,
        name: str,
        evidence: str,
        severity: ViolationSeverity,
        category: ViolationCategory,
        message: str,
        details: Iterable[str],
    ) -> None:
        self.invariants.append(InvariantCheck(name, InvariantStatus.VIOLATED, evidence))
        self.violations.append(Violation(severity, category, message, tuple(details)))


# =============================================================================
# Audit
# =============================================================================


def audit_cycle(
    report: CycleReport,
    caps: CycleCaps | None = None,
    *,
    events: Iterable[CriticalEvent] = (),
    timestamp: datetime | None = None,
) -> AuditReport:
    """Audit a cycle report against the safety invariants.

    Args:
        report: Report to verify
        caps: Caps the cycle was meant to run under (defaults to built-ins).
            The iteration cap is taken from the report itself.
        events: Critical events already loaded by the caller; only those
            carrying this report's cycle id are considered
        timestamp: Audit time (defaults to now)

    Returns:
        AuditReport with verdict FAIL iff any CRITICAL violation was found
    """
    caps = caps or CycleCaps()
    findings = _Findings()

    _check_golden(report, findings)
    _check_caps(report, caps, findings)
    _check_protected_surface(report, findings)
    _check_stop_reason(report, findings)
    _check_counts(report, findings)
    _check_events(report, events, findings)

    critical = sum(1 for v in findings.violations if v.severity is ViolationSeverity.CRITICAL)
    major = sum(1 for v in findings.violations if v.severity is ViolationSeverity.MAJOR)
    minor = sum(1 for v in findings.violations if v.severity is ViolationSeverity.MINOR)
    verdict = AuditVerdict.FAIL if critical else AuditVerdict.PASS

    if findings.violations:
        summary = f"Audit {verdict.value}: {critical} critical, {major} major, {minor} minor violations"
    else:
        summary = f"Audit {verdict.value}: All invariants satisfied"

    return AuditReport(
        verdict=verdict,
        cycle_id=report.cycle_id,
        timestamp=timestamp or datetime.now(),
        violations=tuple(findings.violations),
        invariants=tuple(findings.invariants),
        summary=summary,
    )


def _check_golden(report: CycleReport, findings: _Findings) -> None:
    name = "Golden Set Validation (100%)"
    stop = f"Stop reason: {report.stop_reason}"
    if "Golden set validation failed" in report.stop_reason:
        findings.violated(
            name,
            "Cycle stopped due to golden set failure",
            ViolationSeverity.CRITICAL,
            ViolationCategory.GOLDEN,
            "Golden set validation failed",
            [stop],
        )
    elif report.iterations == 0 and "Golden" in report.stop_reason:
        findings.violated(
            name,
            "No iterations ran - golden check likely failed",
            ViolationSeverity.CRITICAL,
            ViolationCategory.GOLDEN,
            "Golden set validation failed (0 iterations)",
            [stop],
        )
    else:
        findings.ok(name, "Cycle started normally (golden check passed)")


def _check_caps(report: CycleReport, caps: CycleCaps, findings: _Findings) -> None:
    qg = report.quality_gate_stats
    limits = (
        ("PR", "PRs created", qg.prs_created if qg else None, caps.max_prs, ViolationSeverity.CRITICAL),
        (
            "REVIEW",
            "REVIEWs created",
            qg.reviews_created if qg else None,
            caps.max_reviews,
            ViolationSeverity.CRITICAL,
        ),
        (
            "Consecutive REVIEW",
            "Consecutive REVIEWs",
            qg.consecutive_reviews if qg else None,
            caps.max_consecutive_reviews,
            ViolationSeverity.MAJOR,
        ),
    )
    for label, noun, value, limit, severity in limits:
        name = f"{label} Cap (≤{limit})"
        if value is not None and value > limit:
            findings.violated(
                name,
                f"{value} {noun.lower()}",
                severity,
                ViolationCategory.CAPS,
                f"{label} cap exceeded: {value}/{limit}",
                [f"{noun}: {value}", f"Cap: {limit}"],
            )
        else:
            findings.ok(name, f"{value}/{limit}" if value is not None else "No quality gate stats")

    name = f"Iteration Cap (≤{report.max_iterations})"
    if report.iterations > report.max_iterations:
        findings.violated(
            name,
            f"{report.iterations} iterations",
            ViolationSeverity.CRITICAL,
            ViolationCategory.CAPS,
            f"Iterations exceeded max: {report.iterations}/{report.max_iterations}",
            [f"Iterations: {report.iterations}", f"Max: {report.max_iterations}"],
        )
    else:
        findings.ok(name, f"{report.iterations}/{report.max_iterations} iterations")


def _check_protected_surface(report: CycleReport, findings: _Findings) -> None:
    name = "Protected Surface Integrity"
    attempts = [
        t for t in report.task_results
        if t.decision is TaskDecision.SKIP and "Protected file" in t.message
    ]
    if attempts:
        findings.violated(
            name,
            f"{len(attempts)} blocked attempts (tasks targeted protected files)",
            ViolationSeverity.MAJOR,
            ViolationCategory.PROTECTED_SURFACE,
            f"{len(attempts)} task(s) attempted to modify protected files (blocked)",
            [f"Task {t.task_id}: {t.message}" for t in attempts],
        )
    else:
        findings.ok(name, "No attempts to modify protected files")

    if "Protected file" in report.stop_reason:
        findings.violations.append(
            Violation(
                ViolationSeverity.CRITICAL,
                ViolationCategory.PROTECTED_SURFACE,
                "Cycle stopped due to protected file violation",
                (f"Stop reason: {report.stop_reason}",),
            )
        )


def _check_stop_reason(report: CycleReport, findings: _Findings) -> None:
    name = "Valid Stop Reason"
    if classify_stop_reason(report.stop_reason) is None:
        findings.violated(
            name,
            f"Unknown: {report.stop_reason}",
            ViolationSeverity.MAJOR,
            ViolationCategory.STOP_REASON,
            f"Unknown or invalid stop reason: {report.stop_reason}",
            [
                f"Stop reason: {report.stop_reason}",
                "Expected one of: " + ", ".join(STOP_REASON_PHRASES.values()),
            ],
        )
    else:
        findings.ok(name, report.stop_reason)


def _check_counts(report: CycleReport, findings: _Findings) -> None:
    name = "Data Integrity (counts match)"
    actual = CycleResults.tally(report.task_results)
    if actual != report.results:
        findings.violated(
            name,
            "Mismatch between results and task_results",
            ViolationSeverity.MINOR,
            ViolationCategory.DATA_INTEGRITY,
            "Result counts do not match task_results",
            [f"Reported: {report.results.to_dict()}", f"Actual: {actual.to_dict()}"],
        )
    else:
        findings.ok(name, f"{len(report.task_results)} tasks, counts consistent")


_CRITICAL_EVENT_SEVERITY = {
    CriticalEventType.GATE_BYPASS_ATTEMPT: ViolationSeverity.CRITICAL,
    CriticalEventType.UNAUTHORIZED_CORE_MODIFICATION: ViolationSeverity.CRITICAL,
    CriticalEventType.SAFETY_VIOLATION: ViolationSeverity.MAJOR,
}
"""Event types not already covered by the golden and protected-surface checks."""


def _check_events(
    report: CycleReport,
    events: Iterable[CriticalEvent],
    findings: _Findings,
) -> None:
    name = "No Safety Events During Cycle"
    relevant = [
        e for e in events
        if e.cycle_id == report.cycle_id and e.type in _CRITICAL_EVENT_SEVERITY
    ]
    if not relevant:
        findings.ok(name, "No bypass, core-modification or safety events recorded")
        return

    for event in relevant:
        findings.violations.append(
            Violation(
                _CRITICAL_EVENT_SEVERITY[event.type],
                ViolationCategory.CRITICAL_EVENTS,
                f"{event.type.value}: {event.description}",
                (f"At: {event.timestamp.isoformat()}",)
                + ((f"Task: {event.task_id}",) if event.task_id else ()),
            )
        )
    findings.invariants.append(
        InvariantCheck(name, InvariantStatus.VIOLATED, f"{len(relevant)} event(s) recorded")
    )


# =============================================================================
# Persistence and display
# =============================================================================


def load_cycle_report(path: Path) -> CycleReport | None:
    """Load a persisted cycle report. None (logged) if missing or invalid."""
    data = safe_json_load(path)
    if data is None:
        logger.warning("Cycle report not found or unreadable: %s", path)
        return None
    try:
        return CycleReport.from_dict(data)
    except TollgateError as e:
        logger.warning("Invalid cycle report %s: %s", path, e.message)
        return None


def save_audit_report(
    audit: AuditReport,
    data_dir: Path,
    filename: str | None = None,
) -> Path | None:
    """Write ``audits/audit-<cycle_id>.json`` atomically. None on failure."""
    path = data_dir / AUDITS_DIRNAME / (filename or f"audit-{audit.cycle_id}.json")
    if not safe_json_dump(audit.to_dict(), path):
        return None
    logger.info("Audit report saved: %s", path)
    return path


_SEVERITY_ICON = {
    ViolationSeverity.CRITICAL: "[bold red]✗ CRITICAL[/]",
    ViolationSeverity.MAJOR: "[yellow]⚠ MAJOR[/]",
    ViolationSeverity.MINOR: "[cyan]ℹ MINOR[/]",
}


def print_audit_report(audit: AuditReport, console: Console | None = None) -> None:
    """Render an audit report for the operator."""
    console = console or Console()
    style = "green" if audit.passed else "red"

    console.print()
    console.print(
        Panel(
            f"[bold]REPLAY AUDIT: {audit.verdict.value}[/bold]  {escape(audit.cycle_id)}",
            border_style=style,
        )
    )

    console.print("[bold]Invariants:[/bold]")
    for inv in audit.invariants:
        mark = "[green]✓[/]" if inv.ok else "[red]✗[/]"
        console.print(f"  {mark} {escape(inv.name)}: [dim]{escape(inv.evidence)}[/dim]")

    if audit.violations:
        console.print(f"\n[bold]Violations ({len(audit.violations)}):[/bold]")
        for v in audit.violations:
            console.print(f"  {_SEVERITY_ICON[v.severity]} [{v.category.value}] {escape(v.message)}")
            for line in v.evidence:
                console.print(f"      [dim]{escape(line)}[/dim]")

    console.print(f"\n[{style}]{escape(audit.summary)}[/]\n")
