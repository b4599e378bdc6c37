"""A/B Harness: gated (FULL) vs ungated (BASELINE) cycles.

Condition FULL runs the delegate with its quality gate; condition BASELINE
passes ``baseline_mode=True`` so the delegate bypasses it. Admission gating
applies to both. Each condition gets its own GateContext so budget, token
and gate-log state never leak between arms.

Metrics per condition:
1. Review load: REVIEW outcomes per 100 tasks
2. Reject rate: REJECT / tasks
3. Cycle efficiency: tasks / iterations
4. Auditor pass rate: share of cycles whose audit is PASS
5. PR creation rate: PRs / tasks
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from tollgate.audit.auditor import AuditReport, audit_cycle
from tollgate.config import GovernanceConfig
from tollgate.context import GateContext, create_gate_context
from tollgate.cycle.orchestrator import CycleOrchestrator
from tollgate.cycle.protocols import ExecutorFactory
from tollgate.cycle.queue import TaskQueue
from tollgate.cycle.types import CycleReport
from tollgate.foundation.serialization import safe_json_dump

logger = logging.getLogger(__name__)

AB_DIRNAME = "ab_comparisons"

RATE_METRICS = (
    "review_load",
    "reject_rate",
    "cycle_efficiency",
    "auditor_pass_rate",
    "pr_creation_rate",
)


class Condition(Enum):
    FULL = "FULL"
    BASELINE = "BASELINE"

    @property
    def baseline_mode(self) -> bool:
        return self is Condition.BASELINE


@dataclass(frozen=True, slots=True)
class ConditionMetrics:
    """Aggregate outcome of every cycle run under one condition."""

    condition: Condition
    cycles_run: int
    total_tasks: int
    total_iterations: int
    pass_count: int
    review_count: int
    reject_count: int
    skip_count: int
    error_count: int
    prs_created: int
    audit_pass_count: int
    audit_fail_count: int

    @classmethod
    def from_cycles(
        cls,
        condition: Condition,
        reports: list[CycleReport],
        audits: list[AuditReport],
    ) -> ConditionMetrics:
        return cls(
            condition=condition,
            cycles_run=len(reports),
            total_tasks=sum(len(r.task_results) for r in reports),
            total_iterations=sum(r.iterations for r in reports),
            pass_count=sum(r.results.passed for r in reports),
            review_count=sum(r.results.reviewed for r in reports),
            reject_count=sum(r.results.rejected for r in reports),
            skip_count=sum(r.results.skipped for r in reports),
            error_count=sum(r.results.errored for r in reports),
            prs_created=sum(
                r.quality_gate_stats.prs_created for r in reports if r.quality_gate_stats
            ),
            audit_pass_count=sum(1 for a in audits if a.passed),
            audit_fail_count=sum(1 for a in audits if not a.passed),
        )

    @property
    def review_load(self) -> float:
        return self.review_count / self.total_tasks * 100 if self.total_tasks else 0.0

    @property
    def reject_rate(self) -> float:
        return self.reject_count / self.total_tasks if self.total_tasks else 0.0

    @property
    def cycle_efficiency(self) -> float:
        return self.total_tasks / self.total_iterations if self.total_iterations else 0.0

    @property
    def auditor_pass_rate(self) -> float:
        return self.audit_pass_count / self.cycles_run if self.cycles_run else 0.0

    @property
    def pr_creation_rate(self) -> float:
        return self.prs_created / self.total_tasks if self.total_tasks else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition.value,
            "cycles_run": self.cycles_run,
            "total_tasks": self.total_tasks,
            "total_iterations": self.total_iterations,
            "pass_count": self.pass_count,
            "review_count": self.review_count,
            "reject_count": self.reject_count,
            "skip_count": self.skip_count,
            "error_count": self.error_count,
            "prs_created": self.prs_created,
            "audit_pass_count": self.audit_pass_count,
            "audit_fail_count": self.audit_fail_count,
            **{name: getattr(self, name) for name in RATE_METRICS},
        }


@dataclass(frozen=True, slots=True)
class ABComparison:
    timestamp: datetime
    queue_path: str | None
    cycles_per_condition: int
    full: ConditionMetrics
    baseline: ConditionMetrics

    @property
    def delta(self) -> dict[str, float]:
        """FULL minus BASELINE for every rate metric."""
        return {
            name: getattr(self.full, name) - getattr(self.baseline, name)
            for name in RATE_METRICS
        }

    @property
    def summary(self) -> str:
        d = self.delta
        return "\n".join([
            "A/B Comparison Results:",
            f"- Review Load: {d['review_load']:+.1f} REVIEW/100 tasks (Full vs Baseline)",
            f"- Reject Rate: {d['reject_rate'] * 100:+.1f}% (Full vs Baseline)",
            f"- Cycle Efficiency: {d['cycle_efficiency']:+.2f} tasks/iteration (Full vs Baseline)",
            f"- Auditor Pass Rate: {d['auditor_pass_rate'] * 100:+.1f}% (Full vs Baseline)",
            f"- PR Creation Rate: {d['pr_creation_rate'] * 100:+.1f}% (Full vs Baseline)",
        ])

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "queue_path": self.queue_path,
            "cycles_per_condition": self.cycles_per_condition,
            "full_condition": self.full.to_dict(),
            "baseline_condition": self.baseline.to_dict(),
            "delta": self.delta,
            "summary": self.summary,
        }


class ABHarness:
    """Runs the same queue under both conditions and diffs the metrics.

    Example:
        >>> harness = ABHarness(my_executor_factory, project_root=Path("."))
        >>> comparison = await harness.run(queue_path=Path("tasks.json"))
        >>> print(comparison.summary)
    """

    def __init__(
        self,
        executor_factory: ExecutorFactory,
        *,
        project_root: Path | None = None,
        config: GovernanceConfig | None = None,
        cycles_per_condition: int = 3,
        max_iterations: int = 5,
        data_dir: Path | None = None,
        persist_cycles: bool = True,
        on_event: Callable[[str, str], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.executor_factory = executor_factory
        self.project_root = project_root or Path.cwd()
        self.config = config or GovernanceConfig()
        self.cycles_per_condition = cycles_per_condition
        self.max_iterations = max_iterations
        self.data_dir = data_dir or self.config.resolve_data_dir(self.project_root)
        self.persist_cycles = persist_cycles
        self.on_event = on_event
        self._clock = clock
        self.contexts: dict[Condition, GateContext] = {}

    async def run(
        self,
        queue_path: Path | None = None,
        queue: TaskQueue | None = None,
    ) -> ABComparison:
        metrics = {}
        for condition in Condition:
            metrics[condition] = await self._run_condition(condition, queue_path, queue)
        return ABComparison(
            timestamp=self._clock(),
            queue_path=str(queue_path) if queue_path else None,
            cycles_per_condition=self.cycles_per_condition,
            full=metrics[Condition.FULL],
            baseline=metrics[Condition.BASELINE],
        )

    async def _run_condition(
        self,
        condition: Condition,
        queue_path: Path | None,
        queue: TaskQueue | None,
    ) -> ConditionMetrics:
        context = create_gate_context(self.project_root, self.config, clock=self._clock)
        self.contexts[condition] = context
        caps = replace(self.config.caps, max_iterations=self.max_iterations)
        executor = self.executor_factory(context)

        reports: list[CycleReport] = []
        audits: list[AuditReport] = []
        for i in range(1, self.cycles_per_condition + 1):
            self._emit("cycle", f"{condition.value} cycle {i}/{self.cycles_per_condition}")
            orchestrator = CycleOrchestrator(
                context,
                executor,
                caps=caps,
                data_dir=self.data_dir,
                baseline_mode=condition.baseline_mode,
                persist=self.persist_cycles,
                on_event=self.on_event,
                clock=self._clock,
            )
            report = await orchestrator.run(queue_path=queue_path, queue=queue)
            audit = audit_cycle(report, caps, timestamp=self._clock())
            reports.append(report)
            audits.append(audit)
            self._emit("audit", f"{condition.value} cycle {i}: {audit.summary}")

        return ConditionMetrics.from_cycles(condition, reports, audits)

    def _emit(self, event: str, message: str) -> None:
        logger.info("[%s] %s", event, message)
        if self.on_event:
            self.on_event(event, message)


def save_ab_comparison(
    comparison: ABComparison,
    data_dir: Path,
    filename: str | None = None,
) -> Path | None:
    """Write ``ab_comparisons/ab_comparison-<timestamp>.json`` atomically."""
    stamp = comparison.timestamp.strftime("%Y-%m-%dT%H-%M-%S-%f")
    path = data_dir / AB_DIRNAME / (filename or f"ab_comparison-{stamp}.json")
    if not safe_json_dump(comparison.to_dict(), path):
        return None
    logger.info("A/B comparison saved: %s", path)
    return path


def print_ab_comparison(comparison: ABComparison, console: Console | None = None) -> None:
    console = console or Console()
    full, baseline, delta = comparison.full, comparison.baseline, comparison.delta

    table = Table(
        title=f"A/B comparison ({comparison.cycles_per_condition} cycles per condition)",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Metric")
    table.add_column("Full", justify="right")
    table.add_column("Baseline", justify="right")
    table.add_column("Delta", justify="right")

    for label, attr in (
        ("Tasks", "total_tasks"),
        ("Iterations", "total_iterations"),
        ("PASS", "pass_count"),
        ("REVIEW", "review_count"),
        ("REJECT", "reject_count"),
        ("SKIP", "skip_count"),
        ("ERROR", "error_count"),
        ("PRs created", "prs_created"),
        ("Audits PASS", "audit_pass_count"),
    ):
        table.add_row(label, str(getattr(full, attr)), str(getattr(baseline, attr)), "")

    table.add_section()
    table.add_row(
        "Review load (/100 tasks)",
        f"{full.review_load:.1f}",
        f"{baseline.review_load:.1f}",
        f"{delta['review_load']:+.1f}",
    )
    for label, attr in (
        ("Reject rate", "reject_rate"),
        ("Auditor pass rate", "auditor_pass_rate"),
        ("PR creation rate", "pr_creation_rate"),
    ):
        table.add_row(
            label,
            f"{getattr(full, attr):.1%}",
            f"{getattr(baseline, attr):.1%}",
            f"{delta[attr] * 100:+.1f}%",
        )
    table.add_row(
        "Cycle efficiency (tasks/iter)",
        f"{full.cycle_efficiency:.2f}",
        f"{baseline.cycle_efficiency:.2f}",
        f"{delta['cycle_efficiency']:+.2f}",
    )

    console.print()
    console.print(table)
    console.print()
