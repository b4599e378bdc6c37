"""Cycle Orchestrator: bounded, unattended (task -> delegate -> outcome) loop.

Phases:
1. INIT: optional critical-event cooldown check
2. GOLDEN_CHECK: the golden set must score 100% or the cycle aborts
3. RUNNING: pull tasks by priority until a stop condition fires
4. STOPPED / COMPLETED / ABORTED: build, persist and print the report

Iterations run strictly one after another. The gate, budget and token
issuer are shared mutable state with no locking, so the orchestrator awaits
each task to completion before pulling the next one.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from rich.console import Console

from tollgate.config import CycleCaps
from tollgate.context import GateContext
from tollgate.cycle.golden import DEFAULT_GOLDEN_SET
from tollgate.cycle.protocols import (
    AgentExecutor,
    GoldenBenchmark,
    NullQualityGateSession,
    QualityGateSession,
    TaskQueueBackend,
)
from tollgate.cycle.queue import DEFAULT_QUEUE_FILE, JsonTaskQueue, MicroTask, TaskQueue
from tollgate.cycle.reports import print_cycle_summary, save_cycle_report
from tollgate.cycle.types import (
    FATAL_ERROR_MARKER,
    BudgetSnapshot,
    CycleReport,
    CycleResults,
    QualityGateStats,
    StopReason,
    TaskDecision,
    TaskResult,
    format_stop_reason,
)
from tollgate.events.critical import CriticalEventLog, CriticalEventType
from tollgate.foundation.errors import GoldenSetRegression

logger = logging.getLogger(__name__)

EVENTS_DIRNAME = "critical_events"


class CyclePhase(Enum):
    INIT = "init"
    GOLDEN_CHECK = "golden_check"
    RUNNING = "running"
    ABORTED = "aborted"
    STOPPED = "stopped"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class _Stop:
    reason: StopReason
    text: str


class CycleOrchestrator:
    """Runs one cycle over a task queue under hard caps.

    Example:
        >>> context = create_gate_context(Path("."))
        >>> orchestrator = CycleOrchestrator(context, executor)
        >>> report = await orchestrator.run(queue_path=Path("tasks.json"))
        >>> report.stop_reason
        'All tasks completed'
    """

    def __init__(
        self,
        context: GateContext,
        executor: AgentExecutor,
        *,
        caps: CycleCaps | None = None,
        queue_backend: TaskQueueBackend | None = None,
        session: QualityGateSession | None = None,
        events: CriticalEventLog | None = None,
        golden: GoldenBenchmark | None = None,
        data_dir: Path | None = None,
        baseline_mode: bool = False,
        persist: bool = True,
        console: Console | None = None,
        on_event: Callable[[str, str], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        config = context.config
        self.context = context
        self.executor = executor
        self.caps = caps or config.caps
        self.data_dir = data_dir or config.resolve_data_dir(context.project_root)
        self.queue_backend = queue_backend or JsonTaskQueue(
            protected_patterns=config.paths.protected_task_patterns,
            default_path=self.data_dir / DEFAULT_QUEUE_FILE,
        )
        if session is None:
            session = (
                executor
                if isinstance(executor, QualityGateSession)
                else NullQualityGateSession()
            )
        self.session = session
        self.events = events or CriticalEventLog(self.data_dir / EVENTS_DIRNAME, clock=clock)
        self.golden = golden or (lambda: DEFAULT_GOLDEN_SET.validate(context.classify))
        self.baseline_mode = baseline_mode
        self.persist = persist
        self.console = console
        self.on_event = on_event
        self._clock = clock

        self.phase = CyclePhase.INIT
        self.report_path: Path | None = None
        self._cancelled = False

    def cancel(self) -> None:
        """Request a stop at the next iteration boundary."""
        self._cancelled = True
        self._emit("cancel", "Cancellation requested")

    # =========================================================================
    # Main loop
    # =========================================================================

    async def run(
        self,
        queue_path: Path | None = None,
        queue: TaskQueue | None = None,
    ) -> CycleReport:
        """Run the cycle and return its (already persisted) report.

        Args:
            queue_path: Task file to load (defaults to the backend's path)
            queue: Explicit queue, overriding any file

        Raises:
            TollgateError: QUEUE_INVALID if the queue file is malformed
        """
        caps = self.caps
        start = self._clock()
        cycle_id = start.strftime("%Y-%m-%dT%H-%M-%S-%f")
        self.phase = CyclePhase.INIT
        self._emit(
            "start",
            f"Cycle {cycle_id}: max {caps.max_iterations} iterations, "
            f"{caps.max_duration_minutes:g} minutes",
        )

        cooldown = caps.critical_event_cooldown_minutes
        if cooldown is not None and self.events.has_recent(minutes=cooldown):
            stop = self._stop(StopReason.RECENT_CRITICAL_EVENTS, minutes=cooldown)
            self.phase = CyclePhase.ABORTED
            return self._finalize(cycle_id, start, 0, [], stop, tasks_remaining=0)

        self.phase = CyclePhase.GOLDEN_CHECK
        if not self._golden_check(cycle_id):
            stop = self._stop(StopReason.GOLDEN_FAILED)
            self.phase = CyclePhase.ABORTED
            return self._finalize(cycle_id, start, 0, [], stop, tasks_remaining=0)

        if queue is None:
            queue = self.queue_backend.load(queue_path)
        if queue is None:
            self._emit("queue", "No task queue found, using default tasks")
            queue = self.queue_backend.default_tasks()
        self._emit("queue", f"Task queue loaded: {len(queue.tasks)} tasks (source: {queue.source})")

        self.session.init_session()
        observed = self.session.session_stats() or QualityGateStats()

        self.phase = CyclePhase.RUNNING
        results: list[TaskResult] = []
        iteration = 0
        consecutive_errors = 0
        stop: _Stop | None = None

        try:
            while iteration < caps.max_iterations and queue.tasks:
                if self._cancelled:
                    stop = self._stop(StopReason.CANCELLED)
                    break

                elapsed = (self._clock() - start).total_seconds()
                if elapsed > caps.max_duration_minutes * 60:
                    stop = self._stop(StopReason.MAX_DURATION, limit=caps.max_duration_minutes)
                    break

                task = self.queue_backend.next(queue)
                if task is None:
                    stop = self._stop(StopReason.NO_MORE_TASKS)
                    break

                iteration += 1
                self._emit("task", f"[{iteration}/{caps.max_iterations}] {task.id}: {task.intent}")

                if task.file and self.queue_backend.is_protected(task.file):
                    results.append(self._protected_file_attempt(task, cycle_id, iteration))
                    queue = self.queue_backend.remove(queue, task.id)
                    stop = self._stop(StopReason.PROTECTED_FILE, file=task.file)
                    break

                result, observed, stop = await self._run_task(task, observed)
                results.append(result)
                queue = self.queue_backend.remove(queue, task.id)
                self._emit("result", f"{task.id}: {result.decision.value} - {result.message}")

                if result.decision is TaskDecision.ERROR:
                    consecutive_errors += 1
                else:
                    consecutive_errors = 0

                if stop is None and consecutive_errors >= caps.max_consecutive_errors:
                    stop = self._stop(StopReason.CONSECUTIVE_ERRORS, limit=caps.max_consecutive_errors)
                if stop is not None:
                    break
        except BaseException:
            # Cancelled or interrupted mid-task: persist what ran, then propagate.
            logger.warning("Cycle %s interrupted; writing partial report", cycle_id)
            self.phase = CyclePhase.STOPPED
            self._finalize(
                cycle_id,
                start,
                iteration,
                results,
                self._stop(StopReason.CANCELLED),
                tasks_remaining=len(queue.tasks),
            )
            raise

        if stop is None:
            self.phase = CyclePhase.COMPLETED
            if iteration >= caps.max_iterations:
                stop = self._stop(StopReason.MAX_ITERATIONS, limit=caps.max_iterations)
            else:
                stop = self._stop(StopReason.ALL_TASKS_COMPLETED)
        elif stop.reason is StopReason.NO_MORE_TASKS:
            self.phase = CyclePhase.COMPLETED
        else:
            self.phase = CyclePhase.STOPPED

        return self._finalize(
            cycle_id, start, iteration, results, stop, tasks_remaining=len(queue.tasks)
        )

    # =========================================================================
    # Steps
    # =========================================================================

    def _golden_check(self, cycle_id: str) -> bool:
        self._emit("golden", "Running golden set validation (100% required)")
        try:
            self.golden()
        except GoldenSetRegression as e:
            self._golden_failed(cycle_id, e.message, {**e.context, "failures": e.failures})
            return False
        except Exception as e:
            self._golden_failed(cycle_id, str(e), {"error": f"{type(e).__name__}: {e}"})
            return False
        self._emit("golden", "Golden set validation passed")
        return True

    def _golden_failed(self, cycle_id: str, detail: str, context: dict) -> None:
        self.events.log(
            CriticalEventType.GOLDEN_REGRESSION,
            f"Golden set validation failed: {detail}",
            context=context,
            cycle_id=cycle_id,
        )
        self._emit("golden", f"Golden set validation FAILED: {detail}")

    def _protected_file_attempt(self, task: MicroTask, cycle_id: str, iteration: int) -> TaskResult:
        file = task.file or ""
        context: dict[str, object] = {
            "file": file,
            "task_intent": task.intent,
            "iteration": iteration,
        }
        if isinstance(self.queue_backend, JsonTaskQueue):
            context["pattern"] = self.queue_backend.protection_reason(file)
        self.events.log(
            CriticalEventType.PROTECTED_FILE_ATTEMPT,
            f"Autonomous cycle attempted to modify protected file: {file}",
            context=context,
            cycle_id=cycle_id,
            task_id=task.id,
        )
        self._emit("blocked", f"Task touches protected file: {file}")
        return TaskResult(task_id=task.id, decision=TaskDecision.SKIP, message=f"Protected file: {file}")

    async def _run_task(
        self,
        task: MicroTask,
        observed: QualityGateStats,
    ) -> tuple[TaskResult, QualityGateStats, _Stop | None]:
        """Delegate one task and infer its outcome from session counter deltas."""
        caps = self.caps
        started = self._clock()

        def result(decision: TaskDecision, message: str, **urls: str | None) -> TaskResult:
            duration = int((self._clock() - started).total_seconds() * 1000)
            return TaskResult(
                task_id=task.id, decision=decision, message=message, duration_ms=duration, **urls
            )

        try:
            agent_result = await asyncio.wait_for(
                self.executor.execute(
                    task.intent,
                    caps.max_sub_iterations,
                    [],
                    caps.task_timeout_seconds,
                    task.context,
                    self.baseline_mode,
                ),
                timeout=caps.task_timeout_seconds,
            )
            stats = self.session.session_stats() if agent_result.success else None
        except TimeoutError:
            message = f"Task timed out after {caps.task_timeout_seconds:g}s"
            return result(TaskDecision.ERROR, message), observed, None
        except Exception as e:
            logger.exception("Task %s raised", task.id)
            message = f"{type(e).__name__}: {e}"
            return result(TaskDecision.ERROR, message), observed, self._fatal_stop(message)

        if not agent_result.success:
            answer = agent_result.answer
            return result(TaskDecision.ERROR, answer), observed, self._fatal_stop(answer)

        if stats is None:
            return result(TaskDecision.SKIP, "No quality gate data"), observed, None

        stop = None
        if stats.prs_created > observed.prs_created:
            outcome = result(
                TaskDecision.PASS,
                "Quality gate passed, PR created by agent",
                pr_url=agent_result.pr_url,
            )
            if stats.prs_created >= caps.max_prs:
                stop = self._stop(StopReason.PR_CAP, count=stats.prs_created, limit=caps.max_prs)
        elif stats.reviews_created > observed.reviews_created:
            outcome = result(
                TaskDecision.REVIEW,
                "Quality gate review required",
                issue_url=agent_result.issue_url,
            )
            if stats.consecutive_reviews >= caps.max_consecutive_reviews:
                stop = self._stop(StopReason.CONSECUTIVE_REVIEWS, limit=caps.max_consecutive_reviews)
            elif stats.reviews_created >= caps.max_reviews:
                stop = self._stop(
                    StopReason.REVIEW_CAP, count=stats.reviews_created, limit=caps.max_reviews
                )
        elif stats.rejects_logged > observed.rejects_logged:
            outcome = result(TaskDecision.REJECT, "Quality gate rejected")
        else:
            outcome = result(TaskDecision.SKIP, "No quality gate decision recorded")

        return outcome, stats, stop

    def _fatal_stop(self, message: str) -> _Stop | None:
        if FATAL_ERROR_MARKER in message:
            return self._stop(StopReason.FATAL_ERROR, message=message)
        return None

    # =========================================================================
    # Report
    # =========================================================================

    def _finalize(
        self,
        cycle_id: str,
        start: datetime,
        iterations: int,
        results: list[TaskResult],
        stop: _Stop,
        *,
        tasks_remaining: int,
    ) -> CycleReport:
        try:
            qg_stats = self.session.session_stats()
        except Exception:
            logger.exception("Could not read quality gate session stats")
            qg_stats = None

        report = CycleReport(
            cycle_id=cycle_id,
            start_time=start,
            end_time=self._clock(),
            iterations=iterations,
            max_iterations=self.caps.max_iterations,
            stop_reason=stop.text,
            results=CycleResults.tally(results),
            task_results=tuple(results),
            prs_created=tuple(r.pr_url for r in results if r.pr_url),
            issues_created=tuple(r.issue_url for r in results if r.issue_url),
            tasks_remaining=tasks_remaining,
            quality_gate_stats=qg_stats,
            exploration_budget=BudgetSnapshot.from_status(self.context.budget_status()),
            baseline_mode=self.baseline_mode,
            partial=stop.reason.is_partial,
        )
        self._emit("stop", stop.text)

        if self.persist:
            self.report_path = save_cycle_report(report, self.data_dir)
        if self.console is not None:
            print_cycle_summary(
                report,
                self.console,
                max_prs=self.caps.max_prs,
                max_reviews=self.caps.max_reviews,
            )
        return report

    def _stop(self, reason: StopReason, **context: object) -> _Stop:
        return _Stop(reason=reason, text=format_stop_reason(reason, **context))

    def _emit(self, event: str, message: str) -> None:
        """Emit a progress event."""
        logger.info("[%s] %s", event, message)
        if self.on_event:
            self.on_event(event, message)
