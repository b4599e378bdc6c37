"""Cycle report persistence and console summary."""

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tollgate.cycle.types import CycleReport, TaskDecision
from tollgate.foundation.serialization import safe_json_dump

logger = logging.getLogger(__name__)

CYCLES_DIRNAME = "cycles"

_DECISION_STYLE = {
    TaskDecision.PASS: "green",
    TaskDecision.REVIEW: "yellow",
    TaskDecision.REJECT: "red",
    TaskDecision.SKIP: "dim",
    TaskDecision.ERROR: "bold red",
}


def cycle_report_path(data_dir: Path, cycle_id: str, *, partial: bool = False) -> Path:
    suffix = "-partial" if partial else ""
    return data_dir / CYCLES_DIRNAME / f"cycle-{cycle_id}{suffix}.json"


def save_cycle_report(report: CycleReport, data_dir: Path) -> Path | None:
    """Persist a report atomically.

    Failure is logged and reported as None; a lost report never aborts the
    cycle that produced it.

    Returns:
        Path written, or None if the write failed
    """
    path = cycle_report_path(data_dir, report.cycle_id, partial=report.partial)
    if not safe_json_dump(report.to_dict(), path):
        logger.error("Cycle report %s could not be saved", report.cycle_id)
        return None
    logger.info("Cycle report saved: %s", path)
    return path


def format_duration(ms: int) -> str:
    minutes, rest = divmod(max(ms, 0), 60_000)
    return f"{minutes}m {rest // 1000}s"


def print_cycle_summary(
    report: CycleReport,
    console: Console | None = None,
    *,
    max_prs: int | None = None,
    max_reviews: int | None = None,
) -> None:
    """Render the final report for the operator."""
    console = console or Console()
    title = "CYCLE STOPPED (PARTIAL)" if report.partial else "CYCLE COMPLETE"
    style = "red" if report.partial else "green"

    console.print()
    console.print(Panel(f"[bold]{title}[/bold]  {escape(report.cycle_id)}", border_style=style))
    console.print(
        f"  Duration:        {format_duration(report.duration_ms)} "
        f"[dim](started {report.start_time:%Y-%m-%d %H:%M:%S})[/dim]"
    )
    console.print(f"  Iterations:      {report.iterations}/{report.max_iterations}")
    console.print(f"  Tasks remaining: {report.tasks_remaining}")
    if report.baseline_mode:
        console.print("  Mode:            [yellow]baseline (quality gate bypassed)[/yellow]")
    console.print(f"\n  [bold]Stop reason:[/bold] {escape(report.stop_reason)}\n")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Decision", width=8)
    table.add_column("Count", justify="right")
    for decision in TaskDecision:
        table.add_row(
            f"[{_DECISION_STYLE[decision]}]{decision.value}[/]",
            str(report.results.count(decision)),
        )
    console.print(table)

    if report.quality_gate_stats:
        qg = report.quality_gate_stats
        pr_limit = f"/{max_prs}" if max_prs is not None else ""
        review_limit = f"/{max_reviews}" if max_reviews is not None else ""
        console.print("\n[bold]Quality gate:[/bold]")
        console.print(f"  PRs created:     {qg.prs_created}{pr_limit}")
        console.print(f"  Reviews created: {qg.reviews_created}{review_limit}")
        console.print(f"  Rejects logged:  {qg.rejects_logged}")

    if report.prs_created:
        console.print(f"\n[bold]Pull requests ({len(report.prs_created)}):[/bold]")
        for i, url in enumerate(report.prs_created, 1):
            task = next((t for t in report.task_results if t.pr_url == url), None)
            console.print(f"  {i}. {escape(url)}" + (f" [dim]({task.task_id})[/dim]" if task else ""))

    if report.issues_created:
        console.print(f"\n[bold]Review issues ({len(report.issues_created)}):[/bold]")
        for i, url in enumerate(report.issues_created, 1):
            task = next((t for t in report.task_results if t.issue_url == url), None)
            console.print(f"  {i}. {escape(url)}" + (f" [dim]({task.task_id})[/dim]" if task else ""))

    if report.exploration_budget:
        budget = report.exploration_budget
        console.print("\n[bold]Exploration budget:[/bold]")
        console.print(f"  Current: {budget.current:.1%}")
        console.print(
            f"  Used:    {budget.risky_actions_in_window}/{budget.actions_in_window} risky"
        )
    console.print()
