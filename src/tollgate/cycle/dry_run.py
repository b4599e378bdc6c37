"""Dry-run executor: exercises the gate against a queue without editing code.

Each task's target file is submitted to the Admission Gate as a write. The
executor exposes no quality-gate session, so admitted tasks are recorded as
SKIP and blocked ones as ERROR.
"""

from typing import Any

from tollgate.context import GateContext
from tollgate.cycle.protocols import AgentResult


class DryRunExecutor:
    """Stand-in agent used when no executor is configured."""

    def __init__(self, context: GateContext):
        self.context = context

    async def execute(
        self,
        intent: str,
        max_sub_iterations: int,
        history: list[dict[str, Any]],
        timeout: float,
        task_context: dict[str, Any],
        baseline_mode: bool,
    ) -> AgentResult:
        file = task_context.get("file")
        if not file:
            return AgentResult(success=True, answer=f"Dry run: nothing to write for {intent!r}")

        decision = self.context.check_admission("write_file", {"path": file})
        if not decision.allowed:
            return AgentResult(
                success=False,
                answer=f"Blocked by admission gate: {decision.reason}",
                metadata={"decision": decision.to_dict()},
            )
        return AgentResult(
            success=True,
            answer=f"Dry run: write to {file} admitted ({decision.severity.value})",
            metadata={"decision": decision.to_dict()},
        )


def dry_run_factory(context: GateContext) -> DryRunExecutor:
    return DryRunExecutor(context)
