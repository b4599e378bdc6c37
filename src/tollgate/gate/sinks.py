"""Operator channel for gate events.

The gate emits a GateEvent for every blocked decision; where it goes is the
sink's business. Policy code never prints.
"""

import logging
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from tollgate.gate.types import GateDecision, GateEvent

logger = logging.getLogger(__name__)


class GateEventSink(Protocol):
    """Receives structured gate events."""

    def emit(self, event: GateEvent) -> None: ...


def format_block_message(decision: GateDecision) -> str:
    """Operator-facing explanation of a blocked decision."""
    rule = "━" * 50
    lines = [
        "ACTION BLOCKED BY ADMISSION GATE",
        rule,
        f"Reason: {decision.reason}",
        "",
        "Evidence:",
        *(f"  • {line}" for line in decision.evidence),
        "",
        rule,
        "This action was prevented before execution.",
        "Check the gate log for the full audit trail.",
    ]
    return "\n".join(lines)


class LoggingSink:
    """Sends block events to the module logger at WARNING."""

    def emit(self, event: GateEvent) -> None:
        logger.warning(
            "Gate blocked %s: %s (%s)",
            event.tool_name,
            event.decision.reason,
            "; ".join(event.decision.evidence),
        )


class RichConsoleSink:
    """Renders block events as a panel on a rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True)

    def emit(self, event: GateEvent) -> None:
        body = "\n".join(
            [f"[bold]Reason:[/bold] {escape(event.decision.reason)}"]
            + [f"  • {escape(line)}" for line in event.decision.evidence]
        )
        self.console.print(
            Panel(body, title=f"🛑 GATE BLOCKED: {escape(event.tool_name)}", border_style="red")
        )


class CollectingSink:
    """Keeps events in memory. Used by the A/B harness and tests."""

    def __init__(self) -> None:
        self.events: list[GateEvent] = []

    def emit(self, event: GateEvent) -> None:
        self.events.append(event)
