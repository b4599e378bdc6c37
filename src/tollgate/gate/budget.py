"""Exploration Budget Ledger.

Risk is admitted only if rare and tracked. The ledger holds a scalar budget
``current`` in [floor, ceiling] that caps the share of risky actions
(WRITE_CRITICAL, CORE) per window of ``window_actions`` admitted actions.

Curve:
- Allowance: a risky action is granted while
  ``(risky_in_window + 1) / window_actions <= current``
- READONLY actions recover the budget toward target:
  ``current += recovery_rate * (target - current)``
- Risky actions deplete it by the excess over target pace:
  ``current -= depletion_rate * max(0, risky - target * actions) / window_actions``
- WRITE_NORMAL actions count toward the window and leave the budget alone
- At window end the counters reset; ``current`` carries over

The ledger never raises from its public operations.
"""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from tollgate.gate.types import RiskTier

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class BudgetConfig:
    """Bounds and rates for the exploration budget."""

    floor: float = 0.05
    target: float = 0.07
    ceiling: float = 0.12

    window_actions: int = 100
    """Admitted actions per window."""

    recovery_rate: float = 0.05
    """Fraction of the gap to target recovered per READONLY action."""

    depletion_rate: float = 0.5
    """Weight on the excess of risky actions over target pace."""

    step_up: float = 0.01
    """Manual adjustment upward."""

    step_down: float = 0.02
    """Manual adjustment downward."""

    def problems(self) -> list[str]:
        """Describe every inconsistent setting (empty when valid)."""
        problems = []
        if not 0 <= self.floor <= self.target <= self.ceiling <= 1:
            problems.append("require 0 <= floor <= target <= ceiling <= 1")
        if self.window_actions < 1:
            problems.append("window_actions must be >= 1")
        if not 0 <= self.recovery_rate <= 1:
            problems.append("recovery_rate must be within [0, 1]")
        if self.depletion_rate < 0:
            problems.append("depletion_rate must be >= 0")
        return problems


@dataclass(frozen=True, slots=True)
class RiskAllowance:
    """Answer to "may one more risky action run?"."""

    allowed: bool
    budget: float
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RiskyAction:
    """A risky action recorded in the ledger history."""

    timestamp: datetime
    tool_name: str
    tier: RiskTier

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "tool_name": self.tool_name,
            "tier": self.tier.value,
        }


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    """Read-only snapshot of the ledger."""

    budget: float
    floor: float
    target: float
    ceiling: float
    window_actions: int
    actions_in_window: int
    risky_actions_in_window: int

    @property
    def remaining_actions(self) -> int:
        return self.window_actions - self.actions_in_window

    @property
    def used_percent(self) -> float:
        """Risky share of the window consumed so far."""
        return self.risky_actions_in_window / self.window_actions

    @property
    def can_explore(self) -> bool:
        return (self.risky_actions_in_window + 1) / self.window_actions <= self.budget + _EPSILON

    def to_dict(self) -> dict[str, Any]:
        return {
            "budget": self.budget,
            "floor": self.floor,
            "target": self.target,
            "ceiling": self.ceiling,
            "window_actions": self.window_actions,
            "actions_in_window": self.actions_in_window,
            "risky_actions_in_window": self.risky_actions_in_window,
            "remaining_actions": self.remaining_actions,
            "used_percent": self.used_percent,
            "can_explore": self.can_explore,
        }


class ExplorationBudget:
    """Windowed, decaying allowance of risky actions for one gate context."""

    def __init__(
        self,
        config: BudgetConfig | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        history_limit: int = 500,
    ):
        self.config = config or BudgetConfig()
        self._clock = clock
        self._history: deque[RiskyAction] = deque(maxlen=history_limit)
        self.current = self.config.target
        self.actions_in_window = 0
        self.risky_actions_in_window = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def can_take_risk(self) -> RiskAllowance:
        cfg = self.config
        projected = (self.risky_actions_in_window + 1) / cfg.window_actions
        if projected <= self.current + _EPSILON:
            return RiskAllowance(allowed=True, budget=self.current)
        used = self.risky_actions_in_window / cfg.window_actions
        return RiskAllowance(
            allowed=False,
            budget=self.current,
            reason=(
                f"Exploration budget exhausted ({used:.1%} of {self.current:.0%} used, "
                f"{self.risky_actions_in_window} risky in "
                f"{self.actions_in_window}/{cfg.window_actions} actions)"
            ),
        )

    def status(self) -> BudgetStatus:
        cfg = self.config
        return BudgetStatus(
            budget=self.current,
            floor=cfg.floor,
            target=cfg.target,
            ceiling=cfg.ceiling,
            window_actions=cfg.window_actions,
            actions_in_window=self.actions_in_window,
            risky_actions_in_window=self.risky_actions_in_window,
        )

    def history(self, limit: int = 20) -> list[RiskyAction]:
        """Most recent risky actions, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def record_action(self, tier: RiskTier, tool_name: str = "") -> None:
        """Count an admitted action and move the budget along the curve."""
        cfg = self.config
        try:
            self.actions_in_window += 1

            if tier.is_risky:
                self.risky_actions_in_window += 1
                self._history.append(
                    RiskyAction(timestamp=self._clock(), tool_name=tool_name, tier=tier)
                )
                excess = max(
                    0.0,
                    self.risky_actions_in_window - cfg.target * self.actions_in_window,
                )
                self.current -= cfg.depletion_rate * excess / cfg.window_actions
            elif tier is RiskTier.READONLY:
                self.current += cfg.recovery_rate * (cfg.target - self.current)

            self._clamp()

            if self.actions_in_window >= cfg.window_actions:
                logger.debug(
                    "Budget window closed: %d risky of %d, budget %.3f",
                    self.risky_actions_in_window,
                    self.actions_in_window,
                    self.current,
                )
                self.actions_in_window = 0
                self.risky_actions_in_window = 0
        except Exception:
            # Ledger failures must not take down admission; the counters
            # that did update stay, and the budget stays within bounds.
            logger.exception("Failed to record %s action", getattr(tier, "value", tier))
            self._clamp()

    def adjust(self, direction: Literal["up", "down", "reset"]) -> float:
        """Operator intervention. Returns the new budget."""
        cfg = self.config
        match direction:
            case "up":
                self.current += cfg.step_up
            case "down":
                self.current -= cfg.step_down
            case "reset":
                self.current = cfg.target
                self.actions_in_window = 0
                self.risky_actions_in_window = 0
            case _:
                logger.warning("Unknown budget adjustment %r ignored", direction)
        self._clamp()
        logger.info("Exploration budget adjusted (%s): %.3f", direction, self.current)
        return self.current

    def reset(self) -> None:
        """Restore the initial state. Test isolation only."""
        self.current = self.config.target
        self.actions_in_window = 0
        self.risky_actions_in_window = 0
        self._history.clear()

    def _clamp(self) -> None:
        cfg = self.config
        self.current = min(cfg.ceiling, max(cfg.floor, self.current))

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def render_report(self) -> str:
        """Plain-text budget report for the operator."""
        status = self.status()
        recent = self.history(10)
        lines = [
            "EXPLORATION BUDGET",
            f"  Budget:            {status.budget:.1%}",
            f"  Floor / target / ceiling: "
            f"{status.floor:.0%} / {status.target:.0%} / {status.ceiling:.0%}",
            f"  Can explore:       {'YES' if status.can_explore else 'NO'}",
            "",
            "CURRENT WINDOW",
            f"  Actions taken:     {status.actions_in_window}/{status.window_actions}",
            f"  Risky actions:     {status.risky_actions_in_window}",
            f"  Risk usage:        {status.used_percent:.1%} of {status.budget:.1%}",
            "",
            "RECENT RISKY ACTIONS",
        ]
        if not recent:
            lines.append("  No risky actions yet")
        else:
            lines.append(f"  Total tracked:     {len(self._history)}")
            for action in recent[-5:]:
                lines.append(
                    f"  {action.timestamp:%H:%M:%S} {action.tier.value:<15} {action.tool_name}"
                )
        return "\n".join(lines)
