"""Gate context: all mutable admission state for one session.

A GateContext owns its classifier, matchers, token issuer, budget ledger and
audit trail. Two contexts never share state, so independent sessions (for
example the two arms of an A/B comparison) can run side by side.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from tollgate.config import GovernanceConfig
from tollgate.gate.admission import AdmissionGate
from tollgate.gate.audit_log import GateAuditLog
from tollgate.gate.budget import BudgetStatus, ExplorationBudget
from tollgate.gate.classifier import RiskClassifier
from tollgate.gate.commands import CommandMatcher
from tollgate.gate.paths import PathSafetyResolver
from tollgate.gate.patterns import (
    ALLOWED_COMMANDS,
    DANGEROUS_COMMANDS,
    rules_from_strings,
)
from tollgate.gate.sinks import GateEventSink
from tollgate.gate.tokens import ConfirmationTokenIssuer
from tollgate.gate.types import GateDecision, GateStats, RiskTier


@dataclass(slots=True)
class GateContext:
    """Per-session admission state, passed by reference to every check."""

    project_root: Path
    config: GovernanceConfig
    classifier: RiskClassifier
    commands: CommandMatcher
    paths: PathSafetyResolver
    tokens: ConfirmationTokenIssuer
    budget: ExplorationBudget
    log: GateAuditLog
    gate: AdmissionGate

    def check_admission(
        self,
        tool_name: str,
        params: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> GateDecision:
        return self.gate.check_admission(tool_name, params, token)

    def classify(self, tool_name: str, params: dict[str, Any] | None = None) -> RiskTier:
        return self.classifier.classify(tool_name, params)

    def issue_token(self) -> str:
        return self.tokens.issue()

    def stats(self) -> GateStats:
        return self.log.stats()

    def budget_status(self) -> BudgetStatus:
        return self.budget.status()

    def reset(self) -> None:
        """Restore initial budget, token and log state. Test isolation only."""
        self.budget.reset()
        self.tokens.revoke()
        self.log.clear()


def create_gate_context(
    project_root: Path | None = None,
    config: GovernanceConfig | None = None,
    *,
    sink: GateEventSink | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> GateContext:
    """Build a fresh, independent GateContext.

    Args:
        project_root: Root that writes are confined to (defaults to cwd)
        config: Governance configuration (defaults to built-in values)
        sink: Where block events go (defaults to the module logger)
        clock: Time source for tokens, budget history and the audit trail

    Returns:
        GateContext with nothing shared with any other context
    """
    root = Path(project_root or Path.cwd()).absolute()
    config = config or GovernanceConfig()
    paths_cfg = config.paths

    deny = DANGEROUS_COMMANDS + rules_from_strings(
        config.commands.extra_deny, "custom_deny", lowercase=True
    )
    allow = ALLOWED_COMMANDS + rules_from_strings(config.commands.extra_allow, "custom_allow")

    classifier = RiskClassifier(
        dangerous=deny,
        critical_basenames=paths_cfg.critical_basenames,
        critical_paths=paths_cfg.critical_paths,
    )
    commands = CommandMatcher(deny=deny, allow=allow)
    paths = PathSafetyResolver(
        root,
        protected_paths=paths_cfg.protected_system_paths,
        critical_basenames=paths_cfg.critical_basenames,
        critical_paths=paths_cfg.critical_paths,
    )
    tokens = ConfirmationTokenIssuer(ttl_seconds=config.token_ttl_seconds, clock=clock)
    budget = ExplorationBudget(config.budget, clock=clock)
    log = GateAuditLog(capacity=config.gate_log_capacity, clock=clock)

    gate = AdmissionGate(
        classifier=classifier,
        commands=commands,
        paths=paths,
        tokens=tokens,
        budget=budget,
        log=log,
        sink=sink,
    )
    return GateContext(
        project_root=root,
        config=config,
        classifier=classifier,
        commands=commands,
        paths=paths,
        tokens=tokens,
        budget=budget,
        log=log,
        gate=gate,
    )
