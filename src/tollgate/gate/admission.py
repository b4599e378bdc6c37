"""Admission Gate.

Runtime enforcement before execution: every tool call an agent wants to
make is checked here first. Gate, don't just log.

Checks run in order and short-circuit on the first failure:
1. Command allowlist (denylist always wins, default deny), with output
   redirection targets held to the same path rules as file writes
2. Path safety (protected system paths, project root, symlink escape)
3. Two-step confirmation for critical files
4. Exploration budget for WRITE_CRITICAL and CORE actions

Every decision is appended to the audit trail; blocks are also emitted to
the operator sink. The gate never raises: internal failures become block
decisions.
"""

import logging
from datetime import datetime
from pathlib import PurePath
from typing import Any

from tollgate.gate.audit_log import GateAuditLog
from tollgate.gate.budget import ExplorationBudget
from tollgate.gate.classifier import RiskClassifier
from tollgate.gate.commands import CommandPolicy
from tollgate.gate.paths import PathSafetyResolver
from tollgate.gate.patterns import COMMAND_TOOLS, FILE_WRITE_TOOLS, NULL_DEVICES, TOKEN_PARAM
from tollgate.gate.sinks import GateEventSink, LoggingSink
from tollgate.gate.tokens import ConfirmationTokenIssuer
from tollgate.gate.types import GateDecision, GateEvent, RiskTier

logger = logging.getLogger(__name__)


class AdmissionGate:
    """Composes classifier, matchers, token issuer and ledger into one decision.

    All collaborators are injected; the gate owns no state of its own beyond
    references to them.

    Example:
        >>> gate = context.gate
        >>> decision = gate.check_admission("run_command", {"command": "ls -la"})
        >>> decision.allowed, decision.severity.value
        (True, 'safe')
    """

    def __init__(
        self,
        *,
        classifier: RiskClassifier,
        commands: CommandPolicy,
        paths: PathSafetyResolver,
        tokens: ConfirmationTokenIssuer,
        budget: ExplorationBudget,
        log: GateAuditLog,
        sink: GateEventSink | None = None,
    ):
        self.classifier = classifier
        self.commands = commands
        self.paths = paths
        self.tokens = tokens
        self.budget = budget
        self.log = log
        self.sink = sink or LoggingSink()

    def check_admission(
        self,
        tool_name: str,
        params: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> GateDecision:
        """Decide whether ``tool_name`` may run with ``params``.

        Args:
            tool_name: Tool the agent wants to invoke
            params: Tool parameters (``command``, ``path``, ...)
            token: Confirmation token for critical files. Falls back to
                ``params["high_risk_token"]`` when omitted.

        Returns:
            GateDecision (never raises)
        """
        params = params if isinstance(params, dict) else {}
        tier: RiskTier | None = None
        try:
            decision, tier = self._evaluate(tool_name, params, token)
        except Exception as e:
            logger.exception("Admission check for %s failed; denying", tool_name)
            decision = GateDecision.block(
                "Gate internal error",
                f"{type(e).__name__}: {e}",
                "Action denied (fail-closed)",
            )

        self._record(tool_name, params, decision, tier)
        return decision

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _evaluate(
        self,
        tool_name: str,
        params: dict[str, Any],
        token: str | None,
    ) -> tuple[GateDecision, RiskTier | None]:
        evidence: list[str] = []

        if tool_name in COMMAND_TOOLS:
            command = str(params.get("command") or "")
            verdict = self.commands.check(command)
            if not verdict.allowed:
                return GateDecision.block(
                    "Command not allowed",
                    verdict.reason,
                    f"Command: {command[:100]}",
                    "Only allowlisted commands can run (capabilities model)",
                ), None

            for target in verdict.redirects:
                if target in NULL_DEVICES:
                    continue
                redirect = self.paths.resolve(target)
                if not redirect.safe or redirect.critical:
                    return GateDecision.block(
                        "Command not allowed",
                        redirect.reason or f"Redirect into critical file: {target}",
                        f"Command: {command[:100]}",
                        "Redirected output follows the same rules as write_file",
                    ), None

        tier = self.classifier.classify(tool_name, params)

        if tool_name in FILE_WRITE_TOOLS:
            raw_path = str(params.get("path") or "")
            path_check = self.paths.resolve(raw_path)
            if not path_check.safe:
                return GateDecision.block(
                    "Unsafe file path",
                    path_check.reason or "Path validation failed",
                    f"Path: {raw_path}",
                    "Writes are confined to the project root",
                ), tier

            if path_check.critical or tier is RiskTier.WRITE_CRITICAL:
                name = PurePath(raw_path).name
                provided = token if token is not None else params.get(TOKEN_PARAM)
                token_check = self.tokens.consume(provided)
                if not token_check.valid:
                    ttl = int(self.tokens.ttl.total_seconds())
                    return GateDecision.block(
                        "Critical file requires two-step confirmation",
                        token_check.reason,
                        f"Critical file: {name}",
                        f"Path: {raw_path}",
                        "Issue a confirmation token for this gate context",
                        f"Then pass it as '{TOKEN_PARAM}' within {ttl}s",
                    ), tier
                evidence.append(f"✓ Two-step confirmation acknowledged for: {name}")

        if tier.is_risky:
            allowance = self.budget.can_take_risk()
            if not allowance.allowed:
                return GateDecision.block(
                    "Exploration budget exhausted",
                    allowance.reason or "Budget exceeded",
                    f"Current budget: {allowance.budget:.0%}",
                    "Wait for the budget window to roll over or reduce critical/core actions",
                ), tier
            evidence.append(f"Risky action ({tier.value}): budget check passed")

        return GateDecision.allow(evidence), tier

    # -------------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------------

    def _record(
        self,
        tool_name: str,
        params: dict[str, Any],
        decision: GateDecision,
        tier: RiskTier | None,
    ) -> None:
        self.log.record(tool_name, params, decision)

        if decision.allowed and tier is not None:
            self.budget.record_action(tier, tool_name)

        if not decision.allowed:
            event = GateEvent(
                timestamp=datetime.now(),
                tool_name=tool_name,
                decision=decision,
                params=dict(params),
            )
            try:
                self.sink.emit(event)
            except Exception:
                logger.exception("Gate event sink failed for %s", tool_name)
