"""Type definitions for the Admission Gate.

Core types for deciding, before execution, whether an agent's tool call
may proceed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# =============================================================================
# Risk Classification
# =============================================================================


class RiskTier(Enum):
    """Risk tier of a tool invocation, in increasing sensitivity."""

    READONLY = "readonly"
    """Inspects state without changing it.

    Examples:
    - git status, ls, cat
    - Unknown tools (default)
    """

    WRITE_NORMAL = "write_normal"
    """Changes ordinary project files.

    Examples:
    - Write or delete a source file
    - git commit, mkdir, mv
    """

    WRITE_CRITICAL = "write_critical"
    """Changes a dependency manifest, lockfile, env file or build config.

    Requires a two-step confirmation token and consumes exploration budget.
    """

    CORE = "core"
    """Changes the agent's own configuration or runs a destructive command.

    Consumes exploration budget.
    """

    @property
    def rank(self) -> int:
        """Position in the sensitivity order (0 = least sensitive)."""
        return _TIER_ORDER.index(self)

    @property
    def is_risky(self) -> bool:
        """Whether this tier draws on the exploration budget."""
        return self in (RiskTier.WRITE_CRITICAL, RiskTier.CORE)


_TIER_ORDER = (
    RiskTier.READONLY,
    RiskTier.WRITE_NORMAL,
    RiskTier.WRITE_CRITICAL,
    RiskTier.CORE,
)


class Severity(Enum):
    """Severity attached to every gate decision."""

    SAFE = "safe"
    """Allowed with no evidence."""

    WARN = "warn"
    """Allowed, with evidence worth recording."""

    BLOCK = "block"
    """Denied."""


# =============================================================================
# Gate Decision
# =============================================================================


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Result of an admission check.

    Invariants: ``severity == BLOCK`` exactly when ``allowed`` is false, and
    ``severity == WARN`` exactly when the decision is allowed with evidence.
    Construction rejects any other combination.
    """

    allowed: bool
    """Whether the action may proceed."""

    reason: str
    """One-line explanation naming the rule that decided."""

    severity: Severity
    """safe, warn, or block."""

    evidence: tuple[str, ...] = ()
    """Ordered supporting lines (matched rule, remediation, acknowledgments)."""

    def __post_init__(self) -> None:
        if self.allowed == (self.severity is Severity.BLOCK):
            raise ValueError(
                f"allowed={self.allowed} is inconsistent with severity={self.severity.value}"
            )
        if self.allowed and (self.severity is Severity.WARN) != bool(self.evidence):
            raise ValueError("allowed decisions are WARN exactly when evidence is present")

    @classmethod
    def block(cls, reason: str, *evidence: str) -> GateDecision:
        """Build a denied decision."""
        return cls(allowed=False, reason=reason, severity=Severity.BLOCK, evidence=evidence)

    @classmethod
    def allow(cls, evidence: tuple[str, ...] | list[str] = ()) -> GateDecision:
        """Build an allowed decision; severity follows from the evidence."""
        evidence = tuple(evidence)
        if evidence:
            return cls(
                allowed=True,
                reason="Allowed with warnings",
                severity=Severity.WARN,
                evidence=evidence,
            )
        return cls(allowed=True, reason="Safe action", severity=Severity.SAFE)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "severity": self.severity.value,
            "evidence": list(self.evidence),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GateDecision:
        """Deserialize from JSON."""
        return cls(
            allowed=data["allowed"],
            reason=data["reason"],
            severity=Severity(data["severity"]),
            evidence=tuple(data.get("evidence", ())),
        )


# =============================================================================
# Confirmation Tokens
# =============================================================================


@dataclass(slots=True)
class HighRiskToken:
    """One-shot confirmation token for a critical-file write.

    ``used`` flips from False to True exactly once.
    """

    token: str
    issued_at: datetime
    expires_at: datetime
    used: bool = False

    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after ``expires_at``."""
        return now > self.expires_at


# =============================================================================
# Gate Audit Trail
# =============================================================================


@dataclass(frozen=True, slots=True)
class GateLogEntry:
    """A single admission decision recorded in the gate's ring buffer."""

    timestamp: datetime
    tool_name: str
    params: str
    """Parameter snapshot, serialized and truncated."""

    decision: GateDecision

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "tool_name": self.tool_name,
            "params": self.params,
            "decision": self.decision.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class GateStats:
    """Aggregate counts over the gate's audit trail."""

    total: int = 0
    blocked: int = 0
    warned: int = 0
    safe: int = 0

    @property
    def block_rate(self) -> float:
        """Fraction of decisions that were blocks (0.0 when empty)."""
        return self.blocked / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "blocked": self.blocked,
            "warned": self.warned,
            "safe": self.safe,
            "block_rate": self.block_rate,
        }


# =============================================================================
# Gate Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class GateEvent:
    """Structured notification emitted to the operator channel on a block."""

    timestamp: datetime
    tool_name: str
    decision: GateDecision
    params: dict[str, Any] = field(default_factory=dict)
