"""Admission Gate: decide before execution whether a tool call may run.

Components:
- RiskClassifier: (tool, params) -> RiskTier
- CommandMatcher: ordered deny/allow pattern engine
- PathSafetyResolver: project-root containment, symlink escape, critical files
- ConfirmationTokenIssuer: one-shot tokens for critical-file writes
- ExplorationBudget: windowed allowance of risky actions
- GateAuditLog: bounded trail of every decision
- AdmissionGate: composes all of the above
"""

from tollgate.gate.admission import AdmissionGate
from tollgate.gate.audit_log import GateAuditLog
from tollgate.gate.budget import (
    BudgetConfig,
    BudgetStatus,
    ExplorationBudget,
    RiskAllowance,
    RiskyAction,
)
from tollgate.gate.classifier import RiskClassifier, classify
from tollgate.gate.commands import CommandMatcher, CommandPolicy, CommandVerdict
from tollgate.gate.paths import PathCheck, PathSafetyResolver
from tollgate.gate.patterns import PatternRule, is_critical_path
from tollgate.gate.sinks import (
    CollectingSink,
    GateEventSink,
    LoggingSink,
    RichConsoleSink,
    format_block_message,
)
from tollgate.gate.tokens import ConfirmationTokenIssuer, TokenCheck
from tollgate.gate.types import (
    GateDecision,
    GateEvent,
    GateLogEntry,
    GateStats,
    HighRiskToken,
    RiskTier,
    Severity,
)

__all__ = [
    "AdmissionGate",
    "BudgetConfig",
    "BudgetStatus",
    "CollectingSink",
    "CommandMatcher",
    "CommandPolicy",
    "CommandVerdict",
    "ConfirmationTokenIssuer",
    "ExplorationBudget",
    "GateAuditLog",
    "GateDecision",
    "GateEvent",
    "GateEventSink",
    "GateLogEntry",
    "GateStats",
    "HighRiskToken",
    "LoggingSink",
    "PathCheck",
    "PathSafetyResolver",
    "PatternRule",
    "RichConsoleSink",
    "RiskAllowance",
    "RiskClassifier",
    "RiskTier",
    "RiskyAction",
    "Severity",
    "TokenCheck",
    "classify",
    "format_block_message",
    "is_critical_path",
]
