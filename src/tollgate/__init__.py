"""Tollgate - governance core for autonomous coding agents.

Every tool call passes the admission gate before it runs; unattended work
cycles run under hard caps; saved cycle reports can be audited offline.
"""

from tollgate.audit import AuditReport, AuditVerdict, audit_cycle
from tollgate.config import CycleCaps, GovernanceConfig, load_config
from tollgate.context import GateContext, create_gate_context
from tollgate.cycle import CycleOrchestrator, CycleReport, StopReason, TaskDecision
from tollgate.events import CriticalEventLog, CriticalEventType
from tollgate.foundation.errors import ErrorCode, TollgateError
from tollgate.gate import (
    AdmissionGate,
    ExplorationBudget,
    GateDecision,
    RiskClassifier,
    RiskTier,
    Severity,
    classify,
)
from tollgate.harness import ABComparison, ABHarness

__version__ = "0.1.0"

__all__ = [
    # Gate
    "AdmissionGate",
    "ExplorationBudget",
    "GateContext",
    "GateDecision",
    "RiskClassifier",
    "RiskTier",
    "Severity",
    "classify",
    "create_gate_context",
    # Config
    "CycleCaps",
    "GovernanceConfig",
    "load_config",
    # Cycles
    "CycleOrchestrator",
    "CycleReport",
    "StopReason",
    "TaskDecision",
    "CriticalEventLog",
    "CriticalEventType",
    # Audit and comparison
    "ABComparison",
    "ABHarness",
    "AuditReport",
    "AuditVerdict",
    "audit_cycle",
    # Errors
    "ErrorCode",
    "TollgateError",
]
