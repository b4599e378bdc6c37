"""Replay Auditor: offline verification of persisted cycle reports."""

from tollgate.audit.auditor import (
    AuditReport,
    AuditVerdict,
    InvariantCheck,
    InvariantStatus,
    Violation,
    ViolationCategory,
    ViolationSeverity,
    audit_cycle,
    load_cycle_report,
    print_audit_report,
    save_audit_report,
)

__all__ = [
    "AuditReport",
    "AuditVerdict",
    "InvariantCheck",
    "InvariantStatus",
    "Violation",
    "ViolationCategory",
    "ViolationSeverity",
    "audit_cycle",
    "load_cycle_report",
    "print_audit_report",
    "save_audit_report",
]
