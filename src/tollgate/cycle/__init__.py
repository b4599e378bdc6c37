"""Unattended work cycles under hard caps."""

from tollgate.cycle.golden import DEFAULT_GOLDEN_SET, GoldenCase, GoldenResult, GoldenSet
from tollgate.cycle.orchestrator import CycleOrchestrator, CyclePhase
from tollgate.cycle.protocols import (
    AgentExecutor,
    AgentResult,
    ExecutorFactory,
    GoldenBenchmark,
    NullQualityGateSession,
    QualityGateSession,
    TaskQueueBackend,
)
from tollgate.cycle.queue import JsonTaskQueue, MicroTask, TaskQueue
from tollgate.cycle.reports import print_cycle_summary, save_cycle_report
from tollgate.cycle.types import (
    FATAL_ERROR_MARKER,
    BudgetSnapshot,
    CycleReport,
    CycleResults,
    QualityGateStats,
    StopReason,
    TaskDecision,
    TaskResult,
    classify_stop_reason,
    format_stop_reason,
)

__all__ = [
    "DEFAULT_GOLDEN_SET",
    "FATAL_ERROR_MARKER",
    "AgentExecutor",
    "AgentResult",
    "BudgetSnapshot",
    "CycleOrchestrator",
    "CyclePhase",
    "CycleReport",
    "CycleResults",
    "ExecutorFactory",
    "GoldenBenchmark",
    "GoldenCase",
    "GoldenResult",
    "GoldenSet",
    "JsonTaskQueue",
    "MicroTask",
    "NullQualityGateSession",
    "QualityGateSession",
    "QualityGateStats",
    "StopReason",
    "TaskDecision",
    "TaskQueue",
    "TaskQueueBackend",
    "TaskResult",
    "classify_stop_reason",
    "format_stop_reason",
    "print_cycle_summary",
    "save_cycle_report",
]
