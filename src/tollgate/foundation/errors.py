"""Tollgate Error System.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints for operators
- Context for debugging

The admission path never raises these: gate checks convert every failure
into a block decision. They surface from configuration loading, report
handling, and cycle setup.
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        2xxx - Cycle errors
        3xxx - Audit errors
        5xxx - Configuration errors

    The Admission Gate has no codes: its failures are block decisions.
    """

    # 2xxx - Cycle Errors
    GOLDEN_SET_REGRESSION = 2001
    EXECUTOR_LOAD_FAILED = 2002
    QUEUE_INVALID = 2003
    CYCLE_FATAL_ERROR = 2004

    # 3xxx - Audit Errors
    REPORT_INVALID = 3001
    REPORT_NOT_FOUND = 3002

    # 5xxx - Configuration Errors
    CONFIG_INVALID = 5002

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            2: "cycle",
            3: "audit",
            5: "config",
        }.get(prefix, "unknown")

    @property
    def is_recoverable(self) -> bool:
        """Whether this error type is typically recoverable."""
        non_recoverable = {
            ErrorCode.CONFIG_INVALID,
            ErrorCode.GOLDEN_SET_REGRESSION,
            ErrorCode.CYCLE_FATAL_ERROR,
        }
        return self not in non_recoverable


ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Cycle errors
    ErrorCode.GOLDEN_SET_REGRESSION: (
        "Golden set '{version}' regressed: {passed}/{total} cases passed ({accuracy:.1%})."
    ),
    ErrorCode.EXECUTOR_LOAD_FAILED: "Could not load agent executor '{target}': {detail}",
    ErrorCode.QUEUE_INVALID: "Task queue at {path} is invalid: {detail}",
    ErrorCode.CYCLE_FATAL_ERROR: "Cycle hit a fatal error: {detail}",

    # Audit errors
    ErrorCode.REPORT_INVALID: "Cycle report is invalid: {detail}",
    ErrorCode.REPORT_NOT_FOUND: "Cycle report not found or unreadable: {path}",

    # Config errors
    ErrorCode.CONFIG_INVALID: "Invalid configuration for '{key}': {detail}",
}


RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.GOLDEN_SET_REGRESSION: [
        "Inspect the failing golden cases listed in the log",
        "Fix the classifier before running unattended cycles",
    ],
    ErrorCode.EXECUTOR_LOAD_FAILED: [
        "Use the form 'package.module:factory' for --executor",
        "Check that the module is importable from the current environment",
    ],
    ErrorCode.QUEUE_INVALID: [
        "Validate the queue file as JSON with a 'tasks' list",
        "Delete the file to fall back to the default tasks",
    ],
    ErrorCode.REPORT_INVALID: [
        "Check that the file is a cycle report written by 'tollgate cycle run'",
    ],
    ErrorCode.REPORT_NOT_FOUND: [
        "List reports with: ls {data_dir}/cycles",
    ],
    ErrorCode.CONFIG_INVALID: [
        "Check [tool.tollgate] in pyproject.toml or tollgate.yaml",
        "Run 'tollgate config show' to see the effective values",
    ],
}


class TollgateError(Exception):
    """Base error type for all Tollgate errors.

    Example:
        >>> err = TollgateError(
        ...     code=ErrorCode.CONFIG_INVALID,
        ...     context={"key": "budget.floor", "detail": "must be <= target"},
        ... )
        >>> print(err)
        [TG-5002] Invalid configuration for 'budget.floor': must be <= target
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except (KeyError, ValueError):
            return template

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        formatted = []
        for hint in RECOVERY_HINTS.get(self.code, []):
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def is_recoverable(self) -> bool:
        """Whether this error is typically recoverable."""
        return self.code.is_recoverable

    @property
    def category(self) -> str:
        """Get the error category."""
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'TG-5002')."""
        return f"TG-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"TollgateError(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging and JSON output."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "recoverable": self.is_recoverable,
            "recovery_hints": self.recovery_hints,
            "context": self.context,
        }


class GoldenSetRegression(TollgateError):
    """Raised when the golden-set benchmark scores below 100%."""

    def __init__(
        self,
        version: str,
        passed: int,
        total: int,
        failures: list[str] | None = None,
    ):
        self.failures = failures or []
        accuracy = passed / total if total else 0.0
        super().__init__(
            code=ErrorCode.GOLDEN_SET_REGRESSION,
            context={
                "version": version,
                "passed": passed,
                "total": total,
                "accuracy": accuracy,
            },
        )


# Convenience factory functions

def config_error(key: str, detail: str, cause: Exception | None = None) -> TollgateError:
    """Create a CONFIG_INVALID error."""
    return TollgateError(
        code=ErrorCode.CONFIG_INVALID,
        context={"key": key, "detail": detail},
        cause=cause,
    )


def report_error(detail: str, cause: Exception | None = None) -> TollgateError:
    """Create a REPORT_INVALID error."""
    return TollgateError(
        code=ErrorCode.REPORT_INVALID,
        context={"detail": detail},
        cause=cause,
    )
