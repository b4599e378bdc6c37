"""Foundation layer: errors, logging, and crash-tolerant serialization."""

from tollgate.foundation.errors import (
    ErrorCode,
    GoldenSetRegression,
    TollgateError,
    config_error,
    report_error,
)
from tollgate.foundation.logging import configure_logging
from tollgate.foundation.serialization import (
    safe_json_dump,
    safe_json_load,
    safe_jsonl_append,
    safe_jsonl_load,
)

__all__ = [
    "ErrorCode",
    "GoldenSetRegression",
    "TollgateError",
    "config_error",
    "configure_logging",
    "report_error",
    "safe_json_dump",
    "safe_json_load",
    "safe_jsonl_append",
    "safe_jsonl_load",
]
