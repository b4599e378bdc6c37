"""Tests for CLI error handler.

Tests cover:
- JSON output mode for machine consumption
- Human-readable formatting with recovery hints
- Generic exception wrapping
"""

import json
import sys
from io import StringIO
from unittest.mock import patch

import pytest

from tollgate.cli.error_handler import as_tollgate_error, handle_error
from tollgate.foundation.errors import ErrorCode, TollgateError


class TestHandleErrorJson:
    """Tests for handle_error with JSON output mode."""

    def test_outputs_json_to_stderr(self) -> None:
        """JSON output goes to stderr."""
        error = TollgateError(
            code=ErrorCode.QUEUE_INVALID,
            context={"path": "tasks.json", "detail": "bad json"},
        )

        captured_stderr = StringIO()
        with (
            patch.object(sys, "stderr", captured_stderr),
            pytest.raises(SystemExit) as exc_info,
        ):
            handle_error(error, json_output=True)

        assert exc_info.value.code == 1
        data = json.loads(captured_stderr.getvalue())
        assert data["code"] == ErrorCode.QUEUE_INVALID.value
        assert data["error_id"] == "TG-2003"
        assert data["context"]["path"] == "tasks.json"

    def test_includes_cause_in_json(self) -> None:
        """Cause is included in JSON output when present."""
        error = TollgateError(
            code=ErrorCode.REPORT_INVALID,
            context={"detail": "x"},
            cause=ValueError("original error"),
        )

        captured_stderr = StringIO()
        with (
            patch.object(sys, "stderr", captured_stderr),
            pytest.raises(SystemExit),
        ):
            handle_error(error, json_output=True)

        assert json.loads(captured_stderr.getvalue())["cause"] == "original error"


class TestHandleErrorHuman:
    """Tests for human-readable output."""

    def test_prints_id_and_hints(self, capsys) -> None:
        """Human output names the error and lists recovery hints."""
        error = TollgateError(
            code=ErrorCode.CONFIG_INVALID,
            context={"key": "caps", "detail": "max_prs must be >= 1"},
        )
        with pytest.raises(SystemExit) as exc_info:
            handle_error(error)

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "TG-5002" in err
        assert "What you can do" in err


class TestWrapping:
    """Foreign exceptions render as TollgateError."""

    def test_generic_exception_wrapped(self) -> None:
        wrapped = as_tollgate_error(RuntimeError("disk on fire"))
        assert wrapped.code is ErrorCode.CYCLE_FATAL_ERROR
        assert "RuntimeError: disk on fire" in wrapped.message

    def test_tollgate_error_unchanged(self) -> None:
        error = TollgateError(ErrorCode.REPORT_NOT_FOUND, {"path": "x"})
        assert as_tollgate_error(error) is error
