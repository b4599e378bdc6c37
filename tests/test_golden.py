"""Tests for the golden set."""

import pytest

from tollgate.cycle.golden import DEFAULT_GOLDEN_SET, GoldenCase, GoldenSet
from tollgate.foundation.errors import ErrorCode, GoldenSetRegression
from tollgate.gate import RiskTier, classify


def always_readonly(tool_name, params):
    return RiskTier.READONLY


def explodes(tool_name, params):
    raise ValueError("boom")


class TestGoldenSet:

    def test_default_set_passes(self):
        """The built-in classifier scores 100%."""
        result = DEFAULT_GOLDEN_SET.validate(classify)
        assert result.ok
        assert result.total == 10
        assert result.accuracy == 1.0
        assert result.version == "risk-classifier-v1"

    def test_regression_raises(self):
        with pytest.raises(GoldenSetRegression) as exc:
            DEFAULT_GOLDEN_SET.validate(always_readonly)
        err = exc.value
        assert err.code is ErrorCode.GOLDEN_SET_REGRESSION
        assert err.failures
        assert "recursive delete: expected core, got readonly" in err.failures

    def test_run_never_raises(self):
        """Classifier exceptions count as failures."""
        result = DEFAULT_GOLDEN_SET.run(explodes)
        assert result.passed == 0
        assert not result.ok
        assert all("raised ValueError: boom" in f for f in result.failures)

    def test_empty_set_fails(self):
        """An empty benchmark proves nothing."""
        with pytest.raises(GoldenSetRegression):
            GoldenSet(version="empty").validate(classify)

    def test_case_params_not_mutated(self):
        params = {"command": "ls"}
        case = GoldenCase("ls", "run_command", params, RiskTier.READONLY)

        def mutating(tool_name, p):
            p["command"] = "rm -rf /"
            return RiskTier.READONLY

        GoldenSet(version="v", cases=(case,)).run(mutating)
        assert params == {"command": "ls"}
