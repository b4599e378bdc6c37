"""Tests for configuration loading and the error system."""

from pathlib import Path

import pytest
import yaml

from tollgate.config import (
    CycleCaps,
    GovernanceConfig,
    load_config,
    parse_config,
    save_config,
)
from tollgate.foundation.errors import ErrorCode, TollgateError


class TestLoadConfig:
    """Test config discovery order."""

    def test_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert config.caps == CycleCaps()
        assert config.caps.max_iterations == 40
        assert config.token_ttl_seconds == 60

    def test_pyproject_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            "[tool.tollgate]\n"
            "token_ttl_seconds = 30\n"
            "[tool.tollgate.caps]\n"
            "max_prs = 1\n"
            "[tool.tollgate.budget]\n"
            "ceiling = 0.2\n"
        )
        config = load_config(tmp_path)
        assert config.caps.max_prs == 1
        assert config.caps.max_reviews == 5
        assert config.budget.ceiling == 0.2
        assert config.token_ttl_seconds == 30

    def test_pyproject_wins_over_yaml(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[tool.tollgate.caps]\nmax_prs = 1\n")
        (tmp_path / "tollgate.yaml").write_text("governance:\n  caps:\n    max_prs: 2\n")
        assert load_config(tmp_path).caps.max_prs == 1

    def test_yaml_when_pyproject_has_no_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")
        (tmp_path / "tollgate.yaml").write_text(
            "governance:\n"
            "  caps:\n"
            "    max_iterations: 10\n"
            "  commands:\n"
            "    extra_deny:\n"
            "      - '\\bterraform\\s+destroy\\b'\n"
        )
        config = load_config(tmp_path)
        assert config.caps.max_iterations == 10
        assert config.commands.extra_deny == (r"\bterraform\s+destroy\b",)

    def test_unreadable_yaml_falls_back(self, tmp_path):
        (tmp_path / "tollgate.yaml").write_text("governance: [unclosed\n")
        assert load_config(tmp_path) == GovernanceConfig()


class TestParseConfig:
    """Test validation errors."""

    def test_unknown_key(self):
        with pytest.raises(TollgateError) as exc:
            parse_config({"caps": {"max_prs": 1, "max_bananas": 2}})
        assert exc.value.code is ErrorCode.CONFIG_INVALID
        assert "unknown keys: max_bananas" in str(exc.value)
        assert str(exc.value).startswith("[TG-5002] Invalid configuration for 'caps'")

    def test_section_not_a_table(self):
        with pytest.raises(TollgateError, match="expected a table"):
            parse_config({"budget": 5})

    def test_bad_caps(self):
        with pytest.raises(TollgateError, match="max_prs must be >= 1"):
            parse_config({"caps": {"max_prs": 0}})

    def test_bad_budget(self):
        with pytest.raises(TollgateError, match="floor <= target"):
            parse_config({"budget": {"floor": 0.5}})

    def test_bad_ttl(self):
        with pytest.raises(TollgateError, match="token_ttl_seconds"):
            parse_config({"token_ttl_seconds": 0})

    @pytest.mark.parametrize("data, message", [
        ({"caps": {"max_iterations": "forty"}}, "max_iterations must be an integer"),
        ({"caps": {"max_prs": True}}, "max_prs must be an integer"),
        ({"caps": {"max_duration_minutes": "1h"}}, "max_duration_minutes must be a number"),
        ({"caps": {"critical_event_cooldown_minutes": "soon"}}, "must be a number or null"),
        ({"budget": {"ceiling": "high"}}, "ceiling must be a number"),
        ({"token_ttl_seconds": "60s"}, "token_ttl_seconds must be a number"),
        ({"gate_log_capacity": 10.5}, "gate_log_capacity must be an integer"),
    ])
    def test_wrong_types(self, data, message):
        """Mistyped values become config errors, not raw TypeErrors."""
        with pytest.raises(TollgateError, match=message) as exc:
            parse_config(data)
        assert exc.value.code is ErrorCode.CONFIG_INVALID

    def test_bare_string_for_list(self):
        """A string is not split into characters."""
        with pytest.raises(TollgateError, match="must be a list of strings"):
            parse_config({"paths": {"protected_task_patterns": "secrets/"}})

    def test_list_values_become_tuples(self):
        config = parse_config({"paths": {"protected_task_patterns": ["secrets/"]}})
        assert config.paths.protected_task_patterns == ("secrets/",)

    def test_null_cooldown_allowed(self):
        config = parse_config({"caps": {"critical_event_cooldown_minutes": None, "max_duration_minutes": 30}})
        assert config.caps.critical_event_cooldown_minutes is None
        assert config.caps.max_duration_minutes == 30

    def test_bad_regex(self):
        with pytest.raises(TollgateError) as exc:
            parse_config({"commands": {"extra_allow": ["(unclosed"]}})
        assert exc.value.context["key"] == "commands"


class TestSaveConfig:

    def test_round_trip_through_yaml(self, tmp_path):
        config = GovernanceConfig(caps=CycleCaps(max_prs=2))
        path = tmp_path / "tollgate.yaml"
        save_config(config, path)

        data = yaml.safe_load(path.read_text())
        assert data["governance"]["caps"]["max_prs"] == 2
        assert load_config(tmp_path).caps.max_prs == 2

    def test_data_dir(self, tmp_path):
        assert GovernanceConfig().resolve_data_dir(tmp_path) == tmp_path / ".tollgate"
        absolute = GovernanceConfig(data_dir=Path("/var/tmp/tg"))
        assert absolute.resolve_data_dir(tmp_path) == Path("/var/tmp/tg")


class TestErrors:
    """Test the structured error type."""

    def test_error_fields(self):
        err = TollgateError(ErrorCode.QUEUE_INVALID, {"path": "q.json", "detail": "bad"})
        assert err.error_id == "TG-2003"
        assert err.category == "cycle"
        assert err.is_recoverable
        assert "q.json" in err.message
        assert err.recovery_hints

    def test_missing_context_keeps_template(self):
        err = TollgateError(ErrorCode.CYCLE_FATAL_ERROR)
        assert "{detail}" in err.message
        assert not err.is_recoverable

    def test_to_dict(self):
        data = TollgateError(ErrorCode.REPORT_NOT_FOUND, {"path": "x", "data_dir": "d"}).to_dict()
        assert data["category"] == "audit"
        assert data["recovery_hints"] == ["List reports with: ls d/cycles"]
