"""Smoke tests for all CLI commands.

Every command runs against a temporary project root through CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from tollgate.cli.main import main
from tollgate.events import CriticalEventLog, CriticalEventType


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner, project_root):
    """Invoke the CLI rooted at ``project_root``."""
    def _invoke(*args: str):
        return runner.invoke(main, ["--project-root", str(project_root), *args])
    return _invoke


class TestHelp:
    """Every group is wired up."""

    @pytest.mark.parametrize("group", ["gate", "cycle", "audit", "events", "ab", "config"])
    def test_group_help(self, runner: CliRunner, group: str) -> None:
        """<group> --help works."""
        result = runner.invoke(main, [group, "--help"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_main_help(self, runner: CliRunner) -> None:
        """Top-level help lists the command groups."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "admission" in result.output.lower()


class TestGateCommands:
    """Tests for tollgate gate."""

    def test_check_safe(self, invoke) -> None:
        """An allowlisted command exits 0."""
        result = invoke("gate", "check", "run_command", "--command", "ls -la")
        assert result.exit_code == 0
        assert "SAFE" in result.output

    def test_check_blocked(self, invoke) -> None:
        """A destructive command exits 1 with the block message."""
        result = invoke("gate", "check", "run_command", "--command", "rm -rf /")
        assert result.exit_code == 1
        assert "ACTION BLOCKED BY ADMISSION GATE" in result.output

    def test_check_json(self, invoke) -> None:
        """--json emits the decision and tier."""
        result = invoke("gate", "check", "write_file", "--path", "src/app.py", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["allowed"] is True
        assert data["severity"] == "safe"
        assert data["tier"] == "write_normal"

    def test_critical_file_needs_confirm(self, invoke) -> None:
        """--confirm performs the two-step confirmation."""
        blocked = invoke("gate", "check", "write_file", "--path", "package.json", "--json")
        assert blocked.exit_code == 1
        assert json.loads(blocked.output)["reason"] == "Critical file requires two-step confirmation"

        allowed = invoke("gate", "check", "write_file", "--path", "package.json", "--confirm", "--json")
        assert allowed.exit_code == 0
        data = json.loads(allowed.output)
        assert data["severity"] == "warn"
        assert data["tier"] == "write_critical"

    def test_bad_param(self, invoke) -> None:
        result = invoke("gate", "check", "run_command", "--param", "oops")
        assert result.exit_code == 2

    def test_classify(self, invoke) -> None:
        result = invoke("gate", "classify", "run_command", "--command", "git push --force", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"tool_name": "run_command", "tier": "core"}

    def test_budget(self, invoke) -> None:
        result = invoke("gate", "budget")
        assert result.exit_code == 0
        assert "EXPLORATION BUDGET" in result.output

        data = json.loads(invoke("gate", "budget", "--json").output)
        assert data["budget"] == pytest.approx(0.07)

    def test_patterns(self, invoke) -> None:
        result = invoke("gate", "patterns")
        assert result.exit_code == 0
        assert "Denylist" in result.output
        assert "Allowlist" in result.output


class TestConfigCommands:
    """Tests for tollgate config."""

    def test_show_defaults(self, invoke) -> None:
        result = invoke("config", "show", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["caps"]["max_iterations"] == 40

    def test_init_then_show(self, invoke, project_root) -> None:
        result = invoke("config", "init")
        assert result.exit_code == 0
        assert (project_root / "tollgate.yaml").exists()

        again = invoke("config", "init")
        assert again.exit_code == 1
        assert "already exists" in again.output

        assert invoke("config", "init", "--force").exit_code == 0

    def test_project_config_used(self, invoke, project_root) -> None:
        (project_root / "tollgate.yaml").write_text("governance:\n  caps:\n    max_prs: 1\n")
        data = json.loads(invoke("config", "show", "--json").output)
        assert data["caps"]["max_prs"] == 1

    @pytest.mark.usefixtures("restore_root_logger")
    def test_persist_logs_follow_data_dir(self, invoke, project_root) -> None:
        """--persist-logs writes under the configured data_dir."""
        (project_root / "tollgate.yaml").write_text("governance:\n  data_dir: state\n")
        result = invoke("--persist-logs", "gate", "budget")
        assert result.exit_code == 0
        assert list((project_root / "state" / "logs").glob("session-*.log"))
        assert not (project_root / ".tollgate").exists()

    def test_invalid_config(self, invoke, project_root) -> None:
        """A broken config section exits 1 with the error id."""
        (project_root / "tollgate.yaml").write_text("governance:\n  caps:\n    max_bananas: 1\n")
        result = invoke("config", "show")
        assert result.exit_code == 1
        assert "TG-5002" in result.output


class TestCycleAndAudit:
    """Tests for tollgate cycle and tollgate audit."""

    def test_cycle_run_json(self, invoke, project_root) -> None:
        """The default dry-run executor completes the default queue."""
        result = invoke("cycle", "run", "--no-save", "--json")
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["stop_reason"] == "All tasks completed"
        assert report["results"]["skip"] == 3
        assert not (project_root / ".tollgate" / "cycles").exists()

    def test_init_queue_feeds_run(self, invoke, project_root) -> None:
        """A seeded queue file is what the next run consumes."""
        result = invoke("cycle", "init-queue")
        assert result.exit_code == 0
        queue_file = project_root / ".tollgate" / "queue" / "tasks.json"
        data = json.loads(queue_file.read_text(encoding="utf-8"))
        assert [t["id"] for t in data["tasks"]] == [
            "T-DEFAULT-001", "T-DEFAULT-002", "T-DEFAULT-003",
        ]

        data["tasks"] = data["tasks"][:1]
        queue_file.write_text(json.dumps(data), encoding="utf-8")
        run = invoke("cycle", "run", "--no-save", "--json")
        assert run.exit_code == 0
        assert json.loads(run.output)["iterations"] == 1

        again = invoke("cycle", "init-queue")
        assert again.exit_code != 0
        assert "already exists" in again.output

    def test_run_show_audit(self, invoke, project_root) -> None:
        """A saved report can be shown and audited."""
        assert invoke("cycle", "run", "--max-iterations", "2").exit_code == 0
        reports = list((project_root / ".tollgate" / "cycles").glob("cycle-*.json"))
        assert len(reports) == 1
        path = str(reports[0])

        shown = invoke("cycle", "show", path, "--json")
        assert shown.exit_code == 0
        assert json.loads(shown.output)["stop_reason"] == "Max iterations reached (2)"

        audited = invoke("audit", path, "--with-events", "--json")
        assert audited.exit_code == 0
        assert json.loads(audited.output)["verdict"] == "PASS"
        assert list((project_root / ".tollgate" / "audits").glob("audit-*.json"))

    def test_audit_failing_report(self, invoke, project_root) -> None:
        """A FAIL verdict exits 1."""
        path = project_root / "bad.json"
        path.write_text(json.dumps({
            "cycle_id": "c1",
            "start_time": "2026-01-15T09:30:00",
            "end_time": "2026-01-15T09:31:00",
            "iterations": 41,
            "max_iterations": 40,
            "stop_reason": "Max iterations reached (40)",
            "results": {},
        }))
        result = invoke("audit", str(path), "--no-save")
        assert result.exit_code == 1
        assert "REPLAY AUDIT: FAIL" in result.output

    def test_audit_missing_report(self, invoke, project_root) -> None:
        result = invoke("audit", str(project_root / "missing.json"))
        assert result.exit_code == 1
        assert "TG-3002" in result.output

    def test_bad_executor(self, invoke) -> None:
        result = invoke("cycle", "run", "--executor", "no_such_module:factory")
        assert result.exit_code == 1
        assert "TG-2002" in result.output

    def test_bad_queue(self, invoke, project_root) -> None:
        queue = project_root / "tasks.json"
        queue.write_text("{nope")
        result = invoke("cycle", "run", "--queue", str(queue), "--no-save")
        assert result.exit_code == 1
        assert "TG-2003" in result.output


class TestEventsCommands:
    """Tests for tollgate events."""

    def test_tail_empty(self, invoke) -> None:
        result = invoke("events", "tail")
        assert result.exit_code == 0
        assert "No critical events recorded" in result.output

    def test_recent_none(self, invoke) -> None:
        result = invoke("events", "recent", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["recent"] is False

    def test_recent_event(self, invoke, project_root) -> None:
        log = CriticalEventLog(project_root / ".tollgate" / "critical_events")
        log.log(CriticalEventType.SAFETY_VIOLATION, "test incident", task_id="T-9")

        assert invoke("events", "recent").exit_code == 1
        tail = invoke("events", "tail", "--json")
        assert tail.exit_code == 0
        assert json.loads(tail.output)[0]["task_id"] == "T-9"


class TestABCommand:
    """Tests for tollgate ab."""

    def test_ab_run_json(self, invoke) -> None:
        result = invoke("ab", "run", "--cycles", "1", "--max-iterations", "1", "--no-save", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["full_condition"]["cycles_run"] == 1
        assert data["baseline_condition"]["total_iterations"] == 1
        assert data["summary"].startswith("A/B Comparison Results:")
