"""Tests for the Risk Classifier.

Tests tool-name priority, critical-file detection and command tiers.
"""

import pytest

from tollgate.gate import RiskClassifier, RiskTier, classify
from tollgate.gate.patterns import PatternRule


class TestToolPriority:
    """Test which rule decides for each kind of tool."""

    def test_self_config_is_core(self):
        """Self-configuration always ranks CORE."""
        assert classify("modify_self_config", {"key": "caps"}) is RiskTier.CORE

    def test_unknown_tool_is_readonly(self):
        """Tools outside the tables default to READONLY."""
        assert classify("read_file", {"path": "package.json"}) is RiskTier.READONLY

    def test_missing_params(self):
        """None params are treated as empty."""
        assert classify("run_command", None) is RiskTier.READONLY
        assert classify("write_file", None) is RiskTier.WRITE_NORMAL

    def test_tier_order(self):
        """Tiers rank in increasing sensitivity."""
        ranks = [t.rank for t in (RiskTier.READONLY, RiskTier.WRITE_NORMAL,
                                   RiskTier.WRITE_CRITICAL, RiskTier.CORE)]
        assert ranks == sorted(ranks)
        assert RiskTier.WRITE_CRITICAL.is_risky
        assert RiskTier.CORE.is_risky
        assert not RiskTier.WRITE_NORMAL.is_risky


class TestFileWrites:
    """Test critical-file detection for write/delete tools."""

    @pytest.mark.parametrize("path", [
        "package.json",
        "frontend/package-lock.json",
        "PACKAGE.JSON",
        "pyproject.toml",
        "requirements.txt",
        "uv.lock",
        ".env",
        ".env.staging",
        "deploy/.ENV.local",
        "config/self.json",
    ])
    def test_critical_files(self, path):
        """Manifests, lockfiles, env files and self config are WRITE_CRITICAL."""
        assert classify("write_file", {"path": path}) is RiskTier.WRITE_CRITICAL

    def test_delete_uses_same_rules(self):
        """delete_file is classified like write_file."""
        assert classify("delete_file", {"path": "yarn.lock"}) is RiskTier.WRITE_CRITICAL
        assert classify("delete_file", {"path": "src/old.py"}) is RiskTier.WRITE_NORMAL

    @pytest.mark.parametrize("path", ["src/app/main.py", "docs/package.md", "tests/test_env.py"])
    def test_ordinary_files(self, path):
        """Anything else is WRITE_NORMAL."""
        assert classify("write_file", {"path": path}) is RiskTier.WRITE_NORMAL


class TestCommands:
    """Test command tiers."""

    @pytest.mark.parametrize("command", [
        "rm -rf build",
        "rm -r /",
        "git reset --hard HEAD~1",
        "git push --force origin main",
        "git push origin main -f",
        "sudo ls",
        "chmod 777 run.sh",
        "dd if=/dev/zero of=/dev/sda",
        "dd of=/dev/sda if=/dev/zero",
        "rm -rfv /",
        "rm -vrf /",
        "rm -Rf build",
        "rm --recursive --force /",
        "rm -f -r build",
        "cat image.bin > /dev/sda",
        "mkfs.ext4 /dev/sdb1",
        ":(){ :|:& };:",
        "kill -9 1234",
        "SUDO reboot",
    ])
    def test_destructive_commands_are_core(self, command):
        """Every denylisted pattern ranks CORE."""
        assert classify("run_command", {"command": command}) is RiskTier.CORE

    @pytest.mark.parametrize("command", [
        "git commit -m 'fix'",
        "git add .",
        "git push origin main",
        "npm install lodash",
        "pip install requests",
        "mkdir build",
        "rm notes.txt",
        "mv a.py b.py",
        "touch new.py",
        "echo hi > out.txt",
    ])
    def test_mutations_are_write_normal(self, command):
        """Mutating but non-destructive commands rank WRITE_NORMAL."""
        assert classify("run_command", {"command": command}) is RiskTier.WRITE_NORMAL

    @pytest.mark.parametrize("command", ["ls -la", "git status", "pytest -q", "cat README.md"])
    def test_inspection_is_readonly(self, command):
        """Inspection commands rank READONLY."""
        assert classify("run_command", {"command": command}) is RiskTier.READONLY


class TestPurity:
    """The classifier is a pure function."""

    def test_identical_inputs_identical_tier(self):
        """Repeated calls agree, and params are not mutated."""
        params = {"command": "git push --force"}
        tiers = {classify("run_command", params) for _ in range(50)}
        assert tiers == {RiskTier.CORE}
        assert params == {"command": "git push --force"}

    def test_instances_agree(self):
        """Two default classifiers give the same answers."""
        a, b = RiskClassifier(), RiskClassifier()
        for tool, params in [
            ("write_file", {"path": ".env"}),
            ("run_command", {"command": "mkdir x"}),
            ("modify_self_config", {}),
        ]:
            assert a.classify(tool, params) is b.classify(tool, params)

    def test_custom_tables(self):
        """Pattern tables are injectable data."""
        classifier = RiskClassifier(
            dangerous=(PatternRule("terraform", r"\bterraform\s+destroy\b", lowercase=True),),
        )
        assert classifier.classify("run_command", {"command": "terraform destroy"}) is RiskTier.CORE
        # Built-in denylist was replaced, so rm -rf falls through to readonly
        assert classifier.classify("run_command", {"command": "rm -rf x"}) is RiskTier.READONLY
