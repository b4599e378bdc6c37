"""Configuration for Tollgate.

Loads governance configuration from pyproject.toml or tollgate.yaml.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, get_type_hints

import yaml

from tollgate.foundation.errors import TollgateError, config_error
from tollgate.gate.budget import BudgetConfig
from tollgate.gate.patterns import (
    CRITICAL_BASENAMES,
    CRITICAL_PATHS,
    PROTECTED_SYSTEM_PATHS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CycleCaps:
    """Hard limits on one unattended cycle.

    These limits exist because every iteration can open a PR or queue a
    review for a human. A cycle that floods reviewers is a failure even if
    each task was individually fine.
    """

    max_iterations: int = 40
    """Maximum tasks attempted in one cycle."""

    max_prs: int = 3
    """Maximum PRs created in one cycle."""

    max_reviews: int = 5
    """Maximum REVIEW outcomes in one cycle."""

    max_consecutive_reviews: int = 3
    """Stop after this many REVIEW outcomes in a row."""

    max_consecutive_errors: int = 3
    """Stop after this many ERROR outcomes in a row."""

    max_duration_minutes: float = 120
    """Wall-clock limit for the whole cycle."""

    task_timeout_seconds: float = 300
    """Wall-clock limit for a single delegated task."""

    max_sub_iterations: int = 5
    """Iteration limit passed to the agent executor per task."""

    critical_event_cooldown_minutes: float | None = None
    """Refuse to start while critical events exist within this window (None = off)."""

    def problems(self) -> list[str]:
        """Describe every inconsistent setting (empty when valid)."""
        problems = []
        for name in (
            "max_iterations",
            "max_prs",
            "max_reviews",
            "max_consecutive_reviews",
            "max_consecutive_errors",
            "max_sub_iterations",
        ):
            if getattr(self, name) < 1:
                problems.append(f"{name} must be >= 1")
        if self.max_duration_minutes <= 0:
            problems.append("max_duration_minutes must be > 0")
        if self.task_timeout_seconds <= 0:
            problems.append("task_timeout_seconds must be > 0")
        if self.critical_event_cooldown_minutes is not None and self.critical_event_cooldown_minutes < 0:
            problems.append("critical_event_cooldown_minutes must be >= 0")
        return problems

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class CommandConfig:
    """Extra command patterns, appended after the built-in tables."""

    extra_deny: tuple[str, ...] = ()
    """Regexes matched against the lowercased command."""

    extra_allow: tuple[str, ...] = ()
    """Regexes matched against each command segment as typed."""


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Filesystem policy."""

    protected_system_paths: tuple[str, ...] = PROTECTED_SYSTEM_PATHS
    critical_basenames: tuple[str, ...] = CRITICAL_BASENAMES
    critical_paths: tuple[str, ...] = CRITICAL_PATHS

    protected_task_patterns: tuple[str, ...] = (
        ".tollgate/",
        "config/self.json",
        "src/tollgate/gate/",
        "src/tollgate/cycle/orchestrator.py",
        "src/tollgate/audit/",
        "src/tollgate/events/",
        "pyproject.toml",
        ".env",
    )
    """Case-insensitive substrings marking files an unattended cycle must never target."""


@dataclass
class GovernanceConfig:
    """Configuration for the governance core.

    Can be loaded from:
    - pyproject.toml [tool.tollgate]
    - tollgate.yaml governance section
    - Programmatic configuration
    """

    caps: CycleCaps = field(default_factory=CycleCaps)
    """Per-cycle caps."""

    budget: BudgetConfig = field(default_factory=BudgetConfig)
    """Exploration budget bounds and rates."""

    commands: CommandConfig = field(default_factory=CommandConfig)
    """Additional command patterns."""

    paths: PathConfig = field(default_factory=PathConfig)
    """Protected and critical paths."""

    token_ttl_seconds: float = 60
    """Lifetime of a two-step confirmation token."""

    gate_log_capacity: int = 1000
    """Entries kept in the gate's in-memory audit trail."""

    data_dir: Path = Path(".tollgate")
    """Where reports and the critical event log are written (relative to project root)."""

    def resolve_data_dir(self, project_root: Path) -> Path:
        return self.data_dir if self.data_dir.is_absolute() else project_root / self.data_dir

    def validate(self) -> GovernanceConfig:
        """Raise TollgateError(CONFIG_INVALID) on the first bad section."""
        for key, problems in (
            ("caps", self.caps.problems()),
            ("budget", self.budget.problems()),
        ):
            if problems:
                raise config_error(key, "; ".join(problems))
        if self.token_ttl_seconds <= 0:
            raise config_error("token_ttl_seconds", "must be > 0")
        if self.gate_log_capacity < 1:
            raise config_error("gate_log_capacity", "must be >= 1")
        for pattern in self.commands.extra_deny + self.commands.extra_allow:
            try:
                re.compile(pattern)
            except re.error as e:
                raise config_error("commands", f"bad pattern {pattern!r}: {e}", cause=e) from e
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "caps": self.caps.to_dict(),
            "budget": {f.name: getattr(self.budget, f.name) for f in fields(self.budget)},
            "commands": {
                "extra_deny": list(self.commands.extra_deny),
                "extra_allow": list(self.commands.extra_allow),
            },
            "paths": {
                "protected_system_paths": list(self.paths.protected_system_paths),
                "critical_basenames": list(self.paths.critical_basenames),
                "critical_paths": list(self.paths.critical_paths),
                "protected_task_patterns": list(self.paths.protected_task_patterns),
            },
            "token_ttl_seconds": self.token_ttl_seconds,
            "gate_log_capacity": self.gate_log_capacity,
            "data_dir": str(self.data_dir),
        }


def load_config(project_root: Path | None = None) -> GovernanceConfig:
    """Load governance configuration from project files.

    Looks for configuration in order:
    1. pyproject.toml [tool.tollgate]
    2. tollgate.yaml governance section
    3. Default configuration

    Args:
        project_root: Project root directory (defaults to cwd)

    Returns:
        Validated GovernanceConfig

    Raises:
        TollgateError: If a config section is present but invalid
    """
    if project_root is None:
        project_root = Path.cwd()

    pyproject_path = project_root / "pyproject.toml"
    if pyproject_path.exists():
        config = _load_from_pyproject(pyproject_path)
        if config:
            return config

    yaml_path = project_root / "tollgate.yaml"
    if yaml_path.exists():
        config = _load_from_yaml(yaml_path)
        if config:
            return config

    return GovernanceConfig()


def _load_from_pyproject(path: Path) -> GovernanceConfig | None:
    """Load config from pyproject.toml."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None

    section = data.get("tool", {}).get("tollgate", {})
    if not section:
        return None
    return parse_config(section)


def _load_from_yaml(path: Path) -> GovernanceConfig | None:
    """Load config from tollgate.yaml."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        return None
    section = data.get("governance", {})
    if not section:
        return None
    return parse_config(section)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise config_error(key, f"expected a table, got {type(value).__name__}")
    return value


def _check_value(key: str, name: str, value: Any, expected: Any) -> Any:
    """Check ``value`` against a field annotation, converting lists to tuples."""
    is_number = isinstance(value, int | float) and not isinstance(value, bool)
    if expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise config_error(key, f"{name} must be an integer, got {value!r}")
    if expected is float:
        if is_number:
            return value
        raise config_error(key, f"{name} must be a number, got {value!r}")
    if expected == float | None:
        if value is None or is_number:
            return value
        raise config_error(key, f"{name} must be a number or null, got {value!r}")
    if expected == tuple[str, ...]:
        if isinstance(value, list | tuple) and all(isinstance(v, str) for v in value):
            return tuple(value)
        raise config_error(key, f"{name} must be a list of strings, got {value!r}")
    return value


def _build(cls: type, key: str, values: dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise config_error(key, f"unknown keys: {', '.join(unknown)}")
    hints = get_type_hints(cls)
    kwargs = {k: _check_value(key, k, v, hints[k]) for k, v in values.items()}
    return cls(**kwargs)


def parse_config(data: dict[str, Any]) -> GovernanceConfig:
    """Parse configuration dictionary into a validated GovernanceConfig."""
    try:
        config = GovernanceConfig(
            caps=_build(CycleCaps, "caps", _section(data, "caps")),
            budget=_build(BudgetConfig, "budget", _section(data, "budget")),
            commands=_build(CommandConfig, "commands", _section(data, "commands")),
            paths=_build(PathConfig, "paths", _section(data, "paths")),
            token_ttl_seconds=_check_value(
                "token_ttl_seconds", "token_ttl_seconds", data.get("token_ttl_seconds", 60), float
            ),
            gate_log_capacity=_check_value(
                "gate_log_capacity", "gate_log_capacity", data.get("gate_log_capacity", 1000), int
            ),
            data_dir=Path(data.get("data_dir", ".tollgate")),
        )
        return config.validate()
    except TollgateError:
        raise
    except (TypeError, ValueError) as e:
        raise config_error("tollgate", str(e), cause=e) from e


def save_config(config: GovernanceConfig, path: Path) -> None:
    """Save configuration to a YAML file.

    Args:
        config: Configuration to save
        path: Path to save to
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump({"governance": config.to_dict()}, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
