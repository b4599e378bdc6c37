"""Risk Classification for the Admission Gate.

Maps a tool invocation to a RiskTier using ordered pattern tables. Pure:
no filesystem access, no clock, no environment. Identical inputs always
yield the identical tier.
"""

from typing import Any

from tollgate.gate.patterns import (
    COMMAND_TOOLS,
    CRITICAL_BASENAMES,
    CRITICAL_PATHS,
    DANGEROUS_COMMANDS,
    FILE_WRITE_TOOLS,
    MUTATION_COMMANDS,
    SELF_CONFIG_TOOLS,
    PatternRule,
    first_match,
    is_critical_path,
)
from tollgate.gate.types import RiskTier


class RiskClassifier:
    """Classifies tool calls by risk tier.

    Priority order:
    1. Self-configuration tools are CORE
    2. File writes/deletes are WRITE_CRITICAL on critical paths, else WRITE_NORMAL
    3. Commands are CORE on the denylist, WRITE_NORMAL on a mutation
       pattern, else READONLY
    4. Anything else is READONLY

    Example:
        >>> RiskClassifier().classify("run_command", {"command": "rm -rf build"})
        <RiskTier.CORE: 'core'>
    """

    def __init__(
        self,
        dangerous: tuple[PatternRule, ...] = DANGEROUS_COMMANDS,
        mutations: tuple[PatternRule, ...] = MUTATION_COMMANDS,
        critical_basenames: tuple[str, ...] = CRITICAL_BASENAMES,
        critical_paths: tuple[str, ...] = CRITICAL_PATHS,
    ):
        self._dangerous = dangerous
        self._mutations = mutations
        self._critical_basenames = critical_basenames
        self._critical_paths = critical_paths

    def classify(self, tool_name: str, params: dict[str, Any] | None) -> RiskTier:
        params = params or {}

        if tool_name in SELF_CONFIG_TOOLS:
            return RiskTier.CORE

        if tool_name in FILE_WRITE_TOOLS:
            path = str(params.get("path") or "")
            if self.is_critical(path):
                return RiskTier.WRITE_CRITICAL
            return RiskTier.WRITE_NORMAL

        if tool_name in COMMAND_TOOLS:
            return self._classify_command(str(params.get("command") or ""))

        return RiskTier.READONLY

    def is_critical(self, path: str) -> bool:
        """Whether ``path`` is in the critical basename/path set."""
        return is_critical_path(path, self._critical_basenames, self._critical_paths)

    def _classify_command(self, command: str) -> RiskTier:
        cmd = command.strip()
        if first_match(self._dangerous, cmd) is not None:
            return RiskTier.CORE
        if first_match(self._mutations, cmd) is not None:
            return RiskTier.WRITE_NORMAL
        return RiskTier.READONLY


_DEFAULT_CLASSIFIER = RiskClassifier()


def classify(tool_name: str, params: dict[str, Any] | None = None) -> RiskTier:
    """Classify with the built-in pattern tables."""
    return _DEFAULT_CLASSIFIER.classify(tool_name, params)
