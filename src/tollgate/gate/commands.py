"""Command Matcher for the Admission Gate.

Capabilities model: the denylist is consulted first and always wins, then
only allowlisted commands may run. A compound command (``;``, ``&&``,
``||``, ``|``) is admitted only when every segment is admitted on its own.
Output redirection targets are reported back so the gate can run them
through path containment like any other write.
"""

import re
import shlex
from dataclasses import dataclass
from typing import Protocol

from tollgate.gate.patterns import (
    ALLOWED_COMMANDS,
    DANGEROUS_COMMANDS,
    PatternRule,
    first_match,
)

_CONTROL_OPERATORS = frozenset({";", "&&", "||", "|", "|&", "&"})
_OUTPUT_REDIRECTS = frozenset({">", ">>", ">|", "&>", "&>>", ">&"})
_SUBSTITUTION = re.compile(r"\$\(|`")
_FD_TARGET = re.compile(r"^(\d+|-)$")


@dataclass(frozen=True, slots=True)
class CommandVerdict:
    """Result of matching a command against the policy tables."""

    allowed: bool
    reason: str = ""
    rule: str | None = None
    """Name of the rule that decided, if any."""

    redirects: tuple[str, ...] = ()
    """Files the command writes through output redirection."""


class CommandPolicy(Protocol):
    """Anything that can judge a shell command line."""

    def check(self, command: str) -> CommandVerdict: ...


class CommandMatcher:
    """Ordered allow/deny pattern engine for shell-like commands."""

    def __init__(
        self,
        deny: tuple[PatternRule, ...] = DANGEROUS_COMMANDS,
        allow: tuple[PatternRule, ...] = ALLOWED_COMMANDS,
    ):
        self._deny = deny
        self._allow = allow

    @property
    def deny_rules(self) -> tuple[PatternRule, ...]:
        return self._deny

    @property
    def allow_rules(self) -> tuple[PatternRule, ...]:
        return self._allow

    def dangerous_rule(self, command: str) -> PatternRule | None:
        """First denylist rule matching ``command``, if any."""
        return first_match(self._deny, command)

    def check(self, command: str) -> CommandVerdict:
        cmd = command.strip()
        if not cmd:
            return CommandVerdict(allowed=False, reason="Empty command")

        # Denylist runs on the whole line so patterns spanning segments still fire.
        rule = self.dangerous_rule(cmd)
        if rule is not None:
            return CommandVerdict(
                allowed=False,
                reason=f"Dangerous command pattern: {rule.pattern}",
                rule=rule.name,
            )

        if _SUBSTITUTION.search(cmd):
            return CommandVerdict(
                allowed=False,
                reason="Command substitution is not allowed",
                rule="substitution",
            )

        try:
            tokens = _tokenize(cmd)
        except ValueError as e:
            return CommandVerdict(allowed=False, reason=f"Unparseable command: {e}")

        for segment in _segments(tokens):
            if first_match(self._allow, segment) is None:
                return CommandVerdict(
                    allowed=False,
                    reason=f"Command not in allowlist: {segment.split()[0]}",
                )

        targets = _redirect_targets(tokens)
        if targets is None:
            return CommandVerdict(
                allowed=False,
                reason="Output redirection without a target",
                rule="redirect",
            )
        return CommandVerdict(allowed=True, redirects=targets)


def _tokenize(command: str) -> list[str]:
    lexer = shlex.shlex(command, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    return list(lexer)


def _segments(tokens: list[str]) -> list[str]:
    segments: list[str] = []
    current: list[str] = []
    for token in tokens:
        if token in _CONTROL_OPERATORS:
            if current:
                segments.append(shlex.join(current))
            current = []
        else:
            current.append(token)
    if current:
        segments.append(shlex.join(current))
    return segments


def _redirect_targets(tokens: list[str]) -> tuple[str, ...] | None:
    """Files named after output redirection operators.

    ``>&2`` style descriptor duplication is not a file write and is skipped.
    Returns None when an operator has no target.
    """
    targets: list[str] = []
    for i, token in enumerate(tokens):
        if token not in _OUTPUT_REDIRECTS:
            continue
        if i + 1 >= len(tokens) or tokens[i + 1] in _CONTROL_OPERATORS | _OUTPUT_REDIRECTS:
            return None
        target = tokens[i + 1]
        if token == ">&" and _FD_TARGET.match(target):
            continue
        targets.append(target)
    return tuple(targets)


def split_segments(command: str) -> list[str]:
    """Split a command line on control operators, respecting quotes.

    Raises:
        ValueError: If quoting is unbalanced
    """
    return _segments(_tokenize(command))
