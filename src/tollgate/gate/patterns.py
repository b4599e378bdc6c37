"""Ordered pattern tables for command and path policy.

Every table is data: a tuple of PatternRule evaluated in order, first match
wins. Extending policy means appending rules, never editing gate logic.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

# =============================================================================
# Tool Names
# =============================================================================

COMMAND_TOOLS: frozenset[str] = frozenset({"run_command"})
"""Tools whose ``command`` parameter is a shell command line."""

FILE_WRITE_TOOLS: frozenset[str] = frozenset({"write_file", "delete_file"})
"""Tools whose ``path`` parameter names a file to change."""

SELF_CONFIG_TOOLS: frozenset[str] = frozenset({"modify_self_config"})
"""Tools that change the agent's own configuration."""

TOKEN_PARAM = "high_risk_token"
"""Parameter key an agent may use to pass a confirmation token."""


# =============================================================================
# Pattern Rule
# =============================================================================


@dataclass(frozen=True, slots=True)
class PatternRule:
    """A named regular expression in a policy table."""

    name: str
    """Short identifier shown in evidence."""

    pattern: str
    """Regular expression source."""

    description: str = ""
    """Human-readable summary of what the rule catches."""

    lowercase: bool = False
    """Match against the lowercased subject."""

    def __post_init__(self) -> None:
        # Compile eagerly so a bad pattern fails at table construction.
        re.compile(self.pattern)

    def matches(self, subject: str) -> bool:
        text = subject.lower() if self.lowercase else subject
        return _compiled(self.pattern).search(text) is not None


_CACHE: dict[str, re.Pattern[str]] = {}


def _compiled(pattern: str) -> re.Pattern[str]:
    compiled = _CACHE.get(pattern)
    if compiled is None:
        compiled = _CACHE[pattern] = re.compile(pattern)
    return compiled


def first_match(rules: tuple[PatternRule, ...], subject: str) -> PatternRule | None:
    """Return the first rule in table order that matches ``subject``."""
    for rule in rules:
        if rule.matches(subject):
            return rule
    return None


def rules_from_strings(
    patterns: list[str] | tuple[str, ...],
    prefix: str,
    *,
    lowercase: bool = False,
) -> tuple[PatternRule, ...]:
    """Wrap user-supplied regex strings (from config) as rules."""
    return tuple(
        PatternRule(name=f"{prefix}_{i}", pattern=p, lowercase=lowercase)
        for i, p in enumerate(patterns, 1)
    )


# =============================================================================
# Command Denylist
# =============================================================================

# Matched against the lowercased command. Always wins over the allowlist.
DANGEROUS_COMMANDS: tuple[PatternRule, ...] = (
    PatternRule(
        "recursive_delete",
        r"\brm\b(\s+\S+)*?\s+(-[a-z]*r[a-z]*|--recursive)\b",
        "rm with a recursive flag in any position or order",
        lowercase=True,
    ),
    PatternRule("hard_reset", r"\bgit\s+reset\s+--hard\b", "git reset --hard", lowercase=True),
    PatternRule(
        "force_push", r"\bgit\s+push\b.*\s(-f|--force)\b", "git push --force", lowercase=True
    ),
    PatternRule("privilege_escalation", r"\bsudo\b", "sudo", lowercase=True),
    PatternRule("open_permissions", r"\bchmod\s+(-r\s+)?(777|000)\b", "chmod 777/000", lowercase=True),
    PatternRule("raw_disk_copy", r"\bdd\b.*\b(if|of)=", "dd with if= or of=", lowercase=True),
    PatternRule("format_filesystem", r"\bmkfs\b", "mkfs", lowercase=True),
    PatternRule("fork_bomb", r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:", "fork bomb", lowercase=True),
    PatternRule("raw_disk_write", r">\s*/dev/(sd[a-z]|nvme|hd[a-z])", "write to disk device", lowercase=True),
    PatternRule("kill_9", r"\bkill\s+-9\b", "kill -9", lowercase=True),
)


# =============================================================================
# Command Allowlist
# =============================================================================

# Matched against the stripped command as typed. Anything unmatched is denied.
ALLOWED_COMMANDS: tuple[PatternRule, ...] = (
    # VCS readonly
    PatternRule("git_readonly", r"^git\s+(status|diff|log|show|branch|remote|config\s+--get)\b"),
    # File inspection
    PatternRule("file_inspection", r"^(ls|cat|head|tail|wc|file|stat)(\s+|$)"),
    PatternRule("grep", r"^(grep|rg)\s+"),
    PatternRule("find_files", r"^find\s+.*-type\s+f\b"),
    # Test and build runners
    PatternRule("pytest", r"^(python3?\s+-m\s+)?pytest(\s+|$)"),
    PatternRule("python_version", r"^python3?\s+(-V|--version)$"),
    PatternRule("lint", r"^(ruff|mypy|pyright|black\s+--check)(\s+|$)"),
    PatternRule("pip_readonly", r"^pip3?\s+(list|show|freeze|check)\b"),
    PatternRule(
        "node_readonly",
        r"^(npm|yarn|pnpm)\s+(test|run\s+test|run\s+build|list|outdated|-v|--version)\b",
    ),
    PatternRule("node_version", r"^node\s+(-v|--version)\b"),
    PatternRule("js_tooling", r"^(tsc|eslint|prettier)\s+"),
    # Misc readonly
    PatternRule("shell_info", r"^(echo|pwd|whoami|date|env)(\s+|$)"),
    PatternRule("which", r"^which\s+"),
)


# =============================================================================
# Mutation Commands (classification only)
# =============================================================================

# Matched against the lowercased command by the risk classifier.
MUTATION_COMMANDS: tuple[PatternRule, ...] = (
    PatternRule("vcs_write", r"^git\s+(commit|add|push|rm)\b", lowercase=True),
    PatternRule(
        "dependency_install",
        r"^(npm\s+install|pip3?\s+install|uv\s+(add|pip\s+install)|poetry\s+add)\b",
        lowercase=True,
    ),
    PatternRule("mkdir", r"^mkdir\b", lowercase=True),
    PatternRule("remove_file", r"^rm\s+[^-]", lowercase=True),
    PatternRule("move_copy_touch", r"^(mv|cp|touch)\b", lowercase=True),
    PatternRule("redirect", r">(?!\s*&)", lowercase=True),
)


# =============================================================================
# Paths
# =============================================================================

PROTECTED_SYSTEM_PATHS: tuple[str, ...] = (
    "/etc",
    "/sys",
    "/usr",
    "/bin",
    "/sbin",
    "/boot",
    "/dev",
)

NULL_DEVICES: frozenset[str] = frozenset({"/dev/null"})
"""Redirect targets that discard output and are never checked as writes."""

CRITICAL_BASENAMES: tuple[str, ...] = (
    # Node
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "tsconfig.json",
    # Python
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
    "poetry.lock",
    "uv.lock",
    "pipfile",
    "pipfile.lock",
    # Environment
    ".env",
    ".env.local",
    ".env.production",
)

CRITICAL_PATHS: tuple[str, ...] = (
    "config/self.json",
    ".tollgate/self.json",
)


def is_critical_path(
    path: str,
    basenames: tuple[str, ...] = CRITICAL_BASENAMES,
    paths: tuple[str, ...] = CRITICAL_PATHS,
) -> bool:
    """Whether ``path`` names a file that needs two-step confirmation.

    Case-insensitive. Any ``.env*`` basename counts as an env file.
    """
    if not path:
        return False
    normalized = path.replace("\\", "/").lower()
    name = PurePosixPath(normalized).name
    if name in {b.lower() for b in basenames} or name.startswith(".env"):
        return True
    parts = PurePosixPath(normalized).parts
    for critical in paths:
        critical_parts = PurePosixPath(critical.lower()).parts
        n = len(critical_parts)
        if n and any(parts[i:i + n] == critical_parts for i in range(len(parts) - n + 1)):
            return True
    return False
