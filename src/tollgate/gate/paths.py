"""Path Safety Resolver for the Admission Gate.

Normalizes a target path and decides whether the agent may write there:
- Protected system paths are refused, even when the project root sits below one
- Anything outside the project root is refused
- Targets are re-checked after symlink resolution
- Critical files are flagged for two-step confirmation, not refused
"""

import os
from dataclasses import dataclass
from pathlib import Path

from tollgate.gate.patterns import (
    CRITICAL_BASENAMES,
    CRITICAL_PATHS,
    PROTECTED_SYSTEM_PATHS,
    is_critical_path,
)


@dataclass(frozen=True, slots=True)
class PathCheck:
    """Result of resolving a candidate write target."""

    safe: bool
    """Whether the path may be written."""

    normalized: Path | None = None
    """Absolute, normalized form (None when normalization failed)."""

    reason: str = ""
    """Why the path was refused, or empty."""

    critical: bool = False
    """Whether the target needs two-step confirmation."""


def _is_within(path: Path, parent: Path) -> bool:
    """Component-wise containment (``/usr`` does not contain ``/usrlocal``)."""
    return path == parent or parent in path.parents


class PathSafetyResolver:
    """Resolves and validates filesystem write targets.

    Relative paths are resolved against ``project_root``, not the process
    working directory.
    """

    def __init__(
        self,
        project_root: Path,
        protected_paths: tuple[str, ...] = PROTECTED_SYSTEM_PATHS,
        critical_basenames: tuple[str, ...] = CRITICAL_BASENAMES,
        critical_paths: tuple[str, ...] = CRITICAL_PATHS,
    ):
        self.project_root = Path(os.path.normpath(os.path.abspath(project_root)))
        self._real_root = Path(os.path.realpath(self.project_root))
        self._protected = tuple(Path(p) for p in protected_paths)
        self._critical_basenames = critical_basenames
        self._critical_paths = critical_paths

    def normalize(self, raw: str | Path) -> Path:
        """Absolute, ``..``-collapsed form of ``raw`` without touching the disk."""
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return Path(os.path.normpath(candidate))

    def protected_root(self, path: Path) -> Path | None:
        """The protected system path containing ``path``, if any."""
        for protected in self._protected:
            if _is_within(path, protected):
                return protected
        return None

    def resolve(self, raw: str | Path) -> PathCheck:
        if not str(raw).strip():
            return PathCheck(safe=False, reason="Empty path")
        if "\x00" in str(raw):
            return PathCheck(safe=False, reason="Path contains a NUL byte")

        normalized = self.normalize(raw)

        protected = self.protected_root(normalized)
        if protected is not None:
            return PathCheck(
                safe=False,
                normalized=normalized,
                reason=f"Cannot write to protected system path: {protected}",
            )

        if not _is_within(normalized, self.project_root):
            return PathCheck(
                safe=False,
                normalized=normalized,
                reason=f"Path outside root: {normalized} (project root: {self.project_root})",
            )

        # realpath resolves every existing component, so a symlinked parent
        # directory is caught even when the target itself does not exist yet.
        real = Path(os.path.realpath(normalized))
        if not _is_within(real, self._real_root):
            return PathCheck(
                safe=False,
                normalized=normalized,
                reason=f"Symlink escapes project root: {real}",
            )

        relative = normalized.relative_to(self.project_root).as_posix()
        critical = is_critical_path(relative, self._critical_basenames, self._critical_paths)
        return PathCheck(safe=True, normalized=normalized, critical=critical)
