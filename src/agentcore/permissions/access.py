"""Workspace boundary, ignore rules and protected paths."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

import pathspec

from agentcore.errors import AccessDeniedError

logger = logging.getLogger(__name__)

IGNORE_FILE = ".agentcoreignore"

# Configuration that steers the agent itself; edits always need a human.
DEFAULT_PROTECTED = (
    IGNORE_FILE,
    ".agentcore/**",
    ".git/**",
    ".vscode/**",
    "AGENTS.md",
)


def _load_ignore_lines(root: Path) -> list[str]:
    path = root / IGNORE_FILE
    if not path.exists():
        return []
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return []


class WorkspaceAccess:
    """Answers "may the agent touch this path?" for one workspace root.

    Ignore patterns use gitignore syntax and come from ``.agentcoreignore``
    unless given explicitly.
    """

    def __init__(
        self,
        root: str | Path,
        ignore_patterns: Iterable[str] | None = None,
        protected_patterns: Iterable[str] = DEFAULT_PROTECTED,
        *,
        allow_outside: bool = False,
    ) -> None:
        self._root = Path(root).resolve()
        lines = list(ignore_patterns) if ignore_patterns is not None else _load_ignore_lines(self._root)
        self._ignore = pathspec.GitIgnoreSpec.from_lines(lines)
        self._protected = pathspec.GitIgnoreSpec.from_lines(list(protected_patterns))
        self._allow_outside = allow_outside

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def resolve(self, path: str | Path) -> Path:
        """Absolute, normalised form of a workspace-relative or absolute path."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self._root / p
        return Path(os.path.normpath(p))

    def relative(self, path: str | Path) -> str | None:
        """POSIX path relative to the root, or None when outside it."""
        try:
            return self.resolve(path).relative_to(self._root).as_posix()
        except ValueError:
            return None

    def is_outside(self, path: str | Path) -> bool:
        return self.relative(path) is None

    def is_ignored(self, path: str | Path) -> bool:
        rel = self.relative(path)
        if rel is None or rel == ".":
            return False
        return self._ignore.match_file(rel)

    def is_protected(self, path: str | Path) -> bool:
        rel = self.relative(path)
        if rel is None:
            return False
        return self._protected.match_file(rel)

    def filter_visible(self, paths: Iterable[Path]) -> list[Path]:
        """Drop ignored paths from a listing."""
        return [p for p in paths if not self.is_ignored(p)]

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(self, path: str | Path, *, write: bool = False) -> Path:
        """Return the resolved path or raise AccessDeniedError."""
        resolved = self.resolve(path)
        if self.is_outside(resolved) and not self._allow_outside:
            raise AccessDeniedError(str(path), "it is outside the workspace")
        if self.is_ignored(resolved):
            raise AccessDeniedError(str(path), f"it matches a pattern in {IGNORE_FILE}")
        if write and resolved.exists() and not os.access(resolved, os.W_OK):
            raise AccessDeniedError(str(path), "the file is write-protected")
        return resolved
