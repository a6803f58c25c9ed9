"""Speculative file changes that can be committed or reverted."""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StagedFile:
    """One file change awaiting approval."""

    path: Path
    original: str | None  # None when the file did not exist
    proposed: str | None  # None when the change deletes the file
    applied: bool = False

    @property
    def created(self) -> bool:
        return self.original is None

    def diff(self, display_path: str = "") -> str:
        """Unified diff from the original to the proposed content."""
        name = display_path or self.path.name
        diff_lines = difflib.unified_diff(
            (self.original or "").splitlines(keepends=True),
            (self.proposed or "").splitlines(keepends=True),
            fromfile=f"a/{name}",
            tofile=f"b/{name}",
            lineterm="",
        )
        text = "\n".join(line.rstrip("\n") for line in diff_lines)
        return text or "(no changes)"


def _write(path: Path, content: str | None) -> None:
    if content is None:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class FileStager:
    """Stages proposed file contents.

    With ``live=True`` the proposal is written to disk as soon as it is
    staged, the way an editor diff view shows it, and :meth:`revert`
    restores the original. Otherwise nothing touches disk until
    :meth:`commit`.
    """

    def __init__(self, *, live: bool = False) -> None:
        self._live = live

    @property
    def live(self) -> bool:
        return self._live

    def stage(self, path: Path, proposed: str | None) -> StagedFile:
        original: str | None = None
        if path.exists():
            original = path.read_text(encoding="utf-8")
        staged = StagedFile(path=path, original=original, proposed=proposed)
        if self._live:
            _write(path, proposed)
            staged.applied = True
        return staged

    def commit(self, staged: StagedFile) -> None:
        if not staged.applied:
            _write(staged.path, staged.proposed)
            staged.applied = True

    def revert(self, staged: StagedFile) -> None:
        if not staged.applied:
            return
        _write(staged.path, staged.original)
        staged.applied = False
        logger.debug("Reverted staged change to %s", staged.path)
