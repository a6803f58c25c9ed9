"""Editing tools: apply_diff (SEARCH/REPLACE blocks) and edit_file (exact string)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from agentcore.core import responses
from agentcore.errors import MissingParameterError, ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.tools.staging import StagedFile
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

logger = logging.getLogger(__name__)

_CONTEXT_LINES = 3  # Lines of context shown around a change.

_BLOCK = re.compile(
    r"<<<<<<< SEARCH[ \t]*\n"
    r"(?::start_line:[ \t]*(?P<start>\d+)[ \t]*\n)?"
    r"(?:-------[ \t]*\n)?"
    r"(?P<search>.*?)\n?"
    r"=======[ \t]*\n"
    r"(?P<replace>.*?)\n?"
    r">>>>>>> REPLACE",
    re.DOTALL,
)

_APPLY_DIFF = ToolCatalog()[ToolName.APPLY_DIFF]
_EDIT_FILE = ToolCatalog()[ToolName.EDIT_FILE]


# ---------------------------------------------------------------------------
# SEARCH/REPLACE blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DiffBlock:
    search: str
    replace: str
    start_line: int | None = None


def parse_diff_blocks(diff: str) -> list[DiffBlock]:
    """Split a diff string into its SEARCH/REPLACE blocks."""
    blocks = [
        DiffBlock(
            search=m.group("search"),
            replace=m.group("replace"),
            start_line=int(m.group("start")) if m.group("start") else None,
        )
        for m in _BLOCK.finditer(diff)
    ]
    if not blocks:
        raise ToolValidationError(
            "diff contains no SEARCH/REPLACE blocks. Use the format:\n"
            "<<<<<<< SEARCH\n:start_line:N\n-------\n[exact text]\n=======\n[new text]\n>>>>>>> REPLACE"
        )
    return blocks


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def apply_block(text: str, block: DiffBlock) -> str:
    """Apply one block to *text* or raise ToolValidationError."""
    if not block.search:
        raise ToolValidationError("SEARCH section is empty.")
    positions: list[int] = []
    start = text.find(block.search)
    while start != -1:
        positions.append(start)
        start = text.find(block.search, start + 1)
    if not positions:
        hint = f" near line {block.start_line}" if block.start_line else ""
        raise ToolValidationError(
            f"No exact match found for SEARCH block{hint}. "
            "Read the file again and copy the text exactly."
        )
    if len(positions) > 1:
        chosen = [p for p in positions if _line_of(text, p) == block.start_line]
        if not chosen:
            raise ToolValidationError(
                f"SEARCH block matches {len(positions)} places. "
                "Add :start_line: or more surrounding context."
            )
        pos = chosen[0]
    else:
        pos = positions[0]
    return text[:pos] + block.replace + text[pos + len(block.search):]


def apply_blocks(original: str, blocks: list[DiffBlock]) -> tuple[str, list[str]]:
    """Apply blocks in order. Returns the new text and one message per failed block."""
    text = original
    failures: list[str] = []
    for i, block in enumerate(blocks, start=1):
        try:
            text = apply_block(text, block)
        except ToolValidationError as e:
            failures.append(f"block {i}: {e}")
    return text, failures


def _brief_context(text: str, new_string: str, n: int = _CONTEXT_LINES) -> str:
    """Return a snippet showing the first inserted block with surrounding context."""
    lines = text.splitlines()
    new_lines = new_string.splitlines()
    first_new = new_lines[0] if new_lines else ""
    target_idx = 0
    for idx, line in enumerate(lines):
        if first_new and first_new in line:
            target_idx = idx
            break
    start = max(0, target_idx - n)
    end = min(len(lines), target_idx + len(new_lines) + n)
    return "\n".join(lines[start:end])


def _read_existing(path: Path, display: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ToolValidationError(f"File not found: {display}") from None
    except IsADirectoryError:
        raise ToolValidationError(f"Path is a directory, not a file: {display}") from None
    except UnicodeDecodeError:
        raise ToolValidationError(f"Cannot edit binary file: {display}") from None


# ---------------------------------------------------------------------------
# apply_diff
# ---------------------------------------------------------------------------


class ApplyDiffTool(BaseTool):
    """Applies SEARCH/REPLACE blocks to one or more files.

    Each file is approved separately. A denied or failing file does not stop
    the others; the result lists what happened to every file.
    """

    @property
    def definition(self) -> ToolDef:
        return _APPLY_DIFF

    def _entries(self, params: dict[str, Any]) -> list[tuple[str, str]]:
        files = params.get("files")
        if files:
            return [(f["path"], f["diff"]) for f in files]
        if not params.get("path"):
            raise MissingParameterError(ToolName.APPLY_DIFF.value, "path")
        if not params.get("diff"):
            raise MissingParameterError(ToolName.APPLY_DIFF.value, "diff")
        return [(params["path"], params["diff"])]

    def resource_paths(self, params: dict[str, Any]) -> list[str]:
        files = params.get("files")
        if files:
            return [f["path"] for f in files if f.get("path")]
        return super().resource_paths(params)

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        for _, diff in self._entries(params):
            parse_diff_blocks(diff)

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        applied: list[str] = []
        failed: list[str] = []
        denied: list[str] = []
        feedback: list[str] = []

        for raw_path, diff in self._entries(params):
            path = turn.access.resolve(raw_path)
            try:
                original = _read_existing(path, raw_path)
            except ToolValidationError as e:
                failed.append(f"{raw_path}: {e}")
                continue

            updated, failures = apply_blocks(original, parse_diff_blocks(diff))
            if failures and updated == original:
                failed.extend(f"{raw_path}: {msg}" for msg in failures)
                continue

            staged = turn.stager.stage(path, updated)
            # Listed on the preview while pending so the executor reverts it on abort.
            pending: list[StagedFile] = preview.staged.setdefault("files", [])
            pending.append(staged)
            outcome = await turn.request_approval(
                self._payload({"path": raw_path}, diff=staged.diff(raw_path)),
                path=raw_path,
                is_protected=turn.access.is_protected(path),
            )
            pending.remove(staged)
            if not outcome.approved:
                turn.stager.revert(staged)
                denied.append(raw_path)
                if outcome.feedback_text:
                    feedback.append(f"{raw_path}: {outcome.feedback_text}")
                continue

            turn.stager.commit(staged)
            turn.control.mark_file_edited()
            note = f" ({len(failures)} block(s) skipped)" if failures else ""
            applied.append(f"{raw_path}{note}")
            failed.extend(f"{raw_path}: {msg}" for msg in failures)

        return self._summarise(applied, failed, denied, feedback)

    def _summarise(
        self,
        applied: list[str],
        failed: list[str],
        denied: list[str],
        feedback: list[str],
    ) -> ToolResultData:
        parts: list[str] = []
        if applied:
            parts.append("Applied changes to:\n" + "\n".join(f"- {p}" for p in applied))
        if denied:
            parts.append("Not applied (denied):\n" + "\n".join(f"- {p}" for p in denied))
            parts.append(responses.denied_by_user("\n".join(feedback) or None))
        if failed:
            parts.append("Failed:\n" + "\n".join(f"- {f}" for f in failed))
        text = "\n\n".join(parts)
        if applied:
            return self._ok(text)
        return self._error(text)


# ---------------------------------------------------------------------------
# edit_file
# ---------------------------------------------------------------------------


class EditFileTool(BaseTool):
    """Performs exact string replacement in a file.

    An empty ``old_string`` on a missing file creates the file with
    ``new_string`` as its content.
    """

    @property
    def definition(self) -> ToolDef:
        return _EDIT_FILE

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        if params.get("old_string", "") == params.get("new_string", ""):
            raise ToolValidationError("old_string and new_string must differ.")
        expected = params.get("expected_replacements", 1)
        if expected < 1:
            raise ToolValidationError("expected_replacements must be at least 1.")

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        raw_path: str = params["path"]
        old_string: str = params.get("old_string", "")
        new_string: str = params.get("new_string", "")
        expected: int = params.get("expected_replacements", 1)
        path = turn.access.resolve(raw_path)

        if not old_string and not path.exists():
            updated = new_string
        else:
            original = _read_existing(path, raw_path)
            count = original.count(old_string) if old_string else 0
            if count == 0:
                raise ToolValidationError(
                    f"old_string not found in {raw_path}. "
                    "Ensure the string matches the file content exactly."
                )
            if count != expected:
                raise ToolValidationError(
                    f"Expected {expected} occurrence(s) of old_string in {raw_path} "
                    f"but found {count}. Add more context or set expected_replacements."
                )
            updated = original.replace(old_string, new_string)

        staged = turn.stager.stage(path, updated)
        return ToolPreview(
            payload=self._payload({"path": raw_path}, diff=staged.diff(raw_path)),
            staged={"files": [staged]},
            is_protected=turn.access.is_protected(path),
        )

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        staged: StagedFile = preview.staged["files"][0]
        turn.stager.commit(staged)
        turn.control.mark_file_edited()

        snippet = _brief_context(staged.proposed or "", params.get("new_string", ""))
        verb = "Created" if staged.created else "Edited"
        return self._ok(
            f"{verb} {params['path']}\n--- context ---\n{snippet}",
            display=staged.diff(params["path"]),
        )
