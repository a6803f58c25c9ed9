"""read_file: reads one or more files with optional line ranges."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from agentcore.errors import MissingParameterError, ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_MAX_LINE_LENGTH = 2000
_DEFAULT_LIMIT = 2000
_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")

_DEFINITION = ToolCatalog()[ToolName.READ_FILE]


def parse_line_range(text: str) -> tuple[int, int]:
    """Parse ``"10-40"`` into an inclusive 1-based (start, end)."""
    match = _RANGE.match(text)
    if match is None:
        raise ToolValidationError(f"Invalid line range '{text}'. Expected 'start-end', e.g. '10-40'.")
    start, end = int(match.group(1)), int(match.group(2))
    if start < 1:
        raise ToolValidationError(f"Invalid line range '{text}': lines start at 1.")
    if start > end:
        raise ToolValidationError(
            f"Invalid line range '{text}': start line {start} is after end line {end}."
        )
    return start, end


def _requests(params: dict[str, Any]) -> list[tuple[str, list[tuple[int, int]]]]:
    """Normalise the single-path and multi-file forms to (path, ranges) pairs."""
    files = params.get("files")
    if files:
        out = []
        for entry in files:
            ranges = [parse_line_range(r) for r in entry.get("line_range", [])]
            out.append((entry["path"], ranges))
        return out

    path = params.get("path")
    if not path:
        raise MissingParameterError(ToolName.READ_FILE.value, "path")
    start = params.get("start_line")
    end = params.get("end_line")
    if start is None and end is None:
        return [(path, [])]
    first = start if start is not None else 1
    last = end if end is not None else first + _DEFAULT_LIMIT - 1
    if first < 1 or first > last:
        raise ToolValidationError(
            f"Invalid line range: start_line {first} must be >= 1 and <= end_line {last}."
        )
    return [(path, [(first, last)])]


def _number(lines: list[str], start: int, end: int) -> str:
    numbered: list[str] = []
    for i, line in enumerate(lines[start - 1:end], start=start):
        display_line = line.rstrip("\n\r")
        if len(display_line) > _MAX_LINE_LENGTH:
            display_line = display_line[:_MAX_LINE_LENGTH] + " [truncated]"
        numbered.append(f"{i:>6}\t{display_line}")
    return "\n".join(numbered)


def _read_one(path: Path, display: str, ranges: list[tuple[int, int]]) -> tuple[str, bool]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return f"<file><path>{display}</path><error>File not found</error></file>", False
    except IsADirectoryError:
        return f"<file><path>{display}</path><error>Path is a directory</error></file>", False
    except UnicodeDecodeError:
        return f"<file><path>{display}</path><error>Binary or non-UTF-8 file</error></file>", False
    except OSError as e:
        return f"<file><path>{display}</path><error>{e}</error></file>", False

    lines = text.splitlines(keepends=True)
    total = len(lines)
    parts: list[str] = []
    if not ranges:
        end = min(total, _DEFAULT_LIMIT)
        body = _number(lines, 1, end)
        parts.append(f'<content lines="1-{end}">\n{body}\n</content>')
        if end < total:
            parts.append(f"<notice>{total - end} more lines not shown; use line_range to read them</notice>")
    else:
        for start, end in ranges:
            end = min(end, total)
            if start > total:
                parts.append(f"<notice>Line {start} is past the end of the file ({total} lines)</notice>")
                continue
            body = _number(lines, start, end)
            parts.append(f'<content lines="{start}-{end}">\n{body}\n</content>')
    inner = "\n".join(parts)
    return f"<file><path>{display}</path>\n{inner}\n</file>", True


class ReadFileTool(BaseTool):
    """Reads files and returns their content with line numbers.

    Several files in one call are approved as a single batch.
    """

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    def resource_paths(self, params: dict[str, Any]) -> list[str]:
        files = params.get("files")
        if files:
            return [f["path"] for f in files if f.get("path")]
        return super().resource_paths(params)

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        _requests(params)

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        paths = self.resource_paths(params)
        return ToolPreview(
            payload=self._payload(params, batch=paths if len(paths) > 1 else None),
        )

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        blocks: list[str] = []
        any_ok = False
        for raw_path, ranges in _requests(params):
            resolved = turn.access.resolve(raw_path)
            block, ok = _read_one(resolved, raw_path, ranges)
            any_ok = any_ok or ok
            blocks.append(block)
        content = "<files>\n" + "\n".join(blocks) + "\n</files>"
        return self._ok(content) if any_ok else self._error(content)
