"""Search tools: regex search (search_files) and semantic search (codebase_search)."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext
    from agentcore.permissions.access import WorkspaceAccess

logger = logging.getLogger(__name__)

_MAX_RESULTS = 300

_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv"})

_SEARCH_FILES = ToolCatalog()[ToolName.SEARCH_FILES]
_CODEBASE_SEARCH = ToolCatalog()[ToolName.CODEBASE_SEARCH]


# ---------------------------------------------------------------------------
# ripgrep backend
# ---------------------------------------------------------------------------

async def _rg_search(
    pattern: str,
    search_path: Path,
    glob_filter: str | None,
    max_results: int,
) -> list[tuple[Path, int, str]] | None:
    """Run ripgrep and parse JSON output.

    Returns (path, line, text) matches, or None if rg is unavailable.
    """
    if not shutil.which("rg"):
        return None

    cmd: list[str] = ["rg", "--json", "--max-count", str(max_results)]
    if glob_filter:
        cmd += ["--glob", glob_filter]
    cmd += ["-e", pattern, str(search_path)]

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, _ = await asyncio.wait_for(proc.communicate(), timeout=30)
    except (TimeoutError, OSError):
        return None

    matches: list[tuple[Path, int, str]] = []
    for line in stdout_bytes.decode("utf-8", errors="replace").splitlines():
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if obj.get("type") != "match":
            continue
        data = obj.get("data", {})
        file_path = Path(data.get("path", {}).get("text", ""))
        line_number = data.get("line_number", 0)
        text = data.get("lines", {}).get("text", "").rstrip("\n")
        matches.append((file_path, line_number, text))
        if len(matches) >= max_results:
            break
    return matches


# ---------------------------------------------------------------------------
# Python fallback backend
# ---------------------------------------------------------------------------

def _is_ignored(path: Path, root: Path) -> bool:
    try:
        rel = path.relative_to(root)
    except ValueError:
        return False
    return any(part in _IGNORED_DIRS for part in rel.parts)


def _is_binary(path: Path) -> bool:
    """Heuristic: read first 8 KB and check for null bytes."""
    try:
        with path.open("rb") as fh:
            return b"\x00" in fh.read(8192)
    except OSError:
        return True


def _python_search(
    pattern: str,
    search_path: Path,
    glob_filter: str | None,
    max_results: int,
) -> list[tuple[Path, int, str]]:
    compiled = re.compile(pattern)

    if search_path.is_file():
        files: list[Path] = [search_path]
    else:
        files = [
            p
            for p in sorted(search_path.rglob(glob_filter or "*"))
            if p.is_file() and not _is_ignored(p, search_path)
        ]

    matches: list[tuple[Path, int, str]] = []
    for file_path in files:
        if _is_binary(file_path):
            continue
        try:
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for lineno, line in enumerate(text.splitlines(), start=1):
            if compiled.search(line):
                matches.append((file_path, lineno, line.rstrip()))
                if len(matches) >= max_results:
                    return matches
    return matches


def _format(matches: list[tuple[Path, int, str]], access: WorkspaceAccess) -> list[str]:
    lines: list[str] = []
    for path, lineno, text in matches:
        if access.is_ignored(path):
            continue
        shown = access.relative(path) or str(path)
        lines.append(f"{shown}:{lineno}: {text}")
    return lines


class SearchFilesTool(BaseTool):
    """Regex search over file contents; ripgrep when installed, Python otherwise."""

    @property
    def definition(self) -> ToolDef:
        return _SEARCH_FILES

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        try:
            re.compile(params["regex"])
        except re.error as exc:
            raise ToolValidationError(f"Invalid regex pattern: {exc}") from exc

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        pattern: str = params["regex"]
        raw_path: str = params["path"]
        search_path = turn.access.resolve(raw_path)
        if not search_path.exists():
            return self._error(f"Search path does not exist: {raw_path}")

        glob_filter: str | None = params.get("file_pattern")

        matches = await _rg_search(pattern, search_path, glob_filter, _MAX_RESULTS)
        if matches is None:
            matches = _python_search(pattern, search_path, glob_filter, _MAX_RESULTS)

        lines = _format(matches, turn.access)
        if not lines:
            return self._ok(f"Found 0 results for '{pattern}' in {raw_path}")

        result = f"Found {len(lines)} result(s).\n\n" + "\n".join(lines)
        if len(matches) >= _MAX_RESULTS:
            result += f"\n[Results limited to {_MAX_RESULTS} matches]"
        return self._ok(result)


# ---------------------------------------------------------------------------
# Semantic search
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CodeSearchHit:
    path: str
    start_line: int
    end_line: int
    score: float
    snippet: str


@runtime_checkable
class CodeIndex(Protocol):
    """Host-provided semantic index; embeddings are computed elsewhere."""

    @property
    def ready(self) -> bool: ...

    async def search(self, query: str, directory: str | None = None) -> list[CodeSearchHit]: ...


class CodebaseSearchTool(BaseTool):
    """Queries the host's code index."""

    @property
    def definition(self) -> ToolDef:
        return _CODEBASE_SEARCH

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        index = turn.collaborators.code_index
        if index is None or not index.ready:
            return self._error("Code index is not ready. Use search_files instead.")

        query: str = params["query"]
        hits = await index.search(query, params.get("path"))
        hits = [h for h in hits if not turn.access.is_ignored(h.path)]
        if not hits:
            return self._ok(f"No relevant code found for '{query}'")

        blocks = [
            f"{h.path}:{h.start_line}-{h.end_line} (score {h.score:.2f})\n{h.snippet}"
            for h in hits
        ]
        return self._ok(f"Query: {query}\n\n" + "\n\n".join(blocks))
