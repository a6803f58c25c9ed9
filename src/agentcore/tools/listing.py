"""list_files: lists a directory, optionally recursively."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_MAX_RESULTS = 200

# Directories to skip during recursive listing.
_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv"})

_DEFINITION = ToolCatalog()[ToolName.LIST_FILES]


def _walk(root: Path, recursive: bool) -> list[Path]:
    if not recursive:
        return sorted(root.iterdir())
    found: list[Path] = []
    for p in sorted(root.rglob("*")):
        rel = p.relative_to(root)
        if any(part in _IGNORED_DIRS for part in rel.parts):
            continue
        found.append(p)
    return found


class ListFilesTool(BaseTool):
    """Lists files and directories, hiding anything in the ignore file."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        raw_path: str = params["path"]
        root = turn.access.resolve(raw_path)
        if not root.exists():
            return self._error(f"Directory does not exist: {raw_path}")
        if not root.is_dir():
            return self._error(f"Not a directory: {raw_path}")

        entries = turn.access.filter_visible(_walk(root, bool(params.get("recursive", False))))
        results = entries[:_MAX_RESULTS]
        truncated = len(entries) - len(results)

        if not results:
            return self._ok(f"No files found in {raw_path}")

        lines = []
        for p in results:
            rel = p.relative_to(root).as_posix()
            lines.append(f"{rel}/" if p.is_dir() else rel)
        if truncated:
            lines.append(f"[...{truncated} more results not shown]")
        return self._ok("\n".join(lines))
