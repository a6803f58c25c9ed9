"""write_to_file: creates or overwrites files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_DEFINITION = ToolCatalog()[ToolName.WRITE_TO_FILE]


def strip_code_fence(content: str) -> str:
    """Drop a markdown fence the model wrapped around the whole file."""
    lines = content.split("\n")
    if len(lines) >= 2 and lines[0].startswith("```") and lines[-1].strip() == "```":
        return "\n".join(lines[1:-1]) + "\n"
    return content


class WriteToFileTool(BaseTool):
    """Creates a file or replaces its full content.

    The new content is staged in :meth:`prepare` so the approval preview can
    show a diff; nothing is written until :meth:`execute` commits it.
    """

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        expected = params.get("line_count")
        if expected is None:
            return
        actual = len(params["content"].splitlines())
        if actual < expected:
            raise ToolValidationError(
                f"content has {actual} lines but line_count says {expected}; "
                "the output looks truncated. Write the complete file."
            )

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        raw_path: str = params["path"]
        path = turn.access.resolve(raw_path)
        staged = turn.stager.stage(path, strip_code_fence(params["content"]))
        return ToolPreview(
            payload=self._payload(
                {"path": raw_path},
                diff=staged.diff(raw_path),
                is_new_file=staged.created,
            ),
            staged={"files": [staged]},
            is_protected=turn.access.is_protected(path),
        )

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        staged = preview.staged["files"][0]
        turn.stager.commit(staged)
        turn.control.mark_file_edited()

        lines = len((staged.proposed or "").splitlines())
        verb = "Created" if staged.created else "Wrote"
        return self._ok(
            f"{verb} {params['path']} ({lines} lines)",
            display=staged.diff(params["path"]),
        )
