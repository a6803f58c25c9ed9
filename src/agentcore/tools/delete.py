"""delete_file: removes a single file."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_DEFINITION = ToolCatalog()[ToolName.DELETE_FILE]


class DeleteFileTool(BaseTool):
    """Deletes a file. Always asks, whatever the auto-approval settings."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        raw_path: str = params["path"]
        path = turn.access.resolve(raw_path)
        if not path.exists():
            raise ToolValidationError(f"File not found: {raw_path}")
        if path.is_dir():
            raise ToolValidationError(f"{raw_path} is a directory; delete_file only removes files.")
        staged = turn.stager.stage(path, None)
        return ToolPreview(
            payload=self._payload({"path": raw_path}, diff=staged.diff(raw_path)),
            staged={"files": [staged]},
            is_protected=turn.access.is_protected(path),
        )

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        turn.stager.commit(preview.staged["files"][0])
        turn.control.mark_file_edited()
        return self._ok(f"Deleted {params['path']}")
