"""Base tool class with shared logic."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from agentcore.types.tools import ToolDef, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext
    from agentcore.tools.staging import StagedFile


class BaseTool(ABC):
    """Base class for all tools.

    Subclasses implement :meth:`execute`; the other hooks have defaults that
    suit read-only tools.
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        ...

    def resource_paths(self, params: dict[str, Any]) -> list[str]:
        path = params.get("path")
        return [path] if path else []

    def writes(self) -> bool:
        return self.definition.edits_files

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        return None

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        return ToolPreview(payload=self._payload(params))

    async def revert(self, preview: ToolPreview, turn: TurnContext) -> None:
        staged: list[StagedFile] = preview.staged.get("files", [])
        for item in staged:
            turn.stager.revert(item)

    async def handle_partial(self, params: dict[str, Any], turn: TurnContext) -> None:
        turn.control.emit_partial(self.definition.name.value, params)

    def _payload(self, params: dict[str, Any], **extra: Any) -> dict[str, Any]:
        return {"tool": self.definition.name.value, "params": params, **extra}

    def _error(self, msg: str) -> ToolResultData:
        return ToolResultData(content=msg, is_error=True)

    def _ok(self, content: str | list[dict[str, Any]], display: str | None = None) -> ToolResultData:
        return ToolResultData(content=content, display=display)
