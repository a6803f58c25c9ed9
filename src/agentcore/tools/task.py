"""new_task: delegates a sub-goal to a sub-agent."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentcore.errors import MistakeLimitExceeded, ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_DEFINITION = ToolCatalog()[ToolName.NEW_TASK]


class NewTaskTool(BaseTool):
    """Spawn a sub-agent in another mode.

    The sub-agent runs its own TaskLoop with isolated state; its final
    result becomes this tool's result.
    """

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        mode: str = params["mode"]
        try:
            result = await turn.control.spawn_subtask(mode, params["message"])
        except ToolValidationError as e:
            return self._error(str(e))
        except MistakeLimitExceeded as e:
            return self._error(
                f"Sub-task in {mode} mode stopped after {e.count} consecutive mistakes without finishing."
            )
        return self._ok(f"Sub-task in {mode} mode completed with result:\n\n{result}")
