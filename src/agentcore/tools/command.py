"""execute_command: runs a shell command through the TerminalRegistry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_MAX_TIMEOUT_MS = 600_000

_DEFINITION = ToolCatalog()[ToolName.EXECUTE_COMMAND]


class ExecuteCommandTool(BaseTool):
    """Executes shell commands and returns their combined output."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    def resource_paths(self, params: dict[str, Any]) -> list[str]:
        cwd = params.get("cwd")
        return [cwd] if cwd else []

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        terminals = turn.collaborators.terminals
        if terminals is None:
            return self._error("No terminal is available to run commands in this task.")

        command: str = params["command"]
        cwd = turn.access.resolve(params["cwd"]) if params.get("cwd") else turn.cwd

        timeout_ms = params.get("timeout") or turn.settings.command_timeout_ms
        timeout_ms = max(1, min(timeout_ms, _MAX_TIMEOUT_MS))

        try:
            result = await terminals.run(
                turn.task_id, command, cwd,
                timeout_sec=timeout_ms / 1000.0,
                cancel=turn.cancel,
            )
        except OSError as exc:
            return self._error(f"Failed to start process: {exc}")

        if result.cancelled:
            return self._error(f"Command was cancelled: {command}")
        if result.timed_out:
            return self._error(f"Command timed out after {timeout_ms} ms and was killed: {command}")

        result_text = result.output if result.output.strip() else "Command completed with no output"
        if result.exit_code != 0:
            result_text = result_text.rstrip("\n") + f"\n[Exit code: {result.exit_code}]"
            return self._error(result_text)
        return self._ok(result_text)
