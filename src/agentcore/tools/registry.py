"""ToolRegistry: one tool instance per ToolName."""

from __future__ import annotations

from collections.abc import Iterator

from agentcore.tools.base import BaseTool
from agentcore.tools.browser import BrowserActionTool
from agentcore.tools.command import ExecuteCommandTool
from agentcore.tools.delete import DeleteFileTool
from agentcore.tools.edit import ApplyDiffTool, EditFileTool
from agentcore.tools.interaction import (
    AskFollowupQuestionTool,
    AttemptCompletionTool,
    SwitchModeTool,
    UpdateTodoListTool,
)
from agentcore.tools.listing import ListFilesTool
from agentcore.tools.mcp import UseMcpTool
from agentcore.tools.read import ReadFileTool
from agentcore.tools.search import CodebaseSearchTool, SearchFilesTool
from agentcore.tools.task import NewTaskTool
from agentcore.tools.web import WebFetchTool
from agentcore.tools.write import WriteToFileTool
from agentcore.types.tools import ToolName


def build_tool(name: ToolName) -> BaseTool:
    """Construct the implementation for *name*.

    A new ToolName member without a case here falls through to the
    ``case _`` branch and fails loudly at registry construction.
    """
    match name:
        case ToolName.READ_FILE:
            return ReadFileTool()
        case ToolName.LIST_FILES:
            return ListFilesTool()
        case ToolName.SEARCH_FILES:
            return SearchFilesTool()
        case ToolName.CODEBASE_SEARCH:
            return CodebaseSearchTool()
        case ToolName.WRITE_TO_FILE:
            return WriteToFileTool()
        case ToolName.APPLY_DIFF:
            return ApplyDiffTool()
        case ToolName.EDIT_FILE:
            return EditFileTool()
        case ToolName.DELETE_FILE:
            return DeleteFileTool()
        case ToolName.EXECUTE_COMMAND:
            return ExecuteCommandTool()
        case ToolName.BROWSER_ACTION:
            return BrowserActionTool()
        case ToolName.WEB_FETCH:
            return WebFetchTool()
        case ToolName.USE_MCP_TOOL:
            return UseMcpTool()
        case ToolName.ASK_FOLLOWUP_QUESTION:
            return AskFollowupQuestionTool()
        case ToolName.ATTEMPT_COMPLETION:
            return AttemptCompletionTool()
        case ToolName.SWITCH_MODE:
            return SwitchModeTool()
        case ToolName.NEW_TASK:
            return NewTaskTool()
        case ToolName.UPDATE_TODO_LIST:
            return UpdateTodoListTool()
        case _:
            raise ValueError(f"No implementation for tool {name!r}")


class ToolRegistry:
    """Holds the tool implementations a task dispatches to.

    Usage::

        registry = ToolRegistry()
        tool = registry[ToolName.READ_FILE]
    """

    def __init__(self, overrides: dict[ToolName, BaseTool] | None = None) -> None:
        self._tools: dict[ToolName, BaseTool] = {name: build_tool(name) for name in ToolName}
        for name, tool in (overrides or {}).items():
            self.register(name, tool)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: ToolName, tool: BaseTool) -> None:
        """Replace the implementation for *name*; the definition must match."""
        if tool.definition.name is not name:
            raise ValueError(
                f"Tool {type(tool).__name__} defines {tool.definition.name.value}, not {name.value}"
            )
        self._tools[name] = tool

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: ToolName) -> BaseTool:
        return self._tools[name]

    def __getitem__(self, name: ToolName) -> BaseTool:
        return self._tools[name]

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={len(self._tools)})"
