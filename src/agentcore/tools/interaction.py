"""Always-available tools that talk to the user or steer the task itself."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from agentcore.errors import ToolValidationError
from agentcore.tools.base import BaseTool
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.tools import ToolDef, ToolName, ToolPreview, ToolResultData

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext

_CATALOG = ToolCatalog()

_TODO_LINE = re.compile(r"^\s*(?:[-*]\s+)?\[(?P<mark>[ xX\-~])\]\s+(?P<text>.+?)\s*$")
_TODO_STATUS = {" ": "pending", "x": "completed", "X": "completed", "-": "in_progress", "~": "in_progress"}


def parse_todos(markdown: str) -> list[dict[str, str]]:
    """Parse a markdown checklist into ``{"content", "status"}`` items."""
    todos: list[dict[str, str]] = []
    for lineno, line in enumerate(markdown.splitlines(), start=1):
        if not line.strip():
            continue
        m = _TODO_LINE.match(line)
        if m is None:
            raise ToolValidationError(
                f"Line {lineno} is not a checklist item: {line.strip()!r}. "
                "Use '[ ] task', '[-] task' or '[x] task'."
            )
        todos.append({"content": m.group("text"), "status": _TODO_STATUS[m.group("mark")]})
    return todos


class AskFollowupQuestionTool(BaseTool):
    """Ask the user a question mid-task."""

    @property
    def definition(self) -> ToolDef:
        return _CATALOG[ToolName.ASK_FOLLOWUP_QUESTION]

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        suggestions = [str(s) for s in params.get("follow_up", [])]
        answer = await turn.control.ask_user(params["question"], suggestions)
        if answer is None:
            return self._error(
                "No user is available to answer questions. Make your best judgment and proceed."
            )
        return self._ok(f"<answer>\n{answer}\n</answer>")


class AttemptCompletionTool(BaseTool):
    """Presents the final result and ends the task."""

    @property
    def definition(self) -> ToolDef:
        return _CATALOG[ToolName.ATTEMPT_COMPLETION]

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        result: str = params["result"]
        turn.control.complete(result)
        return self._ok(result)


class SwitchModeTool(BaseTool):
    @property
    def definition(self) -> ToolDef:
        return _CATALOG[ToolName.SWITCH_MODE]

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        if params["mode_slug"] == turn.mode.slug:
            raise ToolValidationError(f"Already in {turn.mode.slug} mode.")

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        slug: str = params["mode_slug"]
        reason: str | None = params.get("reason")
        error = turn.control.switch_mode(slug, reason)
        if error:
            raise ToolValidationError(error)
        because = f" because: {reason}" if reason else ""
        return self._ok(f"Successfully switched from {turn.mode.slug} mode to {slug} mode{because}.")


class UpdateTodoListTool(BaseTool):
    """Replaces the task's todo list with a markdown checklist."""

    @property
    def definition(self) -> ToolDef:
        return _CATALOG[ToolName.UPDATE_TODO_LIST]

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        parse_todos(params["todos"])

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        todos = parse_todos(params["todos"])
        turn.control.set_todos(todos)
        done = sum(1 for t in todos if t["status"] == "completed")
        return self._ok(f"Todo list updated ({done}/{len(todos)} completed).")
