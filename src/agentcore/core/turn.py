"""TurnContext: the one capability bundle a tool receives."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from agentcore.core import responses
from agentcore.core.cancellation import CancellationToken
from agentcore.core.state import LoopState, TaskState
from agentcore.permissions.access import WorkspaceAccess
from agentcore.permissions.approval import ApprovalOutcome
from agentcore.tools.staging import FileStager
from agentcore.types.config import TaskSettings
from agentcore.types.modes import Mode
from agentcore.types.tools import ToolResultData

if TYPE_CHECKING:
    from agentcore.tools.browser import BrowserSession
    from agentcore.tools.mcp import McpHub
    from agentcore.tools.search import CodeIndex
    from agentcore.tools.terminal import TerminalRegistry

logger = logging.getLogger(__name__)

ApproveFn = Callable[..., Awaitable[ApprovalOutcome]]


class TaskControl(Protocol):
    """Mutations a tool may request from its owning TaskLoop."""

    def record_mistake(self, tool_name: str) -> None: ...

    def reset_mistakes(self) -> None: ...

    def mark_rejected(self) -> None: ...

    def mark_file_edited(self) -> None: ...

    def record_tool_use(self, tool_name: str) -> None: ...

    def state_snapshot(self) -> TaskState: ...

    def switch_mode(self, slug: str, reason: str | None = None) -> str | None: ...

    def complete(self, result: str) -> None: ...

    def set_todos(self, todos: list[dict[str, str]]) -> None: ...

    async def ask_user(self, question: str, suggestions: Sequence[str]) -> str | None: ...

    async def spawn_subtask(self, mode: str, message: str) -> str: ...

    def emit_partial(self, tool_name: str, params: dict[str, Any]) -> None: ...

    def enter_state(self, state: LoopState) -> None: ...


@dataclass(slots=True)
class Collaborators:
    """External services tools may call into. All optional except terminals."""

    terminals: TerminalRegistry | None = None
    code_index: CodeIndex | None = None
    browser: BrowserSession | None = None
    mcp: McpHub | None = None


@dataclass(slots=True)
class TurnContext:
    """Everything a tool may use for one invocation.

    Results go through :meth:`push_result`; task state changes go through
    the owning loop's :class:`TaskControl` methods.
    """

    cwd: Path
    task_id: str
    settings: TaskSettings
    mode: Mode
    access: WorkspaceAccess
    stager: FileStager
    cancel: CancellationToken
    control: TaskControl
    collaborators: Collaborators = field(default_factory=Collaborators)
    tool_name: str = ""
    results: list[ToolResultData] = field(default_factory=list)
    approver: ApproveFn | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> TaskState:
        return self.control.state_snapshot()

    # ------------------------------------------------------------------
    # Transcript plumbing
    # ------------------------------------------------------------------

    def push_result(self, content: str | list[dict[str, Any]], *, is_error: bool = False) -> None:
        self.results.append(ToolResultData(content=content, is_error=is_error))

    async def handle_error(self, context: str, error: BaseException) -> None:
        """Log and surface an execution failure without raising."""
        logger.warning("Error %s: %s: %s", context, type(error).__name__, error)
        self.control.record_tool_use(self.tool_name)
        self.push_result(
            responses.tool_error(f"Error {context}: {type(error).__name__}: {error}"),
            is_error=True,
        )

    def missing_param_error(self, tool_name: str, param_name: str) -> str:
        """Count a mistake and return the standard diagnostic text."""
        self.control.record_mistake(tool_name)
        return responses.missing_param(tool_name, param_name)

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    async def request_approval(
        self,
        preview: dict[str, Any],
        *,
        path: str | None = None,
        is_protected: bool = False,
        images: Sequence[bytes] = (),
    ) -> ApprovalOutcome:
        """Ask about one item of a per-item tool; applies the auto-approval policy."""
        if self.approver is None:
            return ApprovalOutcome(approved=False)
        outcome = await self.approver(preview, path=path, is_protected=is_protected, images=images)
        if not outcome.approved:
            self.control.mark_rejected()
        return outcome
