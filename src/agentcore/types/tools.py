"""Tool definition types and protocols."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentcore.core.turn import TurnContext
    from agentcore.types.config import AvailabilityContext


class ToolName(Enum):
    """The closed set of tools the engine knows how to dispatch."""

    READ_FILE = "read_file"
    LIST_FILES = "list_files"
    SEARCH_FILES = "search_files"
    CODEBASE_SEARCH = "codebase_search"
    WRITE_TO_FILE = "write_to_file"
    APPLY_DIFF = "apply_diff"
    EDIT_FILE = "edit_file"
    DELETE_FILE = "delete_file"
    EXECUTE_COMMAND = "execute_command"
    BROWSER_ACTION = "browser_action"
    WEB_FETCH = "web_fetch"
    USE_MCP_TOOL = "use_mcp_tool"
    ASK_FOLLOWUP_QUESTION = "ask_followup_question"
    ATTEMPT_COMPLETION = "attempt_completion"
    SWITCH_MODE = "switch_mode"
    NEW_TASK = "new_task"
    UPDATE_TODO_LIST = "update_todo_list"

    @classmethod
    def lookup(cls, name: str) -> ToolName | None:
        """Return the member whose value is *name*, or None."""
        try:
            return cls(name)
        except ValueError:
            return None


class ToolGroup(Enum):
    """Mode-level permission groups."""

    READ = "read"
    EDIT = "edit"
    COMMAND = "command"
    BROWSER = "browser"
    MCP = "mcp"
    ALWAYS = "always"


class ApprovalStyle(Enum):
    """How a tool asks for approval when it touches several items."""

    SINGLE = "single"  # one request, made by the executor
    BATCH = "batch"  # one all-or-nothing request covering every item
    PER_ITEM = "per_item"  # the tool asks per item through the turn context


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "enum", "object", "array"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: ToolParam | None = None  # array element; its name is the XML item tag
    properties: tuple[ToolParam, ...] = ()  # object fields


def _always(_: AvailabilityContext) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Immutable descriptor for one tool."""

    name: ToolName
    description: str
    group: ToolGroup
    parameters: tuple[ToolParam, ...] = ()
    available: Callable[[AvailabilityContext], bool] = field(default=_always, compare=False)
    always_safe: bool = False  # never needs approval
    destructive: bool = False  # approval can never be auto-granted
    edits_files: bool = False
    approval: ApprovalStyle = ApprovalStyle.SINGLE

    def param(self, name: str) -> ToolParam | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    @property
    def required_params(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)


@dataclass(slots=True)
class ToolResultData:
    """Data returned from tool execution."""

    content: str | list[dict[str, Any]]
    is_error: bool = False
    display: str | None = None  # Optional rich display for the UI

    @property
    def text(self) -> str:
        """Plain-text view of the content, joining text blocks."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(
            str(block.get("text", "")) for block in self.content if block.get("type") == "text"
        )


@dataclass(slots=True)
class ToolPreview:
    """Speculative state staged by a tool before approval.

    ``payload`` is what the approval prompt shows; ``staged`` holds whatever
    the tool needs to apply or revert the change.
    """

    payload: dict[str, Any]
    staged: dict[str, Any] = field(default_factory=dict)
    is_protected: bool = False
    images: tuple[bytes, ...] = ()


@runtime_checkable
class Tool(Protocol):
    """Protocol that all tools must implement."""

    @property
    def definition(self) -> ToolDef:
        """Return the tool definition."""
        ...

    def resource_paths(self, params: dict[str, Any]) -> list[str]:
        """Workspace paths the invocation touches."""
        ...

    def writes(self) -> bool:
        """Whether the touched paths are written rather than read."""
        ...

    async def validate(self, params: dict[str, Any], turn: TurnContext) -> None:
        """Raise ToolValidationError / MissingParameterError on bad input."""
        ...

    async def prepare(self, params: dict[str, Any], turn: TurnContext) -> ToolPreview:
        """Stage speculative changes and build the approval preview."""
        ...

    async def execute(
        self, params: dict[str, Any], turn: TurnContext, preview: ToolPreview,
    ) -> ToolResultData:
        """Perform the side effect."""
        ...

    async def revert(self, preview: ToolPreview, turn: TurnContext) -> None:
        """Undo anything :meth:`prepare` staged."""
        ...

    async def handle_partial(self, params: dict[str, Any], turn: TurnContext) -> None:
        """Live preview while the invocation is still streaming."""
        ...
