"""Type definitions for agentcore."""

from agentcore.types.config import AvailabilityContext, Capabilities, TaskSettings
from agentcore.types.hooks import Hook, HookEvent, HookResult
from agentcore.types.messages import (
    Message,
    Result,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)
from agentcore.types.modes import GroupEntry, Mode
from agentcore.types.providers import (
    ChatMessage,
    NativeToolCall,
    ProviderAdapter,
    ProviderSettings,
    StreamEvent,
)
from agentcore.types.session import SessionInfo
from agentcore.types.tools import (
    ApprovalStyle,
    Tool,
    ToolDef,
    ToolGroup,
    ToolName,
    ToolParam,
    ToolPreview,
    ToolResultData,
)

__all__ = [
    "ApprovalStyle",
    "AvailabilityContext",
    "Capabilities",
    "ChatMessage",
    "GroupEntry",
    "Hook",
    "HookEvent",
    "HookResult",
    "Message",
    "Mode",
    "NativeToolCall",
    "ProviderAdapter",
    "ProviderSettings",
    "SessionInfo",
    "Result",
    "StreamEvent",
    "SystemEvent",
    "TaskSettings",
    "TextMessage",
    "Tool",
    "ToolDef",
    "ToolGroup",
    "ToolName",
    "ToolParam",
    "ToolPreview",
    "ToolResult",
    "ToolResultData",
    "ToolUse",
]
