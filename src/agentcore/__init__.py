"""agentcore: tool-orchestration core for AI coding agents.

Usage:
    import agentcore

    async for msg in agentcore.run("Fix the bug", provider):
        match msg:
            case agentcore.TextMessage(text=t):
                print(t, end="")
            case agentcore.Result(text=t):
                print(f"Done: {t}")
"""

from agentcore.core.engine import create_task, run
from agentcore.core.loop import TaskLoop
from agentcore.core.session import Session
from agentcore.core.state import LoopState, TaskState
from agentcore.modes.registry import ModeRegistry
from agentcore.permissions.approval import ApprovalCallback, ApprovalResponse
from agentcore.protocol.detector import ToolProtocol
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.config import TaskSettings
from agentcore.types.hooks import Hook, HookEvent, HookResult
from agentcore.types.messages import (
    Message,
    Result,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)
from agentcore.types.providers import ChatMessage, NativeToolCall, ProviderSettings, StreamEvent
from agentcore.types.tools import ToolDef, ToolName, ToolParam, ToolResultData

__version__ = "0.3.0"

__all__ = [
    # Core API
    "run",
    "create_task",
    "TaskLoop",
    "Session",
    "LoopState",
    "TaskState",
    # Message types
    "Message",
    "Result",
    "SystemEvent",
    "TextMessage",
    "ToolResult",
    "ToolUse",
    # Configuration
    "ApprovalCallback",
    "ApprovalResponse",
    "Hook",
    "HookEvent",
    "HookResult",
    "ModeRegistry",
    "ProviderSettings",
    "TaskSettings",
    "ToolProtocol",
    # Provider stream types
    "ChatMessage",
    "NativeToolCall",
    "StreamEvent",
    # Tool types
    "ToolCatalog",
    "ToolDef",
    "ToolName",
    "ToolParam",
    "ToolResultData",
]
