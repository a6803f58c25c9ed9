"""Message types yielded by the task loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class TextMessage:
    """Streaming text chunk from the model."""

    text: str
    is_partial: bool = True


@dataclass(frozen=True, slots=True)
class ToolUse:
    """Model requests a tool call."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    partial: bool = False


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Result of executing (or refusing) a tool call."""

    tool_use_id: str
    content: str
    is_error: bool = False
    display: str | None = None


@dataclass(frozen=True, slots=True)
class Result:
    """Final result when the task loop stops."""

    text: str
    session_id: str
    turns: int = 0
    tool_calls: int = 0
    total_tokens: int = 0
    stop_reason: str = "completed"  # completed / aborted / mistake_limit / max_turns / end_turn


@dataclass(frozen=True, slots=True)
class SystemEvent:
    """Lifecycle event (task start, mode switch, protocol lock, ...)."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)


Message = TextMessage | ToolUse | ToolResult | Result | SystemEvent
