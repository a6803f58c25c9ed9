"""Provider adapter protocol and stream event types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from agentcore.types.tools import ToolDef


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """A single event from a streaming provider response."""

    type: str  # "text_delta", "tool_use_start", "tool_use_delta", "tool_use_end", "message_end"
    text: str | None = None
    tool_use_id: str | None = None
    tool_name: str | None = None
    tool_args_json: str | None = None
    stop_reason: str | None = None
    usage: dict[str, int] | None = None


@dataclass(frozen=True, slots=True)
class NativeToolCall:
    """A structured tool call already lexed by the transport layer.

    ``arguments`` is a dict once the call is complete; while it is still
    streaming it may be the raw JSON text received so far.
    """

    id: str
    name: str
    arguments: dict[str, Any] | str = field(default_factory=dict)


@dataclass(slots=True)
class ChatMessage:
    """A message in the chat history (provider-agnostic format)."""

    role: str  # "user", "assistant", "system"
    content: str | list[dict[str, Any]] = ""
    tool_use_id: str | None = None
    tool_name: str | None = None


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """What the active provider/model can carry."""

    provider: str = "anthropic"
    model: str = ""
    supports_native_tools: bool = True
    supports_images: bool = False


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement."""

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> Any:
        """Stream a chat completion. Returns an async iterator of StreamEvent."""
        ...

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...
