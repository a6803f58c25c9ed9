"""Decide whether tool calls travel natively or as XML in text."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from agentcore.types.config import TaskSettings
from agentcore.types.providers import ChatMessage, ProviderSettings

logger = logging.getLogger(__name__)


class ToolProtocol(Enum):
    """Wire format for tool calls."""

    NATIVE = "native"
    XML = "xml"


# Providers whose transport cannot carry structured tool calls.
XML_ONLY_PROVIDERS = frozenset({"human-relay", "fake-ai", "vscode-lm"})


def resolve_protocol(
    provider: ProviderSettings,
    locked: ToolProtocol | None = None,
    settings: TaskSettings | None = None,
) -> ToolProtocol:
    """Pick the protocol for the next turn.

    Precedence: task lock, then providers that force XML, then an explicit
    preference in settings, then native.
    """
    if locked is not None:
        return locked
    if provider.provider in XML_ONLY_PROVIDERS or not provider.supports_native_tools:
        return ToolProtocol.XML
    if settings is not None and settings.preferred_protocol:
        try:
            return ToolProtocol(settings.preferred_protocol)
        except ValueError:
            logger.warning("Ignoring unknown tool protocol %r", settings.preferred_protocol)
    return ToolProtocol.NATIVE


def detect_from_history(messages: Sequence[ChatMessage]) -> ToolProtocol | None:
    """Infer the protocol a transcript was recorded with.

    The most recent assistant message holding a ``tool_use`` block decides,
    using that message's last such block: an ``id`` means native, no ``id``
    means XML. Returns None when no tool was ever called.
    """
    for message in reversed(messages):
        if message.role != "assistant" or not isinstance(message.content, list):
            continue
        blocks = [b for b in message.content if isinstance(b, dict) and b.get("type") == "tool_use"]
        if not blocks:
            continue
        return ToolProtocol.NATIVE if blocks[-1].get("id") else ToolProtocol.XML
    return None
