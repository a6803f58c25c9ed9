"""Session information types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """Metadata about a stored task session."""

    session_id: str
    created_at: datetime
    updated_at: datetime
    cwd: str
    mode: str
    tool_protocol: str | None = None
    turns: int = 0
    total_tokens: int = 0
    parent_id: str | None = None  # Set for sub-task sessions
