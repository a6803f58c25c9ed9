"""Hook context builder for event data."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentcore.types.hooks import HookEvent


@dataclass(slots=True)
class HookContext:
    """Context passed to hooks when they fire."""

    event: HookEvent
    tool_name: str | None = None
    tool_args: dict[str, Any] = field(default_factory=dict)
    result: str | None = None
    is_error: bool = False
    task_id: str = ""
    mode: str = ""
    cwd: str = ""

    def to_json(self) -> str:
        """Payload written to the hook's stdin."""
        return json.dumps(
            {
                "event": self.event.value,
                "tool_name": self.tool_name,
                "tool_args": self.tool_args,
                "result": self.result,
                "is_error": self.is_error,
                "task_id": self.task_id,
                "mode": self.mode,
                "cwd": self.cwd,
            },
            default=str,
        )


def build_hook_context(
    event: HookEvent,
    *,
    tool_name: str | None = None,
    tool_args: dict[str, Any] | None = None,
    result: str | None = None,
    is_error: bool = False,
    task_id: str = "",
    mode: str = "",
    cwd: str | Path = "",
) -> HookContext:
    """Build a HookContext for a given event."""
    return HookContext(
        event=event,
        tool_name=tool_name,
        tool_args=tool_args or {},
        result=result,
        is_error=is_error,
        task_id=task_id,
        mode=mode,
        cwd=str(cwd),
    )
