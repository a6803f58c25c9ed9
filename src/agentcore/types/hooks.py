"""Hook types for the task lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

BLOCKING_EXIT_CODE = 2


class HookEvent(Enum):
    """Events that can trigger hooks."""

    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"
    TASK_START = "task_start"
    TASK_COMPLETE = "task_complete"
    TASK_ABORT = "task_abort"
    MODE_SWITCH = "mode_switch"


@dataclass(frozen=True, slots=True)
class Hook:
    """A hook that runs a shell command on an event."""

    event: HookEvent | str
    command: str
    matcher: str | None = None  # "read_file|write_to_file", "*" or glob
    timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class HookResult:
    """Result from running a hook."""

    success: bool
    output: str = ""
    error: str | None = None
    exit_code: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def blocks(self) -> bool:
        """A pre-tool hook exiting with code 2 vetoes the tool."""
        return self.exit_code == BLOCKING_EXIT_CODE
