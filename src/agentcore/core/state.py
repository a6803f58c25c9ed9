"""Per-task mutable state and the loop's state machine states."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum


class LoopState(Enum):
    """Where a TaskLoop is in its turn cycle."""

    AWAITING_MODEL_TURN = "awaiting_model_turn"
    PARSING_INVOCATION = "parsing_invocation"
    VALIDATING_INVOCATION = "validating_invocation"
    AWAITING_APPROVAL = "awaiting_approval"
    EXECUTING = "executing"
    RECONCILING_TRANSCRIPT = "reconciling_transcript"
    COMPLETED = "completed"
    ABORTED = "aborted"
    MISTAKE_LIMIT_REACHED = "mistake_limit_reached"
    MAX_TURNS = "max_turns"


@dataclass(slots=True)
class TaskState:
    """Counters and flags owned by one TaskLoop.

    Only the owning loop writes these; tools go through the turn context.
    """

    consecutive_mistake_count: int = 0
    did_reject_tool: bool = False
    did_edit_file: bool = False
    did_complete: bool = False
    tool_usage: Counter[str] = field(default_factory=Counter)
    tool_errors: Counter[str] = field(default_factory=Counter)
    todos: list[dict[str, str]] = field(default_factory=list)

    def snapshot(self) -> TaskState:
        """Independent copy for read-only consumers."""
        return replace(
            self,
            tool_usage=Counter(self.tool_usage),
            tool_errors=Counter(self.tool_errors),
            todos=[dict(t) for t in self.todos],
        )
