"""Sub-agent lifecycle manager."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from agentcore.errors import MistakeLimitExceeded, TaskAborted
from agentcore.types.messages import Message, Result, TextMessage, ToolUse

if TYPE_CHECKING:
    from agentcore.core.loop import TaskLoop

logger = logging.getLogger(__name__)

OnMessage = Callable[[Message], None]


def _is_partial(msg: Message) -> bool:
    match msg:
        case TextMessage(is_partial=True) | ToolUse(partial=True):
            return True
        case _:
            return False


class SubtaskManager:
    """Runs sub-agents for ``new_task``.

    Each sub-agent is a child TaskLoop with its own TaskState and its own
    session (linked to the parent through ``parent_id``). It shares the
    parent's collaborators and cancellation token, so aborting the parent
    aborts the child.
    """

    def __init__(self) -> None:
        self._children: dict[str, str] = {}  # child task id -> parent task id

    @property
    def children(self) -> dict[str, str]:
        return dict(self._children)

    async def run(
        self,
        parent: TaskLoop,
        mode: str,
        message: str,
        *,
        on_message: OnMessage | None = None,
    ) -> str:
        """Run a sub-agent to completion and return its result text.

        Raises:
            MistakeLimitExceeded: the sub-agent stalled at its mistake limit.
            TaskAborted: the task was cancelled while the sub-agent ran.
        """
        child = parent.child(mode)
        self._children[child.task_id] = parent.task_id
        logger.info("Task %s spawned sub-task %s in %s mode", parent.task_id, child.task_id, mode)

        result: Result | None = None
        async for msg in child.run(message):
            if isinstance(msg, Result):
                result = msg
            elif on_message is not None and not _is_partial(msg):
                on_message(msg)

        if result is None:
            return "(No response from sub-task)"
        match result.stop_reason:
            case "mistake_limit":
                raise MistakeLimitExceeded(child.task_state.consecutive_mistake_count, child.task_id)
            case "aborted":
                raise TaskAborted(parent.cancel_token.reason or "sub-task aborted")
        return result.text or "(No response from sub-task)"

    async def run_parallel(
        self,
        parent: TaskLoop,
        tasks: list[tuple[str, str]],
    ) -> list[str]:
        """Run several sub-agents concurrently.

        Args:
            parent: The task the sub-agents belong to.
            tasks: List of (mode, message) tuples.

        Returns:
            Result texts, one per task (in order).
        """
        coros = [self.run(parent, mode, message) for mode, message in tasks]
        return list(await asyncio.gather(*coros))
