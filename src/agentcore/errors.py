"""Exception types raised inside tool dispatch.

All of these are recoverable: the executor converts them into
transcript-visible tool results and never lets them reach the task loop.
"""

from __future__ import annotations


class ToolError(Exception):
    """Base class for per-invocation tool failures."""


class MissingParameterError(ToolError):
    """A required parameter was absent from the invocation."""

    def __init__(self, tool_name: str, param_name: str) -> None:
        super().__init__(f"Missing value for required parameter '{param_name}'")
        self.tool_name = tool_name
        self.param_name = param_name


class ToolValidationError(ToolError):
    """Parameters were present but unusable (bad range, no match, conflicts)."""


class FileRestrictionError(ToolValidationError):
    """The active mode may only edit files matching a pattern."""

    def __init__(self, mode: str, pattern: str, path: str, description: str | None = None) -> None:
        hint = f" ({description})" if description else ""
        super().__init__(
            f"This mode ({mode}) can only edit files matching pattern: {pattern}{hint}. "
            f"Got: {path}"
        )
        self.mode = mode
        self.pattern = pattern
        self.path = path


class AccessDeniedError(ToolError):
    """The target is outside the workspace, ignored, or write-protected."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Access to {path} is blocked: {reason}")
        self.path = path
        self.reason = reason


class TaskAborted(Exception):
    """Raised at a suspension point once the task's cancellation token fires."""


class ToolNotAllowedError(ToolValidationError):
    """The tool exists but the active mode does not expose it."""

    def __init__(self, tool_name: str, mode: str) -> None:
        super().__init__(f"Tool '{tool_name}' is not allowed in {mode} mode")
        self.tool_name = tool_name
        self.mode = mode


class MistakeLimitExceeded(Exception):
    """A task stopped after too many consecutive mistakes."""

    def __init__(self, count: int, task_id: str = "") -> None:
        super().__init__(f"Task {task_id or '?'} stopped after {count} consecutive mistakes")
        self.count = count
        self.task_id = task_id
