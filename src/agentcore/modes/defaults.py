"""Built-in mode definitions."""

from __future__ import annotations

from agentcore.types.modes import GroupEntry, Mode
from agentcore.types.tools import ToolGroup

_READ = GroupEntry(ToolGroup.READ)
_EDIT = GroupEntry(ToolGroup.EDIT)
_BROWSER = GroupEntry(ToolGroup.BROWSER)
_COMMAND = GroupEntry(ToolGroup.COMMAND)
_MCP = GroupEntry(ToolGroup.MCP)

DEFAULT_MODES: tuple[Mode, ...] = (
    Mode(
        slug="architect",
        name="Architect",
        role_definition=(
            "You are a technical leader who plans before building: gather context, "
            "then write a concrete, reviewable plan."
        ),
        groups=(
            _READ,
            GroupEntry(ToolGroup.EDIT, file_regex=r"\.md$", description="Markdown files only"),
            _BROWSER,
            _MCP,
        ),
        when_to_use="Planning, design and breaking a problem down before implementation.",
    ),
    Mode(
        slug="code",
        name="Code",
        role_definition=(
            "You are a highly skilled software engineer with broad knowledge of "
            "languages, frameworks and best practices."
        ),
        groups=(_READ, _EDIT, _BROWSER, _COMMAND, _MCP),
        when_to_use="Writing, modifying or refactoring code.",
    ),
    Mode(
        slug="ask",
        name="Ask",
        role_definition=(
            "You are a knowledgeable technical assistant who answers questions "
            "without changing the codebase."
        ),
        groups=(_READ, _BROWSER, _MCP),
        when_to_use="Explanations and questions that need no changes.",
    ),
    Mode(
        slug="debug",
        name="Debug",
        role_definition=(
            "You are an expert debugger: form hypotheses, add diagnostics, "
            "confirm the cause, then fix it."
        ),
        groups=(_READ, _EDIT, _BROWSER, _COMMAND, _MCP),
        when_to_use="Tracking down errors and unexpected behaviour.",
    ),
    Mode(
        slug="orchestrator",
        name="Orchestrator",
        role_definition=(
            "You coordinate complex work by delegating sub-goals to sub-tasks in "
            "the most suitable modes."
        ),
        groups=(),
        when_to_use="Multi-step projects that span several specialities.",
    ),
)
