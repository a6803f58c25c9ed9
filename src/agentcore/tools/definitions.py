"""Static table of tool definitions.

Built once at import time; never mutated. Descriptions are kept short, the
long-form prompt text for each tool belongs to the host.
"""

from __future__ import annotations

from agentcore.types.config import AvailabilityContext
from agentcore.types.tools import ApprovalStyle, ToolDef, ToolGroup, ToolName, ToolParam

FILE_EDIT_EXPERIMENT = "fileEdit"

# ---------------------------------------------------------------------------
# Availability predicates
# ---------------------------------------------------------------------------


def _index_ready(ctx: AvailabilityContext) -> bool:
    return ctx.capabilities.code_index_ready


def _browser_usable(ctx: AvailabilityContext) -> bool:
    return ctx.settings.browser_tool_enabled and ctx.provider.supports_images


def _diff_strategy(ctx: AvailabilityContext) -> bool:
    return ctx.settings.diff_enabled and not ctx.settings.experiment(FILE_EDIT_EXPERIMENT)


def _file_edit_strategy(ctx: AvailabilityContext) -> bool:
    return ctx.settings.experiment(FILE_EDIT_EXPERIMENT)


def _todo_enabled(ctx: AvailabilityContext) -> bool:
    return ctx.settings.todo_list_enabled


def _mcp_connected(ctx: AvailabilityContext) -> bool:
    return bool(ctx.capabilities.mcp_servers)


def _web_fetch_enabled(ctx: AvailabilityContext) -> bool:
    return ctx.settings.web_fetch_enabled


# ---------------------------------------------------------------------------
# Shared parameter shapes
# ---------------------------------------------------------------------------

_PATH = ToolParam(
    name="path",
    type="string",
    description="Path relative to the workspace root.",
)

_FILE_ENTRY = ToolParam(
    name="file",
    type="object",
    description="One file to read.",
    properties=(
        _PATH,
        ToolParam(
            name="line_range",
            type="array",
            description="Inclusive 1-based line ranges such as '10-40'.",
            required=False,
            items=ToolParam(name="line_range", type="string", description="A range 'start-end'."),
        ),
    ),
)

_DIFF_ENTRY = ToolParam(
    name="file",
    type="object",
    description="One file and the SEARCH/REPLACE blocks to apply to it.",
    properties=(
        _PATH,
        ToolParam(name="diff", type="string", description="SEARCH/REPLACE blocks."),
    ),
)


DEFINITIONS: tuple[ToolDef, ...] = (
    # -- read ---------------------------------------------------------------
    ToolDef(
        name=ToolName.READ_FILE,
        description="Read one or more files, optionally limited to line ranges.",
        group=ToolGroup.READ,
        approval=ApprovalStyle.BATCH,
        parameters=(
            ToolParam(
                name="path", type="string", required=False,
                description="Single file to read (use 'files' for several).",
            ),
            ToolParam(
                name="start_line", type="integer", required=False,
                description="1-based first line when reading a single path.",
            ),
            ToolParam(
                name="end_line", type="integer", required=False,
                description="1-based last line when reading a single path.",
            ),
            ToolParam(
                name="files", type="array", required=False, items=_FILE_ENTRY,
                description="Files to read in one call.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.LIST_FILES,
        description="List files and directories under a path.",
        group=ToolGroup.READ,
        parameters=(
            _PATH,
            ToolParam(
                name="recursive", type="boolean", required=False, default=False,
                description="List the whole tree instead of one level.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.SEARCH_FILES,
        description="Regex search over file contents under a directory.",
        group=ToolGroup.READ,
        parameters=(
            _PATH,
            ToolParam(name="regex", type="string", description="Regular expression to search for."),
            ToolParam(
                name="file_pattern", type="string", required=False,
                description="Glob restricting which files are searched, e.g. '*.py'.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.CODEBASE_SEARCH,
        description="Semantic search over the indexed codebase.",
        group=ToolGroup.READ,
        available=_index_ready,
        parameters=(
            ToolParam(name="query", type="string", description="What to look for."),
            ToolParam(
                name="path", type="string", required=False,
                description="Limit results to this directory.",
            ),
        ),
    ),
    # -- edit ---------------------------------------------------------------
    ToolDef(
        name=ToolName.WRITE_TO_FILE,
        description="Create a file or replace its entire content.",
        group=ToolGroup.EDIT,
        edits_files=True,
        parameters=(
            _PATH,
            ToolParam(name="content", type="string", description="Complete new file content."),
            ToolParam(
                name="line_count", type="integer", required=False,
                description="Number of lines in content, used to detect truncated output.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.APPLY_DIFF,
        description="Apply SEARCH/REPLACE blocks to one or more files.",
        group=ToolGroup.EDIT,
        available=_diff_strategy,
        edits_files=True,
        approval=ApprovalStyle.PER_ITEM,
        parameters=(
            ToolParam(name="path", type="string", required=False, description="Target file."),
            ToolParam(name="diff", type="string", required=False, description="SEARCH/REPLACE blocks."),
            ToolParam(
                name="files", type="array", required=False, items=_DIFF_ENTRY,
                description="Several files, each with its own blocks.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.EDIT_FILE,
        description="Replace an exact string in a file.",
        group=ToolGroup.EDIT,
        available=_file_edit_strategy,
        edits_files=True,
        parameters=(
            _PATH,
            ToolParam(
                name="old_string", type="string", required=False, default="",
                description="Exact text to replace. Empty creates a new file with new_string.",
            ),
            ToolParam(
                name="new_string", type="string", required=False, default="",
                description="Replacement text. Empty removes old_string.",
            ),
            ToolParam(
                name="expected_replacements", type="integer", required=False, default=1,
                description="How many occurrences must match.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.DELETE_FILE,
        description="Delete a file from the workspace.",
        group=ToolGroup.EDIT,
        destructive=True,
        edits_files=True,
        parameters=(_PATH,),
    ),
    # -- command --------------------------------------------------------------
    ToolDef(
        name=ToolName.EXECUTE_COMMAND,
        description="Run a shell command in the workspace.",
        group=ToolGroup.COMMAND,
        parameters=(
            ToolParam(name="command", type="string", description="The command line to run."),
            ToolParam(
                name="cwd", type="string", required=False,
                description="Working directory relative to the workspace root.",
            ),
            ToolParam(
                name="timeout", type="integer", required=False,
                description="Timeout in milliseconds.",
            ),
        ),
    ),
    # -- browser ------------------------------------------------------------
    ToolDef(
        name=ToolName.BROWSER_ACTION,
        description="Drive a headless browser session.",
        group=ToolGroup.BROWSER,
        available=_browser_usable,
        parameters=(
            ToolParam(
                name="action", type="enum",
                enum=("launch", "click", "hover", "type", "scroll_down", "scroll_up", "resize", "close"),
                description="Browser action to perform.",
            ),
            ToolParam(name="url", type="string", required=False, description="URL for launch."),
            ToolParam(name="coordinate", type="string", required=False, description="'x,y' for click/hover."),
            ToolParam(name="text", type="string", required=False, description="Text for type."),
            ToolParam(name="size", type="string", required=False, description="'w,h' for resize."),
        ),
    ),
    ToolDef(
        name=ToolName.WEB_FETCH,
        description="Fetch a URL and return its text content.",
        group=ToolGroup.BROWSER,
        available=_web_fetch_enabled,
        parameters=(
            ToolParam(name="url", type="string", description="http(s) URL to fetch."),
            ToolParam(
                name="max_length", type="integer", required=False, default=50_000,
                description="Maximum characters returned.",
            ),
        ),
    ),
    # -- mcp ----------------------------------------------------------------
    ToolDef(
        name=ToolName.USE_MCP_TOOL,
        description="Call a tool exposed by a connected MCP server.",
        group=ToolGroup.MCP,
        available=_mcp_connected,
        parameters=(
            ToolParam(name="server_name", type="string", description="Connected server."),
            ToolParam(name="tool_name", type="string", description="Tool on that server."),
            ToolParam(
                name="arguments", type="object", required=False,
                description="JSON arguments for the tool.",
            ),
        ),
    ),
    # -- always available -----------------------------------------------------
    ToolDef(
        name=ToolName.ASK_FOLLOWUP_QUESTION,
        description="Ask the user a clarifying question.",
        group=ToolGroup.ALWAYS,
        always_safe=True,
        parameters=(
            ToolParam(name="question", type="string", description="The question."),
            ToolParam(
                name="follow_up", type="array", required=False,
                items=ToolParam(name="suggest", type="string", description="A suggested answer."),
                description="Suggested answers.",
            ),
        ),
    ),
    ToolDef(
        name=ToolName.ATTEMPT_COMPLETION,
        description="Present the final result of the task.",
        group=ToolGroup.ALWAYS,
        always_safe=True,
        parameters=(
            ToolParam(name="result", type="string", description="Summary of what was done."),
        ),
    ),
    ToolDef(
        name=ToolName.SWITCH_MODE,
        description="Switch the task to another mode.",
        group=ToolGroup.ALWAYS,
        parameters=(
            ToolParam(name="mode_slug", type="string", description="Target mode."),
            ToolParam(name="reason", type="string", required=False, description="Why."),
        ),
    ),
    ToolDef(
        name=ToolName.NEW_TASK,
        description="Delegate a sub-goal to a sub-agent running in its own task.",
        group=ToolGroup.ALWAYS,
        parameters=(
            ToolParam(name="mode", type="string", description="Mode for the sub-task."),
            ToolParam(name="message", type="string", description="Instructions for the sub-task."),
        ),
    ),
    ToolDef(
        name=ToolName.UPDATE_TODO_LIST,
        description="Replace the task's todo list.",
        group=ToolGroup.ALWAYS,
        available=_todo_enabled,
        parameters=(
            ToolParam(
                name="todos", type="string",
                description="Markdown checklist, one '[ ]', '[-]' or '[x]' item per line.",
            ),
        ),
    ),
)
