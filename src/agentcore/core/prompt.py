"""System prompt assembly for a task turn."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from agentcore.protocol.detector import ToolProtocol
from agentcore.types.modes import Mode
from agentcore.types.tools import ToolDef, ToolParam

TOOL_USE_RULES = """\
You accomplish the task step by step. Use one tool per message and wait for \
its result before deciding on the next step. Every response must use a tool. \
When the task is done, present the outcome with attempt_completion. When you \
cannot proceed without information only the user has, use ask_followup_question.\
"""

NATIVE_SECTION = "Call tools through the native tool-calling interface; never write tool calls as text."

XML_PREAMBLE = """\
Tool calls are written as XML in your response. The tool name is the outer \
tag and each parameter is a child tag:

<tool_name>
<parameter_name>value</parameter_name>
</tool_name>

Only the first tool call in a message is executed.\
"""


def _param_line(param: ToolParam) -> str:
    flag = "required" if param.required else "optional"
    line = f"- {param.name}: ({flag}) {param.description}"
    if param.enum:
        line += f" One of: {', '.join(param.enum)}."
    return line


def _usage(definition: ToolDef) -> str:
    name = definition.name.value
    lines = [f"<{name}>"]
    for param in definition.parameters:
        if param.type == "array" and param.items is not None:
            item = param.items.name
            lines.append(f"<{param.name}><{item}>...</{item}></{param.name}>")
        else:
            lines.append(f"<{param.name}>{param.name} here</{param.name}>")
    lines.append(f"</{name}>")
    return "\n".join(lines)


def describe_xml_tools(definitions: Iterable[ToolDef]) -> str:
    """Human-readable tool reference for the XML protocol."""
    sections = [XML_PREAMBLE]
    for definition in definitions:
        parts = [f"## {definition.name.value}", f"Description: {definition.description}"]
        if definition.parameters:
            parts.append("Parameters:")
            parts.extend(_param_line(p) for p in definition.parameters)
        parts.append("Usage:")
        parts.append(_usage(definition))
        sections.append("\n".join(parts))
    return "\n\n".join(sections)


def build_system_prompt(
    mode: Mode,
    definitions: Sequence[ToolDef],
    protocol: ToolProtocol,
    cwd: str | Path,
    modes: Iterable[Mode] = (),
) -> str:
    # Concatenated rather than str.format()ed: role text and custom
    # instructions come from user config and may contain braces.
    tools = NATIVE_SECTION if protocol is ToolProtocol.NATIVE else describe_xml_tools(definitions)
    parts = [
        mode.role_definition,
        "====\n\nTOOL USE\n\n" + TOOL_USE_RULES + "\n\n" + tools,
    ]
    listed = [f"- {m.slug}: {m.name}. {m.when_to_use}".rstrip() for m in modes]
    if listed:
        parts.append("====\n\nMODES\n\n" + "\n".join(listed))
    parts.append(f"Current mode: {mode.slug}\nWorking directory: {cwd}")
    if mode.custom_instructions:
        parts.append("====\n\nINSTRUCTIONS\n\n" + mode.custom_instructions)
    return "\n\n".join(parts)
