"""Standard transcript texts for tool outcomes."""

from __future__ import annotations

from collections.abc import Sequence


def tool_error(message: str) -> str:
    return f"The tool execution failed with the following error:\n<error>\n{message}\n</error>"


def missing_param(tool_name: str, param_name: str) -> str:
    return tool_error(
        f"Missing value for required parameter '{param_name}'. "
        f"Please retry {tool_name} with a complete response."
    )


def invalid_tool(tool_name: str, detail: str) -> str:
    return tool_error(f"Invalid {tool_name} call: {detail}")


def unknown_tool(tool_name: str | None) -> str:
    if tool_name:
        return tool_error(f"Unknown tool '{tool_name}'.")
    return tool_error("The tool call could not be parsed.")


def tool_not_allowed(tool_name: str, mode_slug: str) -> str:
    return tool_error(
        f"Tool '{tool_name}' is not allowed in {mode_slug} mode. "
        "Use a tool available in this mode or switch modes first."
    )


def access_denied(path: str, reason: str) -> str:
    return tool_error(f"Access to {path} is blocked: {reason}.")


def policy_denied(tool_name: str) -> str:
    return tool_error(f"{tool_name} is blocked by the auto-approval policy.")


def hook_blocked(tool_name: str, reason: str) -> str:
    detail = f": {reason}" if reason else "."
    return tool_error(f"{tool_name} was blocked by a pre-tool hook{detail}")


def denied_by_user(feedback: str | None = None) -> str:
    if feedback:
        return f"The user denied this operation and provided the following feedback:\n<feedback>\n{feedback}\n</feedback>"
    return "The user denied this operation."


def approved_with_feedback(feedback: str) -> str:
    return f"The user approved this operation and provided the following context:\n<feedback>\n{feedback}\n</feedback>"


def no_tools_used(protocol: str) -> str:
    hint = (
        "Use the native tool-calling interface."
        if protocol == "native"
        else "Wrap exactly one tool call in its XML tags, e.g. <attempt_completion><result>...</result></attempt_completion>."
    )
    return (
        "[ERROR] You did not use a tool in your previous response! Please retry with a tool use.\n\n"
        f"{hint}\n\n"
        "If the task is finished, use attempt_completion. If you need information "
        "from the user, use ask_followup_question."
    )


def repeated_call(tool_name: str) -> str:
    return tool_error(
        f"{tool_name} was called with identical parameters several times in a row. "
        "Try a different approach."
    )


def too_many_mistakes(count: int) -> str:
    return (
        f"The model has made {count} consecutive mistakes without completing a tool "
        "successfully. Provide guidance to continue (for example, rephrase the task "
        "or break it into smaller steps)."
    )


def ignored_tool_blocks(names: Sequence[str]) -> str:
    listed = ", ".join(names)
    return (
        f"Only one tool may be used per message. The following tool calls were not executed: {listed}. "
        "Wait for the result of the first tool before calling another."
    )


def aborted(reason: str) -> str:
    return f"Task aborted: {reason}."


def tool_skipped(tool_name: str, reason: str) -> str:
    return f"Skipping tool {tool_name}: {reason}"
