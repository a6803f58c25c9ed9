"""Basic text output for task messages."""

from __future__ import annotations

import sys

from agentcore.types.messages import (
    Message,
    Result,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)


def describe_args(name: str, args: dict) -> str:
    """The one argument worth showing next to a tool name."""
    if name == "execute_command" and "command" in args:
        return f" $ {args['command']}"
    if "path" in args:
        return f" {args['path']}"
    if name == "read_file" and args.get("files"):
        return " " + ", ".join(str(f.get("path", "?")) for f in args["files"])
    if name == "search_files" and "regex" in args:
        return f" /{args['regex']}/"
    if name == "switch_mode" and "mode_slug" in args:
        return f" -> {args['mode_slug']}"
    if name == "new_task" and "mode" in args:
        return f" [{args['mode']}]"
    return ""


def print_message(msg: Message) -> None:
    """Print a message to stdout in basic text mode."""
    match msg:
        case TextMessage(text=t, is_partial=True):
            sys.stdout.write(t)
            sys.stdout.flush()
        case TextMessage(is_partial=False):
            pass  # Full text already printed via partials
        case ToolUse(name=name, args=args, partial=True):
            print(f"[Streaming: {name}]{describe_args(name, args)}", file=sys.stderr)
        case ToolUse(name=name, args=args):
            print(f"\n[Tool: {name}]{describe_args(name, args)}", file=sys.stderr)
        case ToolResult(content=content, is_error=is_error):
            if is_error:
                print(f"[Error] {content[:200]}", file=sys.stderr)
            elif len(content) > 200:
                print(f"[Result] {content[:200]}...", file=sys.stderr)
        case Result(session_id=sid, turns=turns, tool_calls=tc, total_tokens=tokens, stop_reason=reason):
            print(file=sys.stderr)
            parts = [f"Task: {sid}", f"Turns: {turns}", f"Tools: {tc}"]
            if tokens:
                parts.append(f"Tokens: {tokens:,}")
            if reason != "completed":
                parts.append(f"Stopped: {reason}")
            print(" | ".join(parts), file=sys.stderr)
        case SystemEvent(type="mode_switch", data=data):
            print(f"\n[Mode: {data.get('from')} -> {data.get('to')}]", file=sys.stderr)
        case SystemEvent(type="mistake_limit", data=data):
            print(f"\n[Stalled] {data.get('message', '')}", file=sys.stderr)
        case SystemEvent(type="parse_error", data=data):
            print(f"[Parse error] {data.get('message', '')}", file=sys.stderr)
        case SystemEvent():
            pass  # Other lifecycle events are not shown in basic output
