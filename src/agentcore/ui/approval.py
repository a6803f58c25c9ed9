"""Rich-formatted approval prompt for tool calls."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from agentcore.permissions.approval import ApprovalResponse, describe_tool_call, parse_answer


def print_diff(console: Console, diff: str) -> None:
    """Print unified diff lines with color highlighting."""
    for line in diff.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            console.print(Text(line, style="bold"))
        elif line.startswith("@@"):
            console.print(Text(line, style="cyan"))
        elif line.startswith("+"):
            console.print(Text(line, style="green"))
        elif line.startswith("-"):
            console.print(Text(line, style="red"))
        else:
            console.print(Text(line, style="dim"))


class RichApprovalCallback:
    """Rich-formatted interactive approval prompt."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    async def ask(
        self,
        kind: str,
        preview_json: str,
        images: Sequence[bytes] | None = None,
        is_protected: bool = False,
    ) -> ApprovalResponse:
        """Show a styled prompt and wait for the answer."""
        preview = json.loads(preview_json)
        if kind == "followup":
            return await self._ask_followup(preview)

        tool_name = preview.get("tool", kind)
        description = describe_tool_call(tool_name, preview.get("params", {}))
        color = "#f87171" if is_protected else "#fbbf24"
        label = f" ◆ {tool_name}{' (protected)' if is_protected else ''} "

        self._console.print()
        self._console.print(Panel(
            Text(description, style="#94a3b8"),
            title=Text(label, style=f"bold {color}"),
            border_style=color,
            expand=False,
            padding=(0, 1),
        ))
        if diff := preview.get("diff"):
            print_diff(self._console, diff)
        if images:
            self._console.print(f"[#7c7c8a]({len(images)} image(s) attached)[/#7c7c8a]")

        prompt_text = f"[bold {color}]Allow?[/bold {color}] [#7c7c8a](y/n/feedback)[/#7c7c8a] › "
        answer = await self._read(prompt_text)
        return parse_answer(answer) if answer is not None else ApprovalResponse(response="no")

    async def _ask_followup(self, preview: dict) -> ApprovalResponse:
        question = str(preview.get("question", ""))
        suggestions = [str(s) for s in preview.get("suggest", [])]
        body = Text(question, style="#e2e8f0")
        for i, suggestion in enumerate(suggestions, start=1):
            body.append(f"\n  {i}. {suggestion}", style="#94a3b8")

        self._console.print()
        self._console.print(Panel(
            body,
            title=Text(" ? question ", style="bold #60a5fa"),
            border_style="#60a5fa",
            expand=False,
            padding=(0, 1),
        ))
        answer = await self._read("[bold #60a5fa]Answer[/bold #60a5fa] › ")
        if answer is None or not answer.strip():
            return ApprovalResponse(response="no")
        answer = answer.strip()
        if answer.isdigit() and 1 <= int(answer) <= len(suggestions):
            answer = suggestions[int(answer) - 1]
        return ApprovalResponse(response="message", text=answer)

    async def _read(self, prompt_text: str) -> str | None:
        loop = asyncio.get_running_loop()
        try:
            self._console.print(prompt_text, end="")
            return await loop.run_in_executor(None, lambda: input(""))
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return None
