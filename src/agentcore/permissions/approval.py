"""ApprovalGate and the host-side approval callback protocol."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import anyio

from agentcore.core.cancellation import CancellationToken
from agentcore.errors import TaskAborted

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApprovalResponse:
    """What the host UI answered."""

    response: str  # "yes", "no" or "message"
    text: str | None = None
    images: tuple[bytes, ...] = ()


@dataclass(frozen=True, slots=True)
class ApprovalOutcome:
    """Gate decision handed back to the executor."""

    approved: bool
    feedback_text: str | None = None
    feedback_images: tuple[bytes, ...] = ()
    auto: bool = False


@runtime_checkable
class ApprovalCallback(Protocol):
    """Protocol for asking the user about a tool call."""

    async def ask(
        self,
        kind: str,
        preview_json: str,
        images: Sequence[bytes] | None = None,
        is_protected: bool = False,
    ) -> ApprovalResponse:
        """Show the preview and wait for the user's answer."""
        ...


def parse_answer(answer: str) -> ApprovalResponse:
    """``y``/``yes`` approves, ``n``/``no``/empty denies, anything else is feedback."""
    answer = answer.strip()
    if answer.lower() in ("y", "yes"):
        return ApprovalResponse(response="yes")
    if answer.lower() in ("n", "no", ""):
        return ApprovalResponse(response="no")
    return ApprovalResponse(response="message", text=answer)


def describe_tool_call(tool_name: str, args: dict[str, Any]) -> str:
    """Build a human-readable one-line description of a tool call."""
    if tool_name == "execute_command" and "command" in args:
        return f"Run command: {args['command']}"
    if tool_name == "write_to_file" and "path" in args:
        content = str(args.get("content", ""))
        lines = content.count("\n") + 1 if content else 0
        return f"Write {args['path']} ({lines} lines)"
    if tool_name in ("apply_diff", "edit_file") and "path" in args:
        return f"Edit {args['path']}"
    if tool_name == "delete_file" and "path" in args:
        return f"Delete {args['path']}"
    if tool_name == "read_file":
        paths = [f.get("path", "?") for f in args.get("files", ())] or [args.get("path", "?")]
        return f"Read {', '.join(str(p) for p in paths)}"
    if tool_name in ("list_files", "search_files") and "path" in args:
        return f"Search {args['path']}"
    if tool_name == "new_task":
        return f"Start sub-task in {args.get('mode', '?')} mode"
    if tool_name == "switch_mode":
        return f"Switch to {args.get('mode_slug', '?')} mode"
    if tool_name == "web_fetch" and "url" in args:
        return f"Fetch URL: {args['url']}"
    if tool_name == "use_mcp_tool":
        return f"MCP tool: {args.get('server_name', '?')}/{args.get('tool_name', '?')}"
    # Fallback: tool name + truncated args
    args_str = json.dumps(args, default=str)
    if len(args_str) > 80:
        args_str = args_str[:77] + "..."
    return f"{tool_name}({args_str})"


class ApprovalGate:
    """Asks the host whether a tool invocation may proceed.

    ``auto_approve`` is the caller's policy decision and is honoured unless
    the operation is destructive. Without a callback every request that
    would need a human is denied.
    """

    def __init__(
        self,
        callback: ApprovalCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> None:
        self._callback = callback
        self._cancel = cancel or CancellationToken()

    @property
    def interactive(self) -> bool:
        return self._callback is not None

    async def request_approval(
        self,
        preview: dict[str, Any],
        *,
        is_protected: bool = False,
        auto_approve: bool = False,
        destructive: bool = False,
        images: Sequence[bytes] = (),
    ) -> ApprovalOutcome:
        self._cancel.raise_if_cancelled()
        if auto_approve and not destructive:
            return ApprovalOutcome(approved=True, auto=True)
        if self._callback is None:
            logger.info("No approval callback; denying %s", preview.get("tool"))
            return ApprovalOutcome(approved=False)

        preview_json = json.dumps(preview, default=str)
        response = await self._ask_cancellable("tool", preview_json, list(images), is_protected)
        return ApprovalOutcome(
            approved=response.response == "yes",
            feedback_text=response.text or None,
            feedback_images=tuple(response.images),
        )

    async def ask_followup(self, question: str, suggestions: Sequence[str] = ()) -> str | None:
        """Put a question to the user; None when nobody can answer."""
        self._cancel.raise_if_cancelled()
        if self._callback is None:
            return None
        payload = json.dumps({"question": question, "suggest": list(suggestions)})
        response = await self._ask_cancellable("followup", payload, [], False)
        if response.text:
            return response.text
        return None if response.response == "no" else response.response

    async def _ask_cancellable(
        self, kind: str, preview_json: str, images: list[bytes], is_protected: bool,
    ) -> ApprovalResponse:
        """Await the callback, giving up as soon as the task is cancelled."""
        assert self._callback is not None
        callback = self._callback
        answers: list[ApprovalResponse] = []

        async with anyio.create_task_group() as tg:

            async def _ask() -> None:
                try:
                    answers.append(await callback.ask(kind, preview_json, images, is_protected))
                except Exception as e:  # noqa: BLE001
                    logger.warning("Approval callback failed: %s", e)
                    answers.append(ApprovalResponse(response="no"))
                tg.cancel_scope.cancel()

            async def _watch() -> None:
                await self._cancel.wait()
                tg.cancel_scope.cancel()

            tg.start_soon(_ask)
            tg.start_soon(_watch)

        if not answers:
            raise TaskAborted(self._cancel.reason)
        return answers[0]


class StdinApprovalCallback:
    """Plain-text approval prompt using stdin/stdout."""

    async def ask(
        self,
        kind: str,
        preview_json: str,
        images: Sequence[bytes] | None = None,
        is_protected: bool = False,
    ) -> ApprovalResponse:
        """Prompt with y/n; any other text is returned as feedback."""
        preview = json.loads(preview_json)
        tool_name = preview.get("tool", kind)
        description = describe_tool_call(tool_name, preview.get("params", {}))
        marker = " [protected]" if is_protected else ""
        prompt = f"\nAllow {tool_name}{marker}? {description}\n[y/n/feedback] > "
        loop = asyncio.get_running_loop()
        try:
            answer = await loop.run_in_executor(None, lambda: input(prompt))
        except (EOFError, KeyboardInterrupt):
            return ApprovalResponse(response="no")
        return parse_answer(answer)
