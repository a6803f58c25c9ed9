"""Hook execution engine."""

from __future__ import annotations

import asyncio
import fnmatch
import json
import logging
import shlex
from typing import Any

from agentcore.hooks.events import HookContext
from agentcore.types.hooks import Hook, HookEvent, HookResult

logger = logging.getLogger(__name__)


def matcher_matches(matcher: str | None, tool_name: str | None) -> bool:
    """``"read_file|write_*"`` matches if any alternative globs the tool name."""
    if not matcher or matcher == "*":
        return True
    if not tool_name:
        return False
    return any(fnmatch.fnmatch(tool_name, alt.strip()) for alt in matcher.split("|"))


class HookManager:
    """Registers and executes hooks for lifecycle events.

    Hooks receive the event as JSON on stdin. A ``pre_tool_use`` hook that
    exits with code 2 blocks the tool; its stderr becomes the reason.
    """

    def __init__(self, hooks: list[Hook] | None = None) -> None:
        self._hooks: list[Hook] = list(hooks) if hooks else []

    def register(self, hook: Hook) -> None:
        """Add a hook."""
        self._hooks.append(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def _matches(self, hook: Hook, ctx: HookContext) -> bool:
        hook_event = hook.event if isinstance(hook.event, str) else hook.event.value
        if hook_event != ctx.event.value:
            return False
        if ctx.event in (HookEvent.PRE_TOOL_USE, HookEvent.POST_TOOL_USE):
            return matcher_matches(hook.matcher, ctx.tool_name)
        return True

    def _expand_command(self, command: str, ctx: HookContext) -> str:
        """Expand template variables in the hook command."""
        replacements: dict[str, str] = {
            "{tool_name}": ctx.tool_name or "",
            "{task_id}": ctx.task_id,
            "{mode}": ctx.mode,
            "{cwd}": ctx.cwd,
            "{event}": ctx.event.value,
        }
        if ctx.tool_args:
            replacements["{path}"] = str(ctx.tool_args.get("path", ""))
            replacements["{command}"] = str(ctx.tool_args.get("command", ""))

        result = command
        for key, value in replacements.items():
            result = result.replace(key, shlex.quote(value) if value else "''")
        return result

    async def fire(self, ctx: HookContext) -> list[HookResult]:
        """Fire all hooks that match the given context, in registration order.

        Stops at the first hook that blocks.
        """
        results: list[HookResult] = []
        for hook in self._hooks:
            if not self._matches(hook, ctx):
                continue
            result = await self._execute(hook, ctx)
            results.append(result)
            if result.blocks and ctx.event is HookEvent.PRE_TOOL_USE:
                break
        return results

    async def _execute(self, hook: Hook, ctx: HookContext) -> HookResult:
        """Execute a single hook command."""
        command = self._expand_command(hook.command, ctx)

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=ctx.cwd or None,
            )
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(ctx.to_json().encode("utf-8")),
                timeout=hook.timeout,
            )
        except TimeoutError:
            logger.warning("Hook timed out after %ss: %s", hook.timeout, command)
            return HookResult(success=False, error=f"Hook timed out after {hook.timeout}s: {command}")
        except OSError as e:
            logger.warning("Hook failed to start: %s", e)
            return HookResult(success=False, error=f"Hook failed: {type(e).__name__}: {e}")

        output = stdout.decode("utf-8", errors="replace").strip()
        error = stderr.decode("utf-8", errors="replace").strip() or None
        success = proc.returncode == 0

        data: dict[str, Any] = {}
        if output.startswith("{"):
            try:
                data = json.loads(output)
            except json.JSONDecodeError:
                pass

        if not success:
            logger.info("Hook exited %s for %s: %s", proc.returncode, ctx.event.value, command)
        return HookResult(
            success=success,
            output=output,
            error=error if not success else None,
            exit_code=proc.returncode,
            data=data,
        )
