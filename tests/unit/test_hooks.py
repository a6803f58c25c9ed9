"""Tests for agentcore.hooks: matching, execution and template variables."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentcore.hooks.events import HookContext, build_hook_context
from agentcore.hooks.manager import HookManager, matcher_matches
from agentcore.types.hooks import Hook, HookEvent, HookResult


class TestBuildHookContext:
    def test_basic_context(self):
        ctx = build_hook_context(HookEvent.PRE_TOOL_USE, tool_name="execute_command")
        assert ctx.event == HookEvent.PRE_TOOL_USE
        assert ctx.tool_name == "execute_command"
        assert ctx.tool_args == {}
        assert ctx.result is None

    def test_to_json(self, tmp_path: Path):
        ctx = build_hook_context(
            HookEvent.POST_TOOL_USE,
            tool_name="read_file",
            tool_args={"path": "a.py"},
            result="contents",
            task_id="abc123",
            mode="code",
            cwd=tmp_path,
        )
        payload = json.loads(ctx.to_json())
        assert payload["event"] == "post_tool_use"
        assert payload["tool_args"] == {"path": "a.py"}
        assert payload["task_id"] == "abc123"
        assert payload["cwd"] == str(tmp_path)


class TestMatcher:
    def test_empty_and_star_match_everything(self):
        assert matcher_matches(None, "read_file")
        assert matcher_matches("*", "read_file")

    def test_alternatives_and_globs(self):
        assert matcher_matches("read_file|write_*", "write_to_file")
        assert matcher_matches("read_file | list_files", "list_files")
        assert not matcher_matches("read_file|write_*", "execute_command")

    def test_needs_tool_name(self):
        assert not matcher_matches("read_file", None)

    def test_manager_ignores_matcher_for_lifecycle_events(self):
        mgr = HookManager()
        hook = Hook(event=HookEvent.TASK_START, command="true", matcher="read_file")
        assert mgr._matches(hook, HookContext(event=HookEvent.TASK_START))

    def test_event_given_as_string(self):
        mgr = HookManager()
        hook = Hook(event="pre_tool_use", command="true")
        ctx = HookContext(event=HookEvent.PRE_TOOL_USE, tool_name="read_file")
        assert mgr._matches(hook, ctx)


class TestHookResult:
    def test_exit_code_two_blocks(self):
        assert HookResult(success=False, exit_code=2).blocks
        assert not HookResult(success=False, exit_code=1).blocks
        assert not HookResult(success=True, exit_code=0).blocks


class TestHookExecution:
    @pytest.mark.asyncio
    async def test_receives_json_on_stdin(self, tmp_path: Path):
        out = tmp_path / "event.json"
        mgr = HookManager([Hook(event=HookEvent.PRE_TOOL_USE, command=f"cat > {out}")])
        ctx = build_hook_context(
            HookEvent.PRE_TOOL_USE, tool_name="write_to_file", tool_args={"path": "a.txt"}, cwd=tmp_path,
        )
        results = await mgr.fire(ctx)
        assert results[0].success
        assert json.loads(out.read_text())["tool_name"] == "write_to_file"

    @pytest.mark.asyncio
    async def test_template_variables(self, tmp_path: Path):
        mgr = HookManager([Hook(event=HookEvent.PRE_TOOL_USE, command="echo {tool_name} {path}")])
        ctx = build_hook_context(
            HookEvent.PRE_TOOL_USE, tool_name="write_to_file", tool_args={"path": "my file.txt"}, cwd=tmp_path,
        )
        results = await mgr.fire(ctx)
        assert results[0].output == "write_to_file my file.txt"

    @pytest.mark.asyncio
    async def test_blocking_hook_stops_the_chain(self, tmp_path: Path):
        marker = tmp_path / "second-ran"
        mgr = HookManager([
            Hook(event=HookEvent.PRE_TOOL_USE, command="echo 'no writes today' >&2; exit 2"),
            Hook(event=HookEvent.PRE_TOOL_USE, command=f"touch {marker}"),
        ])
        ctx = build_hook_context(HookEvent.PRE_TOOL_USE, tool_name="write_to_file", cwd=tmp_path)
        results = await mgr.fire(ctx)
        assert len(results) == 1
        assert results[0].blocks
        assert results[0].error == "no writes today"
        assert not marker.exists()

    @pytest.mark.asyncio
    async def test_json_output_parsed(self, tmp_path: Path):
        mgr = HookManager([Hook(event=HookEvent.TASK_COMPLETE, command="echo '{\"ok\": true}'")])
        results = await mgr.fire(build_hook_context(HookEvent.TASK_COMPLETE, cwd=tmp_path))
        assert results[0].data == {"ok": True}

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path):
        mgr = HookManager([Hook(event=HookEvent.TASK_START, command="sleep 5", timeout=0.2)])
        results = await mgr.fire(build_hook_context(HookEvent.TASK_START, cwd=tmp_path))
        assert not results[0].success
        assert "timed out" in results[0].error

    @pytest.mark.asyncio
    async def test_non_matching_hooks_skipped(self, tmp_path: Path):
        mgr = HookManager([Hook(event=HookEvent.PRE_TOOL_USE, command="exit 2", matcher="execute_command")])
        ctx = build_hook_context(HookEvent.PRE_TOOL_USE, tool_name="read_file", cwd=tmp_path)
        assert await mgr.fire(ctx) == []
