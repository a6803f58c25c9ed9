"""Tests for agentcore.agents: sub-agents spawned by new_task."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentcore.agents.manager import SubtaskManager
from agentcore.core.loop import TaskLoop
from agentcore.core.session import Session
from agentcore.errors import MistakeLimitExceeded, TaskAborted
from agentcore.types.messages import Message, Result, SystemEvent, TextMessage, ToolUse
from tests.conftest import MockProvider, MockTurn


def _complete(result: str) -> MockTurn:
    return MockTurn(tool_uses=[{"id": "done", "name": "attempt_completion", "args": {"result": result}}])


def _parent(tmp_path: Path, turns: list[MockTurn]) -> TaskLoop:
    return TaskLoop(MockProvider(turns=turns), cwd=tmp_path)


class TestSubtaskManager:
    @pytest.mark.asyncio
    async def test_run_returns_child_result(self, tmp_path: Path):
        parent = _parent(tmp_path, [MockTurn(text="Looking..."), _complete("Found it.")])
        manager = SubtaskManager()
        seen: list[Message] = []

        text = await manager.run(parent, "ask", "Find the config.", on_message=seen.append)

        assert text == "Found it."
        [(child_id, parent_id)] = manager.children.items()
        assert parent_id == parent.task_id
        assert Session(child_id).metadata["parent_id"] == parent.task_id
        assert not any(isinstance(m, Result) for m in seen)
        assert not any(isinstance(m, TextMessage) and m.is_partial for m in seen)
        assert not any(isinstance(m, ToolUse) and m.partial for m in seen)
        start = next(m for m in seen if isinstance(m, SystemEvent) and m.type == "task_start")
        assert start.data["mode"] == "ask"

    @pytest.mark.asyncio
    async def test_stalled_child_raises(self, tmp_path: Path):
        parent = _parent(tmp_path, [])
        with pytest.raises(MistakeLimitExceeded) as exc_info:
            await SubtaskManager().run(parent, "code", "Do something.")
        assert exc_info.value.count == 3
        assert exc_info.value.task_id != parent.task_id

    @pytest.mark.asyncio
    async def test_cancelled_parent_aborts_child(self, tmp_path: Path):
        parent = _parent(tmp_path, [_complete("never")])
        parent.cancel("user left")
        with pytest.raises(TaskAborted, match="user left"):
            await SubtaskManager().run(parent, "code", "Do something.")

    @pytest.mark.asyncio
    async def test_run_parallel(self, tmp_path: Path):
        parent = _parent(tmp_path, [_complete("ok"), _complete("ok")])
        manager = SubtaskManager()
        results = await manager.run_parallel(parent, [("ask", "one"), ("debug", "two")])
        assert results == ["ok", "ok"]
        assert len(manager.children) == 2
