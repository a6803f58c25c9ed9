"""Tests for the task loop in agentcore.core.loop."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import anyio
import pytest

from agentcore.core.loop import TaskLoop, merge_results
from agentcore.core.session import Session
from agentcore.core.state import LoopState
from agentcore.permissions.manager import PermissionManager
from agentcore.permissions.rules import AutoApprovalConfig
from agentcore.protocol.detector import ToolProtocol
from agentcore.types.config import TaskSettings
from agentcore.types.messages import Message, Result, SystemEvent, ToolResult, ToolUse
from agentcore.types.providers import ChatMessage, ProviderSettings
from agentcore.types.tools import ToolResultData
from tests.conftest import MockProvider, MockTurn, ScriptedApproval


def _make_loop(tmp_path: Path, turns: list[MockTurn], **kwargs: Any) -> tuple[TaskLoop, MockProvider]:
    """Helper to create a TaskLoop with MockProvider."""
    provider = MockProvider(turns=turns)
    return TaskLoop(provider, cwd=tmp_path, **kwargs), provider


async def _collect(loop: TaskLoop, message: str = "Do the thing") -> list[Message]:
    return [msg async for msg in loop.run(message)]


def _tool(call_id: str, name: str, **args: Any) -> MockTurn:
    return MockTurn(tool_uses=[{"id": call_id, "name": name, "args": args}])


def _complete(call_id: str = "done", result: str = "All done.") -> MockTurn:
    return _tool(call_id, "attempt_completion", result=result)


def _events(messages: list[Message], kind: str) -> list[SystemEvent]:
    return [m for m in messages if isinstance(m, SystemEvent) and m.type == kind]


def _results(messages: list[Message]) -> list[ToolResult]:
    return [m for m in messages if isinstance(m, ToolResult)]


def _final(messages: list[Message]) -> Result:
    assert isinstance(messages[-1], Result)
    return messages[-1]


class TestCompletion:
    @pytest.mark.asyncio
    async def test_attempt_completion_ends_task(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [_complete(result="Shipped it.")])
        messages = await _collect(loop)

        start = messages[0]
        assert isinstance(start, SystemEvent) and start.type == "task_start"
        assert start.data["protocol"] == "native"

        result = _final(messages)
        assert result.stop_reason == "completed"
        assert result.text == "Shipped it."
        assert result.turns == 1
        assert result.tool_calls == 1
        assert result.total_tokens == 150
        assert _events(messages, "task_complete")[0].data == {"result": "Shipped it."}
        assert loop.state is LoopState.COMPLETED
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_native_tools_sent_to_provider(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [_complete()])
        await _collect(loop)
        names = {d.name.value for d in provider.calls[0]["tools"]}
        assert "write_to_file" in names
        assert "Current mode: code" in provider.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_results_go_back_as_tool_result_blocks(self, tmp_project: Path):
        loop, provider = _make_loop(tmp_project, [
            _tool("tu1", "read_file", path="main.py"),
            _complete(),
        ])
        await _collect(loop)
        second = provider.calls[1]["messages"]
        assistant, reply = second[-2], second[-1]
        assert assistant.role == "assistant"
        assert assistant.content[-1] == {
            "type": "tool_use", "name": "read_file", "id": "tu1", "input": {"path": "main.py"},
        }
        assert reply.content[0]["type"] == "tool_result"
        assert reply.content[0]["tool_use_id"] == "tu1"
        assert "def hello():" in reply.content[0]["content"]


class TestMistakes:
    @pytest.mark.asyncio
    async def test_tool_not_allowed_in_mode(self, tmp_path: Path):
        loop, _ = _make_loop(
            tmp_path,
            [_tool("tu1", "write_to_file", path="a.txt", content="x")],
            settings=TaskSettings(mode="ask"),
        )
        messages = await _collect(loop)

        first = _results(messages)[0]
        assert first.tool_use_id == "tu1"
        assert first.is_error
        assert "not allowed in ask mode" in first.content
        assert not (tmp_path / "a.txt").exists()
        # The refusal counted once; two empty turns follow before the limit.
        assert [e.data["consecutive_mistakes"] for e in _events(messages, "no_tool_used")] == [2, 3]
        assert _final(messages).stop_reason == "mistake_limit"

    @pytest.mark.asyncio
    async def test_no_tool_used(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [MockTurn(text="Just chatting.")])
        messages = await _collect(loop)

        result = _final(messages)
        assert result.stop_reason == "mistake_limit"
        assert result.text == "Just chatting."
        assert result.turns == 3
        limit = _events(messages, "mistake_limit")[0]
        assert limit.data["count"] == 3
        assert "3 consecutive mistakes" in limit.data["message"]

        nudges = [
            m for m in loop.session.messages
            if m.role == "user" and isinstance(m.content, list)
            and m.content[0]["text"].startswith("[ERROR] You did not use a tool")
        ]
        assert len(nudges) == 3

    @pytest.mark.asyncio
    async def test_mistake_limit_reached(self, tmp_path: Path):
        turns = [_tool(f"tu{i}", "write_to_file", path=f"f{i}.txt") for i in range(5)]
        turns.append(_complete())
        loop, provider = _make_loop(
            tmp_path, turns, settings=TaskSettings(consecutive_mistake_limit=5),
        )
        messages = await _collect(loop)

        results = _results(messages)
        assert len(results) == 5
        assert all("Missing value for required parameter 'content'" in r.content for r in results)
        assert loop.state is LoopState.MISTAKE_LIMIT_REACHED
        assert loop.task_state.consecutive_mistake_count == 5
        assert loop.task_state.tool_errors["write_to_file"] == 5
        assert _final(messages).stop_reason == "mistake_limit"
        assert len(provider.calls) == 5

    @pytest.mark.asyncio
    async def test_resume_after_mistake_limit(self, tmp_path: Path):
        turns = [MockTurn(text="hmm"), MockTurn(text="hmm?"), MockTurn(text="hmm!"), _complete()]
        loop, _ = _make_loop(tmp_path, turns)
        first = await _collect(loop)
        assert _final(first).stop_reason == "mistake_limit"

        second = await _collect(loop, "Stop musing and finish.")
        assert _final(second).stop_reason == "completed"
        assert loop.task_state.consecutive_mistake_count == 0
        # task_start is only announced once per task.
        assert not _events(second, "task_start")

    @pytest.mark.asyncio
    async def test_repeated_identical_calls(self, tmp_project: Path):
        loop, _ = _make_loop(tmp_project, [
            _tool("tu1", "read_file", path="main.py"),
            _tool("tu2", "read_file", path="main.py"),
            _tool("tu3", "read_file", path="main.py"),
            _complete(),
        ])
        messages = await _collect(loop)

        results = _results(messages)
        assert not results[0].is_error
        assert not results[1].is_error
        assert results[2].is_error
        assert "identical parameters" in results[2].content
        assert _final(messages).stop_reason == "completed"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [_tool("tu1", "teleport"), _complete()])
        messages = await _collect(loop)
        first = _results(messages)[0]
        assert first.is_error
        assert "Unknown tool 'teleport'" in first.content
        assert _final(messages).stop_reason == "completed"


class TestApprovals:
    @pytest.mark.asyncio
    async def test_approved_write(self, tmp_path: Path):
        approval = ScriptedApproval(["yes"])
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "write_to_file", path="hello.txt", content="hi\n"),
            _complete(),
        ], approval=approval)
        messages = await _collect(loop)

        first = _results(messages)[0]
        assert not first.is_error
        assert first.content == "Created hello.txt (1 lines)"
        assert (tmp_path / "hello.txt").read_text() == "hi\n"
        assert approval.asked[0]["preview"]["tool"] == "write_to_file"
        state = loop.task_state
        assert state.did_edit_file
        assert state.consecutive_mistake_count == 0
        assert state.tool_usage["write_to_file"] == 1

    @pytest.mark.asyncio
    async def test_state_while_waiting_for_approval(self, tmp_path: Path):
        seen: list[LoopState] = []

        class StateRecorder(ScriptedApproval):
            async def ask(self, kind, preview_json, images=None, is_protected=False):
                seen.append(loop.state)
                return await super().ask(kind, preview_json, images, is_protected)

        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "write_to_file", path="hello.txt", content="hi\n"),
            _complete(),
        ], approval=StateRecorder(["yes"]))
        await _collect(loop)

        assert seen == [LoopState.AWAITING_APPROVAL]
        assert loop.state is LoopState.COMPLETED

    @pytest.mark.asyncio
    async def test_auto_approved_write(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "write_to_file", path="hello.txt", content="hi\n"),
            _complete(),
        ], permissions=PermissionManager(AutoApprovalConfig(write=True)))
        await _collect(loop)
        assert (tmp_path / "hello.txt").exists()

    @pytest.mark.asyncio
    async def test_headless_write_denied(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "write_to_file", path="hello.txt", content="hi\n"),
            _complete(),
        ])
        messages = await _collect(loop)

        first = _results(messages)[0]
        assert first.is_error
        assert first.content == "The user denied this operation."
        assert not (tmp_path / "hello.txt").exists()
        # A denial is not a mistake.
        assert _final(messages).stop_reason == "completed"

    @pytest.mark.asyncio
    async def test_rejection_skips_later_calls_in_message(self, tmp_path: Path):
        turn = MockTurn(tool_uses=[
            {"id": "tu1", "name": "write_to_file", "args": {"path": "a.txt", "content": "a"}},
            {"id": "tu2", "name": "write_to_file", "args": {"path": "b.txt", "content": "b"}},
        ])
        approval = ScriptedApproval(["no"])
        loop, _ = _make_loop(tmp_path, [turn, _complete()], approval=approval)
        messages = await _collect(loop)

        first, second = _results(messages)[:2]
        assert first.content == "The user denied this operation."
        assert second.content.startswith("Skipping tool write_to_file")
        assert len(approval.asked) == 1
        assert not (tmp_path / "b.txt").exists()


class TestAbort:
    @pytest.mark.asyncio
    async def test_cancel_before_first_turn(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [_complete()])
        loop.cancel("changed my mind")
        messages = await _collect(loop)

        assert _events(messages, "task_abort")[0].data["reason"] == "changed my mind"
        assert _final(messages).stop_reason == "aborted"
        assert loop.state is LoopState.ABORTED
        assert provider.calls == []
        assert loop.session.messages[-1].content == "Task aborted: changed my mind."

    @pytest.mark.asyncio
    async def test_cancel_during_approval_reverts_live_change(self, tmp_path: Path):
        class CancelOnAsk:
            loop: TaskLoop
            saw_draft = False

            async def ask(self, kind, preview_json, images=None, is_protected=False):
                self.saw_draft = (tmp_path / "draft.txt").exists()
                self.loop.cancel("user pressed stop")
                await anyio.sleep_forever()

        approval = CancelOnAsk()
        loop, _ = _make_loop(
            tmp_path,
            [_tool("tu1", "write_to_file", path="draft.txt", content="wip\n")],
            approval=approval,
            live_staging=True,
        )
        approval.loop = loop
        messages = await _collect(loop)

        assert _final(messages).stop_reason == "aborted"
        assert approval.saw_draft
        assert not (tmp_path / "draft.txt").exists()


class TestQueueAndModes:
    @pytest.mark.asyncio
    async def test_queued_message_injected_before_turn(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [_complete()])
        loop.queue.send_nowait("Also add tests.")
        messages = await _collect(loop)

        assert _events(messages, "user_message")[0].data == {"text": "Also add tests."}
        sent = provider.calls[0]["messages"]
        assert [m.content for m in sent if m.role == "user"] == ["Do the thing", "Also add tests."]

    @pytest.mark.asyncio
    async def test_switch_mode(self, tmp_path: Path):
        loop, provider = _make_loop(tmp_path, [
            _tool("tu1", "switch_mode", mode_slug="architect", reason="plan first"),
            _complete(),
        ])
        messages = await _collect(loop)

        switch = _events(messages, "mode_switch")[0]
        assert switch.data == {"from": "code", "to": "architect", "reason": "plan first"}
        assert loop.mode.slug == "architect"
        assert loop.session.metadata["mode"] == "architect"
        assert "Current mode: architect" in provider.calls[1]["system"]
        names = {d.name.value for d in provider.calls[1]["tools"]}
        assert "execute_command" not in names

    @pytest.mark.asyncio
    async def test_todo_list_event(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "update_todo_list", todos="[x] read\n[ ] write"),
            _complete(),
        ])
        messages = await _collect(loop)
        todos = _events(messages, "todos")[0].data["todos"]
        assert [t["status"] for t in todos] == ["completed", "pending"]

    @pytest.mark.asyncio
    async def test_subtask(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "new_task", mode="ask", message="Look around."),
            _complete("child", "Found the config."),
            _complete("parent", "Everything checked."),
        ])
        messages = await _collect(loop)

        delegated = _results(messages)[0]
        assert delegated.content == "Sub-task in ask mode completed with result:\n\nFound the config."
        child_start = [e for e in _events(messages, "task_start") if e.data["mode"] == "ask"]
        assert len(child_start) == 1
        child = Session(child_start[0].data["task_id"])
        assert child.metadata["parent_id"] == loop.task_id
        assert _final(messages).text == "Everything checked."


class TestProtocol:
    @pytest.mark.asyncio
    async def test_protocol_locked_on_first_tool(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [_tool("tu1", "update_todo_list", todos="[ ] a"), _complete()])
        messages = await _collect(loop)

        assert len(_events(messages, "protocol_locked")) == 1
        assert loop.session.tool_protocol == "native"
        assert Session(loop.task_id).tool_protocol == "native"

    @pytest.mark.asyncio
    async def test_xml_flow(self, tmp_path: Path):
        approval = ScriptedApproval(["yes"])
        loop, provider = _make_loop(tmp_path, [
            MockTurn(chunks=[
                "I'll create it.\n<write_to_file><path>a.txt</path><content>",
                "hello\n</content>",
                "</write_to_file>",
            ]),
            MockTurn(text="<attempt_completion><result>done</result></attempt_completion>"),
        ], approval=approval, provider_settings=ProviderSettings(supports_native_tools=False))
        messages = await _collect(loop)

        assert loop.protocol is ToolProtocol.XML
        assert provider.calls[0]["tools"] == []
        partials = [m for m in messages if isinstance(m, ToolUse) and m.partial]
        assert partials and partials[0].name == "write_to_file"
        final_use = [m for m in messages if isinstance(m, ToolUse) and not m.partial][0]
        assert final_use.id.startswith("xml_")
        assert final_use.args == {"path": "a.txt", "content": "hello"}
        assert (tmp_path / "a.txt").read_text() == "hello"

        reply = provider.calls[1]["messages"][-1]
        assert reply.content[0]["text"].startswith("[write_to_file] Result:\nCreated a.txt")
        assistant = provider.calls[1]["messages"][-2]
        assert "id" not in assistant.content[-1]
        assert _final(messages).text == "done"

    @pytest.mark.asyncio
    async def test_only_first_xml_block_runs(self, tmp_project: Path):
        loop, provider = _make_loop(tmp_project, [
            MockTurn(text=(
                "<read_file><path>main.py</path></read_file>"
                "<list_files><path>.</path></list_files>"
            )),
            MockTurn(text="<attempt_completion><result>ok</result></attempt_completion>"),
        ], provider_settings=ProviderSettings(provider="fake-ai"))
        messages = await _collect(loop)

        assert len(_results(messages)) == 2
        reply = provider.calls[1]["messages"][-1]
        assert "not executed: list_files" in reply.content[-1]["text"]

    @pytest.mark.asyncio
    async def test_resumed_xml_history_stays_xml(self, tmp_path: Path):
        session = Session(cwd=str(tmp_path))
        session.add_message(ChatMessage(role="user", content="Read a"))
        session.add_message(ChatMessage(role="assistant", content=[
            {"type": "text", "text": "<read_file><path>a</path></read_file>"},
            {"type": "tool_use", "name": "read_file", "input": {"path": "a"}},
        ]))
        session.add_message(ChatMessage(role="user", content=[
            {"type": "text", "text": "[read_file] Result:\nFile not found"},
        ]))

        loop, provider = _make_loop(tmp_path, [
            MockTurn(text="<attempt_completion><result>ok</result></attempt_completion>"),
        ], session=session)
        messages = await _collect(loop, "Carry on")

        assert loop.protocol is ToolProtocol.XML
        assert provider.calls[0]["tools"] == []
        assert _final(messages).text == "ok"

    @pytest.mark.asyncio
    async def test_stored_lock_beats_provider(self, tmp_path: Path):
        session = Session(cwd=str(tmp_path))
        session.save_metadata(tool_protocol="xml")
        loop, _ = _make_loop(tmp_path, [
            MockTurn(text="<attempt_completion><result>ok</result></attempt_completion>"),
        ], session=session)
        await _collect(loop)
        assert loop.protocol is ToolProtocol.XML

    @pytest.mark.asyncio
    async def test_native_call_under_xml_is_rejected(self, tmp_path: Path):
        loop, _ = _make_loop(tmp_path, [
            _tool("tu1", "read_file", path="a"),
            MockTurn(text="<attempt_completion><result>ok</result></attempt_completion>"),
        ], protocol=ToolProtocol.XML)
        messages = await _collect(loop)
        first = _results(messages)[0]
        assert first.is_error
        assert "XML tool protocol" in first.content


class TestMergeResults:
    def test_empty(self):
        assert merge_results([]).is_error

    def test_text_joined(self):
        merged = merge_results([ToolResultData(content="a"), ToolResultData(content="b")])
        assert merged.content == "a\n\nb"

    def test_blocks_kept(self):
        image = {"type": "image", "source": {}}
        merged = merge_results([
            ToolResultData(content=[{"type": "text", "text": "shot"}, image]),
            ToolResultData(content="note"),
        ])
        assert merged.content == [{"type": "text", "text": "shot"}, image, {"type": "text", "text": "note"}]
