"""Tests for the approval prompts and diff rendering."""

from __future__ import annotations

import json
from io import StringIO

import pytest
from rich.console import Console

from agentcore.permissions.approval import (
    ApprovalResponse,
    StdinApprovalCallback,
    describe_tool_call,
    parse_answer,
)
from agentcore.ui.approval import RichApprovalCallback, print_diff


def _console() -> tuple[Console, StringIO]:
    buf = StringIO()
    return Console(file=buf, width=120), buf


class ScriptedRichCallback(RichApprovalCallback):
    """Answers prompts from a list instead of the terminal."""

    def __init__(self, console: Console, answers: list[str | None]) -> None:
        super().__init__(console)
        self._answers = list(answers)

    async def _read(self, prompt_text: str) -> str | None:
        return self._answers.pop(0)


class TestParseAnswer:
    def test_yes(self):
        assert parse_answer("Y") == ApprovalResponse(response="yes")
        assert parse_answer(" yes ") == ApprovalResponse(response="yes")

    def test_no(self):
        assert parse_answer("n").response == "no"
        assert parse_answer("").response == "no"

    def test_feedback(self):
        assert parse_answer(" use tabs ") == ApprovalResponse(response="message", text="use tabs")


class TestDescribeToolCall:
    def test_known_tools(self):
        assert describe_tool_call("execute_command", {"command": "make"}) == "Run command: make"
        assert describe_tool_call("write_to_file", {"path": "a.py", "content": "x\ny"}) == "Write a.py (2 lines)"
        assert describe_tool_call("read_file", {"files": [{"path": "a"}, {"path": "b"}]}) == "Read a, b"
        assert describe_tool_call("switch_mode", {"mode_slug": "ask"}) == "Switch to ask mode"

    def test_fallback_truncates(self):
        text = describe_tool_call("custom", {"blob": "x" * 200})
        assert text.startswith("custom(")
        assert text.endswith("...)")


class TestPrintDiff:
    def test_lines_printed(self):
        console, buf = _console()
        print_diff(console, "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-old\n+new\n same")
        out = buf.getvalue()
        for line in ("--- a/x", "@@ -1 +1 @@", "-old", "+new", " same"):
            assert line in out


class TestRichApprovalCallback:
    @pytest.mark.asyncio
    async def test_tool_prompt(self):
        console, buf = _console()
        cb = ScriptedRichCallback(console, ["y"])
        preview = {"tool": "write_to_file", "params": {"path": "a.py", "content": "x"}, "diff": "+x"}
        response = await cb.ask("tool", json.dumps(preview), is_protected=True)
        assert response.response == "yes"
        out = buf.getvalue()
        assert "Write a.py (1 lines)" in out
        assert "+x" in out

    @pytest.mark.asyncio
    async def test_interrupted_prompt_denies(self):
        console, _ = _console()
        cb = ScriptedRichCallback(console, [None])
        response = await cb.ask("tool", json.dumps({"tool": "delete_file", "params": {"path": "a"}}))
        assert response.response == "no"

    @pytest.mark.asyncio
    async def test_followup_numbered_suggestion(self):
        console, buf = _console()
        cb = ScriptedRichCallback(console, ["2"])
        payload = json.dumps({"question": "Which db?", "suggest": ["sqlite", "postgres"]})
        response = await cb.ask("followup", payload)
        assert response == ApprovalResponse(response="message", text="postgres")
        assert "2. postgres" in buf.getvalue()

    @pytest.mark.asyncio
    async def test_followup_free_text_and_empty(self):
        console, _ = _console()
        cb = ScriptedRichCallback(console, ["mysql", "  "])
        payload = json.dumps({"question": "Which db?", "suggest": ["sqlite"]})
        assert (await cb.ask("followup", payload)).text == "mysql"
        assert (await cb.ask("followup", payload)).response == "no"


class TestStdinApprovalCallback:
    @pytest.mark.asyncio
    async def test_answer(self, monkeypatch: pytest.MonkeyPatch):
        prompts: list[str] = []

        def fake_input(prompt: str) -> str:
            prompts.append(prompt)
            return "skip the tests"

        monkeypatch.setattr("builtins.input", fake_input)
        response = await StdinApprovalCallback().ask(
            "tool", json.dumps({"tool": "execute_command", "params": {"command": "make"}}),
        )
        assert response == ApprovalResponse(response="message", text="skip the tests")
        assert "Allow execute_command? Run command: make" in prompts[0]

    @pytest.mark.asyncio
    async def test_eof_denies(self, monkeypatch: pytest.MonkeyPatch):
        def eof(prompt: str) -> str:
            raise EOFError

        monkeypatch.setattr("builtins.input", eof)
        response = await StdinApprovalCallback().ask("tool", json.dumps({"tool": "read_file"}))
        assert response.response == "no"
