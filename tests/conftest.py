"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from agentcore.core.cancellation import CancellationToken
from agentcore.core.state import LoopState, TaskState
from agentcore.core.turn import Collaborators, TurnContext
from agentcore.modes.registry import ModeRegistry
from agentcore.permissions.access import WorkspaceAccess
from agentcore.permissions.approval import ApprovalResponse
from agentcore.tools.staging import FileStager
from agentcore.types.config import TaskSettings
from agentcore.types.providers import ChatMessage, StreamEvent
from agentcore.types.tools import ToolDef


@dataclass
class MockTurn:
    """A scripted turn for MockProvider.

    Specify text, tool_uses, or both. ``chunks`` splits the text into
    several text_delta events, which is how XML tool calls stream in.
    """

    text: str = ""
    tool_uses: list[dict[str, Any]] = field(default_factory=list)
    # Each tool_use: {"id": "tu1", "name": "read_file", "args": {"path": "foo.py"}}
    chunks: list[str] | None = None


class MockProvider:
    """A deterministic mock provider for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "tu1", "name": "read_file", "args": {"path": "a.py"}}]),
            MockTurn(text="<attempt_completion><result>done</result></attempt_completion>"),
        ])

    When the script runs out every further turn is empty.
    """

    def __init__(self, turns: list[MockTurn], model: str = "mock-model"):
        self._turns = list(turns)
        self._turn_index = 0
        self._model = model
        self.calls: list[dict[str, Any]] = []

    @property
    def model_id(self) -> str:
        return self._model

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
    ) -> AsyncIterator[StreamEvent]:
        """Yield scripted StreamEvents for the current turn."""
        self.calls.append({"messages": list(messages), "tools": list(tools), "system": system})
        if self._turn_index >= len(self._turns):
            yield StreamEvent(
                type="message_end", stop_reason="end_turn",
                usage={"input_tokens": 10, "output_tokens": 5},
            )
            return

        turn = self._turns[self._turn_index]
        self._turn_index += 1

        for chunk in turn.chunks if turn.chunks is not None else ([turn.text] if turn.text else []):
            yield StreamEvent(type="text_delta", text=chunk)

        for tu in turn.tool_uses:
            yield StreamEvent(
                type="tool_use_start",
                tool_use_id=tu["id"],
                tool_name=tu["name"],
            )
            args_json = json.dumps(tu.get("args", {}))
            yield StreamEvent(type="tool_use_delta", tool_args_json=args_json)
            yield StreamEvent(type="tool_use_end")

        stop_reason = "tool_use" if turn.tool_uses else "end_turn"
        yield StreamEvent(
            type="message_end",
            stop_reason=stop_reason,
            usage={"input_tokens": 100, "output_tokens": 50},
        )


class ScriptedApproval:
    """ApprovalCallback answering from a list; records every question."""

    def __init__(self, answers: Sequence[ApprovalResponse | str] = ()) -> None:
        self._answers = [
            a if isinstance(a, ApprovalResponse) else ApprovalResponse(response=a) for a in answers
        ]
        self.asked: list[dict[str, Any]] = []

    async def ask(
        self,
        kind: str,
        preview_json: str,
        images: Sequence[bytes] | None = None,
        is_protected: bool = False,
    ) -> ApprovalResponse:
        self.asked.append({
            "kind": kind,
            "preview": json.loads(preview_json),
            "is_protected": is_protected,
        })
        if not self._answers:
            return ApprovalResponse(response="no")
        return self._answers.pop(0)


class RecordingControl:
    """TaskControl double for driving tools and the executor without a loop."""

    def __init__(self) -> None:
        self.state = TaskState()
        self.completed: str | None = None
        self.mode_switches: list[tuple[str, str | None]] = []
        self.partials: list[tuple[str, dict[str, Any]]] = []
        self.answer: str | None = None
        self.questions: list[tuple[str, list[str]]] = []
        self.subtask_result = "sub-task done"
        self.subtasks: list[tuple[str, str]] = []
        self.states: list[LoopState] = []

    def record_mistake(self, tool_name: str) -> None:
        self.state.consecutive_mistake_count += 1
        if tool_name:
            self.state.tool_errors[tool_name] += 1

    def reset_mistakes(self) -> None:
        self.state.consecutive_mistake_count = 0

    def mark_rejected(self) -> None:
        self.state.did_reject_tool = True

    def mark_file_edited(self) -> None:
        self.state.did_edit_file = True

    def record_tool_use(self, tool_name: str) -> None:
        self.state.tool_usage[tool_name] += 1

    def state_snapshot(self) -> TaskState:
        return self.state.snapshot()

    def switch_mode(self, slug: str, reason: str | None = None) -> str | None:
        if slug not in ModeRegistry():
            return f"Invalid mode: {slug}"
        self.mode_switches.append((slug, reason))
        return None

    def complete(self, result: str) -> None:
        self.state.did_complete = True
        self.completed = result

    def set_todos(self, todos: list[dict[str, str]]) -> None:
        self.state.todos = list(todos)

    async def ask_user(self, question: str, suggestions: Sequence[str]) -> str | None:
        self.questions.append((question, list(suggestions)))
        return self.answer

    async def spawn_subtask(self, mode: str, message: str) -> str:
        self.subtasks.append((mode, message))
        return self.subtask_result

    def emit_partial(self, tool_name: str, params: dict[str, Any]) -> None:
        self.partials.append((tool_name, dict(params)))

    def enter_state(self, state: LoopState) -> None:
        self.states.append(state)


def make_turn(
    cwd: Path,
    *,
    mode: str = "code",
    settings: TaskSettings | None = None,
    control: RecordingControl | None = None,
    collaborators: Collaborators | None = None,
    access: WorkspaceAccess | None = None,
) -> TurnContext:
    """A TurnContext rooted at *cwd* with a RecordingControl."""
    settings = settings or TaskSettings(mode=mode)
    return TurnContext(
        cwd=cwd,
        task_id="test-task",
        settings=settings,
        mode=ModeRegistry().resolve(mode),
        access=access or WorkspaceAccess(cwd),
        stager=FileStager(),
        cancel=CancellationToken(),
        control=control or RecordingControl(),
        collaborators=collaborators or Collaborators(),
    )


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep sessions and global config out of the real home directory."""
    home = tmp_path_factory.mktemp("home")
    sessions = home / "sessions"
    sessions.mkdir()
    monkeypatch.setattr("agentcore.core.session._sessions_dir", lambda: sessions)
    monkeypatch.setattr("agentcore.core.config._config_home", lambda: home)
    monkeypatch.setattr("agentcore.modes.registry._config_home", lambda: home)
    for var in ("AGENTCORE_MODE", "AGENTCORE_PROTOCOL", "AGENTCORE_YOLO", "AGENTCORE_MISTAKE_LIMIT"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with sample files."""
    (tmp_path / "README.md").write_text("# Test Project\n\nA test project.\n")
    (tmp_path / "main.py").write_text("def hello():\n    print('Hello, world!')\n\nhello()\n")
    src = tmp_path / "src"
    src.mkdir()
    (src / "utils.py").write_text("def add(a, b):\n    return a + b\n")
    (src / "app.py").write_text("from utils import add\n\nresult = add(1, 2)\nprint(result)\n")
    return tmp_path


@pytest.fixture
def mock_provider() -> MockProvider:
    """A provider whose single turn is plain text."""
    return MockProvider(turns=[
        MockTurn(text="I can help with that."),
    ])
