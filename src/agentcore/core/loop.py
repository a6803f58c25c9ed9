"""The task loop: model turn -> tool invocation -> result -> next turn."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio

from agentcore.core import responses
from agentcore.core.cancellation import CancellationToken
from agentcore.core.executor import DispatchOutcome, ToolExecutor
from agentcore.core.prompt import build_system_prompt
from agentcore.core.queue import MessageQueue
from agentcore.core.repetition import RepetitionDetector
from agentcore.core.session import Session
from agentcore.core.state import LoopState, TaskState
from agentcore.core.turn import Collaborators, TurnContext
from agentcore.errors import TaskAborted, ToolValidationError
from agentcore.hooks.events import build_hook_context
from agentcore.hooks.manager import HookManager
from agentcore.modes.registry import ModeRegistry
from agentcore.observability.metrics import record_mistake, record_parse_error
from agentcore.permissions.access import WorkspaceAccess
from agentcore.permissions.approval import ApprovalCallback, ApprovalGate
from agentcore.permissions.manager import PermissionManager
from agentcore.protocol.detector import ToolProtocol, detect_from_history, resolve_protocol
from agentcore.protocol.parser import (
    NeedMoreInput,
    ParseError,
    ParseOutcome,
    ToolInvocation,
    ToolInvocationParser,
)
from agentcore.tools.catalog import ToolCatalog
from agentcore.tools.registry import ToolRegistry
from agentcore.tools.staging import FileStager
from agentcore.tools.terminal import TerminalRegistry
from agentcore.types.config import AvailabilityContext, Capabilities, TaskSettings
from agentcore.types.hooks import HookEvent
from agentcore.types.messages import (
    Message,
    Result,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)
from agentcore.types.modes import Mode
from agentcore.types.providers import ChatMessage, NativeToolCall, ProviderAdapter, ProviderSettings
from agentcore.types.tools import ToolName, ToolResultData

if TYPE_CHECKING:
    from agentcore.agents.manager import SubtaskManager

logger = logging.getLogger(__name__)


def merge_results(results: Sequence[ToolResultData]) -> ToolResultData:
    """Collapse everything a tool pushed during one call into one result.

    The first entry is the tool's own result; later ones (approval
    feedback, notices) are appended to it.
    """
    if not results:
        return ToolResultData(content="(No response)", is_error=True)
    first = results[0]
    if len(results) == 1:
        return first
    if all(isinstance(r.content, str) for r in results):
        content: str | list[dict[str, Any]] = "\n\n".join(str(r.content) for r in results)
    else:
        blocks: list[dict[str, Any]] = []
        for r in results:
            if isinstance(r.content, str):
                blocks.append({"type": "text", "text": r.content})
            else:
                blocks.extend(r.content)
        content = blocks
    return ToolResultData(content=content, is_error=first.is_error, display=first.display)


class TaskLoop:
    """Drives one task through think, call a tool, observe, repeat.

    Usage::

        loop = TaskLoop(provider, cwd=".", approval=RichApprovalCallback())
        async for message in loop.run("add a --verbose flag"):
            print_message(message)

    The loop owns its TaskState, its protocol lock and the staged changes of
    the tool in flight. Tools reach back into it only through the
    :class:`~agentcore.core.turn.TaskControl` methods below.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        *,
        cwd: str | Path = ".",
        settings: TaskSettings | None = None,
        provider_settings: ProviderSettings | None = None,
        session: Session | None = None,
        catalog: ToolCatalog | None = None,
        modes: ModeRegistry | None = None,
        registry: ToolRegistry | None = None,
        permissions: PermissionManager | None = None,
        approval: ApprovalCallback | None = None,
        hooks: HookManager | None = None,
        access: WorkspaceAccess | None = None,
        capabilities: Capabilities | None = None,
        collaborators: Collaborators | None = None,
        queue: MessageQueue | None = None,
        cancel: CancellationToken | None = None,
        subtasks: SubtaskManager | None = None,
        protocol: ToolProtocol | None = None,
        live_staging: bool = False,
        max_tokens: int = 8192,
    ):
        self._provider = provider
        self._cwd = Path(cwd).resolve()
        self._session = session or Session(cwd=str(self._cwd))
        self._catalog = catalog or ToolCatalog()
        self._modes = modes or ModeRegistry()

        settings = settings or TaskSettings()
        # A resumed task keeps the mode it was last in.
        self._mode = self._modes.resolve(self._session.metadata.get("mode", settings.mode))
        self._settings = settings.with_mode(self._mode.slug)
        self._provider_settings = provider_settings or ProviderSettings()
        self._capabilities = capabilities or Capabilities()

        self._access = access or WorkspaceAccess(self._cwd)
        self._collaborators = collaborators or Collaborators()
        if self._collaborators.terminals is None:
            self._collaborators.terminals = TerminalRegistry()
        self._cancel = cancel or CancellationToken()
        self._approval = approval
        self._gate = ApprovalGate(approval, self._cancel)
        self._hooks = hooks or HookManager()
        self._permissions = permissions or PermissionManager(yolo=self._settings.yolo_mode)
        self._executor = ToolExecutor(
            registry or ToolRegistry(), self._permissions, self._gate, self._hooks,
        )
        self._parser = ToolInvocationParser(self._catalog)
        self._stager = FileStager(live=live_staging)
        self._queue = queue or MessageQueue()
        self._subtasks = subtasks
        self._repetition = RepetitionDetector()
        self._max_tokens = max_tokens

        self._state = LoopState.AWAITING_MODEL_TURN
        self._task = TaskState()
        self._protocol = protocol
        self._completion: str | None = None
        self._pending: list[Message] = []
        self._mode_switches: list[tuple[str, str]] = []
        self._started = False
        self._turns = 0
        self._tool_calls = 0
        self._total_tokens = 0
        self._last_text = ""

    # ------------------------------------------------------------------
    # Host-facing state
    # ------------------------------------------------------------------

    @property
    def task_id(self) -> str:
        return self._session.session_id

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def task_state(self) -> TaskState:
        return self._task.snapshot()

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def settings(self) -> TaskSettings:
        return self._settings

    @property
    def protocol(self) -> ToolProtocol | None:
        """The protocol in force, once the first run has resolved it."""
        return self._protocol

    @property
    def queue(self) -> MessageQueue:
        return self._queue

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel

    def cancel(self, reason: str = "cancelled by user") -> None:
        """Abort the task at its next suspension point."""
        self._cancel.cancel(reason)

    def allowed_tools(self) -> frozenset[ToolName]:
        ctx = AvailabilityContext(self._settings, self._provider_settings, self._capabilities)
        return self._modes.resolve_allowed_tools(self._mode.slug, self._catalog, ctx)

    def child(self, mode: str) -> TaskLoop:
        """A sub-agent loop sharing this task's collaborators but not its state."""
        return TaskLoop(
            self._provider,
            cwd=self._cwd,
            settings=self._settings.with_mode(mode),
            provider_settings=self._provider_settings,
            session=Session(cwd=str(self._cwd), parent_id=self.task_id),
            catalog=self._catalog,
            modes=self._modes,
            registry=self._executor.registry,
            permissions=self._permissions,
            approval=self._approval,
            hooks=self._hooks,
            access=self._access,
            capabilities=self._capabilities,
            collaborators=self._collaborators,
            cancel=self._cancel,
            subtasks=self._subtasks,
            protocol=self._protocol,
            live_staging=self._stager.live,
            max_tokens=self._max_tokens,
        )

    # ------------------------------------------------------------------
    # TaskControl
    # ------------------------------------------------------------------

    def record_mistake(self, tool_name: str) -> None:
        self._task.consecutive_mistake_count += 1
        if tool_name:
            self._task.tool_errors[tool_name] += 1

    def reset_mistakes(self) -> None:
        self._task.consecutive_mistake_count = 0

    def mark_rejected(self) -> None:
        self._task.did_reject_tool = True

    def mark_file_edited(self) -> None:
        self._task.did_edit_file = True

    def record_tool_use(self, tool_name: str) -> None:
        self._task.tool_usage[tool_name] += 1

    def state_snapshot(self) -> TaskState:
        return self._task.snapshot()

    def switch_mode(self, slug: str, reason: str | None = None) -> str | None:
        """Returns an error message, or None once the switch is done."""
        mode = self._modes.get(slug)
        if mode is None:
            return f"Invalid mode: {slug}"
        previous = self._mode.slug
        self._mode = mode
        self._settings = self._settings.with_mode(slug)
        self._session.save_metadata(mode=slug)
        self._mode_switches.append((previous, slug))
        self._pending.append(SystemEvent(
            type="mode_switch", data={"from": previous, "to": slug, "reason": reason},
        ))
        logger.info("Task %s switched mode %s -> %s", self.task_id, previous, slug)
        return None

    def complete(self, result: str) -> None:
        self._task.did_complete = True
        self._completion = result

    def set_todos(self, todos: list[dict[str, str]]) -> None:
        self._task.todos = [dict(t) for t in todos]
        self._pending.append(SystemEvent(type="todos", data={"todos": self._task.todos}))

    async def ask_user(self, question: str, suggestions: Sequence[str]) -> str | None:
        return await self._gate.ask_followup(question, suggestions)

    async def spawn_subtask(self, mode: str, message: str) -> str:
        if mode not in self._modes:
            raise ToolValidationError(f"Invalid mode: {mode}")
        if self._subtasks is None:
            from agentcore.agents.manager import SubtaskManager

            self._subtasks = SubtaskManager()
        return await self._subtasks.run(self, mode, message, on_message=self._pending.append)

    def emit_partial(self, tool_name: str, params: dict[str, Any]) -> None:
        self._pending.append(ToolUse(id="", name=tool_name, args=dict(params), partial=True))

    def enter_state(self, state: LoopState) -> None:
        self._state = state

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, user_message: str) -> AsyncIterator[Message]:
        """Run the task for a user message. Yields Message events.

        Can be called again on the same loop to continue the task, including
        after it stopped at the mistake limit.
        """
        if self._state is LoopState.MISTAKE_LIMIT_REACHED:
            # The new message is the guidance the limit asked for.
            self.reset_mistakes()
            self._repetition.reset()
        self._task.did_complete = False
        self._completion = None
        self._state = LoopState.AWAITING_MODEL_TURN

        protocol = self._resolve_protocol()
        self._add(ChatMessage(role="user", content=user_message))

        if not self._started:
            self._started = True
            self._session.save_metadata(mode=self._mode.slug)
            yield SystemEvent(type="task_start", data={
                "task_id": self.task_id, "mode": self._mode.slug, "protocol": protocol.value,
            })
            await self._fire(HookEvent.TASK_START)

        stop_reason = "end_turn"
        turns = 0
        try:
            while True:
                count = self._task.consecutive_mistake_count
                if count >= self._settings.consecutive_mistake_limit:
                    self._state = LoopState.MISTAKE_LIMIT_REACHED
                    stop_reason = "mistake_limit"
                    logger.warning("Task %s stopped after %d consecutive mistakes", self.task_id, count)
                    yield SystemEvent(type="mistake_limit", data={
                        "count": count, "message": responses.too_many_mistakes(count),
                    })
                    break
                if turns >= self._settings.max_turns:
                    self._state = LoopState.MAX_TURNS
                    stop_reason = "max_turns"
                    break

                self._cancel.raise_if_cancelled()
                for queued in self._queue.drain():
                    self._add(ChatMessage(role="user", content=queued))
                    yield SystemEvent(type="user_message", data={"text": queued})

                turns += 1
                async for msg in self._turn(protocol):
                    yield msg

                if self._task.did_complete:
                    self._state = LoopState.COMPLETED
                    stop_reason = "completed"
                    yield SystemEvent(type="task_complete", data={"result": self._completion})
                    await self._fire(HookEvent.TASK_COMPLETE, result=self._completion)
                    break
        except TaskAborted as e:
            self._state = LoopState.ABORTED
            stop_reason = "aborted"
            released = await self._abort(str(e))
            yield SystemEvent(type="task_abort", data={"reason": str(e), "released_processes": released})

        yield Result(
            text=self._completion or self._last_text,
            session_id=self.task_id,
            turns=self._turns,
            tool_calls=self._tool_calls,
            total_tokens=self._total_tokens,
            stop_reason=stop_reason,
        )

    # ------------------------------------------------------------------
    # One model turn
    # ------------------------------------------------------------------

    async def _turn(self, protocol: ToolProtocol) -> AsyncIterator[Message]:
        self._state = LoopState.AWAITING_MODEL_TURN
        self._parser.begin_turn()
        self._task.did_reject_tool = False
        allowed = self.allowed_tools()
        definitions = [d for d in self._catalog if d.name in allowed]
        system = build_system_prompt(self._mode, definitions, protocol, self._cwd, self._modes)
        preview_turn = self._turn_context()

        text = ""
        calls: list[NativeToolCall] = []
        current: dict[str, str] | None = None
        tokens = 0

        async for event in self._provider.chat_completion_stream(
            messages=self._session.messages,
            tools=definitions if protocol is ToolProtocol.NATIVE else [],
            system=system,
            max_tokens=self._max_tokens,
        ):
            self._cancel.raise_if_cancelled()
            match event.type:
                case "text_delta" if event.text:
                    text += event.text
                    yield TextMessage(text=event.text, is_partial=True)
                    if protocol is ToolProtocol.XML:
                        self._state = LoopState.PARSING_INVOCATION
                        outcome = self._parser.parse(event.text, protocol, partial=True)
                        for msg in await self._preview(outcome, preview_turn):
                            yield msg
                case "tool_use_start":
                    current = {"id": event.tool_use_id or "", "name": event.tool_name or "", "args": ""}
                case "tool_use_delta" if current is not None:
                    current["args"] += event.tool_args_json or ""
                    self._state = LoopState.PARSING_INVOCATION
                    call = NativeToolCall(current["id"], current["name"], current["args"])
                    outcome = self._parser.parse(call, protocol, partial=True)
                    for msg in await self._preview(outcome, preview_turn):
                        yield msg
                case "tool_use_end" if current is not None:
                    calls.append(NativeToolCall(current["id"], current["name"], current["args"]))
                    current = None
                case "message_end":
                    if event.usage:
                        tokens = event.usage.get("input_tokens", 0) + event.usage.get("output_tokens", 0)

        if text:
            yield TextMessage(text=text, is_partial=False)
            self._last_text = self._parser.narrative.strip() if protocol is ToolProtocol.XML else text
        self._turns += 1
        self._total_tokens += tokens
        self._session.record_turn(tokens=tokens)

        found: list[tuple[str | None, ParseOutcome]] = [
            (call.id or None, self._parser.parse(call, protocol, partial=False)) for call in calls
        ]
        if protocol is ToolProtocol.XML:
            outcome = self._parser.parse("", protocol, partial=False)
            if outcome is not None:
                found.insert(0, (None, outcome))

        self._add_assistant(text, found, protocol)

        if not found:
            self.record_mistake("")
            record_mistake("none", reason="no_tool_used")
            self._add(ChatMessage(role="user", content=[
                {"type": "text", "text": responses.no_tools_used(protocol.value)},
            ]))
            yield SystemEvent(type="no_tool_used", data={
                "consecutive_mistakes": self._task.consecutive_mistake_count,
            })
            return

        blocks: list[dict[str, Any]] = []
        for call_id, outcome in found:
            self._state = LoopState.VALIDATING_INVOCATION
            name = _outcome_name(outcome)
            use_id = call_id or f"xml_{uuid.uuid4().hex[:12]}"
            params = outcome.params if isinstance(outcome, ToolInvocation) else {}
            yield ToolUse(id=use_id, name=name, args=params)

            result = await self._resolve(outcome, allowed)
            allowed = self.allowed_tools()

            for msg in self._drain_pending():
                yield msg
            if isinstance(outcome, ToolInvocation) and self._lock_protocol(protocol):
                yield SystemEvent(type="protocol_locked", data={"protocol": protocol.value})
            await self._fire_mode_switches()

            yield ToolResult(
                tool_use_id=use_id, content=result.text, is_error=result.is_error, display=result.display,
            )
            blocks.extend(_result_blocks(protocol, call_id, name, result))

        if protocol is ToolProtocol.XML and (ignored := self._parser.ignored_blocks()):
            blocks.append({"type": "text", "text": responses.ignored_tool_blocks(ignored)})

        self._state = LoopState.RECONCILING_TRANSCRIPT
        self._add(ChatMessage(role="user", content=blocks))
        self._state = LoopState.AWAITING_MODEL_TURN

    async def _resolve(self, outcome: ParseOutcome, allowed: frozenset[ToolName]) -> ToolResultData:
        """Turn one parse outcome into the result the model will see."""
        name = _outcome_name(outcome)
        if self._task.did_complete:
            return ToolResultData(
                content=responses.tool_skipped(name, "the task was already completed in this message."),
                is_error=True,
            )
        if self._task.did_reject_tool:
            return ToolResultData(
                content=responses.tool_skipped(name, "the user rejected a previous tool in this message."),
                is_error=True,
            )
        if self._task.consecutive_mistake_count >= self._settings.consecutive_mistake_limit:
            return ToolResultData(
                content=responses.tool_skipped(name, "too many consecutive mistakes."), is_error=True,
            )
        if not isinstance(outcome, ToolInvocation):
            return self._parse_failure(outcome)
        if self._repetition.observe(outcome.name, outcome.params):
            self.record_mistake(outcome.name)
            record_mistake(outcome.name, reason="repeated_call")
            return ToolResultData(content=responses.repeated_call(outcome.name), is_error=True)

        turn = self._turn_context()
        self._state = LoopState.EXECUTING
        await self._dispatch(outcome, turn, allowed)
        self._tool_calls += 1
        return merge_results(turn.results)

    def _parse_failure(self, outcome: ParseOutcome) -> ToolResultData:
        protocol = self._protocol.value if self._protocol else ""
        record_parse_error(protocol)
        if isinstance(outcome, ParseError) and outcome.tool_name and outcome.tool_name in self._catalog:
            text = responses.invalid_tool(outcome.tool_name, outcome.message)
        else:
            text = responses.unknown_tool(outcome.tool_name if isinstance(outcome, ParseError) else None)
        tool_name = outcome.tool_name if isinstance(outcome, ParseError) and outcome.tool_name else ""
        self.record_mistake(tool_name)
        record_mistake(tool_name or "unknown", reason="parse_error")
        return ToolResultData(content=text, is_error=True)

    async def _dispatch(
        self, invocation: ToolInvocation, turn: TurnContext, allowed: frozenset[ToolName],
    ) -> DispatchOutcome:
        """Run the executor, abandoning the tool as soon as the task is cancelled."""
        outcomes: list[DispatchOutcome] = []

        async with anyio.create_task_group() as tg:

            async def _run() -> None:
                try:
                    outcomes.append(await self._executor.dispatch(invocation, turn, allowed))
                except TaskAborted as e:
                    logger.debug("Dispatch of %s aborted: %s", invocation.name, e)
                tg.cancel_scope.cancel()

            async def _watch() -> None:
                await self._cancel.wait()
                tg.cancel_scope.cancel()

            tg.start_soon(_run)
            tg.start_soon(_watch)

        if not outcomes:
            raise TaskAborted(self._cancel.reason)
        return outcomes[0]

    async def _preview(self, outcome: ParseOutcome, turn: TurnContext) -> list[Message]:
        if isinstance(outcome, NeedMoreInput) and outcome.invocation is not None:
            await self._executor.handle_partial(outcome.invocation, turn)
        return self._drain_pending()

    # ------------------------------------------------------------------
    # Protocol lock
    # ------------------------------------------------------------------

    def _resolve_protocol(self) -> ToolProtocol:
        """Stored lock, then the transcript's own format, then the provider."""
        if self._protocol is not None:
            return self._protocol
        locked: ToolProtocol | None = None
        stored = self._session.tool_protocol
        if stored:
            try:
                locked = ToolProtocol(stored)
            except ValueError:
                logger.warning("Ignoring unknown stored tool protocol %r", stored)
        if locked is None:
            locked = detect_from_history(self._session.messages)
        self._protocol = resolve_protocol(self._provider_settings, locked, self._settings)
        logger.debug("Task %s uses the %s tool protocol", self.task_id, self._protocol.value)
        return self._protocol

    def _lock_protocol(self, protocol: ToolProtocol) -> bool:
        if self._session.tool_protocol is not None:
            return False
        self._session.save_metadata(tool_protocol=protocol.value)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _turn_context(self) -> TurnContext:
        return TurnContext(
            cwd=self._cwd,
            task_id=self.task_id,
            settings=self._settings,
            mode=self._mode,
            access=self._access,
            stager=self._stager,
            cancel=self._cancel,
            control=self,
            collaborators=self._collaborators,
        )

    def _add(self, msg: ChatMessage) -> None:
        self._session.add_message(msg)

    def _add_assistant(
        self, text: str, found: list[tuple[str | None, ParseOutcome]], protocol: ToolProtocol,
    ) -> None:
        content: list[dict[str, Any]] = []
        if text:
            content.append({"type": "text", "text": text})
        for call_id, outcome in found:
            block: dict[str, Any] = {"type": "tool_use", "name": _outcome_name(outcome)}
            # Native blocks carry the call id; XML blocks never do. Resumed
            # tasks read the protocol back from this.
            if protocol is ToolProtocol.NATIVE and call_id:
                block["id"] = call_id
            block["input"] = outcome.params if isinstance(outcome, ToolInvocation) else {}
            content.append(block)
        if content:
            self._add(ChatMessage(role="assistant", content=content))

    def _drain_pending(self) -> list[Message]:
        pending, self._pending = self._pending, []
        return pending

    async def _fire_mode_switches(self) -> None:
        switches, self._mode_switches = self._mode_switches, []
        for previous, new in switches:
            await self._fire(HookEvent.MODE_SWITCH, result=f"{previous} -> {new}")

    async def _abort(self, reason: str) -> int:
        """Release processes and record the interruption."""
        logger.info("Task %s aborted: %s", self.task_id, reason)
        terminals = self._collaborators.terminals
        released = await terminals.release_all(self.task_id) if terminals is not None else 0
        self._add(ChatMessage(role="user", content=responses.aborted(reason)))
        await self._fire(HookEvent.TASK_ABORT, result=reason)
        return released

    async def _fire(self, event: HookEvent, *, result: str | None = None) -> None:
        if not len(self._hooks):
            return
        ctx = build_hook_context(
            event, result=result, task_id=self.task_id, mode=self._mode.slug, cwd=self._cwd,
        )
        await self._hooks.fire(ctx)


def _outcome_name(outcome: ParseOutcome) -> str:
    if isinstance(outcome, ToolInvocation):
        return outcome.name
    if isinstance(outcome, ParseError) and outcome.tool_name:
        return outcome.tool_name
    return "unknown"


def _result_blocks(
    protocol: ToolProtocol, call_id: str | None, name: str, result: ToolResultData,
) -> list[dict[str, Any]]:
    """Transcript blocks carrying one tool result back to the model."""
    if protocol is ToolProtocol.NATIVE and call_id:
        return [{
            "type": "tool_result",
            "tool_use_id": call_id,
            "content": result.content,
            "is_error": result.is_error,
        }]
    header = f"[{name}] Result:"
    if isinstance(result.content, str):
        return [{"type": "text", "text": f"{header}\n{result.content}"}]
    return [{"type": "text", "text": header}, *result.content]
