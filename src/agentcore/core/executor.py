"""ToolExecutor: uniform dispatch discipline for every tool invocation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import anyio

from agentcore.core import responses
from agentcore.core.state import LoopState
from agentcore.core.turn import TurnContext
from agentcore.errors import (
    AccessDeniedError,
    MissingParameterError,
    TaskAborted,
    ToolError,
    ToolNotAllowedError,
    ToolValidationError,
)
from agentcore.hooks.events import build_hook_context
from agentcore.hooks.manager import HookManager
from agentcore.modes.registry import validate_tool_use
from agentcore.observability.metrics import record_approval, record_mistake, record_tool_call
from agentcore.observability.tracing import span
from agentcore.permissions.approval import ApprovalGate, ApprovalOutcome
from agentcore.permissions.manager import PermissionManager
from agentcore.permissions.rules import PermissionDecision
from agentcore.protocol.parser import ToolInvocation
from agentcore.tools.base import BaseTool
from agentcore.tools.registry import ToolRegistry
from agentcore.types.hooks import HookEvent
from agentcore.types.tools import ApprovalStyle, ToolDef, ToolName, ToolPreview, ToolResultData

logger = logging.getLogger(__name__)


class DispatchStatus(Enum):
    SUCCEEDED = "succeeded"
    TOOL_ERROR = "tool_error"  # tool ran and reported a soft failure
    MISSING_PARAMETER = "missing_parameter"
    INVALID = "invalid"
    NOT_ALLOWED = "not_allowed"
    ACCESS_DENIED = "access_denied"
    HOOK_BLOCKED = "hook_blocked"
    POLICY_DENIED = "policy_denied"
    USER_DENIED = "user_denied"
    FAILED = "failed"  # tool raised

    @property
    def counts_as_mistake(self) -> bool:
        return self in _MISTAKES


_MISTAKES = frozenset({
    DispatchStatus.MISSING_PARAMETER,
    DispatchStatus.INVALID,
    DispatchStatus.NOT_ALLOWED,
})


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    status: DispatchStatus
    result: ToolResultData

    @property
    def ok(self) -> bool:
        return self.status is DispatchStatus.SUCCEEDED


class ToolExecutor:
    """Runs one invocation through validation, access, policy, approval and execution.

    Every failure becomes a transcript result on the turn; nothing but
    cancellation escapes :meth:`dispatch`.

    Order of checks:
    1. Mode legality and required parameters
    2. Tool-specific validation (and the mode's file restrictions)
    3. Workspace / ignore-file access on the touched paths
    4. ``pre_tool_use`` hooks (exit code 2 blocks)
    5. Auto-approval policy
    6. Approval gate (skipped for always-safe and per-item tools)
    7. Execution, with revert on any failure
    """

    def __init__(
        self,
        registry: ToolRegistry,
        permissions: PermissionManager,
        gate: ApprovalGate,
        hooks: HookManager | None = None,
    ) -> None:
        self._registry = registry
        self._permissions = permissions
        self._gate = gate
        self._hooks = hooks or HookManager()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Partial previews
    # ------------------------------------------------------------------

    async def handle_partial(self, invocation: ToolInvocation, turn: TurnContext) -> None:
        """Forward a streaming invocation to the tool's live preview."""
        tool = self._registry[invocation.tool_name]
        try:
            await tool.handle_partial(invocation.params, turn)
        except (KeyError, ToolError) as e:
            logger.debug("Partial preview for %s skipped: %s", invocation.name, e)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        invocation: ToolInvocation,
        turn: TurnContext,
        allowed: frozenset[ToolName],
    ) -> DispatchOutcome:
        tool = self._registry[invocation.tool_name]
        definition = tool.definition
        params = invocation.params
        turn.tool_name = definition.name.value

        with span("agentcore.tool", {"tool": definition.name.value, "mode": turn.mode.slug}):
            outcome = await self._dispatch(tool, definition, params, turn, allowed)

        if outcome.status.counts_as_mistake:
            turn.control.record_mistake(definition.name.value)
            record_mistake(definition.name.value, reason=outcome.status.value)
        logger.debug("Dispatched %s: %s", definition.name.value, outcome.status.value)
        return outcome

    async def _dispatch(
        self,
        tool: BaseTool,
        definition: ToolDef,
        params: dict[str, Any],
        turn: TurnContext,
        allowed: frozenset[ToolName],
    ) -> DispatchOutcome:
        name = definition.name.value

        # 1. Mode legality, then required parameters
        try:
            validate_tool_use(definition, turn.mode, allowed)
        except ToolNotAllowedError:
            return self._fail(turn, DispatchStatus.NOT_ALLOWED, responses.tool_not_allowed(name, turn.mode.slug))

        for required in definition.required_params:
            if params.get(required) in (None, ""):
                return self._fail(turn, DispatchStatus.MISSING_PARAMETER, responses.missing_param(name, required))

        # 2. Tool-specific validation and file restrictions
        try:
            await tool.validate(params, turn)
            paths = tool.resource_paths(params)
            validate_tool_use(definition, turn.mode, allowed, paths)
        except MissingParameterError as e:
            return self._fail(turn, DispatchStatus.MISSING_PARAMETER, responses.missing_param(name, e.param_name))
        except ToolValidationError as e:
            return self._fail(turn, DispatchStatus.INVALID, responses.tool_error(str(e)))

        # 3. Workspace access
        try:
            for path in paths:
                turn.access.check(path, write=tool.writes())
        except AccessDeniedError as e:
            return self._fail(turn, DispatchStatus.ACCESS_DENIED, responses.access_denied(e.path, e.reason))

        # 4. Pre-tool hooks
        blocked = await self._run_pre_hooks(name, params, turn)
        if blocked is not None:
            return self._fail(turn, DispatchStatus.HOOK_BLOCKED, responses.hook_blocked(name, blocked))

        outside = any(turn.access.is_outside(p) for p in paths)
        protected = any(turn.access.is_protected(p) for p in paths)

        # 5. Policy
        decision = self._permissions.check(
            definition, params, outside_workspace=outside, is_protected=protected,
        )
        if decision is PermissionDecision.DENY:
            return self._fail(turn, DispatchStatus.POLICY_DENIED, responses.policy_denied(name))

        turn.approver = self._item_approver(definition, params, turn)

        # 6. Stage and approve
        preview: ToolPreview | None = None
        feedback: str | None = None
        try:
            preview = await tool.prepare(params, turn)
            if not definition.always_safe and definition.approval is not ApprovalStyle.PER_ITEM:
                outcome = await self._ask(
                    turn,
                    preview.payload,
                    is_protected=protected or preview.is_protected,
                    auto_approve=decision is PermissionDecision.ALLOW,
                    destructive=definition.destructive,
                    images=preview.images,
                )
                record_approval(name, approved=outcome.approved, auto=outcome.auto)
                if not outcome.approved:
                    await tool.revert(preview, turn)
                    turn.control.mark_rejected()
                    return self._fail(
                        turn, DispatchStatus.USER_DENIED, responses.denied_by_user(outcome.feedback_text),
                    )
                feedback = outcome.feedback_text

            # 7. Execute
            result = await tool.execute(params, turn, preview)
        except MissingParameterError as e:
            await self._revert(tool, preview, turn)
            return self._fail(turn, DispatchStatus.MISSING_PARAMETER, responses.missing_param(name, e.param_name))
        except ToolValidationError as e:
            await self._revert(tool, preview, turn)
            return self._fail(turn, DispatchStatus.INVALID, responses.tool_error(str(e)))
        except AccessDeniedError as e:
            await self._revert(tool, preview, turn)
            return self._fail(turn, DispatchStatus.ACCESS_DENIED, responses.access_denied(e.path, e.reason))
        except TaskAborted:
            await self._revert(tool, preview, turn)
            raise
        except Exception as e:  # noqa: BLE001
            await self._revert(tool, preview, turn)
            await turn.handle_error(f"executing {name}", e)
            record_tool_call(name, is_error=True)
            return DispatchOutcome(DispatchStatus.FAILED, turn.results[-1])
        except BaseException:
            # Cancellation: undo staged changes, then let it propagate.
            with anyio.CancelScope(shield=True):
                await self._revert(tool, preview, turn)
            raise

        turn.control.record_tool_use(name)
        record_tool_call(name, is_error=result.is_error)
        turn.results.append(result)
        if feedback:
            turn.push_result(responses.approved_with_feedback(feedback))

        await self._run_post_hooks(name, params, result, turn)

        if result.is_error:
            return DispatchOutcome(DispatchStatus.TOOL_ERROR, result)
        turn.control.reset_mistakes()
        return DispatchOutcome(DispatchStatus.SUCCEEDED, result)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail(self, turn: TurnContext, status: DispatchStatus, text: str) -> DispatchOutcome:
        result = ToolResultData(content=text, is_error=True)
        turn.results.append(result)
        return DispatchOutcome(status, result)

    async def _revert(self, tool: BaseTool, preview: ToolPreview | None, turn: TurnContext) -> None:
        if preview is None:
            return
        try:
            await tool.revert(preview, turn)
        except OSError as e:
            logger.error("Failed to revert %s: %s", tool.definition.name.value, e)

    async def _ask(self, turn: TurnContext, preview: dict[str, Any], **kwargs: Any) -> ApprovalOutcome:
        """Put *preview* through the gate with the loop marked as waiting on approval."""
        turn.control.enter_state(LoopState.AWAITING_APPROVAL)
        try:
            return await self._gate.request_approval(preview, **kwargs)
        finally:
            turn.control.enter_state(LoopState.EXECUTING)

    def _item_approver(self, definition: ToolDef, params: dict[str, Any], turn: TurnContext):
        """Approval function for tools that ask once per item."""

        async def approve(
            preview: dict[str, Any],
            *,
            path: str | None = None,
            is_protected: bool = False,
            images: Sequence[bytes] = (),
        ) -> ApprovalOutcome:
            outside = path is not None and turn.access.is_outside(path)
            item_args = {**params, "path": path} if path is not None else params
            decision = self._permissions.check(
                definition, item_args, outside_workspace=outside, is_protected=is_protected,
            )
            if decision is PermissionDecision.DENY:
                return ApprovalOutcome(approved=False)
            outcome = await self._ask(
                turn,
                preview,
                is_protected=is_protected,
                auto_approve=decision is PermissionDecision.ALLOW,
                destructive=definition.destructive,
                images=images,
            )
            record_approval(definition.name.value, approved=outcome.approved, auto=outcome.auto)
            return outcome

        return approve

    async def _run_pre_hooks(self, name: str, params: dict[str, Any], turn: TurnContext) -> str | None:
        """Return the blocking reason if a hook vetoes the call."""
        if not len(self._hooks):
            return None
        ctx = build_hook_context(
            HookEvent.PRE_TOOL_USE,
            tool_name=name, tool_args=params,
            task_id=turn.task_id, mode=turn.mode.slug, cwd=turn.cwd,
        )
        for result in await self._hooks.fire(ctx):
            if result.blocks:
                return result.error or result.output
        return None

    async def _run_post_hooks(
        self, name: str, params: dict[str, Any], result: ToolResultData, turn: TurnContext,
    ) -> None:
        if not len(self._hooks):
            return
        ctx = build_hook_context(
            HookEvent.POST_TOOL_USE,
            tool_name=name, tool_args=params,
            result=result.text[:1000], is_error=result.is_error,
            task_id=turn.task_id, mode=turn.mode.slug, cwd=turn.cwd,
        )
        await self._hooks.fire(ctx)
