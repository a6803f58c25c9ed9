"""Auto-approval policy.

Evaluation order: deny rules > allow rules > yolo > per-category settings.
The result is only a hint for the approval gate; destructive tools are
asked about no matter what this returns.
"""

from __future__ import annotations

import logging
import shlex
from typing import Any

from agentcore.permissions.rules import (
    AutoApprovalConfig,
    PermissionConfig,
    PermissionDecision,
    _matches_rule,
)
from agentcore.types.tools import ToolDef, ToolGroup, ToolName

logger = logging.getLogger(__name__)

_CHAIN_OPERATORS = frozenset({"&&", "||", ";", "|", "&", ";;"})
_SUBSHELL_MARKERS = ("$(", "`", "<(", ">(")


def split_command_chain(command: str) -> list[str]:
    """Split ``a && b | c; d`` into its individual commands.

    Quoted operators stay inside their command. Unbalanced quotes make the
    whole line one command.
    """
    commands: list[str] = []
    for line in command.splitlines():
        lexer = shlex.shlex(line, posix=True, punctuation_chars=True)
        lexer.whitespace_split = True
        current: list[str] = []
        try:
            for token in lexer:
                if token in _CHAIN_OPERATORS:
                    if current:
                        commands.append(" ".join(current))
                    current = []
                else:
                    current.append(token)
        except ValueError:
            stripped = line.strip()
            if stripped:
                commands.append(stripped)
            continue
        if current:
            commands.append(" ".join(current))
    return commands


def _prefix_length(command: str, prefixes: tuple[str, ...]) -> int:
    """Length of the longest prefix matching *command* on a word boundary, or -1."""
    best = -1
    lowered = command.lower()
    for prefix in prefixes:
        p = prefix.strip().lower()
        if p == "*":
            best = max(best, 0)
        elif lowered == p or lowered.startswith(p + " "):
            best = max(best, len(p))
    return best


def command_decision(command: str, config: AutoApprovalConfig) -> PermissionDecision:
    """Classify a command line against the allowed / denied prefix lists.

    Every command of a chain must be allowed for ALLOW; any denied command
    makes the whole line DENY. When both lists match, the longer prefix
    wins and denied wins ties.
    """
    parts = split_command_chain(command)
    if not parts:
        return PermissionDecision.ASK

    all_allowed = True
    for part in parts:
        allowed = _prefix_length(part, config.allowed_commands)
        denied = _prefix_length(part, config.denied_commands)
        if denied >= 0 and denied >= allowed:
            return PermissionDecision.DENY
        if allowed < 0:
            all_allowed = False

    if any(marker in command for marker in _SUBSHELL_MARKERS):
        return PermissionDecision.ASK
    return PermissionDecision.ALLOW if all_allowed else PermissionDecision.ASK


class PermissionManager:
    """Decides whether a tool call may skip the approval prompt.

    Evaluation order:
    1. Explicit deny rules (highest priority)
    2. Explicit allow rules
    3. yolo mode
    4. Per-category auto-approval settings
    """

    def __init__(
        self,
        auto_approval: AutoApprovalConfig | None = None,
        config: PermissionConfig | None = None,
        *,
        yolo: bool = False,
    ) -> None:
        self._auto = auto_approval or AutoApprovalConfig()
        self._config = config or PermissionConfig()
        self._yolo = yolo

    @property
    def auto_approval(self) -> AutoApprovalConfig:
        return self._auto

    @property
    def yolo(self) -> bool:
        return self._yolo

    def check(
        self,
        definition: ToolDef,
        args: dict[str, Any] | None = None,
        *,
        outside_workspace: bool = False,
        is_protected: bool = False,
    ) -> PermissionDecision:
        """Check permission for a tool call.

        Returns:
            PermissionDecision.ALLOW: execute without prompting
            PermissionDecision.DENY: refuse execution
            PermissionDecision.ASK: prompt the user
        """
        check_args = args or {}
        name = definition.name.value

        # 1. Explicit deny rules (highest priority)
        for rule in self._config.deny_rules:
            if _matches_rule(rule, name, check_args):
                return PermissionDecision.DENY

        # 2. Explicit allow rules
        for rule in self._config.allow_rules:
            if _matches_rule(rule, name, check_args):
                return PermissionDecision.ALLOW

        # 3. Denied commands hold even in yolo mode
        if definition.group is ToolGroup.COMMAND:
            decision = command_decision(str(check_args.get("command", "")), self._auto)
            if decision is PermissionDecision.DENY:
                return decision

        if self._yolo:
            return PermissionDecision.ALLOW

        # 4. Category defaults
        decision = self._category_default(definition, check_args, outside_workspace, is_protected)
        logger.debug("Auto-approval for %s: %s", name, decision.value)
        return decision

    def _category_default(
        self,
        definition: ToolDef,
        args: dict[str, Any],
        outside_workspace: bool,
        is_protected: bool,
    ) -> PermissionDecision:
        auto = self._auto
        allow = PermissionDecision.ALLOW
        ask = PermissionDecision.ASK

        match definition.group:
            case ToolGroup.READ:
                ok = auto.read and (auto.read_outside or not outside_workspace)
                return allow if ok else ask

            case ToolGroup.EDIT:
                ok = (
                    auto.write
                    and (auto.write_outside or not outside_workspace)
                    and (auto.write_protected or not is_protected)
                )
                return allow if ok else ask

            case ToolGroup.COMMAND:
                if not auto.execute:
                    return ask
                return command_decision(str(args.get("command", "")), auto)

            case ToolGroup.BROWSER:
                return allow if auto.browser else ask

            case ToolGroup.MCP:
                return allow if auto.mcp else ask

            case ToolGroup.ALWAYS:
                match definition.name:
                    case ToolName.SWITCH_MODE:
                        return allow if auto.mode_switch else ask
                    case ToolName.NEW_TASK:
                        return allow if auto.subtasks else ask
                    case ToolName.UPDATE_TODO_LIST:
                        return allow if auto.todo else ask
                    case _:
                        return allow

            case _:
                return ask
