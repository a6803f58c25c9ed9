"""Permission rules and auto-approval configuration."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PermissionDecision(Enum):
    """Result of a permission check."""

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


@dataclass(frozen=True, slots=True)
class PermissionRule:
    """A single permission rule.

    Rules are evaluated in priority order: explicit deny > explicit allow > ask.
    """

    tool: str  # Tool name or glob pattern (e.g. "execute_command", "*_file", "*")
    decision: PermissionDecision
    args_pattern: dict[str, str] | None = None  # Optional arg matchers


@dataclass(slots=True)
class PermissionConfig:
    """Explicit allow / deny rules."""

    deny_rules: list[PermissionRule] = field(default_factory=list)
    allow_rules: list[PermissionRule] = field(default_factory=list)

    def add_deny(
        self, tool: str, args_pattern: dict[str, str] | None = None,
    ) -> None:
        self.deny_rules.append(
            PermissionRule(tool=tool, decision=PermissionDecision.DENY, args_pattern=args_pattern),
        )

    def add_allow(
        self, tool: str, args_pattern: dict[str, str] | None = None,
    ) -> None:
        self.allow_rules.append(
            PermissionRule(tool=tool, decision=PermissionDecision.ALLOW, args_pattern=args_pattern),
        )


@dataclass(slots=True)
class AutoApprovalConfig:
    """Which kinds of operation run without asking.

    ``write_protected`` must be set explicitly before protected files are
    ever auto-approved; destructive tools always ask regardless.
    """

    read: bool = True
    read_outside: bool = False
    write: bool = False
    write_outside: bool = False
    write_protected: bool = False
    execute: bool = False
    allowed_commands: tuple[str, ...] = ()
    denied_commands: tuple[str, ...] = ()
    browser: bool = False
    mcp: bool = False
    mode_switch: bool = True
    subtasks: bool = True
    todo: bool = True

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AutoApprovalConfig:
        """Build from an ``[auto_approve]`` config table, ignoring unknown keys."""
        known = set(cls.__dataclass_fields__)
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key in ("allowed_commands", "denied_commands"):
                value = tuple(str(v) for v in value)
            values[key] = value
        return cls(**values)


def _matches_rule(
    rule: PermissionRule,
    tool_name: str,
    args: dict[str, object],
) -> bool:
    """Check if a rule matches a tool call."""
    if not fnmatch.fnmatch(tool_name, rule.tool):
        return False
    if rule.args_pattern:
        for key, pattern in rule.args_pattern.items():
            val = str(args.get(key, ""))
            if not fnmatch.fnmatch(val, pattern):
                return False
    return True
