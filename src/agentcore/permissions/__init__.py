"""Approval gating, auto-approval policy and workspace access control."""

from agentcore.permissions.access import DEFAULT_PROTECTED, IGNORE_FILE, WorkspaceAccess
from agentcore.permissions.approval import (
    ApprovalCallback,
    ApprovalGate,
    ApprovalOutcome,
    ApprovalResponse,
    StdinApprovalCallback,
    describe_tool_call,
    parse_answer,
)
from agentcore.permissions.manager import PermissionManager, command_decision, split_command_chain
from agentcore.permissions.rules import (
    AutoApprovalConfig,
    PermissionConfig,
    PermissionDecision,
    PermissionRule,
)

__all__ = [
    "DEFAULT_PROTECTED",
    "IGNORE_FILE",
    "ApprovalCallback",
    "ApprovalGate",
    "ApprovalOutcome",
    "ApprovalResponse",
    "AutoApprovalConfig",
    "PermissionConfig",
    "PermissionDecision",
    "PermissionManager",
    "PermissionRule",
    "StdinApprovalCallback",
    "WorkspaceAccess",
    "command_decision",
    "describe_tool_call",
    "parse_answer",
    "split_command_chain",
]
