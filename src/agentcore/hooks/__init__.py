"""Lifecycle hooks: shell commands fired around tool use and task events."""

from agentcore.hooks.events import HookContext, build_hook_context
from agentcore.hooks.manager import HookManager

__all__ = ["HookContext", "HookManager", "build_hook_context"]
