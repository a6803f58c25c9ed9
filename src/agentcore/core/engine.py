"""Engine: wires config, modes, policy, hooks and a provider into a TaskLoop."""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from agentcore.core.config import load_config
from agentcore.core.loop import TaskLoop
from agentcore.core.session import Session
from agentcore.core.turn import Collaborators
from agentcore.hooks.manager import HookManager
from agentcore.modes.registry import ModeRegistry
from agentcore.permissions.access import WorkspaceAccess
from agentcore.permissions.approval import ApprovalCallback
from agentcore.permissions.manager import PermissionManager
from agentcore.types.config import Capabilities, TaskSettings
from agentcore.types.messages import Message
from agentcore.types.providers import ProviderAdapter, ProviderSettings


def create_task(
    provider: ProviderAdapter,
    *,
    cwd: str | Path | None = None,
    session_id: str | None = None,
    mode: str | None = None,
    provider_settings: ProviderSettings | None = None,
    approval: ApprovalCallback | None = None,
    collaborators: Collaborators | None = None,
    capabilities: Capabilities | None = None,
    settings: TaskSettings | None = None,
    **overrides: Any,
) -> TaskLoop:
    """Build a TaskLoop for *cwd* from the config files on disk.

    Args:
        provider: Streams model turns.
        cwd: Workspace root; defaults to the current directory.
        session_id: Resume a stored task, or None for a new one.
        mode: Starting mode slug; overrides ``[settings] mode``.
        provider_settings: What the provider can carry (native tools, images).
        approval: Asks the user about tool calls; None denies anything that
            is not auto-approved.
        collaborators: Terminals, code index, browser and MCP hub.
        capabilities: Readiness of optional collaborators.
        settings: Use these settings instead of reading ``config.toml``.
        **overrides: Individual TaskSettings fields to override.
    """
    resolved_cwd = Path(cwd).resolve() if cwd else Path.cwd()
    config = load_config(resolved_cwd)

    task_settings = settings or config.settings
    if mode is not None:
        overrides["mode"] = mode
    if overrides:
        task_settings = dataclasses.replace(task_settings, **overrides)

    session = Session(session_id=session_id, cwd=str(resolved_cwd))
    return TaskLoop(
        provider,
        cwd=resolved_cwd,
        settings=task_settings,
        provider_settings=provider_settings,
        session=session,
        modes=ModeRegistry.load(resolved_cwd),
        permissions=PermissionManager(
            config.auto_approval, config.permissions, yolo=task_settings.yolo_mode,
        ),
        approval=approval,
        hooks=HookManager(config.hooks),
        access=WorkspaceAccess(resolved_cwd),
        capabilities=capabilities,
        collaborators=collaborators,
    )


async def run(
    prompt: str,
    provider: ProviderAdapter,
    **kwargs: Any,
) -> AsyncIterator[Message]:
    """Run a task for *prompt*. Yields Message events.

    Accepts the keyword arguments of :func:`create_task`.
    """
    loop = create_task(provider, **kwargs)
    async for msg in loop.run(prompt):
        yield msg
