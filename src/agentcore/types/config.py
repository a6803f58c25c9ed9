"""Configuration types for agentcore."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from agentcore.types.providers import ProviderSettings

DEFAULT_MODE = "code"
DEFAULT_MISTAKE_LIMIT = 3


@dataclass(frozen=True, slots=True)
class TaskSettings:
    """Read-only settings snapshot supplied by the host for each turn."""

    mode: str = DEFAULT_MODE
    experiments: dict[str, bool] = field(default_factory=dict)
    yolo_mode: bool = False
    diff_enabled: bool = True
    todo_list_enabled: bool = True
    browser_tool_enabled: bool = True
    web_fetch_enabled: bool = True
    consecutive_mistake_limit: int = DEFAULT_MISTAKE_LIMIT
    max_turns: int = 100
    preferred_protocol: str | None = None  # "native" / "xml"
    command_timeout_ms: int = 120_000

    def experiment(self, name: str) -> bool:
        """Return whether the named experiment flag is switched on."""
        return bool(self.experiments.get(name, False))

    def with_mode(self, slug: str) -> TaskSettings:
        """Copy of these settings with another active mode."""
        values = {name: getattr(self, name) for name in self.__dataclass_fields__}
        values["mode"] = slug
        return TaskSettings(**values)


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Runtime state of collaborators that tool availability depends on."""

    code_index_ready: bool = False
    mcp_servers: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AvailabilityContext:
    """Everything an availability predicate may look at."""

    settings: TaskSettings
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    capabilities: Capabilities = field(default_factory=Capabilities)


def settings_from_mapping(data: dict[str, Any]) -> TaskSettings:
    """Build TaskSettings from a config table, ignoring unknown keys."""
    known = set(TaskSettings.__dataclass_fields__)
    values = {k: v for k, v in data.items() if k in known}
    if "experiments" in values:
        values["experiments"] = {str(k): bool(v) for k, v in dict(values["experiments"]).items()}
    return TaskSettings(**values)
