"""Configuration loading (TOML, env vars, .env)."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from agentcore.permissions.rules import AutoApprovalConfig, PermissionConfig
from agentcore.types.config import TaskSettings, settings_from_mapping
from agentcore.types.hooks import Hook, HookEvent

logger = logging.getLogger(__name__)

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

CONFIG_FILE = "config.toml"

_TRUE = {"1", "true", "yes", "on"}


def _config_home() -> Path:
    return Path.home() / ".agentcore"


@dataclass(slots=True)
class EngineConfig:
    """Everything the host reads from disk before starting a task."""

    settings: TaskSettings = field(default_factory=TaskSettings)
    auto_approval: AutoApprovalConfig = field(default_factory=AutoApprovalConfig)
    permissions: PermissionConfig = field(default_factory=PermissionConfig)
    hooks: list[Hook] = field(default_factory=list)


def load_env_config() -> dict[str, Any]:
    """``AGENTCORE_*`` overrides for the ``[settings]`` table."""
    config: dict[str, Any] = {}

    if mode := os.environ.get("AGENTCORE_MODE"):
        config["mode"] = mode
    if protocol := os.environ.get("AGENTCORE_PROTOCOL"):
        config["preferred_protocol"] = protocol
    if yolo := os.environ.get("AGENTCORE_YOLO"):
        config["yolo_mode"] = yolo.lower() in _TRUE
    if limit := os.environ.get("AGENTCORE_MISTAKE_LIMIT"):
        try:
            config["consecutive_mistake_limit"] = int(limit)
        except ValueError:
            logger.warning("Ignoring non-integer AGENTCORE_MISTAKE_LIMIT=%r", limit)

    return config


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; tables merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_toml_config(cwd: str | Path | None = None) -> dict[str, Any]:
    """``~/.agentcore/config.toml`` overlaid with ``<cwd>/.agentcore/config.toml``."""
    data = _read_toml(_config_home() / CONFIG_FILE)
    project = Path(cwd) if cwd is not None else Path.cwd()
    return _merge(data, _read_toml(project / ".agentcore" / CONFIG_FILE))


def parse_hooks(table: dict[str, Any]) -> list[Hook]:
    """Build hooks from ``[[hooks.<event>]]`` entries."""
    hooks: list[Hook] = []
    for event_name, entries in table.items():
        try:
            event = HookEvent(event_name)
        except ValueError:
            logger.warning("Ignoring hooks for unknown event %r", event_name)
            continue
        for entry in entries if isinstance(entries, list) else [entries]:
            command = entry.get("command") if isinstance(entry, dict) else None
            if not command:
                logger.warning("Ignoring %s hook without a command", event_name)
                continue
            hooks.append(Hook(
                event=event,
                command=command,
                matcher=entry.get("matcher"),
                timeout=float(entry.get("timeout", 30.0)),
            ))
    return hooks


def parse_permissions(table: dict[str, Any]) -> PermissionConfig:
    """``[permissions]`` with ``deny`` / ``allow`` lists of tool globs or ``{tool, args}`` tables."""
    config = PermissionConfig()
    for key, add in (("deny", config.add_deny), ("allow", config.add_allow)):
        for entry in table.get(key, []):
            if isinstance(entry, str):
                add(entry)
            elif isinstance(entry, dict) and "tool" in entry:
                add(entry["tool"], entry.get("args"))
            else:
                logger.warning("Ignoring malformed permissions.%s entry: %r", key, entry)
    return config


def load_config(cwd: str | Path | None = None) -> EngineConfig:
    """Read settings, auto-approval, permission rules and hooks for *cwd*."""
    data = load_toml_config(cwd)
    settings_table = _merge(data.get("settings", {}), load_env_config())

    return EngineConfig(
        settings=settings_from_mapping(settings_table),
        auto_approval=AutoApprovalConfig.from_mapping(data.get("auto_approve", {})),
        permissions=parse_permissions(data.get("permissions", {})),
        hooks=parse_hooks(data.get("hooks", {})),
    )
