"""ModeRegistry: built-in modes merged with custom YAML modes."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from agentcore.errors import FileRestrictionError, ToolNotAllowedError
from agentcore.modes.defaults import DEFAULT_MODES
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.config import DEFAULT_MODE, AvailabilityContext
from agentcore.types.modes import GroupEntry, Mode
from agentcore.types.tools import ToolDef, ToolGroup, ToolName

logger = logging.getLogger(__name__)

MODES_FILE = "modes.yaml"


def _config_home() -> Path:
    """Directory holding global agentcore configuration."""
    return Path.home() / ".agentcore"


def _parse_group(raw: Any) -> GroupEntry:
    """Accept ``"read"`` or ``{"group": "edit", "file_regex": ..., "description": ...}``."""
    if isinstance(raw, str):
        return GroupEntry(ToolGroup(raw))
    if isinstance(raw, dict):
        pattern = raw.get("file_regex")
        if pattern is not None:
            re.compile(pattern)
        return GroupEntry(
            ToolGroup(raw["group"]),
            file_regex=pattern,
            description=raw.get("description"),
        )
    raise ValueError(f"Invalid group entry: {raw!r}")


def _parse_mode(raw: dict[str, Any], source: str) -> Mode:
    slug = raw["slug"]
    if not re.fullmatch(r"[a-zA-Z0-9-]+", slug):
        raise ValueError(f"Invalid mode slug: {slug!r}")
    groups = tuple(_parse_group(g) for g in raw.get("groups", ()))
    if ToolGroup.ALWAYS in {g.group for g in groups}:
        raise ValueError("The 'always' group is implicit and cannot be listed")
    return Mode(
        slug=slug,
        name=raw.get("name", slug),
        role_definition=raw.get("role_definition", ""),
        groups=groups,
        when_to_use=raw.get("when_to_use", ""),
        custom_instructions=raw.get("custom_instructions", ""),
        source=source,
    )


def load_modes_file(path: Path, source: str) -> list[Mode]:
    """Parse custom modes from a YAML file; invalid entries are skipped."""
    if not path.exists():
        return []
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read custom modes from %s: %s", path, e)
        return []

    modes: list[Mode] = []
    for raw in data.get("modes", []) or []:
        try:
            modes.append(_parse_mode(raw, source))
        except (KeyError, ValueError, TypeError, re.error) as e:
            logger.warning("Skipping invalid mode in %s: %s", path, e)
    return modes


class ModeRegistry:
    """Read-only set of modes available to tasks.

    Custom modes override built-ins with the same slug; project modes
    override global ones.
    """

    def __init__(
        self,
        modes: Iterable[Mode] = DEFAULT_MODES,
        custom: Iterable[Mode] = (),
        default_slug: str = DEFAULT_MODE,
    ) -> None:
        table: dict[str, Mode] = {m.slug: m for m in modes}
        for mode in custom:
            table[mode.slug] = mode
        if default_slug not in table:
            raise ValueError(f"Default mode {default_slug!r} is not defined")
        self._modes = MappingProxyType(table)
        self._default_slug = default_slug

    @classmethod
    def load(cls, cwd: str | Path | None = None) -> ModeRegistry:
        """Built-ins + ``~/.agentcore/modes.yaml`` + ``<cwd>/.agentcore/modes.yaml``."""
        custom = load_modes_file(_config_home() / MODES_FILE, "global")
        if cwd is not None:
            custom += load_modes_file(Path(cwd) / ".agentcore" / MODES_FILE, "project")
        return cls(custom=custom)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def default_slug(self) -> str:
        return self._default_slug

    def get(self, slug: str) -> Mode | None:
        return self._modes.get(slug)

    def resolve(self, slug: str | None) -> Mode:
        """Return the mode for *slug*, falling back to the default mode."""
        mode = self._modes.get(slug or "")
        if mode is None:
            logger.warning("Unknown mode %r, falling back to %r", slug, self._default_slug)
            return self._modes[self._default_slug]
        return mode

    def slugs(self) -> list[str]:
        return list(self._modes)

    def __iter__(self):
        return iter(self._modes.values())

    def __contains__(self, slug: object) -> bool:
        return slug in self._modes

    # ------------------------------------------------------------------
    # Tool legality
    # ------------------------------------------------------------------

    def resolve_allowed_tools(
        self, slug: str | None, catalog: ToolCatalog, ctx: AvailabilityContext,
    ) -> frozenset[ToolName]:
        return catalog.allowed_for(self.resolve(slug), ctx)

    def is_tool_allowed(
        self, name: ToolName, slug: str | None, catalog: ToolCatalog, ctx: AvailabilityContext,
    ) -> bool:
        return name in self.resolve_allowed_tools(slug, catalog, ctx)


def check_file_restriction(mode: Mode, definition: ToolDef, path: str | None) -> None:
    """Raise FileRestrictionError if *mode* may not edit *path* with this tool."""
    if path is None or not definition.edits_files:
        return
    entry = mode.entry_for(definition.group)
    if entry is None or entry.file_regex is None:
        return
    if not re.search(entry.file_regex, path):
        raise FileRestrictionError(mode.name, entry.file_regex, path, entry.description)


def validate_tool_use(
    definition: ToolDef,
    mode: Mode,
    allowed: frozenset[ToolName],
    paths: Iterable[str] = (),
) -> None:
    """Raise if *mode* may not call this tool on these paths."""
    if definition.name not in allowed:
        raise ToolNotAllowedError(definition.name.value, mode.slug)
    for path in paths:
        check_file_restriction(mode, definition, path)
