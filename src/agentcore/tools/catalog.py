"""ToolCatalog: immutable registry of tool definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from agentcore.tools.definitions import DEFINITIONS
from agentcore.types.config import AvailabilityContext
from agentcore.types.modes import Mode
from agentcore.types.tools import ToolDef, ToolGroup, ToolName

ALWAYS_AVAILABLE: frozenset[ToolName] = frozenset({
    ToolName.ASK_FOLLOWUP_QUESTION,
    ToolName.ATTEMPT_COMPLETION,
    ToolName.SWITCH_MODE,
    ToolName.NEW_TASK,
    ToolName.UPDATE_TODO_LIST,
})


class ToolCatalog:
    """Maps every ToolName to its definition.

    Constructed once per host process and shared by reference between
    tasks; nothing on it mutates after ``__init__``.

    Usage::

        catalog = ToolCatalog()
        allowed = catalog.allowed_for(mode, AvailabilityContext(settings))
    """

    def __init__(self, definitions: Iterable[ToolDef] = DEFINITIONS) -> None:
        table: dict[ToolName, ToolDef] = {}
        for definition in definitions:
            if definition.name in table:
                raise ValueError(f"Duplicate tool definition: {definition.name.value}")
            table[definition.name] = definition
        missing = [name.value for name in ToolName if name not in table]
        if missing:
            raise ValueError(f"Tool catalog is missing definitions for: {', '.join(missing)}")
        self._table = MappingProxyType(table)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: ToolName | str) -> ToolDef | None:
        """Return the definition for *name* (enum or wire name), or None."""
        key = name if isinstance(name, ToolName) else ToolName.lookup(name)
        if key is None:
            return None
        return self._table[key]

    def __getitem__(self, name: ToolName) -> ToolDef:
        return self._table[name]

    def names(self) -> list[str]:
        """Wire names of every tool, in declaration order."""
        return [name.value for name in self._table]

    def in_group(self, group: ToolGroup) -> list[ToolDef]:
        return [d for d in self._table.values() if d.group is group]

    # ------------------------------------------------------------------
    # Mode resolution
    # ------------------------------------------------------------------

    def allowed_for(self, mode: Mode, ctx: AvailabilityContext) -> frozenset[ToolName]:
        """Tools the mode may call right now.

        Union of the mode's groups plus the always-available set, minus
        anything whose availability predicate is false.
        """
        groups = set(mode.allowed_groups)
        allowed: set[ToolName] = set()
        for name, definition in self._table.items():
            if definition.group not in groups and name not in ALWAYS_AVAILABLE:
                continue
            if not definition.available(ctx):
                continue
            allowed.add(name)
        return frozenset(allowed)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[ToolDef]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, str):
            return ToolName.lookup(name) is not None
        return name in self._table

    def __repr__(self) -> str:
        return f"ToolCatalog(tools={len(self._table)})"
