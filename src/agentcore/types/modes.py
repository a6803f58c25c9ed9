"""Mode definition types."""

from __future__ import annotations

from dataclasses import dataclass

from agentcore.types.tools import ToolGroup


@dataclass(frozen=True, slots=True)
class GroupEntry:
    """A tool group granted to a mode, optionally restricted to some files."""

    group: ToolGroup
    file_regex: str | None = None  # only meaningful for the edit group
    description: str | None = None


@dataclass(frozen=True, slots=True)
class Mode:
    """A named bundle of allowed tool groups and role framing."""

    slug: str
    name: str
    role_definition: str
    groups: tuple[GroupEntry, ...] = ()
    when_to_use: str = ""
    custom_instructions: str = ""
    source: str = "builtin"  # "builtin", "global", "project"

    @property
    def allowed_groups(self) -> tuple[ToolGroup, ...]:
        return tuple(entry.group for entry in self.groups)

    def entry_for(self, group: ToolGroup) -> GroupEntry | None:
        for entry in self.groups:
            if entry.group is group:
                return entry
        return None
