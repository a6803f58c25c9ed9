"""Streaming lexer for XML-style tool calls embedded in model text.

The lexer is a small explicit state machine fed one chunk at a time.
Because it advances character by character, splitting the input at any
point produces the same result as feeding it whole.

Only known tags are structural: a tool block opens on ``<tool_name>`` for a
catalog tool, a value opens on one of that tool's parameter tags, and a
value ends only on its exact closing tag. Anything else, including ``<`` and
``>`` inside source code, is kept as literal text.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agentcore.types.tools import ToolDef, ToolName, ToolParam

_MAX_TAG_LEN = 64
_TRANSPARENT_TAGS = frozenset({"args"})


class XmlState(Enum):
    """Lexer states."""

    TEXT = "text"  # outside any tool block
    OPEN_TAG = "open_tag"  # reading a tag name outside a block
    IN_TOOL = "in_tool"  # inside a block, between parameter tags
    TOOL_TAG = "tool_tag"  # reading a tag name inside a block
    IN_VALUE = "in_value"  # collecting a raw parameter value
    CLOSE_TAG = "close_tag"  # matching a value's closing tag


@dataclass(slots=True)
class XmlToolBlock:
    """One tool block found in the text."""

    name: ToolName
    params: dict[str, Any] = field(default_factory=dict)
    complete: bool = False


@dataclass(slots=True)
class _Frame:
    tag: str
    target: dict[str, Any]
    scalars: dict[str, ToolParam]
    objects: dict[str, ToolParam]
    items: dict[str, ToolParam]  # item tag -> owning array parameter
    wrappers: frozenset[str]


def _build_frame(tag: str, params: Iterable[ToolParam], target: dict[str, Any], *, top: bool) -> _Frame:
    scalars: dict[str, ToolParam] = {}
    objects: dict[str, ToolParam] = {}
    items: dict[str, ToolParam] = {}
    wrappers: set[str] = set(_TRANSPARENT_TAGS) if top else set()
    for p in params:
        if p.type == "array" and p.items is not None:
            items[p.items.name] = p
            if p.items.name != p.name:
                wrappers.add(p.name)
        elif p.type == "object" and p.properties:
            objects[p.name] = p
        else:
            scalars[p.name] = p
    return _Frame(tag, target, scalars, objects, items, frozenset(wrappers))


def _is_name_char(c: str) -> bool:
    return c.isalnum() or c in "_-"


def clean_value(raw: str) -> str:
    """Trim the layout newlines models put around multi-line values."""
    if "\n" not in raw:
        return raw.strip()
    if raw.startswith("\r\n"):
        raw = raw[2:]
    elif raw.startswith("\n"):
        raw = raw[1:]
    if raw.endswith("\r\n"):
        raw = raw[:-2]
    elif raw.endswith("\n"):
        raw = raw[:-1]
    return raw


class XmlStreamParser:
    """Incrementally extracts tool blocks from streamed text.

    Usage::

        lexer = XmlStreamParser(catalog)
        for chunk in stream:
            lexer.feed(chunk)
        block = lexer.first_block
    """

    def __init__(self, definitions: Iterable[ToolDef]) -> None:
        self._defs = {d.name.value: d for d in definitions}
        self.reset()

    def reset(self) -> None:
        self._state = XmlState.TEXT
        self._tag = ""
        self._text: list[str] = []
        self._blocks: list[XmlToolBlock] = []
        self._current: XmlToolBlock | None = None
        self._frames: list[_Frame] = []
        self._value: list[str] = []
        self._pending = ""
        self._closer = ""
        self._value_target: tuple[dict[str, Any], str, bool] | None = None

    # ------------------------------------------------------------------
    # Public view
    # ------------------------------------------------------------------

    @property
    def state(self) -> XmlState:
        return self._state

    @property
    def text(self) -> str:
        """Narrative text outside tool blocks seen so far."""
        return "".join(self._text)

    @property
    def blocks(self) -> list[XmlToolBlock]:
        """Completed blocks followed by the one in progress, if any."""
        out = list(self._blocks)
        if self._current is not None:
            out.append(XmlToolBlock(self._current.name, self._snapshot_params(), complete=False))
        return out

    @property
    def first_block(self) -> XmlToolBlock | None:
        blocks = self.blocks
        return blocks[0] if blocks else None

    @property
    def in_block(self) -> bool:
        return self._current is not None

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def feed(self, chunk: str) -> None:
        for c in chunk:
            self._step(c)

    def _step(self, c: str) -> None:
        match self._state:
            case XmlState.TEXT:
                if c == "<":
                    self._tag = c
                    self._state = XmlState.OPEN_TAG
                else:
                    self._text.append(c)

            case XmlState.OPEN_TAG:
                self._tag += c
                if c == ">":
                    name = self._tag[1:-1]
                    if name in self._defs:
                        self._open_block(self._defs[name])
                    else:
                        self._text.append(self._tag)
                        self._state = XmlState.TEXT
                elif not _is_name_char(c) or len(self._tag) > _MAX_TAG_LEN:
                    self._text.append(self._tag[:-1])
                    if c == "<":
                        self._tag = c
                    else:
                        self._text.append(c)
                        self._state = XmlState.TEXT

            case XmlState.IN_TOOL:
                if c == "<":
                    self._tag = c
                    self._state = XmlState.TOOL_TAG

            case XmlState.TOOL_TAG:
                self._tag += c
                if c == ">":
                    self._state = XmlState.IN_TOOL
                    self._handle_tag(self._tag)
                elif c == "/" and self._tag == "</":
                    pass
                elif not _is_name_char(c) or len(self._tag) > _MAX_TAG_LEN:
                    if c == "<":
                        self._tag = c
                    else:
                        self._state = XmlState.IN_TOOL

            case XmlState.IN_VALUE:
                if c == "<":
                    self._pending = c
                    self._state = XmlState.CLOSE_TAG
                else:
                    self._value.append(c)

            case XmlState.CLOSE_TAG:
                self._pending += c
                if self._closer.startswith(self._pending):
                    if self._pending == self._closer:
                        self._commit_value()
                        self._state = XmlState.IN_TOOL
                elif c == "<":
                    self._value.append(self._pending[:-1])
                    self._pending = c
                else:
                    self._value.append(self._pending)
                    self._pending = ""
                    self._state = XmlState.IN_VALUE

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _open_block(self, definition: ToolDef) -> None:
        block = XmlToolBlock(definition.name)
        self._current = block
        self._frames = [
            _build_frame(definition.name.value, definition.parameters, block.params, top=True),
        ]
        self._state = XmlState.IN_TOOL

    def _handle_tag(self, tag: str) -> None:
        closing = tag.startswith("</")
        name = tag[2:-1] if closing else tag[1:-1]
        frame = self._frames[-1]

        if closing:
            if name == frame.tag:
                self._frames.pop()
                if not self._frames:
                    self._close_block()
            return

        if name in frame.items:
            array = frame.items[name]
            item = array.items
            if item is not None and item.type == "object" and item.properties:
                child: dict[str, Any] = {}
                frame.target.setdefault(array.name, []).append(child)
                self._frames.append(_build_frame(name, item.properties, child, top=False))
            else:
                self._open_value(name, frame.target, array.name, append=True)
        elif name in frame.scalars:
            self._open_value(name, frame.target, name, append=False)
        elif name in frame.objects:
            child = {}
            frame.target[name] = child
            self._frames.append(_build_frame(name, frame.objects[name].properties, child, top=False))
        # wrappers and unknown tags are skipped

    def _open_value(self, tag: str, container: dict[str, Any], key: str, *, append: bool) -> None:
        self._value = []
        self._pending = ""
        self._closer = f"</{tag}>"
        self._value_target = (container, key, append)
        self._state = XmlState.IN_VALUE

    def _commit_value(self) -> None:
        assert self._value_target is not None
        container, key, append = self._value_target
        value = clean_value("".join(self._value))
        if append:
            container.setdefault(key, []).append(value)
        else:
            container[key] = value
        self._value = []
        self._pending = ""
        self._value_target = None

    def _close_block(self) -> None:
        assert self._current is not None
        self._current.complete = True
        self._blocks.append(self._current)
        self._current = None
        self._state = XmlState.TEXT

    def _snapshot_params(self) -> dict[str, Any]:
        assert self._current is not None
        if self._value_target is None:
            return copy.deepcopy(self._current.params)
        container, key, append = self._value_target
        partial = clean_value("".join(self._value))
        if append:
            container.setdefault(key, []).append(partial)
            snapshot = copy.deepcopy(self._current.params)
            container[key].pop()
            if not container[key]:
                del container[key]
        else:
            container[key] = partial
            snapshot = copy.deepcopy(self._current.params)
            del container[key]
        return snapshot
