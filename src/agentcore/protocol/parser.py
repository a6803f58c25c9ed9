"""ToolInvocationParser: one front end for native and XML tool calls."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from agentcore.protocol.detector import ToolProtocol
from agentcore.protocol.schema import SchemaError, coerce_params
from agentcore.protocol.xml_stream import XmlStreamParser, XmlToolBlock
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.providers import NativeToolCall
from agentcore.types.tools import ToolName

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """A parsed tool call, possibly still streaming."""

    tool_name: ToolName
    params: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = None
    partial: bool = False

    @property
    def name(self) -> str:
        return self.tool_name.value


@dataclass(frozen=True, slots=True)
class NeedMoreInput:
    """The call has started but is not complete yet."""

    invocation: ToolInvocation | None = None


@dataclass(frozen=True, slots=True)
class ParseError:
    """A tool call that cannot be parsed; names the tool when known."""

    tool_name: str | None
    message: str


ParseOutcome = ToolInvocation | NeedMoreInput | ParseError | None


class ToolInvocationParser:
    """Turns transport output into ToolInvocations.

    Native calls arrive already lexed; this validates and coerces their
    arguments. XML text is fed through a streaming lexer that keeps state
    for the current turn, so :meth:`parse` takes the newly streamed chunk
    each time, not the accumulated text. Call :meth:`begin_turn` before each
    model turn.
    """

    def __init__(self, catalog: ToolCatalog) -> None:
        self._catalog = catalog
        self._xml = XmlStreamParser(catalog)

    def begin_turn(self) -> None:
        self._xml.reset()

    @property
    def narrative(self) -> str:
        """Text outside XML tool blocks in the current turn."""
        return self._xml.text

    def ignored_blocks(self) -> list[str]:
        """Names of XML blocks after the first; only the first one runs."""
        return [b.name.value for b in self._xml.blocks[1:]]

    def parse(
        self, raw: str | NativeToolCall, protocol: ToolProtocol, partial: bool,
    ) -> ParseOutcome:
        if isinstance(raw, NativeToolCall):
            if protocol is not ToolProtocol.NATIVE:
                return ParseError(
                    raw.name,
                    "A native tool call was received but this task uses the XML tool protocol.",
                )
            return self._parse_native(raw, partial)
        if protocol is ToolProtocol.XML:
            return self._parse_xml(raw, partial)
        return None

    # ------------------------------------------------------------------
    # Native
    # ------------------------------------------------------------------

    def _parse_native(self, call: NativeToolCall, partial: bool) -> ParseOutcome:
        definition = self._catalog.get(call.name)
        if definition is None:
            if partial:
                return NeedMoreInput()
            return ParseError(call.name, f"Unknown tool: '{call.name}'.")

        args = call.arguments
        if isinstance(args, str):
            try:
                args = json.loads(args) if args.strip() else {}
            except json.JSONDecodeError as e:
                if partial:
                    return NeedMoreInput(ToolInvocation(definition.name, {}, call.id or None, True))
                return ParseError(call.name, f"Tool arguments are not valid JSON: {e.msg}")
        if not isinstance(args, dict):
            return ParseError(call.name, "Tool arguments must be a JSON object.")

        try:
            params = coerce_params(definition, args, partial=partial)
        except SchemaError as e:
            return ParseError(call.name, str(e))

        invocation = ToolInvocation(definition.name, params, call.id or None, partial)
        return NeedMoreInput(invocation) if partial else invocation

    # ------------------------------------------------------------------
    # XML
    # ------------------------------------------------------------------

    def _parse_xml(self, chunk: str, partial: bool) -> ParseOutcome:
        self._xml.feed(chunk)
        block = self._xml.first_block
        if block is None:
            return None
        if block.complete:
            return self._finish_block(block)
        if partial:
            params = self._coerce_loose(block)
            return NeedMoreInput(ToolInvocation(block.name, params, None, True))
        return ParseError(
            block.name.value,
            f"The <{block.name.value}> tool call was not closed; "
            f"expected </{block.name.value}>.",
        )

    def _finish_block(self, block: XmlToolBlock) -> ParseOutcome:
        definition = self._catalog[block.name]
        try:
            params = coerce_params(definition, block.params)
        except SchemaError as e:
            return ParseError(block.name.value, str(e))
        return ToolInvocation(block.name, params, None, False)

    def _coerce_loose(self, block: XmlToolBlock) -> dict[str, Any]:
        return coerce_params(self._catalog[block.name], block.params, partial=True)
