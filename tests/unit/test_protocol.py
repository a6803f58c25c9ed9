"""Tests for protocol detection, schema coercion and both tool-call parsers."""

from __future__ import annotations

import pytest

from agentcore.protocol.detector import ToolProtocol, detect_from_history, resolve_protocol
from agentcore.protocol.parser import NeedMoreInput, ParseError, ToolInvocation, ToolInvocationParser
from agentcore.protocol.schema import SchemaError, coerce_params
from agentcore.protocol.xml_stream import XmlState, XmlStreamParser, clean_value
from agentcore.tools.catalog import ToolCatalog
from agentcore.types.config import TaskSettings
from agentcore.types.providers import ChatMessage, NativeToolCall, ProviderSettings
from agentcore.types.tools import ToolName

WRITE_XML = "<write_to_file><path>a.txt</path><content>hi</content></write_to_file>"


def _assistant(*blocks: dict) -> ChatMessage:
    return ChatMessage(role="assistant", content=list(blocks))


class TestResolveProtocol:
    def test_native_by_default(self):
        assert resolve_protocol(ProviderSettings()) is ToolProtocol.NATIVE

    def test_lock_wins(self):
        assert resolve_protocol(ProviderSettings(), ToolProtocol.XML) is ToolProtocol.XML

    def test_provider_without_native_tools(self):
        provider = ProviderSettings(supports_native_tools=False)
        assert resolve_protocol(provider) is ToolProtocol.XML

    def test_xml_only_provider(self):
        assert resolve_protocol(ProviderSettings(provider="human-relay")) is ToolProtocol.XML

    def test_preference_in_settings(self):
        settings = TaskSettings(preferred_protocol="xml")
        assert resolve_protocol(ProviderSettings(), None, settings) is ToolProtocol.XML

    def test_unknown_preference_ignored(self):
        settings = TaskSettings(preferred_protocol="smoke-signals")
        assert resolve_protocol(ProviderSettings(), None, settings) is ToolProtocol.NATIVE


class TestDetectFromHistory:
    def test_no_tool_use(self):
        history = [ChatMessage(role="user", content="hi"), ChatMessage(role="assistant", content="hello")]
        assert detect_from_history(history) is None

    def test_native_when_id_present(self):
        history = [_assistant({"type": "tool_use", "id": "tu1", "name": "read_file", "input": {}})]
        assert detect_from_history(history) is ToolProtocol.NATIVE

    def test_xml_when_id_absent(self):
        history = [_assistant({"type": "tool_use", "name": "read_file", "input": {}})]
        assert detect_from_history(history) is ToolProtocol.XML

    def test_most_recent_message_decides(self):
        history = [
            _assistant({"type": "tool_use", "id": "tu1", "name": "read_file", "input": {}}),
            ChatMessage(role="user", content="next"),
            _assistant(
                {"type": "text", "text": "again"},
                {"type": "tool_use", "name": "read_file", "input": {}},
            ),
        ]
        assert detect_from_history(history) is ToolProtocol.XML

    def test_last_block_of_message_decides(self):
        history = [_assistant(
            {"type": "tool_use", "name": "read_file", "input": {}},
            {"type": "tool_use", "id": "tu2", "name": "list_files", "input": {}},
        )]
        assert detect_from_history(history) is ToolProtocol.NATIVE

    def test_user_messages_ignored(self):
        history = [ChatMessage(role="user", content=[{"type": "tool_use", "id": "x", "name": "read_file"}])]
        assert detect_from_history(history) is None


class TestCoerceParams:
    def test_strings_to_declared_types(self):
        d = ToolCatalog()[ToolName.READ_FILE]
        assert coerce_params(d, {"path": "a.py", "start_line": "5", "end_line": 9}) == {
            "path": "a.py", "start_line": 5, "end_line": 9,
        }

    def test_boolean(self):
        d = ToolCatalog()[ToolName.LIST_FILES]
        assert coerce_params(d, {"path": ".", "recursive": "true"})["recursive"] is True
        assert coerce_params(d, {"path": ".", "recursive": "no"})["recursive"] is False

    def test_unknown_keys_dropped(self):
        d = ToolCatalog()[ToolName.LIST_FILES]
        assert coerce_params(d, {"path": ".", "colour": "blue"}) == {"path": "."}

    def test_bad_integer(self):
        d = ToolCatalog()[ToolName.READ_FILE]
        with pytest.raises(SchemaError, match="start_line"):
            coerce_params(d, {"path": "a.py", "start_line": "five"})

    def test_partial_keeps_unconvertible_values(self):
        d = ToolCatalog()[ToolName.READ_FILE]
        assert coerce_params(d, {"start_line": "fi"}, partial=True) == {"start_line": "fi"}

    def test_missing_required_left_for_executor(self):
        d = ToolCatalog()[ToolName.WRITE_TO_FILE]
        assert coerce_params(d, {"path": "a.txt"}) == {"path": "a.txt"}

    def test_nested_array_of_objects(self):
        d = ToolCatalog()[ToolName.READ_FILE]
        params = coerce_params(d, {"files": [{"path": "a.py", "line_range": ["1-5"]}]})
        assert params == {"files": [{"path": "a.py", "line_range": ["1-5"]}]}

    def test_nested_required_field(self):
        d = ToolCatalog()[ToolName.READ_FILE]
        with pytest.raises(SchemaError, match=r"files\[0\]\.path"):
            coerce_params(d, {"files": [{"line_range": ["1-5"]}]})


class TestXmlStreamParser:
    def test_single_block(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed("I'll write it.\n" + WRITE_XML)
        block = lexer.first_block
        assert block is not None
        assert block.complete
        assert block.name is ToolName.WRITE_TO_FILE
        assert block.params == {"path": "a.txt", "content": "hi"}
        assert lexer.text == "I'll write it.\n"

    def test_chunking_does_not_change_result(self):
        text = (
            "Plan: x < y and <b>bold</b>\n"
            "<write_to_file>\n<path>src/a.ts</path>\n<content>\nif (a < b && c > d) {}\n</content>\n</write_to_file>"
        )
        whole = XmlStreamParser(ToolCatalog())
        whole.feed(text)

        for size in (1, 2, 3, 7, 13):
            lexer = XmlStreamParser(ToolCatalog())
            for i in range(0, len(text), size):
                lexer.feed(text[i:i + size])
            assert [(b.name, b.params, b.complete) for b in lexer.blocks] == [
                (b.name, b.params, b.complete) for b in whole.blocks
            ]
            assert lexer.text == whole.text

    def test_code_with_angle_brackets_is_literal(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed("<write_to_file><path>a.html</path><content>\n<div><p>x</p></div>\n</content></write_to_file>")
        assert lexer.first_block.params["content"] == "<div><p>x</p></div>"

    def test_unknown_tag_is_text(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed("<thinking>hmm</thinking>")
        assert lexer.blocks == []
        assert lexer.text == "<thinking>hmm</thinking>"
        assert lexer.state is XmlState.TEXT

    def test_partial_block_snapshot(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed("<write_to_file><path>a.txt</path><content>hel")
        block = lexer.first_block
        assert not block.complete
        assert block.params == {"path": "a.txt", "content": "hel"}
        assert lexer.in_block
        lexer.feed("lo</content></write_to_file>")
        assert lexer.first_block.params["content"] == "hello"

    def test_nested_files(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed(
            "<read_file><args>"
            "<file><path>a.py</path><line_range>1-5</line_range><line_range>9-12</line_range></file>"
            "<file><path>b.py</path></file>"
            "</args></read_file>"
        )
        assert lexer.first_block.params == {
            "files": [
                {"path": "a.py", "line_range": ["1-5", "9-12"]},
                {"path": "b.py"},
            ],
        }

    def test_reset(self):
        lexer = XmlStreamParser(ToolCatalog())
        lexer.feed("<write_to_file><path>a")
        lexer.reset()
        assert lexer.blocks == []
        assert lexer.state is XmlState.TEXT

    def test_clean_value(self):
        assert clean_value("  a.txt ") == "a.txt"
        assert clean_value("\nline one\n  line two\n") == "line one\n  line two"


class TestToolInvocationParser:
    def test_streamed_xml_chunks(self):
        parser = ToolInvocationParser(ToolCatalog())
        parser.begin_turn()

        first = parser.parse("<write_to_file><path>a.txt</path>", ToolProtocol.XML, partial=True)
        assert isinstance(first, NeedMoreInput)
        assert first.invocation.partial
        assert first.invocation.params == {"path": "a.txt"}

        second = parser.parse("<content>hi", ToolProtocol.XML, partial=True)
        assert isinstance(second, NeedMoreInput)
        assert second.invocation.params == {"path": "a.txt", "content": "hi"}

        final = parser.parse("</content></write_to_file>", ToolProtocol.XML, partial=False)
        assert final == ToolInvocation(ToolName.WRITE_TO_FILE, {"path": "a.txt", "content": "hi"})

    def test_plain_text_is_no_call(self):
        parser = ToolInvocationParser(ToolCatalog())
        assert parser.parse("Just thinking out loud.", ToolProtocol.XML, partial=False) is None
        assert parser.narrative == "Just thinking out loud."

    def test_unclosed_block_at_end(self):
        parser = ToolInvocationParser(ToolCatalog())
        outcome = parser.parse("<write_to_file><path>a.txt</path>", ToolProtocol.XML, partial=False)
        assert isinstance(outcome, ParseError)
        assert outcome.tool_name == "write_to_file"
        assert "was not closed" in outcome.message

    def test_only_first_block_reported(self):
        parser = ToolInvocationParser(ToolCatalog())
        text = WRITE_XML + "<list_files><path>.</path></list_files>"
        outcome = parser.parse(text, ToolProtocol.XML, partial=False)
        assert isinstance(outcome, ToolInvocation)
        assert outcome.tool_name is ToolName.WRITE_TO_FILE
        assert parser.ignored_blocks() == ["list_files"]

    def test_xml_schema_error(self):
        parser = ToolInvocationParser(ToolCatalog())
        outcome = parser.parse(
            "<read_file><path>a</path><start_line>x</start_line></read_file>",
            ToolProtocol.XML, partial=False,
        )
        assert isinstance(outcome, ParseError)
        assert "start_line" in outcome.message

    def test_xml_text_under_native_protocol(self):
        parser = ToolInvocationParser(ToolCatalog())
        assert parser.parse(WRITE_XML, ToolProtocol.NATIVE, partial=False) is None

    def test_native_call(self):
        parser = ToolInvocationParser(ToolCatalog())
        call = NativeToolCall("tu1", "read_file", {"path": "a.py", "start_line": "3"})
        outcome = parser.parse(call, ToolProtocol.NATIVE, partial=False)
        assert outcome == ToolInvocation(ToolName.READ_FILE, {"path": "a.py", "start_line": 3}, "tu1")

    def test_native_streaming_json(self):
        parser = ToolInvocationParser(ToolCatalog())
        call = NativeToolCall("tu1", "write_to_file", '{"path": "a.t')
        outcome = parser.parse(call, ToolProtocol.NATIVE, partial=True)
        assert isinstance(outcome, NeedMoreInput)
        assert outcome.invocation.partial

    def test_native_bad_json_final(self):
        parser = ToolInvocationParser(ToolCatalog())
        call = NativeToolCall("tu1", "write_to_file", '{"path": ')
        outcome = parser.parse(call, ToolProtocol.NATIVE, partial=False)
        assert isinstance(outcome, ParseError)
        assert "not valid JSON" in outcome.message

    def test_native_unknown_tool(self):
        parser = ToolInvocationParser(ToolCatalog())
        outcome = parser.parse(NativeToolCall("tu1", "rm_rf", {}), ToolProtocol.NATIVE, partial=False)
        assert isinstance(outcome, ParseError)
        assert outcome.tool_name == "rm_rf"

    def test_native_call_under_xml_protocol(self):
        parser = ToolInvocationParser(ToolCatalog())
        outcome = parser.parse(NativeToolCall("tu1", "read_file", {}), ToolProtocol.XML, partial=False)
        assert isinstance(outcome, ParseError)
        assert "XML tool protocol" in outcome.message

    def test_begin_turn_resets_xml_state(self):
        parser = ToolInvocationParser(ToolCatalog())
        parser.parse("<write_to_file><path>a", ToolProtocol.XML, partial=True)
        parser.begin_turn()
        assert parser.parse("", ToolProtocol.XML, partial=False) is None
