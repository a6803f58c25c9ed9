"""Tool-call protocols: detection, lexing and parsing."""

from agentcore.protocol.detector import (
    XML_ONLY_PROVIDERS,
    ToolProtocol,
    detect_from_history,
    resolve_protocol,
)
from agentcore.protocol.parser import (
    NeedMoreInput,
    ParseError,
    ParseOutcome,
    ToolInvocation,
    ToolInvocationParser,
)
from agentcore.protocol.xml_stream import XmlState, XmlStreamParser, XmlToolBlock

__all__ = [
    "NeedMoreInput",
    "ParseError",
    "ParseOutcome",
    "ToolInvocation",
    "ToolInvocationParser",
    "ToolProtocol",
    "XML_ONLY_PROVIDERS",
    "XmlState",
    "XmlStreamParser",
    "XmlToolBlock",
    "detect_from_history",
    "resolve_protocol",
]
