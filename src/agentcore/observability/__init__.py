"""OpenTelemetry instrumentation for agentcore."""

from agentcore.observability.metrics import (
    record_approval,
    record_mistake,
    record_parse_error,
    record_tool_call,
    reset_instruments,
)
from agentcore.observability.tracing import get_tracer, span

__all__ = [
    "get_tracer",
    "record_approval",
    "record_mistake",
    "record_parse_error",
    "record_tool_call",
    "reset_instruments",
    "span",
]
