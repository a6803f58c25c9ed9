"""Metrics recording: counters for tool dispatch outcomes.

Without a configured MeterProvider the OpenTelemetry API hands out no-op
instruments, so recording is always safe.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics

# Lazily-created instruments
_meter: Any = None
_tool_call_counter: Any = None
_mistake_counter: Any = None
_approval_counter: Any = None
_parse_error_counter: Any = None


def _ensure_instruments() -> None:
    """Create meter and instruments on first use."""
    global _meter, _tool_call_counter, _mistake_counter, _approval_counter, _parse_error_counter

    if _meter is not None:
        return

    _meter = metrics.get_meter("agentcore")
    _tool_call_counter = _meter.create_counter(
        "agentcore.tool_calls",
        description="Tool invocations that reached execution",
    )
    _mistake_counter = _meter.create_counter(
        "agentcore.mistakes",
        description="Invocations counted against the consecutive mistake limit",
    )
    _approval_counter = _meter.create_counter(
        "agentcore.approvals",
        description="Approval decisions by outcome",
    )
    _parse_error_counter = _meter.create_counter(
        "agentcore.parse_errors",
        description="Tool calls that could not be parsed",
    )


def record_tool_call(tool_name: str, *, is_error: bool = False, protocol: str = "") -> None:
    """Record a tool call execution."""
    _ensure_instruments()
    _tool_call_counter.add(
        1, {"tool": tool_name, "error": str(is_error).lower(), "protocol": protocol},
    )


def record_mistake(tool_name: str, *, reason: str) -> None:
    _ensure_instruments()
    _mistake_counter.add(1, {"tool": tool_name, "reason": reason})


def record_approval(tool_name: str, *, approved: bool, auto: bool) -> None:
    _ensure_instruments()
    _approval_counter.add(
        1, {"tool": tool_name, "approved": str(approved).lower(), "auto": str(auto).lower()},
    )


def record_parse_error(protocol: str) -> None:
    _ensure_instruments()
    _parse_error_counter.add(1, {"protocol": protocol})


def reset_instruments() -> None:
    """Reset module-level instruments, useful for test isolation."""
    global _meter, _tool_call_counter, _mistake_counter, _approval_counter, _parse_error_counter
    _meter = None
    _tool_call_counter = None
    _mistake_counter = None
    _approval_counter = None
    _parse_error_counter = None
