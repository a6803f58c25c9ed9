"""Modes: named bundles of tool groups."""

from agentcore.modes.defaults import DEFAULT_MODES
from agentcore.modes.registry import (
    ModeRegistry,
    check_file_restriction,
    load_modes_file,
    validate_tool_use,
)

__all__ = [
    "DEFAULT_MODES",
    "ModeRegistry",
    "check_file_restriction",
    "load_modes_file",
    "validate_tool_use",
]
