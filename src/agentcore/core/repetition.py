"""Detects a model calling the same tool with the same input over and over."""

from __future__ import annotations

import json
from typing import Any

DEFAULT_REPETITION_LIMIT = 3


def _fingerprint(tool_name: str, params: dict[str, Any]) -> str:
    return tool_name + ":" + json.dumps(params, sort_keys=True, default=str)


class RepetitionDetector:
    """Counts consecutive identical tool calls.

    ``limit`` is the number of identical calls in a row that is refused; a
    different call, or :meth:`reset`, starts the count again.
    """

    def __init__(self, limit: int = DEFAULT_REPETITION_LIMIT) -> None:
        self.limit = max(limit, 2)
        self._last: str | None = None
        self._count = 0

    def observe(self, tool_name: str, params: dict[str, Any]) -> bool:
        """Record a call. Returns True when it should be refused."""
        fingerprint = _fingerprint(tool_name, params)
        if fingerprint == self._last:
            self._count += 1
        else:
            self._last = fingerprint
            self._count = 1
        if self._count >= self.limit:
            # Start over so the model gets a fresh allowance after the warning.
            self._last = None
            self._count = 0
            return True
        return False

    def reset(self) -> None:
        self._last = None
        self._count = 0
