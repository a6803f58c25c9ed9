"""Task-level cancellation token."""

from __future__ import annotations

import anyio

from agentcore.errors import TaskAborted


class CancellationToken:
    """Cooperative cancellation signal observed at suspension points.

    The underlying anyio event is created lazily so the token can be built
    outside a running event loop.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""
        self._event: anyio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TaskAborted(self._reason)

    async def wait(self) -> None:
        """Block until cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = anyio.Event()
        await self._event.wait()
