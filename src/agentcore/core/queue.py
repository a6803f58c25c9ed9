"""MessageQueue: user messages queued while a task is running."""

from __future__ import annotations

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream


class MessageQueue:
    """Lets the host push user messages that the loop injects between turns.

    Uses anyio memory object streams for async-safe communication.
    """

    def __init__(self, buffer_size: int = 16) -> None:
        send: ObjectSendStream[str]
        recv: ObjectReceiveStream[str]
        send, recv = anyio.create_memory_object_stream[str](max_buffer_size=buffer_size)
        self._send = send
        self._recv = recv

    async def send(self, message: str) -> None:
        """Queue a message, waiting if the buffer is full."""
        await self._send.send(message)

    def send_nowait(self, message: str) -> None:
        """Queue a message without waiting (raises anyio.WouldBlock when full)."""
        self._send.send_nowait(message)

    def drain(self) -> list[str]:
        """Take every message queued so far without waiting."""
        messages: list[str] = []
        while True:
            try:
                messages.append(self._recv.receive_nowait())
            except (anyio.WouldBlock, anyio.EndOfStream, anyio.ClosedResourceError):
                return messages

    async def close(self) -> None:
        """Close the queue."""
        await self._send.aclose()
        await self._recv.aclose()
