"""
Wire - bounded event channel between a run and its consumer.

The run task writes every event (including events emitted by tools and
nested subagents) to one Wire; the caller reads them in order. With a
small ``maxsize`` the producer blocks on ``write`` until the consumer has
pulled, so the run never gets more than a few events ahead.

Usage:
    wire = Wire(maxsize=1)
    task = asyncio.create_task(run(wire))

    async for event in wire.read():
        yield event
"""

import asyncio
from typing import AsyncIterator, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from deepagent.domain import Event


class EventSink(Protocol):
    """Anything events can be written to (a Wire or a relay onto one)."""

    async def write(self, event: "Event") -> None: ...


class Wire:
    """
    Event streaming channel.

    - write(): Put an event into the channel (waits while full)
    - read(): Async iterate over events until closed
    - close(): Signal that no more events will be written
    - detach(): Reader went away; drop queued events and ignore writes
    """

    # Sentinel value to signal end of stream
    _SENTINEL = object()

    def __init__(self, maxsize: int = 0):
        """
        Args:
            maxsize: Maximum queued events (0 = unlimited)
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._detached = False

    async def write(self, event: "Event") -> None:
        if self._closed:
            # Writes after close are ignored
            return
        await self._queue.put(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(self._SENTINEL)

    def detach(self) -> None:
        """Called by the reader when it stops consuming early."""
        self._closed = True
        self._detached = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break

    async def read(self) -> AsyncIterator["Event"]:
        while not self._detached:
            item = await self._queue.get()
            if item is self._SENTINEL:
                break
            yield item

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"Wire(closed={self._closed}, qsize={self._queue.qsize()})"


__all__ = ["EventSink", "Wire"]
