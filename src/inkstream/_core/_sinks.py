"""Downstream sinks receiving framed stream events."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator


class SinkClosedError(Exception):
    """Write attempted on a sink that has already been closed."""


class StreamSink(ABC):
    """Consumer side of a streaming generation.

    Receives framed records, then is closed exactly once. Closing releases
    everything the consumer holds for the generation.
    """

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    async def write(self, frame: str) -> None:
        """Deliver one frame. Raises SinkClosedError once closed."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the sink. Closing twice is a no-op."""
        ...


class CollectingSink(StreamSink):
    """Keeps every frame in memory."""

    def __init__(self) -> None:
        self.frames: list[str] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, frame: str) -> None:
        if self._closed:
            raise SinkClosedError("sink is closed")
        self.frames.append(frame)

    async def close(self) -> None:
        self._closed = True

    def text(self) -> str:
        return "".join(self.frames)


_END = object()


class QueueSink(StreamSink):
    """Queue-backed sink the consumer iterates asynchronously.

    ``cancel()`` is the consumer walking away: the sink closes and the
    producer observes it on its next write.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self.cancelled = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, frame: str) -> None:
        if self._closed:
            raise SinkClosedError("sink is closed")
        await self._queue.put(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    def cancel(self) -> None:
        """Close from the consumer side."""
        self.cancelled = True
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]
