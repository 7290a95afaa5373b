"""Server-sent-event line decoding (upstream) and framing (downstream).

Upstream providers deliver ``data: {...}`` lines split arbitrarily across
network reads. ``SSEDecoder`` reassembles complete lines regardless of where
the reads were cut; the same bytes always decode to the same lines.
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator

from inkstream._core._logging import get_logger
from inkstream._core._models import ChunkKind, StreamChunk, TerminalSignal

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"data: {DONE_SENTINEL}\n\n"


class LineKind(str, Enum):
    DATA = "data"
    DONE = "done"
    COMMENT = "comment"
    OTHER = "other"


@dataclass(frozen=True)
class SSELine:
    kind: LineKind
    payload: str = ""


def classify(line: str) -> SSELine:
    """Classify one complete line (without its terminator)."""
    if line.startswith(":"):
        return SSELine(LineKind.COMMENT, line[1:].strip())
    if line.startswith(DATA_PREFIX):
        payload = line[len(DATA_PREFIX) :]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == DONE_SENTINEL:
            return SSELine(LineKind.DONE)
        return SSELine(LineKind.DATA, payload)
    return SSELine(LineKind.OTHER, line)


class SSEDecoder:
    """Incremental bytes -> lines decoder.

    Trailing data without a newline is held until more bytes arrive. At end
    of input it is discarded, never emitted. Once the ``[DONE]`` sentinel is
    seen nothing more is emitted.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, data: bytes) -> list[SSELine]:
        """Append a network read and return every line it completed."""
        if self._done:
            return []

        self._buffer += self._decoder.decode(data)
        lines: list[SSELine] = []

        while not self._done:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            raw = self._buffer[:newline].rstrip("\r")
            self._buffer = self._buffer[newline + 1 :]

            line = classify(raw)
            lines.append(line)
            if line.kind is LineKind.DONE:
                self._done = True
                self._buffer = ""

        return lines

    def finish(self) -> None:
        """Signal end of input. Incomplete trailing data is dropped."""
        if not self._done:
            self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer:
            logger.debug("Discarding incomplete trailing line", size=len(self._buffer))
        self._buffer = ""


async def iter_lines(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[SSELine]:
    """Yield complete lines from an async byte stream, stopping after ``[DONE]``."""
    decoder = SSEDecoder()
    async for data in byte_stream:
        for line in decoder.feed(data):
            yield line
        if decoder.done:
            return
    decoder.finish()


async def iter_data(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield data payloads only; comments and keep-alives are ignored."""
    async for line in iter_lines(byte_stream):
        if line.kind is LineKind.DATA:
            yield line.payload
        elif line.kind is LineKind.COMMENT:
            logger.debug("Skipping comment line", comment=line.payload)


def _frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def encode_chunk(chunk: StreamChunk) -> str:
    """Frame a chunk for the downstream event stream."""
    if chunk.kind is ChunkKind.ERROR:
        return _frame({"type": "error", "error": chunk.text})
    return _frame({"type": chunk.kind.value, "choices": [{"delta": {"content": chunk.text}}]})


def encode_terminal(signal: TerminalSignal) -> list[str]:
    """Frames closing a stream: an error record if failed, then ``[DONE]``."""
    if signal.done:
        return [DONE_FRAME]
    return [encode_chunk(StreamChunk.error(signal.error or "")), DONE_FRAME]
