"""Response framing for the lightningd socket: messages end with two newlines."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from enum import Enum

from lnprune.utils.exceptions import ConnectionClosedError

FRAME_READ_SIZE = 4096
SENTINEL = b"\n\n"


class FrameState(Enum):
    NO_NEWLINES = "no_newlines"
    ONE_NEWLINE = "one_newline"
    TWO_NEWLINES = "two_newlines"


class FrameScanner:
    """
    Newline state machine applied to each read of a stream.

    A single newline at the end of a read is held back: if the next read
    starts with a newline the pair is the sentinel, otherwise the held byte
    was payload and is emitted in front of that read.
    """

    def __init__(self) -> None:
        self.state = FrameState.NO_NEWLINES

    @property
    def done(self) -> bool:
        return self.state is FrameState.TWO_NEWLINES

    def scan(self, chunk: bytes) -> bytes:
        """Apply one read to the state machine and return the bytes to emit."""
        if self.done:
            raise RuntimeError("frame already terminated")
        held = b"\n" if self.state is FrameState.ONE_NEWLINE else b""
        if chunk.endswith(SENTINEL):
            self.state = FrameState.TWO_NEWLINES
            return held + chunk[:-2]
        if held and chunk.startswith(b"\n"):
            # second half of a sentinel split across two reads
            self.state = FrameState.TWO_NEWLINES
            return chunk[1:]
        if chunk.endswith(b"\n"):
            self.state = FrameState.ONE_NEWLINE
            return held + chunk[:-1]
        self.state = FrameState.NO_NEWLINES
        return held + chunk


async def iter_frames(
    reader: asyncio.StreamReader,
    *,
    chunk_size: int = FRAME_READ_SIZE,
) -> AsyncIterator[bytes]:
    """
    Yield the bytes of one framed message, one item per underlying read.

    Ends for good once the sentinel is seen. A zero-byte read before that
    raises ConnectionClosedError; read errors propagate unchanged.
    """
    scanner = FrameScanner()
    while not scanner.done:
        chunk = await reader.read(chunk_size)
        if not chunk:
            raise ConnectionClosedError("socket closed before end of response")
        yield scanner.scan(chunk)


async def read_frame(
    reader: asyncio.StreamReader,
    *,
    chunk_size: int = FRAME_READ_SIZE,
) -> bytes:
    """Collect one complete framed message: every item up to the sentinel, not just the first read."""
    parts = [part async for part in iter_frames(reader, chunk_size=chunk_size)]
    return b"".join(parts)
