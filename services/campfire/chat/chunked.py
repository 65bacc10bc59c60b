"""
Body readers for the Campfire streaming endpoint.

The streaming API answers with a long-lived response whose body is either
HTTP chunked-encoded (one JSON message per chunk) or plain newline
delimited JSON. Both readers work directly on the connection's
asyncio.StreamReader and yield raw payload bytes; JSON handling lives in
services.campfire.chat.dispatch.
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import AsyncIterator, Optional

from shared.logging.logger import get_logger

log = get_logger("campfire.chat.chunked")

_CHUNK_SIZE = re.compile(rb"^([0-9a-fA-F]+)")


class ChunkState(Enum):
    AWAITING_CHUNK_SIZE_LINE = "awaiting_chunk_size_line"
    AWAITING_CHUNK_BODY = "awaiting_chunk_body"
    AWAITING_CHUNK_TERMINATOR_LINE = "awaiting_chunk_terminator_line"
    CLOSED = "closed"


class ChunkProtocolError(Exception):
    """Raised when the chunk framing of a response body is malformed."""


class UnexpectedEndOfStream(ConnectionError):
    """Raised when the remote closes the stream in the middle of a chunk."""


def strip_eol(line: bytes) -> bytes:
    """Drop a trailing LF and an optional CR before it."""
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


def parse_chunk_size(line: bytes) -> int:
    match = _CHUNK_SIZE.match(line)
    if not match:
        raise ChunkProtocolError("bad chunk (incorrect length)")
    return int(match.group(1), 16)


class ChunkDecoder:
    """
    Chunked transfer-encoding decoder for one room connection.

    Each chunk body is yielded as soon as it has been read in full. A size
    line declaring more than max_chunk_size bytes is rejected before any of
    the body is buffered. The empty terminator line that follows is only checked when the consumer
    asks for the next payload, so a chunk is always forwarded even if its
    terminator turns out to be malformed.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        *,
        room_id: Optional[str] = None,
        max_chunk_size: Optional[int] = None,
    ):
        self._reader = reader
        self.room_id = room_id
        self.max_chunk_size = max_chunk_size
        self.state = ChunkState.AWAITING_CHUNK_SIZE_LINE
        self.chunks_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            while True:
                self.state = ChunkState.AWAITING_CHUNK_SIZE_LINE
                raw = await self._reader.readline()
                if not raw:
                    # Remote closed between chunks
                    return
                size = parse_chunk_size(strip_eol(raw))
                log.debug("Chunk header: %d bytes (room=%s)", size, self.room_id)
                if self.max_chunk_size is not None and size > self.max_chunk_size:
                    raise ChunkProtocolError(
                        f"bad chunk (length {size} exceeds {self.max_chunk_size} bytes)"
                    )

                self.state = ChunkState.AWAITING_CHUNK_BODY
                try:
                    body = await self._reader.readexactly(size)
                except asyncio.IncompleteReadError as e:
                    raise UnexpectedEndOfStream(
                        f"unexpected end of stream ({len(e.partial)} of {size} chunk bytes)"
                    ) from e

                self.chunks_read += 1
                yield body

                self.state = ChunkState.AWAITING_CHUNK_TERMINATOR_LINE
                raw = await self._reader.readline()
                if not raw:
                    raise UnexpectedEndOfStream(
                        "unexpected end of stream (missing chunk terminator)"
                    )
                if strip_eol(raw):
                    raise ChunkProtocolError("bad chunk (missing last empty line)")
        finally:
            self.state = ChunkState.CLOSED


async def iter_lines(reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
    """Yield every line of a plain (non-chunked) body without its EOL."""
    while True:
        raw = await reader.readline()
        if not raw:
            return
        yield strip_eol(raw)
