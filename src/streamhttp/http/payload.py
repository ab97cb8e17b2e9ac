"""
=============================================================================
MESSAGE PAYLOADS
=============================================================================

A request or response body comes in one of two shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       PAYLOAD VARIANTS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   BufferedPayload                   StreamedPayload                 │
    │   ───────────────                   ───────────────                 │
    │                                                                      │
    │   [b"hel", b"lo"]                   <file / socket reader>          │
    │                                                                      │
    │   • Small, fully known content      • Large or unknown size         │
    │   • Length known up front           • Consumed exactly once         │
    │   • Written block by block          • Copied lazily in chunks       │
    │                                                                      │
    │   echo, user-agent                  file download, request body     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The two variants are plain dataclasses. Code that consumes a payload checks
which one it holds and picks the matching copy path; the block loop and the
chunked stream loop are different algorithms and stay separate.

=============================================================================
BOUNDED COPY LOOPS
=============================================================================

Neither upload nor download ever materializes the whole body:

    remaining = 5000, buffer_size = 1024

    read(1024) ─► write ─► remaining = 3976
    read(1024) ─► write ─► remaining = 2952
    read(1024) ─► write ─► remaining = 1928
    read(1024) ─► write ─► remaining =  904
    read( 904) ─► write ─► remaining =    0 ─► flush

Peak memory per transfer is O(buffer_size) regardless of the body size.
1024 bytes keeps that bound small while still avoiding an absurd number of
syscalls; it is a tunable constant, not a protocol requirement.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Union


logger = logging.getLogger(__name__)


COPY_BUFFER_DEFAULT_SIZE = 1024


class IncompleteBodyError(ConnectionError):
    """
    Raised when a stream ends before the declared number of bytes arrived.

    Attributes:
        expected: Bytes the sender promised (Content-Length).
        received: Bytes actually copied before end-of-stream.
    """

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Stream ended after {received} of {expected} declared bytes"
        )
        self.expected = expected
        self.received = received


@dataclass
class BufferedPayload:
    """
    In-memory body made of one or more byte blocks.

    Blocks are written verbatim, in order. The payload never adds a
    Content-Length header by itself; producers do that from `length`.
    """

    blocks: List[bytes] = field(default_factory=list)

    @property
    def length(self) -> int:
        """Total number of bytes across all blocks."""
        return sum(len(block) for block in self.blocks)

    @classmethod
    def of(cls, data: bytes) -> "BufferedPayload":
        """Wrap a single bytes object."""
        return cls(blocks=[data])


@dataclass
class StreamedPayload:
    """
    Body backed by a readable binary stream, drained lazily.

    Attributes:
        stream: Anything with a `read(n)` method returning bytes.
        owns_stream: If True, `close()` closes the stream. Request bodies
                     borrow the connection's reader, so they set this False
                     and leave the socket to the connection.
    """

    stream: BinaryIO
    owns_stream: bool = True

    def read(self, size: int) -> bytes:
        """Read at most `size` bytes from the underlying stream."""
        return self.stream.read(size)

    def close(self) -> None:
        """Release the underlying stream if this payload owns it."""
        if self.owns_stream:
            self.stream.close()


Payload = Union[BufferedPayload, StreamedPayload]


def copy_bytes(
    reader: BinaryIO,
    writer: BinaryIO,
    length: int,
    buffer_size: int = COPY_BUFFER_DEFAULT_SIZE,
) -> int:
    """
    Copy exactly `length` bytes from `reader` to `writer`.

    Each iteration asks for at most `min(buffer_size, remaining)` bytes,
    writes whatever arrived, and decrements `remaining` by the real count,
    so short reads from a socket are handled. The writer is flushed once,
    after the last chunk.

    Args:
        reader: Source stream (usually the connection's buffered reader).
        writer: Destination stream (usually an open file).
        length: Exact number of bytes to transfer.
        buffer_size: Upper bound on a single read.

    Returns:
        Number of bytes copied (always `length` on success).

    Raises:
        IncompleteBodyError: If the reader hits end-of-stream first.
        ValueError: If `buffer_size` is not positive.
    """
    if buffer_size <= 0:
        raise ValueError(f"buffer_size must be > 0, got {buffer_size}")

    remaining = length
    while remaining > 0:
        chunk = reader.read(min(buffer_size, remaining))
        if not chunk:
            raise IncompleteBodyError(length, length - remaining)
        writer.write(chunk)
        remaining -= len(chunk)
    writer.flush()

    return length - remaining


def stream_copy(
    reader: BinaryIO,
    writer: BinaryIO,
    buffer_size: int = COPY_BUFFER_DEFAULT_SIZE,
) -> int:
    """
    Copy from `reader` to `writer` until the reader is exhausted.

    Used for streamed response bodies whose length the writer does not
    need to know. Only one chunk is held in memory at a time.

    Returns:
        Total number of bytes copied.
    """
    if buffer_size <= 0:
        raise ValueError(f"buffer_size must be > 0, got {buffer_size}")

    total = 0
    while True:
        chunk = reader.read(buffer_size)
        if not chunk:
            break
        writer.write(chunk)
        total += len(chunk)

    logger.debug(f"Streamed {total} bytes")
    return total
