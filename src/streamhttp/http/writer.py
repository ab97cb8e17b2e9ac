"""
=============================================================================
RESPONSE WRITER
=============================================================================

Serializes an HTTPResponse onto a binary sink in two phases:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  PHASE 1: HEAD                                                      │
    │     "HTTP/1.1 200 OK\r\n"                                           │
    │     "<name>: <value>\r\n"   × every header, in order                │
    │     "\r\n"                                                          │
    │     flush()                                                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │  PHASE 2: BODY                                                      │
    │     BufferedPayload  → write each block verbatim                    │
    │     StreamedPayload  → stream_copy() in buffer_size chunks, close   │
    │     None             → nothing                                      │
    │     flush()                                                         │
    └─────────────────────────────────────────────────────────────────────┘

The head is flushed before the body starts, so a client sees the status
of a large download immediately.

=============================================================================
"""

import logging
from typing import BinaryIO

from .payload import (
    COPY_BUFFER_DEFAULT_SIZE,
    BufferedPayload,
    StreamedPayload,
    stream_copy,
)
from .request import LINE_ENCODING
from .response import HTTPResponse


logger = logging.getLogger(__name__)


class ResponseWriter:
    """
    Writes responses to a binary sink (usually `socket.makefile("wb")`).

    Args:
        sink: Writable binary stream with `write` and `flush`.
        buffer_size: Chunk size used when draining streamed payloads.
    """

    def __init__(self, sink: BinaryIO, buffer_size: int = COPY_BUFFER_DEFAULT_SIZE):
        self.sink = sink
        self.buffer_size = buffer_size

    def write(self, response: HTTPResponse) -> int:
        """
        Write the full response.

        Returns:
            Number of body bytes written (head excluded).

        Raises:
            OSError: If the sink fails. Streamed sources are closed anyway.
        """
        self.write_head(response)
        written = self.write_body(response)
        logger.debug(f"Wrote {response.status_line!r} with {written} body bytes")
        return written

    def write_head(self, response: HTTPResponse) -> None:
        """Status line, headers and the blank separator line, then flush."""
        head = [f"{response.status_line}\r\n"]
        head.extend(header.to_line() for header in response.headers)
        head.append("\r\n")
        self.sink.write("".join(head).encode(LINE_ENCODING))
        self.sink.flush()

    def write_body(self, response: HTTPResponse) -> int:
        """Drain the payload, if any, and flush."""
        payload = response.payload
        written = 0

        if isinstance(payload, BufferedPayload):
            for block in payload.blocks:
                self.sink.write(block)
                written += len(block)
        elif isinstance(payload, StreamedPayload):
            try:
                written = stream_copy(payload.stream, self.sink, self.buffer_size)
            finally:
                payload.close()

        self.sink.flush()
        return written

