"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response exchange.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

A request may arrive in any number of recv() chunks:

    recv() → "GET /echo/ab"
    recv() → "c HTTP/1.1\r\nHost: x\r\n\r\n"

Rather than collecting chunks by hand, the connection exposes the socket
as two buffered binary files:

    reader = socket.makefile("rb")   readline() / read(n) over the stream
    writer = socket.makefile("wb")   write() / flush() onto the stream

The parser pulls lines from `reader` until the blank line; whatever follows
stays in the buffer for a handler to consume as the request body.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    ACCEPTED ──► PARSING_REQUEST ──► ROUTING ──► DISPATCHING
                       │                              │
                       │ parse error                  ▼
                       │                       WRITING_RESPONSE
                       │                              │
                       │                              ▼
                       │                       STREAMING_BODY (optional)
                       │                              │
                       └──────────────► CLOSED ◄──────┘

CLOSED is always reached, and a socket never serves a second request.

=============================================================================
"""

import socket
import logging
import time
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

# Unread request bytes discarded on close, at most this many or this long.
DRAIN_MAX_BYTES = 64 * 1024
DRAIN_MAX_SECONDS = 1.0


class ConnectionState(Enum):
    """Lifecycle of a single exchange."""

    ACCEPTED = "accepted"                  # Socket accepted, nothing read
    PARSING_REQUEST = "parsing_request"    # Reading the request head
    ROUTING = "routing"                    # Looking up the route table
    DISPATCHING = "dispatching"            # Handler running
    WRITING_RESPONSE = "writing_response"  # Status line and headers
    STREAMING_BODY = "streaming_body"      # Draining the payload
    CLOSED = "closed"                      # Socket released


@dataclass
class Connection:
    """
    Represents one client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        timeout: Socket timeout in seconds, or None for no deadline.
        id: Short identifier used in log lines.
        state: Current ConnectionState.
    """

    socket: socket.socket
    address: tuple
    timeout: Optional[float] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0] if self.address else ""

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket, created on first use."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary writer over the socket, created on first use."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb")
        return self._writer

    def transition(self, state: ConnectionState) -> None:
        """Move to `state`. CLOSED is terminal."""
        if self.state is ConnectionState.CLOSED:
            return
        logger.debug(f"[{self.id}] {self.state.value} -> {state.value}")
        self.state = state

    def close(self):
        """
        Close the connection gracefully.

            1. flush and release the buffered files
            2. shutdown(SHUT_WR)  → FIN tells the client the response is done
            3. drain briefly      → bounded by DRAIN_MAX_BYTES and DRAIN_MAX_SECONDS
            4. close()            → release the descriptor
        """
        if self.state is ConnectionState.CLOSED:
            return

        for stream in (self._writer, self._reader):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass  # Peer already gone

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    def _drain(self):
        """Discard what the peer already sent, within the drain limits."""
        deadline = time.monotonic() + DRAIN_MAX_SECONDS
        drained = 0
        try:
            while drained < DRAIN_MAX_BYTES:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(min(0.5, remaining))
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass
        if drained:
            logger.debug(f"[{self.id}] Discarded {drained} unread bytes")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
