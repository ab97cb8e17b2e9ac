"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The accept loop. It owns the listening socket and hands every accepted
client to a callback, then goes straight back to accept().

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ACCEPT LOOP                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket() → setsockopt() → bind() → listen()                        │
    │                                         │                            │
    │                                         ▼                            │
    │                  ┌──────────► accept() (1s timeout)                  │
    │                  │              │                                    │
    │                  │              ├─ timeout → check _running          │
    │                  │              │                                    │
    │                  │              ▼                                    │
    │                  │         Connection(socket, address, timeout)      │
    │                  │              │                                    │
    │                  │              ▼                                    │
    │                  └──────── callback(conn)   (submits to worker pool) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The loop itself never parses or writes anything, so a slow or broken
client cannot stall other accepts.

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   rebind immediately after a restart (skip TIME_WAIT)
    TCP_NODELAY    send small responses without Nagle's delay
    timeout 1.0s   wake up periodically to notice shutdown()

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout).

        The socket is created lazily in start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}
        self._bound: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound, once listening.

        Differs from the configured one when port 0 asked the OS to pick.
        """
        if self._bound is not None:
            return self._bound
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with the options described above."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that trigger shutdown().

        Python only allows signal handlers in the main thread. When the
        server runs on another thread (tests, embedding) this is skipped
        and shutdown() must be called explicitly.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop. Blocks until shutdown().

        Args:
            connection_handler: Called with each accepted Connection. It
                                must return quickly; the HTTP server hands
                                the connection to its worker pool.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound = self._socket.getsockname()[:2]
        self._running = True
        self._setup_signals()
        self._ready_event.set()

        host, port = self._bound
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """Accept until shutdown(); one Connection per accepted socket."""
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop. Safe to call from any thread, more than once.

        The loop notices within one accept() timeout.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
