"""
=============================================================================
CORE NETWORKING MODULE
=============================================================================

Transport-level building blocks underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer      listening socket + accept loop                  │
    │        │                                                             │
    │        ▼                                                             │
    │   Connection        one accepted socket, buffered reader/writer,    │
    │        │            ConnectionState for the single exchange          │
    │        ▼                                                             │
    │   ThreadPool        runs each connection as one task                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accept loop
    "Connection",       # Client socket wrapper
    "ConnectionState",  # Lifecycle of one exchange
    "ThreadPool",       # Worker threads
]
