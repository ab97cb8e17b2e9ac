"""
=============================================================================
STREAMHTTP: A MINIMAL STREAMING HTTP/1.1 SERVER
=============================================================================

One request per connection, dispatched through an ordered route table,
with bodies that can be either small in-memory blocks or large streams
copied through a fixed-size buffer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         PACKAGE LAYOUT                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   streamhttp/                                                        │
    │   ├── __main__.py      python -m streamhttp                          │
    │   ├── config.py        ServerConfig                                  │
    │   ├── server.py        HTTPServer, default_router()                  │
    │   ├── core/            accept loop, connection, worker pool          │
    │   ├── http/            parser, router, payloads, writer              │
    │   └── handlers/        echo, user-agent, file download/upload        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from streamhttp import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(root_dir="/tmp")).run()

=============================================================================
"""

__version__ = "0.1.0"

from .server import HTTPServer, create_app, default_router
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "default_router", "__version__"]
