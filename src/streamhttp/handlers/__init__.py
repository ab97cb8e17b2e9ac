"""
=============================================================================
HANDLERS MODULE
=============================================================================

Built-in request handlers.

Every handler has the same shape:

    handler(config: ServerConfig, request: HTTPRequest) -> HTTPResponse

By the time a handler runs, the router has removed the matched route prefix
from request.path, so "/files/notes.txt" arrives as "notes.txt".

    ┌────────────────────────┬──────────────────────────────────────────┐
    │ Handler                │ Behavior                                 │
    ├────────────────────────┼──────────────────────────────────────────┤
    │ handle_echo            │ path back as text/plain (gzip if asked)  │
    │ handle_user_agent      │ User-Agent back as text/plain            │
    │ handle_download_file   │ stream a file from the root directory    │
    │ handle_upload_file     │ store the request body as a file         │
    └────────────────────────┴──────────────────────────────────────────┘

Handlers are synchronous; each one runs on a worker thread and may block
on socket or file I/O without holding up other connections.

=============================================================================
"""

from .echo import handle_echo, handle_user_agent
from .files import handle_download_file, handle_upload_file

__all__ = [
    "handle_echo",
    "handle_user_agent",
    "handle_download_file",
    "handle_upload_file",
]
