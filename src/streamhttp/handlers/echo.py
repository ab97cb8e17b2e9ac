"""
=============================================================================
TEXT HANDLERS
=============================================================================

Small handlers whose whole answer fits in memory.

    GET /echo/abc           →  200  "abc"
    GET /user-agent         →  200  <first User-Agent value>

Both reply with a BufferedPayload and Content-Type: text/plain, and only
announce Content-Length when the body is non-empty.

=============================================================================
"""

import logging

from ..config import ServerConfig
from ..http.encoding import GZIP, gzip_bytes, wants_gzip
from ..http.request import HTTPRequest, LINE_ENCODING
from ..http.response import HTTPResponse, ResponseBuilder, bad_request


logger = logging.getLogger(__name__)


def handle_echo(config: ServerConfig, request: HTTPRequest) -> HTTPResponse:
    """
    Echo the remainder of the path back to the client.

    The router has already removed the "/echo/" prefix, so request.path
    is exactly the text to return. If the client accepts gzip, the body
    is compressed and Content-Length is the compressed size.
    """
    text = request.path.encode(LINE_ENCODING)

    builder = ResponseBuilder().content_type("text/plain")
    if wants_gzip(request.headers):
        text = gzip_bytes(text)
        builder.header("Content-Encoding", GZIP)

    return builder.body(text).build()


def handle_user_agent(config: ServerConfig, request: HTTPRequest) -> HTTPResponse:
    """Return the first User-Agent header, or 400 when there is none."""
    agent = request.get_header("User-Agent")
    if agent is None:
        logger.info("Expected User-Agent header, but not found")
        return bad_request()

    return (ResponseBuilder()
        .content_type("text/plain")
        .body(agent.encode(LINE_ENCODING))
        .build())
