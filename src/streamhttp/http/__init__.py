"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

Wire-level HTTP/1.1 for a one-request-per-connection server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST → RESPONSE PIPELINE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket reader ──► RequestParser ──► HTTPRequest                    │
    │                                            │                         │
    │                                            ▼                         │
    │                                      Router.dispatch                 │
    │                                            │                         │
    │                                            ▼                         │
    │   socket writer ◄── ResponseWriter ◄── HTTPResponse                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    headers.py       HeaderField and ordered lookup
    status_codes.py  HTTPStatus (closed set)
    payload.py       BufferedPayload / StreamedPayload and copy loops
    request.py       HTTPRequest, HttpVerb, RequestParser
    response.py      HTTPResponse, ResponseBuilder, factories
    router.py        Route table and dispatch
    writer.py        ResponseWriter
    encoding.py      gzip negotiation

=============================================================================
"""

from .headers import HeaderField, find_header, find_all_headers
from .payload import (
    COPY_BUFFER_DEFAULT_SIZE,
    BufferedPayload,
    IncompleteBodyError,
    Payload,
    StreamedPayload,
    copy_bytes,
    stream_copy,
)
from .request import (
    HTTPParseError,
    HTTPRequest,
    HttpVerb,
    InvalidContentLength,
    RequestParser,
    UnexpectedEOFError,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    bad_request,
    forbidden,
    not_found,
    internal_error,
)
from .router import DynamicTarget, Route, RouteMatch, Router, StaticTarget
from .status_codes import HTTPStatus
from .writer import ResponseWriter

__all__ = [
    # Headers
    "HeaderField",
    "find_header",
    "find_all_headers",
    # Payloads
    "COPY_BUFFER_DEFAULT_SIZE",
    "BufferedPayload",
    "StreamedPayload",
    "Payload",
    "IncompleteBodyError",
    "copy_bytes",
    "stream_copy",
    # Request
    "HTTPRequest",
    "HttpVerb",
    "RequestParser",
    "HTTPParseError",
    "UnexpectedEOFError",
    "InvalidContentLength",
    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "forbidden",
    "not_found",
    "internal_error",
    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "StaticTarget",
    "DynamicTarget",
    # Status
    "HTTPStatus",
    # Output
    "ResponseWriter",
]
