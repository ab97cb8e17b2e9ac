"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

What a handler hands back to the connection: a status, an ordered header
list and an optional payload.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                  ◄── status line (fixed form)  │
    │   Content-Type: text/plain\r\n         ◄── headers, in insertion     │
    │   Content-Length: 3\r\n                    order, duplicates kept    │
    │   \r\n                                 ◄── separator                 │
    │   abc                                  ◄── payload (optional)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

This module only MODELS the response. Serialization happens in
ResponseWriter, which can stream a file-backed payload without ever
holding it in memory.

=============================================================================
CONTENT-LENGTH POLICY
=============================================================================

Nothing here computes Content-Length behind the producer's back:

    ResponseBuilder().body(b"abc")          → adds Content-Length: 3
    ResponseBuilder().body(b"")             → no Content-Length
    ResponseBuilder().stream(f, length=10)  → adds Content-Length: 10
    ResponseBuilder().stream(f)             → no Content-Length

The writer sends exactly the headers the response carries.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Union

from .headers import HeaderField, find_header
from .payload import BufferedPayload, Payload, StreamedPayload
from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be written to the client.

    Use ResponseBuilder or the factory functions below rather than
    filling the fields by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[HeaderField] = field(default_factory=list)
    payload: Optional[Payload] = None

    @property
    def status_line(self) -> str:
        """
        The HTTP status line, without CRLF.

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{HTTP_VERSION} {int(self.status)} {self.status.phrase}"

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """Append a header field. Returns self for chaining."""
        self.headers.append(HeaderField(name, value))
        return self

    def get_header(self, name: str) -> Optional[str]:
        """First value of the header called `name`, or None."""
        return find_header(self.headers, name)


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Example:
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/plain")
            .body(b"hello")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: List[HeaderField] = []
        self._payload: Optional[Payload] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the response status."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Append a header. Repeated names are kept."""
        self._headers.append(HeaderField(name, value))
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Append a Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, data: Union[str, bytes]) -> "ResponseBuilder":
        """
        Use `data` as a buffered payload.

        Strings are encoded as UTF-8. Content-Length is appended only when
        the body is non-empty.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._payload = BufferedPayload.of(data)
        if data:
            self.header("Content-Length", str(len(data)))
        return self

    def stream(
        self,
        source: BinaryIO,
        length: Optional[int] = None,
    ) -> "ResponseBuilder":
        """
        Use an open binary stream as the payload.

        Args:
            source: Stream drained by the writer and closed afterwards.
            length: Known size in bytes. When non-zero it is announced as
                    Content-Length; otherwise no length header is sent.
        """
        self._payload = StreamedPayload(source)
        if length:
            self.header("Content-Length", str(length))
        return self

    def build(self) -> HTTPResponse:
        """Construct the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=list(self._headers),
            payload=self._payload,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the fixed set of statuses the server produces. Error
# responses carry no body; the status line says everything.
#
#     return not_found()
#     return ok("hello")
#
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: str = "text/plain") -> HTTPResponse:
    """
    Create a 200 OK response.

    An empty body yields a bare status line with no headers.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if body:
        builder.content_type(content_type).body(body)
    return builder.build()


def created() -> HTTPResponse:
    """Create a 201 Created response."""
    return ResponseBuilder().status(HTTPStatus.CREATED).build()


def bad_request() -> HTTPResponse:
    """Create a 400 Bad Request response."""
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).build()


def forbidden() -> HTTPResponse:
    """Create a 403 Forbidden response."""
    return ResponseBuilder().status(HTTPStatus.FORBIDDEN).build()


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def internal_error() -> HTTPResponse:
    """Create a 500 Internal Server Error response."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).build()


def from_status(status: HTTPStatus) -> HTTPResponse:
    """Bare response with only a status line, for static route targets."""
    return HTTPResponse(status=status)
