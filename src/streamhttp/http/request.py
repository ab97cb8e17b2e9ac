"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the head of an HTTP/1.1 request into a structured HTTPRequest while
leaving the body untouched on the wire.

=============================================================================
STREAMING PARSE
=============================================================================

The parser never reads "the whole request" into memory. It works on the
connection's buffered binary reader, one line at a time:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       BYTES ON THE SOCKET                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /files/a.bin HTTP/1.1\r\n       ◄── readline() #1             │
    │   Host: localhost\r\n                  ◄── readline() #2             │
    │   Content-Length: 5000\r\n             ◄── readline() #3             │
    │   \r\n                                 ◄── readline() #4 (end)       │
    │   <5000 body bytes ...>                ◄── NOT read by the parser    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Whatever follows the blank line is handed to the request as a
StreamedPayload over the same reader. A handler that needs the body pulls
it in bounded chunks; a handler that doesn't never pays for it.

=============================================================================
LINE RULES
=============================================================================

    Request line:  split on whitespace
                   token[0] → verb  ("GET", "POST", anything else UNKNOWN)
                   token[1] → path  (verbatim, no decoding, no query split)
                   missing token[1] → HTTPParseError

    Header line:   trailing whitespace trimmed, then split on the FIRST ": "
                   "Host: a: b"  →  ("Host", "a: b")
                   no ": "       →  HTTPParseError naming the line

    Blank line:    exactly b"\r\n" ends the head
    EOF:           zero bytes before the blank line → UnexpectedEOFError

Lines are decoded as ISO-8859-1, which maps every byte to exactly one
character. String lengths are therefore byte lengths, and route prefixes
can be stripped by length without re-encoding.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, List, Optional

from .headers import HeaderField, find_header
from .payload import Payload, StreamedPayload


logger = logging.getLogger(__name__)


LINE_ENCODING = "iso-8859-1"
DEFAULT_MAX_LINE_SIZE = 64 * 1024
DEFAULT_MAX_HEADERS = 100


class HTTPParseError(Exception):
    """
    Raised when the request head cannot be parsed.

    Every parse failure is connection-fatal. The server answers with a
    best-effort 400 Bad Request and closes the socket.
    """


class UnexpectedEOFError(HTTPParseError):
    """The peer closed the stream before the blank line ending the head."""


class InvalidContentLength(HTTPParseError):
    """A Content-Length header is present but is not an unsigned integer."""

    def __init__(self, value: str):
        super().__init__(f"Invalid Content-Length: {value!r}")
        self.value = value


class HttpVerb(Enum):
    """
    Request methods the engine distinguishes.

    ANY only ever appears on a route definition, where it matches every
    verb. A parsed request carries GET, POST or UNKNOWN.
    """

    UNKNOWN = "UNKNOWN"
    ANY = "ANY"
    GET = "GET"
    POST = "POST"

    @classmethod
    def from_token(cls, token: str) -> "HttpVerb":
        """Map a request-line token to a verb. Unrecognized tokens are UNKNOWN."""
        if token == "GET":
            return cls.GET
        if token == "POST":
            return cls.POST
        return cls.UNKNOWN


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        verb: Request verb. Never ANY.
        path: Request target exactly as received. After routing, the
              matched route prefix has been removed from the front.
        headers: Header fields in arrival order, duplicates kept.
        body: Unread remainder of the connection, if any. Use take_body().
        client_address: Peer (ip, port), for logging.
    """

    verb: HttpVerb
    path: str
    headers: List[HeaderField] = field(default_factory=list)
    body: Optional[Payload] = None
    client_address: tuple = ("", 0)

    def get_header(self, name: str) -> Optional[str]:
        """First value of the header called `name` (exact match), or None."""
        return find_header(self.headers, name)

    def take_body(self) -> Optional[Payload]:
        """
        Transfer ownership of the body to the caller.

        The body can only be taken once; later calls return None.
        """
        body, self.body = self.body, None
        return body

    @property
    def content_length(self) -> Optional[int]:
        """
        Declared body length from the Content-Length header.

        Returns:
            The length, or None when the header is absent.

        Raises:
            InvalidContentLength: If the value is not an unsigned decimal.
        """
        value = self.get_header("Content-Length")
        if value is None:
            return None
        value = value.strip()
        # isdigit() alone admits "²" and other non-ASCII digits.
        if not (value.isascii() and value.isdigit()):
            raise InvalidContentLength(value)
        return int(value)


class RequestParser:
    """
    Reads a request head from a buffered binary reader.

    The reader must support `readline(limit)` and `read(n)`; the file
    object returned by `socket.makefile("rb")` and `io.BytesIO` both do.

    Example:
        >>> parser = RequestParser()
        >>> request = parser.parse(io.BytesIO(b"GET / HTTP/1.1\\r\\n\\r\\n"))
        >>> request.verb, request.path
        (<HttpVerb.GET: 'GET'>, '/')
    """

    def __init__(
        self,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
        max_headers: int = DEFAULT_MAX_HEADERS,
    ):
        """
        Args:
            max_line_size: Longest accepted line in bytes, CRLF included.
            max_headers: Most header fields accepted in one head.
        """
        self.max_line_size = max_line_size
        self.max_headers = max_headers

    def parse(
        self,
        reader: BinaryIO,
        client_address: tuple = ("", 0),
    ) -> HTTPRequest:
        """
        Parse the request line and headers from `reader`.

        On success the reader is positioned at the first body byte and is
        attached to the request as a StreamedPayload. The body itself is
        not touched, whatever Content-Length says.

        Args:
            reader: Buffered binary stream positioned at a request start.
            client_address: Peer (ip, port), copied onto the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            UnexpectedEOFError: Stream ended before the head was complete.
            HTTPParseError: Malformed request line or header line, or a
                            size limit was exceeded.
        """
        # ─────────────────────────────────────────────────────────────────
        # Request line
        # ─────────────────────────────────────────────────────────────────
        line = self._read_line(reader)
        tokens = line.split()
        if len(tokens) < 2:
            raise HTTPParseError(
                "Invalid message line. Expecting GET /path HTTP/1.1"
            )
        verb = HttpVerb.from_token(tokens[0])
        path = tokens[1]

        # ─────────────────────────────────────────────────────────────────
        # Header lines, until the exact blank line
        # ─────────────────────────────────────────────────────────────────
        headers: List[HeaderField] = []
        while True:
            line = self._read_line(reader)
            if line == "\r\n":
                break
            headers.append(self._parse_header(line))
            if len(headers) > self.max_headers:
                raise HTTPParseError(
                    f"Too many headers (limit {self.max_headers})"
                )

        logger.debug(f"Parsed {verb.value} {path} with {len(headers)} headers")

        return HTTPRequest(
            verb=verb,
            path=path,
            headers=headers,
            body=StreamedPayload(reader, owns_stream=False),
            client_address=client_address,
        )

    def _read_line(self, reader: BinaryIO) -> str:
        """Read one raw line, enforcing EOF and length rules."""
        raw = reader.readline(self.max_line_size + 1)
        if not raw:
            raise UnexpectedEOFError("Invalid query. Unexpected EOF")
        if len(raw) > self.max_line_size:
            raise HTTPParseError(
                f"Line exceeds {self.max_line_size} bytes"
            )
        return raw.decode(LINE_ENCODING)

    @staticmethod
    def _parse_header(line: str) -> HeaderField:
        """Split `Name: value` on the first ': ' after trimming the line end."""
        name, sep, value = line.rstrip().partition(": ")
        if not sep:
            raise HTTPParseError(f"Invalid header: {line.rstrip()}")
        return HeaderField(name, value)
