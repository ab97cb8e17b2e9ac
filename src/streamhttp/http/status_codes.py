"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The closed set of status codes this server can answer with.

Unlike a general-purpose framework we do not negotiate or invent codes:
every response the engine writes uses one of the members below, and the
reason phrase that follows the numeric code is fixed.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - Request served                       │
    │        │ 201 Created       - Upload stored on disk                │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - Malformed request / missing header   │
    │        │ 403 Forbidden     - Filesystem permission denied         │
    │        │ 404 Not Found     - No route, or no such file            │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Error - Any other I/O or handler failure    │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                        # Request served
    CREATED = 201                   # Upload written to disk
    BAD_REQUEST = 400               # Protocol violation or missing input
    FORBIDDEN = 403                 # Permission denied / outside root
    NOT_FOUND = 404                 # No route or no such file
    INTERNAL_SERVER_ERROR = 500     # Catch-all server failure

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
