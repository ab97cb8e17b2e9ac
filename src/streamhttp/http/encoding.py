"""
=============================================================================
CONTENT CODING
=============================================================================

gzip negotiation for small in-memory bodies.

    Request:   Accept-Encoding: deflate, gzip;q=0.8, br
                                         ────
                                          └── listed → compress

    Response:  Content-Encoding: gzip
               Content-Length: <compressed size>

Only codings named in an Accept-Encoding header count; "gzip" appearing
inside another token (e.g. "x-gzip-custom") does not. Quality values are
ignored, so "gzip;q=0" still counts as listed.

=============================================================================
"""

import gzip
from typing import Iterable

from .headers import HeaderField, find_all_headers


GZIP = "gzip"


def accepted_encodings(headers: Iterable[HeaderField]) -> "list[str]":
    """
    Every coding listed across all Accept-Encoding headers, lowercased.

    Example:
        "gzip, deflate;q=0.5" → ["gzip", "deflate"]
    """
    codings = []
    for value in find_all_headers(headers, "Accept-Encoding"):
        for item in value.split(","):
            coding = item.split(";", 1)[0].strip().lower()
            if coding:
                codings.append(coding)
    return codings


def wants_gzip(headers: Iterable[HeaderField]) -> bool:
    """True if the client lists gzip among its accepted encodings."""
    return GZIP in accepted_encodings(headers)


def gzip_bytes(data: bytes, level: int = 6) -> bytes:
    """Compress `data` into a complete gzip member."""
    return gzip.compress(data, compresslevel=level)
