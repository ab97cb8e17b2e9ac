"""
=============================================================================
HEADER FIELDS
=============================================================================

Requests and responses both carry an ordered list of name/value pairs.

We deliberately do NOT store headers in a dict:

    Content-Type: text/plain         HeaderField("Content-Type", "text/plain")
    Set-Cookie: a=1          ──►     HeaderField("Set-Cookie", "a=1")
    Set-Cookie: b=2                  HeaderField("Set-Cookie", "b=2")

- Duplicate names are legal and must all survive, in arrival order.
- The writer must emit headers in exactly the order they were added.
- Lookup returns the FIRST field whose name matches exactly
  (case-sensitive, no normalization).

=============================================================================
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class HeaderField:
    """A single `name: value` header line."""

    name: str
    value: str

    def to_line(self) -> str:
        """Render as a wire line, including the trailing CRLF."""
        return f"{self.name}: {self.value}\r\n"


def find_header(headers: Iterable[HeaderField], name: str) -> Optional[str]:
    """
    Return the value of the first header called `name`, or None.

    The comparison is an exact string match, so "user-agent" does not
    find a "User-Agent" field.
    """
    for field in headers:
        if field.name == name:
            return field.value
    return None


def find_all_headers(headers: Iterable[HeaderField], name: str) -> List[str]:
    """Return every value stored under `name`, in insertion order."""
    return [field.value for field in headers if field.name == name]
