"""
=============================================================================
RESPONSE HEADER MAP
=============================================================================

An ordered, case-insensitive mapping for response headers.

HTTP header names are case-insensitive (RFC 7230 section 3.2), but the
casing a handler writes is what goes on the wire. So the map needs two
things a plain dict cannot give us at once:

    headers["Content-Length"] = "5"
    headers["content-length"] = "7"     ← same header, replaces the first

    list(headers.items())
    → [("content-length", "7")]         ← one entry, last casing wins

    ┌─────────────────────────────────────────────────────────────────────┐
    │  _items:  "content-length" → ("content-length", "7")                │
    │           ───────┬────────    ────────┬──────────                    │
    │                  │                    │                              │
    │           folded key for         name as last written,               │
    │           lookup/removal         and its value                       │
    └─────────────────────────────────────────────────────────────────────┘

Replacing a header keeps its original position, so serialization order is
the order in which header names were first introduced.

=============================================================================
"""

from collections.abc import MutableMapping
from typing import Dict, Iterator, Mapping, Optional, Tuple


class Headers(MutableMapping):
    """
    Case-insensitive, insertion-ordered header mapping.

    Iterating yields header names in the casing they were last written
    with. Lookups, membership tests and deletion ignore case.

    Example:
        headers = Headers({"Content-Type": "text/plain"})
        headers["CONTENT-TYPE"]           # "text/plain"
        "content-type" in headers         # True
        del headers["Content-type"]
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._items: Dict[str, Tuple[str, str]] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self._items[name.lower()] = (name, str(value))

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        for name, _ in self._items.values():
            yield name

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._folded() == other._folded()
        if isinstance(other, Mapping):
            return self._folded() == {k.lower(): v for k, v in other.items()}
        return NotImplemented

    def _folded(self) -> Dict[str, str]:
        return {key: value for key, (_, value) in self._items.items()}

    def remove(self, name: str) -> None:
        """Delete a header if present (no error when missing)."""
        self._items.pop(name.lower(), None)

    def copy(self) -> "Headers":
        clone = Headers()
        clone._items = dict(self._items)
        return clone
