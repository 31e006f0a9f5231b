"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses HTTP/1.1 requests straight off a byte stream into HTTPRequest
objects. One call to RequestParser.parse() consumes exactly one request,
so the same parser (and the same stream) can be reused for every request
on a persistent connection.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST LINE     POST /files/notes.txt HTTP/1.1\r\n                 │
    │                   ─┬── ────────┬─────── ───┬────                     │
    │                  Method       Path       Version                     │
    │                                                                      │
    │  HEADERS          Host: localhost:4221\r\n                           │
    │                   Content-Length: 5\r\n    ← body size               │
    │                   \r\n                     ← end of headers          │
    │                                                                      │
    │  BODY             hello                    ← exactly 5 bytes         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY READ FROM A STREAM?
=============================================================================

TCP does not preserve message boundaries, so there is no "one recv() = one
request" shortcut. Instead the parser pulls what it needs from a buffered
stream:

    readline()   → request line, then one header per call
    read(n)      → exactly Content-Length bytes of body

Whatever comes after the body stays in the stream's buffer and becomes the
start of the next request on a keep-alive connection.

=============================================================================
THREE OUTCOMES, NOT EXCEPTIONS
=============================================================================

The connection loop has to treat each outcome differently, so parse()
returns one of three result types instead of raising:

    ParseOk(request)   → dispatch it
    NoMoreRequests()   → client closed cleanly between requests; stop
    ParseError(reason) → send 400 Bad Request, then close (no way to
                         find the start of the next request in a
                         corrupted stream)

Socket-level failures (timeouts, resets) are not protocol outcomes; they
propagate as OSError for the connection loop to handle.

=============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union
from urllib.parse import parse_qs
import io
import logging


logger = logging.getLogger(__name__)


class ByteStream(Protocol):
    """Anything the parser can read from: a Connection, io.BytesIO, ..."""

    def readline(self, limit: int = -1) -> bytes: ...

    def read(self, n: int = -1) -> bytes: ...


@dataclass(frozen=True)
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:       Method token as received ("GET", "POST", ...)
        path:         Raw request target, NOT percent-decoded
                      "/echo/hello%20world" stays exactly that
        version:      Protocol token ("HTTP/1.1")
        headers:      Read-only mapping, names LOWERCASED at parse time
                      {"user-agent": "curl/8.4.0", ...}
        body:         Raw body bytes (b"" when there is none)
        path_params:  Filled in by the router when a route matches
                      "/echo/{str}" + "/echo/hi" → {"str": "hi"}

    =========================================================================
    IMMUTABILITY
    =========================================================================

    The dataclass is frozen and headers are wrapped in a read-only view.
    The one exception is path_params: the router binds it in place, once
    per dispatch, just before calling the handler.

    Hashing uses method, path, version and body; the header view and
    path_params are left out of the hash.

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        # Normalize here too so hand-built requests (tests, tools) behave
        # exactly like parsed ones. Later duplicates overwrite earlier ones.
        folded = {name.lower(): value for name, value in self.headers.items()}
        object.__setattr__(self, "headers", MappingProxyType(folded))
        object.__setattr__(self, "body", bytes(self.body or b""))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def route_path(self) -> str:
        """
        The path used for routing: the request target minus any query.

            "/echo/abc?x=1" → "/echo/abc"
        """
        return self.path.split("?", 1)[0]

    @property
    def query_params(self) -> Dict[str, list]:
        """
        Parsed query string as a dict of lists.

            "?tag=a&tag=b&page=2" → {"tag": ["a", "b"], "page": ["2"]}
        """
        if "?" not in self.path:
            return {}
        return parse_qs(self.path.split("?", 1)[1], keep_blank_values=True)

    @property
    def content_length(self) -> int:
        """Length of the body actually read (may be short on early close)."""
        return len(self.body)

    @property
    def user_agent(self) -> str:
        """The User-Agent header, or "" when the client sent none."""
        return self.headers.get("user-agent", "")

    @property
    def wants_close(self) -> bool:
        """
        True when the client sent "Connection: close" (any casing).

        Only an explicit close ends the connection; everything else keeps
        it open for the next request.
        """
        return self.headers.get("connection", "").strip().lower() == "close"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def bind_path_params(self, params: Mapping[str, str]) -> None:
        """Replace the path-parameter bag (called by the router)."""
        self.path_params.clear()
        self.path_params.update(params)


# =============================================================================
# PARSE RESULTS
# =============================================================================


@dataclass(frozen=True)
class ParseOk:
    """A complete request was read."""
    request: HTTPRequest


@dataclass(frozen=True)
class NoMoreRequests:
    """The stream ended cleanly before the first byte of a new request."""


@dataclass(frozen=True)
class ParseError:
    """The bytes on the stream are not a valid request."""
    reason: str


ParseResult = Union[ParseOk, NoMoreRequests, ParseError]


class _Malformed(Exception):
    """Internal short-circuit; parse() turns it into a ParseError."""


class RequestParser:
    """
    Reads one HTTP request per call from a byte stream.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        stream
          │
          ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │ 1. Request line ───────── EOF, nothing read? → NoMoreRequests      │
        │    "GET /echo/hi HTTP/1.1" EOF mid-line?     → ParseError          │
        │                            < 3 tokens?       → ParseError          │
        │ 2. Header lines until ""                                           │
        │    "Name: value" → {"name": "value"}, no colon → skipped          │
        │ 3. Body: exactly Content-Length bytes (short on early EOF)         │
        │ 4. ParseOk(HTTPRequest)                                            │
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    """

    def __init__(
        self,
        max_line_length: int = 8192,
        max_headers: int = 100,
        max_body_size: int = 10 * 1024 * 1024,
    ):
        """
        Args:
            max_line_length: Longest request line or header line accepted,
                             in bytes, not counting the line terminator.
            max_headers: Most header lines accepted per request.
            max_body_size: Largest Content-Length accepted, in bytes.
        """
        self.max_line_length = max_line_length
        self.max_headers = max_headers
        self.max_body_size = max_body_size

    def parse(self, stream: ByteStream) -> ParseResult:
        """
        Parse the next request from the stream.

        Returns:
            ParseOk, NoMoreRequests or ParseError.

        Raises:
            OSError: On socket failure (including read timeouts).
        """
        try:
            line = self._read_line(stream)
            if line is None:
                return NoMoreRequests()

            logger.debug("Received request line: %s", line)
            method, path, version = self._parse_request_line(line)
            headers = self._read_headers(stream)
            body = self._read_body(stream, headers)
        except _Malformed as e:
            return ParseError(str(e))

        return ParseOk(HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
        ))

    # =========================================================================
    # LINE FRAMING
    # =========================================================================

    def _read_line(self, stream: ByteStream) -> Optional[str]:
        """
        Read one CRLF-terminated line and return it without the terminator.

        Returns None if the stream was already at EOF. A bare LF is accepted
        as a terminator as well.
        """
        raw = stream.readline(self.max_line_length + 2)
        if not raw:
            return None

        if not raw.endswith(b"\n"):
            if len(raw) > self.max_line_length:
                raise _Malformed(f"Line exceeds {self.max_line_length} bytes")
            raise _Malformed("Stream ended in the middle of a line")

        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        if len(raw) > self.max_line_length:
            raise _Malformed(f"Line exceeds {self.max_line_length} bytes")
        return raw.decode("utf-8", errors="replace")

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Split "METHOD SP PATH SP VERSION" into its three tokens.

        Extra tokens after the version are ignored.
        """
        parts = line.split(" ")
        if len(parts) < 3:
            raise _Malformed(f"Malformed request line: {line!r}")
        return parts[0], parts[1], parts[2]

    def _read_headers(self, stream: ByteStream) -> Dict[str, str]:
        """
        Read header lines up to (and including) the blank line.

        "User-Agent:  curl/8.4.0 " → {"user-agent": "curl/8.4.0"}

        Names are lowercased, both sides trimmed. Lines without a colon are
        skipped. For repeated names the last one wins. More than
        max_headers lines (skipped ones included) is an error.
        """
        headers: Dict[str, str] = {}
        count = 0
        while True:
            line = self._read_line(stream)
            if line is None:
                raise _Malformed("Stream ended before the end of the headers")
            if line == "":
                return headers

            count += 1
            if count > self.max_headers:
                raise _Malformed(f"More than {self.max_headers} header lines")

            name, sep, value = line.partition(":")
            name = name.strip().lower()
            if not sep or not name:
                logger.warning("Malformed header line (skipped): %r", line)
                continue
            headers[name] = value.strip()

    def _read_body(self, stream: ByteStream, headers: Dict[str, str]) -> bytes:
        """
        Read exactly Content-Length bytes.

        Missing, non-numeric or non-positive Content-Length means no body.
        If the client closes early, whatever arrived is returned. A length
        above max_body_size is rejected before anything is read.
        """
        length = self._content_length(headers)
        if length <= 0:
            return b""
        if length > self.max_body_size:
            raise _Malformed(
                f"Content-Length {length} exceeds {self.max_body_size} bytes"
            )

        chunks = []
        remaining = length
        while remaining > 0:
            chunk = stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)

        body = b"".join(chunks)
        if remaining > 0:
            logger.warning(
                "Body truncated: expected %d bytes, got %d", length, len(body)
            )
        return body

    @staticmethod
    def _content_length(headers: Dict[str, str]) -> int:
        value = headers.get("content-length", "")
        # int() would also accept "+5", " 5" and "5_0"
        if not (value.isascii() and value.isdigit()):
            if value:
                logger.warning("Invalid Content-Length header: %r", value)
            return 0
        return int(value)


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================


def parse_request(data: bytes, max_line_length: int = 8192) -> ParseResult:
    """
    Parse a request held entirely in memory.

    Handy in tests and tools:

        result = parse_request(b"GET / HTTP/1.1\\r\\n\\r\\n")
        assert isinstance(result, ParseOk)
    """
    return RequestParser(max_line_length).parse(io.BytesIO(data))
