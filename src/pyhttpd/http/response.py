"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them onto the wire.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  STATUS LINE     HTTP/1.1 200 OK\r\n                                 │
    │                  ────┬─── ─┬─ ─┬─                                    │
    │                  Version  Code Phrase                                │
    │                                                                      │
    │  HEADERS         Content-Type: text/plain\r\n                        │
    │                  Content-Length: 3\r\n      ← always present         │
    │                  \r\n                       ← separator              │
    │                                                                      │
    │  BODY            abc                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing else is added behind the handler's back: no Date, no Server. What
a handler builds is byte-for-byte what the client gets, plus the
Content-Length needed to frame the body.

=============================================================================
CONTENT-LENGTH BOOKKEEPING
=============================================================================

The body and its Content-Length header must never disagree, otherwise a
keep-alive client reads the wrong number of bytes and every following
response on the connection is garbage. So Content-Length is owned by the
body property:

    response.body = b"hello"     → Content-Length: 5
    response.body = gzipped      → Content-Length: len(gzipped)
    response.body = b""          → header dropped; to_bytes() writes 0

=============================================================================
"""

from typing import Mapping, Optional, Sequence, Union

from .headers import Headers
from .status_codes import HTTPStatus


class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use the convenience functions at the bottom of this module (ok(),
    not_found(), ...) or ResponseBuilder for the common shapes.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns        Compressor may          to_bytes()
        HTTPResponse   ─────►  replace body   ─────►   raw bytes  ───► socket
            │                  (gzip)                     │
            │                                             │
        HTTPResponse(                            b"HTTP/1.1 200 OK\r\n
          status=HTTPStatus.OK,                    Content-Length: 3\r\n
          body=b"abc",                             \r\n
        )                                          abc"

    =========================================================================
    """

    def __init__(
        self,
        status: HTTPStatus = HTTPStatus.OK,
        headers: Optional[Mapping[str, str]] = None,
        body: Union[str, bytes] = b"",
        version: str = "HTTP/1.1",
    ):
        self.status = HTTPStatus(status)
        self.headers = Headers(headers)
        self.version = version
        self._body = b""
        self.body = body

    @property
    def body(self) -> bytes:
        return self._body

    @body.setter
    def body(self, body: Union[str, bytes]) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = bytes(body)
        if self._body:
            self.headers["Content-Length"] = str(len(self._body))
        else:
            self.headers.remove("Content-Length")

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any existing one (any casing).

        Returns self for method chaining:
            response.set_header("X-A", "1").set_header("X-B", "2")
        """
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name, default)

    def remove_header(self, name: str) -> "HTTPResponse":
        """Remove a header (any casing); a missing header is not an error."""
        self.headers.remove(name)
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """
        Set the response body and keep Content-Length in step.

        Strings are encoded as UTF-8.
        """
        self.body = body
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n            ← status line
            Content-Type: text/plain\r\n   ← headers, insertion order
            Content-Length: 3\r\n          ← added as "0" if absent
            \r\n                           ← separator
            abc                            ← body bytes

        =====================================================================

        Returns:
            Complete HTTP response as bytes ready for socket.sendall()
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        if "Content-Length" not in self.headers:
            lines.append(f"Content-Length: {len(self._body)}")

        lines.append("")
        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self._body

    def __repr__(self) -> str:
        return (
            f"HTTPResponse(status={self.status.value}, "
            f"headers={dict(self.headers.items())!r}, body={len(self._body)} bytes)"
        )


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns `self`, so calls chain:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("hello")
            .build())

        builder.status(201).header("X-Key", "v").body(data).build()
        ────────┬────────────────┬────────────────┬─────────┬───
                └────────────────┴────────────────┘         │
                      all return 'self'              returns HTTPResponse
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers = Headers()
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body (strings are UTF-8 encoded)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a text body and its Content-Type."""
        return self.body(text).content_type(content_type)

    def close_connection(self) -> "ResponseBuilder":
        """
        Set Connection: close.

        Tells the client this is the last response on the connection.
        """
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        """Construct the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Quick one-liners for the responses the handlers and the router produce.
#
#     return ok(b"...", "application/octet-stream")
#     return not_found()
#
# Error helpers default to an EMPTY body: the status line already says
# what went wrong. Pass a message to get a text/plain body.
#
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    Args:
        body: Response body (str is UTF-8 encoded)
        content_type: Content-Type header, omitted when None
    """
    builder = ResponseBuilder().status(HTTPStatus.OK).body(body)
    if content_type:
        builder.content_type(content_type)
    return builder.build()


def created(body: Union[str, bytes] = b"", location: Optional[str] = None) -> HTTPResponse:
    """
    Create a 201 Created response.

    Used after a successful upload. Location, when given, points at the
    new resource.
    """
    builder = ResponseBuilder().status(HTTPStatus.CREATED).body(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def _error(status: HTTPStatus, message: str) -> HTTPResponse:
    builder = ResponseBuilder().status(status)
    if message:
        builder.text(message)
    return builder.build()


def bad_request(message: str = "") -> HTTPResponse:
    """Create a 400 Bad Request response (malformed request, invalid name)."""
    return _error(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "") -> HTTPResponse:
    """Create a 403 Forbidden response (path escapes the served directory)."""
    return _error(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "") -> HTTPResponse:
    """Create a 404 Not Found response."""
    return _error(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: Sequence[str]) -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing the methods the server does route
    (RFC 7231 section 6.5.5).

    Args:
        allowed_methods: Methods with at least one registered route
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .build())


def internal_error(message: str = "") -> HTTPResponse:
    """
    Create a 500 Internal Server Error response.

    Keep the message generic: it goes to the client, not to the logs.
    """
    return _error(HTTPStatus.INTERNAL_SERVER_ERROR, message)
