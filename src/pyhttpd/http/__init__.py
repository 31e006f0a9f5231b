"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 message layer: bytes in, HTTPRequest; HTTPResponse out, bytes.
Nothing in here touches a socket.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Reads one request at a time from a byte stream                      │
    │                                                                      │
    │ Input:   b"GET /echo/hi HTTP/1.1\r\nHost: ...\r\n\r\n"              │
    │ Output:  ParseOk(HTTPRequest(method="GET", path="/echo/hi", ...))   │
    │          NoMoreRequests() | ParseError("...")                       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py) + HEADER MAP (headers.py)            │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   ok("hi", "text/plain")                                     │
    │ Output:  b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n           │
    │            Content-Length: 2\r\n\r\nhi"                              │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER (router.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   GET /files/notes.txt                                       │
    │ Output:  calls files.read(request), path_params={"filename": ...}   │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPStatus.NOT_FOUND → 404, phrase="Not Found"                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import Headers
from .request import (
    HTTPRequest,
    NoMoreRequests,
    ParseError,
    ParseOk,
    ParseResult,
    RequestParser,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    bad_request,         # 400 Bad Request
    forbidden,           # 403 Forbidden
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Handler, Route, RouteMatch, Router
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "ParseOk",
    "NoMoreRequests",
    "ParseError",
    "ParseResult",
    "parse_request",

    # Response building
    "Headers",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Handler",
    "Router",
    "Route",
    "RouteMatch",

    # Status codes
    "HTTPStatus",
]
