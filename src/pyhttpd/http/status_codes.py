"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The fixed set of status codes this server can put on a status line.

=============================================================================
WHY A CLOSED SET?
=============================================================================

Every response the server writes comes from one of a handful of
situations, and each one maps to exactly one status:

    ┌────────┬────────────────────────────┬────────────────────────────────┐
    │  Code  │ Reason phrase              │ Produced by                    │
    ├────────┼────────────────────────────┼────────────────────────────────┤
    │  200   │ OK                         │ Handlers (echo, files, ...)    │
    │  201   │ Created                    │ File upload (POST /files/...)  │
    │  400   │ Bad Request                │ Parser / invalid file name     │
    │  403   │ Forbidden                  │ Path traversal attempt         │
    │  404   │ Not Found                  │ Router miss / missing file     │
    │  405   │ Method Not Allowed         │ Router (unknown method)        │
    │  500   │ Internal Server Error      │ Storage, compression, bugs     │
    └────────┴────────────────────────────┴────────────────────────────────┘

Keeping the enum closed means a typo like HTTPStatus.NOT_FUOND fails at
import time instead of putting "HTTP/1.1 0 Unknown" on the wire.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
