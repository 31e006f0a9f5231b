"""
=============================================================================
COMPRESSION
=============================================================================

Gzip-encodes response bodies for clients that ask for it.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Client                                  Server                    │
    │     │                                        │                      │
    │     │  GET /echo/abc HTTP/1.1                │                      │
    │     │  Accept-Encoding: deflate, gzip        │                      │
    │     │ ────────────────────────────────────►  │                      │
    │     │                                        │  "gzip" is a token:  │
    │     │                                        │  compress body       │
    │     │  HTTP/1.1 200 OK                       │                      │
    │     │  Content-Type: text/plain              │                      │
    │     │  Content-Encoding: gzip                │                      │
    │     │  Content-Length: 23    ← gzipped size  │                      │
    │     │  Vary: Accept-Encoding                 │                      │
    │     │ ◄────────────────────────────────────  │                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The Accept-Encoding header is split on commas and each token trimmed. Only
a token that is exactly "gzip" counts:

    "gzip"                 → compress
    "deflate, gzip"        → compress
    "gzip-x, invalid"      → leave alone (no substring matching)
    (header absent)        → leave alone

Quality values are not interpreted: "gzip;q=0" is not the token "gzip".

=============================================================================
"""

from typing import Optional
import gzip
import logging
import zlib

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)


class CompressionError(Exception):
    """The body could not be gzip-encoded."""


def accepts_gzip(accept_encoding: Optional[str]) -> bool:
    """True if the header lists the exact token "gzip"."""
    if not accept_encoding:
        return False
    return any(token.strip() == "gzip" for token in accept_encoding.split(","))


class ResponseCompressor:
    """
    Applies gzip Content-Encoding to responses.

    =========================================================================
    HOW IT WORKS
    =========================================================================

    1. Check the request's Accept-Encoding for the "gzip" token
    2. Skip responses that already carry a Content-Encoding
    3. Compress the body with gzip
    4. Update headers (Content-Encoding, Content-Length, Vary)

    Unlike a size-threshold compressor, every body is compressed once gzip
    has been negotiated, including empty ones: the client asked for gzip
    and gets gzip.

    =========================================================================
    USAGE
    =========================================================================

        compressor = ResponseCompressor(level=6)
        response = compressor.apply(request, router.dispatch(request))

    =========================================================================
    """

    def __init__(self, level: int = 6):
        """
        Args:
            level: gzip compression level.
                  1 = fastest, least compression
                  6 = balanced (default)
                  9 = slowest, best compression
        """
        if not 0 <= level <= 9:
            raise ValueError(f"Compression level must be 0-9, got {level}")
        self.level = level

    def apply(self, request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
        """
        Compress the response in place if the client accepts gzip.

        Returns:
            The same response (possibly compressed), or a 500 response
            if compression failed.
        """
        if not accepts_gzip(request.get_header("accept-encoding")):
            return response

        if "Content-Encoding" in response.headers:
            return response

        try:
            compressed = self.compress(response.body)
        except CompressionError as e:
            logger.error(f"Compression failed: {e}")
            return internal_error()

        # body setter recomputes Content-Length
        response.body = compressed
        response.headers["Content-Encoding"] = "gzip"
        response.headers["Content-Length"] = str(len(compressed))

        vary = response.headers.get("Vary", "")
        if "Accept-Encoding" not in vary:
            response.headers["Vary"] = f"{vary}, Accept-Encoding".lstrip(", ")

        return response

    def compress(self, body: bytes) -> bytes:
        """
        gzip-encode a body.

        Raises:
            CompressionError: If the compressor fails
        """
        try:
            return gzip.compress(body, compresslevel=self.level)
        except (zlib.error, ValueError, TypeError) as e:
            raise CompressionError(str(e)) from e


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Exact "gzip" token in Accept-Encoding → compress
# 2. Set Content-Encoding and the compressed Content-Length
# 3. Add Vary: Accept-Encoding so caches keep the variants apart
# 4. Never double-encode
# =============================================================================
