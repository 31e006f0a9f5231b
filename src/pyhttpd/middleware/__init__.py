"""
Response post-processing applied between the router and the wire.

Only compression lives here: the connection loop calls
ResponseCompressor.apply() on every routed response.
"""

from .compression import CompressionError, ResponseCompressor, accepts_gzip

__all__ = [
    "CompressionError",
    "ResponseCompressor",
    "accepts_gzip",
]
