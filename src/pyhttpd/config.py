"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── pyhttpd --port 4221 --directory /tmp/data                  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PYHTTPD_PORT=4221 pyhttpd                                  │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import logging
import os


ENV_PREFIX = "PYHTTPD_"


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Development:
        ServerConfig(port=4221, directory="/tmp/files", log_level="DEBUG")

    Tests:
        ServerConfig(port=0)   # let the OS pick a free port
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """The port to listen on. 0 asks the OS for a free one."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Idle read timeout per connection, in seconds.
    A keep-alive connection with no new request for this long is closed.
    None = wait forever.
    """

    shutdown_timeout: float = 5.0
    """
    How long shutdown waits for in-flight connections before closing
    their sockets from under them.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 8192
    """Longest request line or header line accepted, in bytes."""

    max_headers: int = 100
    """Most header lines accepted per request; more is a 400."""

    max_body_size: int = 10 * 1024 * 1024
    """Largest Content-Length accepted, in bytes; larger is a 400."""

    compression_level: int = 6
    """gzip level for negotiated compression (0-9)."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Directory behind GET/POST /files/{filename}.
    If None, the file routes are not registered at all.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PYHTTPD_HOST          Bind address (default: 127.0.0.1)
        PYHTTPD_PORT          Port (default: 4221)
        PYHTTPD_TIMEOUT       Idle read timeout, seconds (default: 30)
        PYHTTPD_DIRECTORY     File directory (default: none)
        PYHTTPD_LOG_LEVEL     Logging level (default: INFO)
        PYHTTPD_COMPRESSION_LEVEL  gzip level (default: 6)

        =====================================================================

        Raises:
            ValueError: If a numeric variable is not a number
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        return cls(
            host=get("HOST", defaults.host),
            port=int(get("PORT", defaults.port)),
            timeout=float(get("TIMEOUT", defaults.timeout)),
            directory=get("DIRECTORY", defaults.directory),
            log_level=get("LOG_LEVEL", defaults.log_level),
            compression_level=int(get("COMPRESSION_LEVEL", defaults.compression_level)),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately, not on the
        first request.

        Raises:
            ValueError: Describing the first invalid setting
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.shutdown_timeout < 0:
            raise ValueError("shutdown_timeout must be >= 0")

        if self.max_line_length < 64:
            raise ValueError("max_line_length must be >= 64")

        if self.max_headers < 1:
            raise ValueError("max_headers must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 0-9, got {self.compression_level}")

        if self.directory is not None and not os.path.isdir(self.directory):
            raise ValueError(f"directory does not exist: {self.directory}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Typed configuration with a dataclass
# 2. Environment variables (PYHTTPD_*) for deployment
# 3. Validation at startup (fail-fast)
# =============================================================================
