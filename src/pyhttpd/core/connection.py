"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: a buffered byte stream for the request
parser, a write path for responses, lifecycle state for logging, and the
TCP close sequence.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept()                                                           │
    │      │                                                               │
    │      ▼                                                               │
    │   AWAITING_REQUEST ◄──────────────────────────┐                      │
    │      │   parser reads request line, headers,  │  keep-alive:         │
    │      │   body from the buffered stream        │  same stream,        │
    │      ▼                                        │  leftover bytes      │
    │   DISPATCHING                                 │  stay buffered       │
    │      │   router → handler → compressor        │                      │
    │      ▼                                        │                      │
    │   WRITING ────────────────────────────────────┘                      │
    │      │   sendall(response)                                           │
    │      │                                                               │
    │      ▼   EOF, timeout, error or "Connection: close"                  │
    │   CLOSED                                                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY BUFFER?
=============================================================================

recv() returns whatever the kernel has, which rarely lines up with HTTP
lines. One recv() may hold half a header, or the end of one request plus
the start of the next. The connection keeps unread bytes in _buffer, and
readline()/read() serve the parser from it, calling recv() only when the
buffer runs dry.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple
import logging
import socket
import time
import uuid


logger = logging.getLogger(__name__)

# Upper bounds for discarding unread client bytes in close()
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and so shutdown can tell idle connections from
    busy ones.
    """
    AWAITING_REQUEST = "awaiting_request"  # Waiting for / reading a request
    DISPATCHING = "dispatching"            # Request parsed, handler running
    WRITING = "writing"                    # Sending the response
    CLOSED = "closed"                      # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── readline(limit) / read(n) for the request parser             │
    │     └── _buffer holds bytes received but not consumed yet            │
    │                                                                      │
    │  2. IDLE TIMEOUT                                                     │
    │     └── Every recv() gives up after `timeout` seconds                │
    │     └── socket.timeout propagates to the connection loop             │
    │                                                                      │
    │  3. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier (for logging).
        state: Current connection state.
        requests_handled: Number of responses written on this connection.
    """

    # Required parameters
    socket: socket.socket
    address: Tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192           # How much to recv() at once
    timeout: float = 30.0             # Idle read timeout, seconds

    _buffer: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING: the stream interface used by RequestParser
    # =========================================================================

    def readline(self, limit: int = -1) -> bytes:
        """
        Read up to and including the next b"\\n".

        Stops early after `limit` bytes (if limit >= 0) or at EOF, so a
        result without a trailing newline means one of those two.

        Raises:
            socket.timeout: If the client stays silent past the timeout
        """
        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0 and (limit < 0 or newline < limit):
                return self._take(newline + 1)
            if limit >= 0 and len(self._buffer) >= limit:
                return self._take(limit)

            chunk = self._recv()
            if not chunk:
                return self._take(len(self._buffer))
            self._buffer += chunk

    def read(self, n: int = -1) -> bytes:
        """
        Read up to n bytes; b"" only at EOF.

        Like a raw stream read, this may return fewer than n bytes. With
        n < 0 it reads until the client closes.
        """
        if n < 0:
            while True:
                chunk = self._recv()
                if not chunk:
                    return self._take(len(self._buffer))
                self._buffer += chunk

        if not self._buffer:
            chunk = self._recv()
            if not chunk:
                return b""
            self._buffer += chunk
        return self._take(min(n, len(self._buffer)))

    def _take(self, n: int) -> bytes:
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data

    def _recv(self) -> bytes:
        """
        Receive data from the socket.

        Returns:
            Received bytes, or b"" if the connection closed (including
            resets, which are just an abrupt close).
        """
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall(): plain send() may write only part of the data.

        Returns:
            True if send succeeded, False if the connection is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.requests_handled += 1
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    TCP Close Sequence                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   Server                              Client                     │
        │      │   FIN ──────────────────────────► │  (shutdown SHUT_WR)   │
        │      │ ◄───────────────────────── ACK    │                       │
        │      │ ◄─────────── (unread data) FIN    │  drained, discarded   │
        │      │   ACK ──────────────────────────► │                       │
        │   (socket closed)                  (socket closed)               │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Draining matters after a 400: closing with unread request bytes
        in the kernel buffer makes the OS send RST, and the client may
        lose the error response. The drain is bounded by DRAIN_TIMEOUT
        in total and DRAIN_LIMIT bytes, so a client that keeps sending
        cannot hold the connection open.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass

        self._release()
        logger.debug(
            f"[{self.id}] Connection closed after {self.requests_handled} requests "
            f"({self.age:.1f}s)"
        )

    def force_close(self):
        """
        Abort the connection from another thread (server shutdown).

        shutdown(SHUT_RDWR) wakes up a thread blocked in recv().
        """
        if self.state == ConnectionState.CLOSED:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._release()
        logger.debug(f"[{self.id}] Connection force-closed")

    def _release(self):
        self.state = ConnectionState.CLOSED
        try:
            self.socket.close()
        except OSError:
            pass

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows:

            with conn:
                ...
            # connection closed here
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
