"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: listener → one thread per connection →
parse → route → compress → write → next request or close.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   _handle_connection(conn)  ── new Thread ──┐                        │
    │                                             ▼                        │
    │                              serve_connection(conn)                  │
    │                                             │                        │
    │        ┌────────────────────────────────────┘                        │
    │        ▼                                                             │
    │   ┌──────────────┐   NoMoreRequests / timeout ──────────► close      │
    │   │ parser.parse │   ParseError ───────────► 400 + close             │
    │   └──────┬───────┘                                                   │
    │          │ ParseOk                                                   │
    │          ▼                                                           │
    │   router.dispatch ─► compressor.apply ─► sendall                     │
    │          │                                   │                       │
    │     (handler raised → 500)                   ▼                       │
    │                                "Connection: close"? ── yes ─► close  │
    │                                              │ no                    │
    │                                              └──► next request       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONCURRENCY MODEL
=============================================================================

Thread per connection, blocking I/O. The route table is frozen before the
listener starts, so handler threads share nothing mutable except the
filesystem behind the file handlers.

Shutdown: stop accepting, give in-flight connections shutdown_timeout
seconds to finish, then close whatever is left from under them.

=============================================================================
"""

from typing import Dict, Optional, Tuple
import logging
import socket
import threading
import time

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    NoMoreRequests,
    ParseError,
    RequestParser,
    ResponseBuilder,
    Router,
    internal_error,
)
from .middleware import ResponseCompressor


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("pyhttpd.access")


class HTTPServer:
    """
    HTTP/1.1 server with persistent connections.

    =========================================================================
    USAGE
    =========================================================================

        router = Router()

        @router.get("/")
        def index(request):
            return ok()

        server = HTTPServer(ServerConfig(port=4221), router)
        server.run()                 # blocks; Ctrl+C to stop

    Most callers use pyhttpd.app.create_server(config), which builds the
    standard route table.

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
        compressor: Optional[ResponseCompressor] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            router: Route table; frozen when the server starts.
            compressor: Response compressor. Built from the config's
                        compression_level if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.router = router or Router()
        self.compressor = compressor or ResponseCompressor(self.config.compression_level)

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(
            max_line_length=self.config.max_line_length,
            max_headers=self.config.max_headers,
            max_body_size=self.config.max_body_size,
        )

        # conn.id → (connection, thread) for every live connection
        self._connections: Dict[str, Tuple[Connection, threading.Thread]] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when 0 was configured."""
        return self._socket_server.address

    @property
    def active_connections(self) -> int:
        with self._lock:
            return len(self._connections)

    def run(self):
        """
        Configure logging and serve until Ctrl+C / SIGTERM.

        This is the CLI entry point. Embedders that manage logging
        themselves call serve_forever() directly.
        """
        self._setup_logging()
        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def serve_forever(self):
        """
        Freeze the route table and accept connections until shutdown().

        Blocks. On exit, in-flight connections are drained (see
        _close_connections).

        Raises:
            OSError: If the address cannot be bound
        """
        self.router.freeze()
        for line in self.router.describe():
            logger.debug(f"Route: {line}")

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._close_connections()
            logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """
        Ask the server to stop.

        Returns immediately; serve_forever() returns once the accept loop
        has noticed and connections are drained.
        """
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("pyhttpd").setLevel(level)

    def _close_connections(self):
        """
        Graceful shutdown of connection threads.

        1. Wait up to shutdown_timeout for threads to finish on their own
        2. Force-close the sockets of the rest (wakes blocked recv())
        3. Give those threads a moment to unwind
        """
        deadline = time.monotonic() + self.config.shutdown_timeout
        with self._lock:
            pending = list(self._connections.values())

        if pending:
            logger.info(f"Waiting for {len(pending)} connection(s) to finish...")
        for _, thread in pending:
            thread.join(max(0.0, deadline - time.monotonic()))

        with self._lock:
            remaining = list(self._connections.values())
        for conn, _ in remaining:
            logger.warning(f"[{conn.id}] Closing connection still open at shutdown")
            conn.force_close()
        for _, thread in remaining:
            thread.join(1.0)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Start a thread for a freshly accepted connection.

        Called by SocketServer on the accept thread.
        """
        thread = threading.Thread(
            target=self._run_connection,
            args=(conn,),
            name=f"pyhttpd-conn-{conn.id}",
            daemon=True,
        )
        with self._lock:
            self._connections[conn.id] = (conn, thread)
        thread.start()

    def _run_connection(self, conn: Connection):
        try:
            self.serve_connection(conn)
        finally:
            with self._lock:
                self._connections.pop(conn.id, None)

    def serve_connection(self, conn: Connection):
        """
        Serve requests on one connection until it ends.

        =====================================================================
        CONNECTION LOOP
        =====================================================================

        AWAITING_REQUEST → DISPATCHING → WRITING → (AWAITING_REQUEST | CLOSED)

        1. Parse the next request from the connection's stream
        2. Dispatch through the router, compress
        3. Echo "Connection: close" if the client asked for it
        4. Send; loop on the SAME stream or close

        Leftover bytes after a request stay buffered in the connection,
        so back-to-back requests are read in order.

        =====================================================================
        """
        with conn:
            while not conn.closed:
                conn.state = ConnectionState.AWAITING_REQUEST
                try:
                    result = self._parser.parse(conn)
                except socket.timeout:
                    logger.debug(f"[{conn.id}] Idle timeout")
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    break

                if isinstance(result, NoMoreRequests):
                    break

                if isinstance(result, ParseError):
                    logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {result.reason}")
                    self._send_error(conn, HTTPStatus.BAD_REQUEST, result.reason)
                    break

                request = result.request
                started = time.monotonic()
                conn.state = ConnectionState.DISPATCHING

                response = self.handle_request(request)
                if request.wants_close:
                    response.set_header("Connection", "close")

                sent = conn.send_response(response.to_bytes())
                self._log_access(conn, request, response, started)

                if not sent or request.wants_close:
                    break

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route and compress one request.

        A handler exception is logged and becomes a 500; the connection
        carries on.
        """
        try:
            response = self.router.dispatch(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            response = internal_error()

        return self.compressor.apply(request, response)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """
        Best-effort error response for failures before routing
        (malformed requests). Always closes the connection afterwards.
        """
        response = (ResponseBuilder()
            .status(status)
            .text(f"{status.value} {status.phrase}: {message}")
            .close_connection()
            .build())

        conn.send_response(response.to_bytes())

    def _log_access(
        self,
        conn: Connection,
        request: HTTPRequest,
        response: HTTPResponse,
        started: float,
    ):
        """
        One line per exchange:

            127.0.0.1 "GET /echo/abc HTTP/1.1" 200 3 0.4ms
        """
        duration_ms = (time.monotonic() - started) * 1000
        access_logger.info(
            f'{conn.client_ip} "{request.method} {request.path} {request.version}" '
            f"{response.status.value} {len(response.body)} {duration_ms:.1f}ms"
        )


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Listener accepts, each connection gets its own thread
# 2. Connection loop: parse → dispatch → compress → write, repeat
# 3. Errors: 400 + close on bad framing, 500 + continue on handler bugs
# 4. Shutdown: stop accepting, drain with a deadline, force-close the rest
# =============================================================================
