"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket: bind, listen, accept, and hand each accepted
client to a callback as a Connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      LISTENER LIFECYCLE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        │                                                             │
    │        ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY, 1s timeout │
    │        ├──► bind()             host:port (port 0 = pick one)         │
    │        ├──► listen()           backlog from config                   │
    │        ├──► _setup_signals()   SIGTERM/SIGINT (main thread only)     │
    │        │                                                             │
    │        └──► _accept_loop()     BLOCKS here                           │
    │                 └──► while running:                                  │
    │                         accept()       1s poll                       │
    │                         Connection()   wrap client socket            │
    │                         handler(conn)  HTTPServer spawns a thread    │
    │                                                                      │
    │    shutdown()        flag the loop; it exits within ~1s              │
    │    _cleanup()        restore signals, close listening socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept() timeout is what makes shutdown() work from another thread or
a signal handler: the loop wakes up at least once a second and re-checks
the running flag.

=============================================================================
"""

from typing import Callable, Dict, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listening socket and accept loop; knows nothing about HTTP.

    Usage:
        def handle_connection(conn: Connection):
            ...

        listener = SocketServer(config)
        listener.start(handle_connection)   # returns after shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).

        No socket exists until start() is called.
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening (tests wait on it)
        self._ready = threading.Event()
        # Set once the listening socket has been closed
        self._stopped = threading.Event()

        self._previous_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Differs from the configured one when port 0 was requested.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow immediate rebinding after restart (TIME_WAIT)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Send small responses immediately instead of waiting for Nagle
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that trigger shutdown().

        signal.signal() only works on the main thread; when the server
        runs elsewhere (tests, embedding) the owner calls shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def on_signal(signum, frame):
            logger.info(f"{signal.Signals(signum).name} received, stopping")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[sig] = signal.signal(sig, on_signal)

    def _restore_signals(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown() is called.

        Args:
            connection_handler: Called with every accepted Connection.
                               Must not block for long: the accept loop
                               waits for it.

        Raises:
            OSError: If the address cannot be bound
        """
        self._socket = self._create_socket()
        self._stopped.clear()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            self._stopped.set()
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # re-check _running
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from any thread, a signal handler, or more than once.
        """
        if self._running:
            logger.info("Listener stopping")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready.clear()
        self._stopped.set()
        logger.info("Listener closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is closed. False on timeout."""
        return self._stopped.wait(timeout)
