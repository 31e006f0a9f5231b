"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Dict, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pyhttpd import HTTPServer, ServerConfig, build_router
from pyhttpd.core import Connection


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/abc?page=1 HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"hello, file"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def file_dir(tmp_path: Path) -> Path:
    """Directory behind the /files routes."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


@pytest.fixture
def config(file_dir: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        shutdown_timeout=1.0,
        directory=str(file_dir),
        log_level="WARNING",
    )


# =============================================================================
# RAW HTTP CLIENT
# =============================================================================


class RawResponse:
    """A response read off the wire, headers keyed by lowercase name."""

    def __init__(self, status: int, reason: str, headers: Dict[str, str],
                 header_names: List[str], body: bytes):
        self.status = status
        self.reason = reason
        self.headers = headers
        self.header_names = header_names
        self.body = body

    def __repr__(self):
        return f"RawResponse({self.status} {self.reason}, {self.headers!r}, {self.body!r})"


class Client:
    """Minimal blocking HTTP/1.1 client over one TCP connection."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.rfile = sock.makefile("rb")

    @classmethod
    def connect(cls, port: int, timeout: float = 5.0) -> "Client":
        return cls(socket.create_connection(("127.0.0.1", port), timeout=timeout))

    def send(self, data: bytes):
        self.sock.sendall(data)

    def request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                body: bytes = b"") -> RawResponse:
        lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        if body:
            lines.append(f"Content-Length: {len(body)}")
        self.send(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + body)
        response = self.read_response()
        assert response is not None, "server closed the connection"
        return response

    def read_response(self) -> Optional[RawResponse]:
        status_line = self.rfile.readline()
        if not status_line:
            return None
        _, code, reason = status_line.decode("utf-8").rstrip("\r\n").split(" ", 2)

        headers: Dict[str, str] = {}
        names: List[str] = []
        while True:
            line = self.rfile.readline()
            if line in (b"\r\n", b""):
                break
            name, _, value = line.decode("utf-8").rstrip("\r\n").partition(":")
            names.append(name)
            headers[name.lower()] = value.strip()

        body = self.rfile.read(int(headers.get("content-length", "0")))
        return RawResponse(int(code), reason, headers, names, body)

    def read_until_eof(self) -> bytes:
        chunks = []
        while True:
            chunk = self.rfile.read(4096)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    def close(self):
        self.rfile.close()
        self.sock.close()


# =============================================================================
# LIVE SERVER
# =============================================================================


class ServerThread:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A running server with the standard routes on an ephemeral port."""
    server = HTTPServer(config, build_router(config.directory))
    thread = ServerThread(server)
    thread.start()

    yield thread

    thread.stop()


@pytest.fixture
def connect(live_server: ServerThread):
    """Factory for clients connected to live_server; all closed at teardown."""
    clients: List[Client] = []

    def _connect() -> Client:
        client = Client.connect(live_server.port)
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        client.close()


# =============================================================================
# IN-PROCESS CONNECTION
# =============================================================================


@pytest.fixture
def socket_pair() -> Generator[tuple, None, None]:
    """
    (Connection, client socket) joined by socket.socketpair().

    Lets the connection loop run without a listener.
    """
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    conn = Connection(socket=server_side, address=("127.0.0.1", 0), timeout=5.0)

    yield conn, client_side

    conn.force_close()
    client_side.close()
