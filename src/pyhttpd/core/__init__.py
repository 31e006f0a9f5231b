"""
=============================================================================
CORE NETWORKING
=============================================================================

The transport layer under the HTTP code:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SocketServer (socket_server.py)                                     │
    │   bind / listen / accept loop, signal handling, shutdown flag       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Connection (connection.py)                                          │
    │   one client socket: buffered readline()/read(), sendall(), close   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Client socket wrapper, byte stream for the parser
    "ConnectionState",  # Connection lifecycle states
]
