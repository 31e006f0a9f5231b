"""
=============================================================================
PYHTTPD
=============================================================================

An HTTP/1.1 server built directly on sockets.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ARCHITECTURE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   __main__.py      CLI: flags → ServerConfig → create_server()      │
    │        │                                                             │
    │   app.py           standard route table                              │
    │        │                                                             │
    │   server.py        connection loop, thread per connection            │
    │        │                                                             │
    │   ├── core/        SocketServer (accept), Connection (byte stream)   │
    │   ├── http/        parser, router, response, headers, status codes   │
    │   ├── middleware/  gzip compression                                  │
    │   └── handlers/    root, echo, user-agent, files                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from pyhttpd import ServerConfig, create_server

    create_server(ServerConfig(port=4221, directory="/tmp")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import build_router, create_server

__all__ = ["HTTPServer", "ServerConfig", "build_router", "create_server", "__version__"]
