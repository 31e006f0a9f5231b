"""
=============================================================================
APPLICATION FACTORY
=============================================================================

Builds the standard route table and a server around it.

    ┌──────────┬────────────────────┬──────────────────────────────────────┐
    │ Method   │ Pattern            │ Handler                              │
    ├──────────┼────────────────────┼──────────────────────────────────────┤
    │ GET      │ /                  │ root                                 │
    │ GET      │ /echo/{str}        │ echo                                 │
    │ GET      │ /user-agent        │ user_agent                           │
    │ GET      │ /files/{filename}  │ FileHandler.read    (directory set)  │
    │ POST     │ /files/{filename}  │ FileHandler.write   (directory set)  │
    └──────────┴────────────────────┴──────────────────────────────────────┘

Without a directory there are no POST routes at all, so POST is not a
recognized method and answers 405.

=============================================================================
"""

from typing import Optional
import logging

from .config import ServerConfig
from .handlers import FileHandler, FileStore, echo, root, user_agent
from .http import Router
from .server import HTTPServer


logger = logging.getLogger(__name__)


def build_router(directory: Optional[str] = None) -> Router:
    """
    Construct the route table.

    Args:
        directory: Root for the /files routes; None leaves them out.

    Returns:
        A new, not yet frozen Router
    """
    router = Router()
    router.add_route("GET", "/", root)
    router.add_route("GET", "/echo/{str}", echo)
    router.add_route("GET", "/user-agent", user_agent)

    if directory is not None:
        files = FileHandler(FileStore(directory))
        router.add_route("GET", "/files/{filename}", files.read)
        router.add_route("POST", "/files/{filename}", files.write)
        logger.info(f"Serving files from {files.store.root}")

    return router


def create_server(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the standard routes.

    Example:
        server = create_server(ServerConfig(port=4221, directory="/tmp"))
        server.run()
    """
    config = config or ServerConfig()
    config.validate()
    return HTTPServer(config, build_router(config.directory))
