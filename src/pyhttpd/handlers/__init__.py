"""
=============================================================================
HANDLERS MODULE
=============================================================================

Built-in request handlers.

A handler is a plain callable: it takes an HTTPRequest and returns an
HTTPResponse. Functions serve stateless endpoints; a class holds state
(here, the file directory) and exposes bound methods as handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Handlers                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function Handler  │ root, echo, user_agent         (basic.py)      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Class Handler     │ FileHandler.read / .write      (files.py)      │
    │                   │ backed by FileStore                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .basic import echo, root, user_agent
from .files import (
    FileHandler,
    FileStore,
    FileStoreError,
    InvalidPathError,
    PathTraversalError,
    StorageError,
)

__all__ = [
    "root",
    "echo",
    "user_agent",
    "FileHandler",
    "FileStore",
    "FileStoreError",
    "InvalidPathError",
    "PathTraversalError",
    "StorageError",
]
