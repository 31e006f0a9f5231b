"""
=============================================================================
FILE HANDLERS
=============================================================================

Read and write raw files under one configured directory:

    GET  /files/{filename}  → file bytes (application/octet-stream)
    POST /files/{filename}  → request body stored as the file, 201 Created

=============================================================================
SECURITY: PATH TRAVERSAL ATTACK
=============================================================================

The filename comes from the URL and is percent-decoded by the router, so
a client controls it completely:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /files/..%2F..%2Fetc%2Fpasswd HTTP/1.1                          │
    │                                                                      │
    │  filename = "../../etc/passwd"                                       │
    │  /srv/data/../../etc/passwd  →  /etc/passwd   (SECURITY BREACH!)     │
    │                                                                      │
    │  Our protection:                                                     │
    │  1. Join with the root and normalize (collapse "." and "..")         │
    │  2. Check the common path of root and result is still root           │
    │  3. If not, 403 Forbidden                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    PYTHON PROTECTION:

        candidate = os.path.normpath(os.path.join(root, name))
        os.path.commonpath([root, candidate]) == root   # else reject

The check is LEXICAL: it runs before the filesystem is touched, so it
works for files that do not exist yet (uploads).

=============================================================================
ATOMIC WRITES
=============================================================================

Two clients may POST the same filename at the same moment. Writing in
place could interleave their bytes. Instead each upload goes to its own
temporary file in the target directory and is renamed over the target:

    .notes.txt.k3j9a.tmp  ──os.replace()──►  notes.txt

os.replace is atomic on one filesystem, so readers only ever see a
complete file: the last writer wins.

=============================================================================
"""

from typing import Optional
import logging
import os
import tempfile

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    created,
    not_found,
    ok,
)


logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class FileStoreError(Exception):
    """
    Base error for the byte-store.

    Carries the HTTP status the handler answers with.
    """

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class PathTraversalError(FileStoreError):
    """The name resolves outside the root directory (403)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=403)


class InvalidPathError(FileStoreError):
    """The name is empty, names the root itself, or contains NUL (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class StorageError(FileStoreError):
    """The filesystem refused a read or write (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


# =============================================================================
# BYTE-STORE
# =============================================================================

class FileStore:
    """
    Traversal-checked read/write access to files under a root directory.

    Usage:
        store = FileStore("/srv/data")
        store.write("notes.txt", b"hello")
        store.read("notes.txt")       # b"hello"
        store.read("missing.txt")     # None
        store.read("../etc/passwd")   # raises PathTraversalError
    """

    def __init__(self, root: str):
        """
        Args:
            root: Directory to serve. Must exist.

        Raises:
            ValueError: If root is not a directory
        """
        self.root = os.path.abspath(root)
        if not os.path.isdir(self.root):
            raise ValueError(f"File directory does not exist: {root}")

    def resolve(self, name: str) -> str:
        """
        Map a client-supplied name to an absolute path inside the root.

        Raises:
            InvalidPathError: Empty name, NUL byte, or the root itself
            PathTraversalError: The normalized path escapes the root
        """
        if not name or "\x00" in name:
            raise InvalidPathError(f"Invalid file name: {name!r}")

        candidate = os.path.normpath(os.path.join(self.root, name))
        try:
            inside = os.path.commonpath([self.root, candidate]) == self.root
        except ValueError:
            # different drives on Windows
            inside = False

        if not inside:
            logger.warning(f"Path traversal attempt: {name!r}")
            raise PathTraversalError(f"Path escapes the file directory: {name!r}")
        if candidate == self.root:
            raise InvalidPathError(f"Invalid file name: {name!r}")
        return candidate

    def read(self, name: str) -> Optional[bytes]:
        """
        Read a whole file.

        Returns:
            The file bytes, or None if there is no such file
        """
        path = self.resolve(name)
        try:
            with open(path, "rb") as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            raise StorageError(f"Failed to read {name!r}") from e

    def write(self, name: str, data: bytes) -> None:
        """
        Store data under name, replacing any existing file atomically.

        Missing intermediate directories inside the root are created.
        """
        path = self.resolve(name)
        directory, filename = os.path.split(path)

        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{filename}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing file {path}: {e}")
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Failed to write {name!r}") from e

        logger.debug(f"Stored {len(data)} bytes in {path}")


# =============================================================================
# HANDLERS
# =============================================================================

class FileHandler:
    """
    Route handlers backed by a FileStore.

        files = FileHandler(FileStore("/srv/data"))
        router.add_route("GET", "/files/{filename}", files.read)
        router.add_route("POST", "/files/{filename}", files.write)

    Store errors become their status code with an empty body; the
    connection stays open.
    """

    def __init__(self, store: FileStore):
        self.store = store

    def read(self, request: HTTPRequest) -> HTTPResponse:
        name = request.path_params.get("filename", "")
        try:
            data = self.store.read(name)
        except FileStoreError as e:
            return HTTPResponse(status=e.status_code)

        if data is None:
            return not_found()
        return ok(data, "application/octet-stream")

    def write(self, request: HTTPRequest) -> HTTPResponse:
        name = request.path_params.get("filename", "")
        try:
            self.store.write(name, request.body)
        except FileStoreError as e:
            return HTTPResponse(status=e.status_code)
        return created()
