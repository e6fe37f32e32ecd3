"""
=============================================================================
FILE TRANSFER HANDLER
=============================================================================

Serves and stores files under one configured directory.

    GET  /files/<name>   →  200, body = file bytes, streamed in chunks
    POST /files/<name>   →  201, file created or overwritten with the body
    anything else        →  404

=============================================================================
PATH CONFINEMENT
=============================================================================

The name after "/files/" is joined to the directory with a single "/".
The normalized form of that path must still lie inside the directory:

    directory = /srv/data
    "foo.txt"            → /srv/data/foo.txt             ok
    "sub/foo.txt"        → /srv/data/sub/foo.txt         ok
    "../etc/passwd"      → /srv/etc/passwd               rejected (404)
    "sub/../../x"        → /srv/x                        rejected (404)

Symlinks are followed before the check, so a link pointing outside the
directory is rejected too.

Normalization is only used for the check. The file is opened under the
name exactly as given, so "foo.txt/" addresses a directory named foo.txt
(404 for a plain file) rather than foo.txt itself.

=============================================================================
FAILURE MAPPING
=============================================================================

    stat / open / write fails (missing, directory, permissions)  →  404
    read fails after the 200 header block went out               →  see
                                                      ResponseWriter

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    created, not_found,
)


logger = logging.getLogger(__name__)


class PathTraversalError(ValueError):
    """A requested file name resolves outside the served directory."""

    def __init__(self, name: str, resolved: Path):
        super().__init__(f"Path escapes served directory: {name!r} -> {resolved}")
        self.name = name
        self.resolved = resolved


class FileTransferHandler:
    """
    GET/POST handler for "/files/*filename".

    Usage:
        files = FileTransferHandler("/srv/data")
        router.add_route("/files/*filename", files.handle)
    """

    def __init__(self, directory: Union[str, Path], chunk_size: int = 1024):
        """
        Args:
            directory: Directory files are read from and written to. Must
                       exist.
            chunk_size: Bytes per read/write when moving file contents.
        """
        self.directory = Path(directory).resolve()
        self.chunk_size = chunk_size

        if not self.directory.is_dir():
            raise ValueError(f"File directory does not exist: {directory}")

    def resolve(self, name: str) -> str:
        """
        Map a file name from the URL to a path inside the directory.

        Returns the joined path unnormalized; pathlib would drop a
        trailing "/" and change which file is addressed.

        Raises:
            PathTraversalError: If the normalized path leaves the directory.
        """
        target = f"{self.directory}/{name}"
        resolved = Path(target).resolve()
        try:
            resolved.relative_to(self.directory)
        except ValueError:
            raise PathTraversalError(name, resolved) from None
        return target

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch on method after resolving the target path."""
        name = request.path_params.get("filename")
        if name is None:
            return not_found()

        try:
            path = self.resolve(name)
        except PathTraversalError as e:
            logger.warning(f"Path traversal attempt from {request.client_address[0]}: {e}")
            return not_found()
        except ValueError as e:
            # e.g. an embedded NUL byte in the name
            logger.debug(f"Unusable file name {name!r}: {e}")
            return not_found()

        if request.method == "GET":
            return self.get(path)
        if request.method == "POST":
            return self.post(path, request.body)
        return not_found()

    def get(self, path: str) -> HTTPResponse:
        """
        Answer with the file's contents.

        The length comes from a stat() before the file is opened, and is
        what Content-Length declares. The open file travels in the response
        and the ResponseWriter streams and closes it.
        """
        try:
            size = os.stat(path).st_size
        except (OSError, ValueError) as e:
            logger.debug(f"stat failed for {path}: {e}")
            return not_found()

        try:
            file = open(path, "rb")
        except OSError as e:
            logger.debug(f"open failed for {path}: {e}")
            return not_found()

        logger.debug(f"Serving {path} ({size} bytes)")
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .stream(file, size)
            .build())

    def post(self, path: str, body: bytes) -> HTTPResponse:
        """
        Create or truncate the file and write `body` into it.

        The body has already been framed by Content-Length, so what is
        written is exactly what the client declared.
        """
        view = memoryview(body)
        try:
            with open(path, "wb") as file:
                for offset in range(0, len(view), self.chunk_size):
                    file.write(view[offset:offset + self.chunk_size])
        except (OSError, ValueError) as e:
            logger.error(f"Failed to store {path}: {e}")
            return not_found()

        logger.debug(f"Stored {len(body)} bytes in {path}")
        return created()
