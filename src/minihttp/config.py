"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one frozen dataclass. The server receives it at
construction time and every connection thread reads the same instance, so
it must never change after startup: `frozen=True` turns any attempt into a
FrozenInstanceError. Derive a modified copy with `with_overrides()`.

=============================================================================
SOURCES
=============================================================================

    Code:         ServerConfig(directory="/srv/data", port=8000)
    Environment:  ServerConfig.from_env()          (HTTP_* variables)
    CLI:          python -m minihttp --directory /srv/data

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog
    I/O         buffer_size, chunk_size, timeout, max_request_size
    FILES       directory
    LOGGING     log_level
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Localhost by default."""

    port: int = 4221
    """Port to listen on. 0 lets the OS pick one (useful in tests)."""

    backlog: int = 128
    """Pending connections queued by the kernel before refusing new ones."""

    # ─────────────────────────────────────────────────────────────────────
    # I/O SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 1024
    """Bytes requested per socket read while receiving a request."""

    chunk_size: int = 1024
    """Bytes per chunk when streaming files to and from disk."""

    timeout: Optional[float] = 30.0
    """
    Seconds a single socket read may block before the connection is
    dropped. None waits forever, so a stalled peer holds its thread until
    it disconnects.
    """

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Upper bound on header block plus body. Larger requests are dropped."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Directory behind /files/<name>. When None every /files/ request is
    answered with 404.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "minihttp/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST       Bind address        (default: 127.0.0.1)
        HTTP_PORT       Port                (default: 4221)
        HTTP_DIRECTORY  Files directory     (default: unset)
        HTTP_TIMEOUT    Read timeout, s     (default: 30, "none" disables)
        HTTP_LOG_LEVEL  Logging level       (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("HTTP_TIMEOUT", "30")
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "4221")),
            directory=os.getenv("HTTP_DIRECTORY") or None,
            timeout=None if timeout.lower() == "none" else float(timeout),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def with_overrides(self, **changes) -> "ServerConfig":
        """Return a validated copy with `changes` applied."""
        config = replace(self, **changes)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Fail fast on values the server cannot run with.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 or None")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.directory is not None and not os.path.isdir(self.directory):
            raise ValueError(f"directory does not exist: {self.directory}")
