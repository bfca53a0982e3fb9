"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌──────────────────────┐
    │  ServerConfig()      │  defaults, below
    └──────────┬───────────┘
               ▼
    ┌──────────────────────┐
    │  from_env()          │  STATIC_* environment variables
    └──────────┬───────────┘
               ▼
    ┌──────────────────────┐
    │  command line        │  -b / -p / -d / -w / -l / --log-format
    └──────────┬───────────┘
               ▼
          validate()          fail fast, before the socket is opened

Later sources override earlier ones; the CLI (__main__.py) starts from
from_env() and applies whatever flags were given.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK       host, port, backlog, buffer_size, timeout
    DOCUMENTS     root
    HTTP LIMITS   max_line_size, max_headers
    THREADING     min_workers, max_workers, queue_size
    LOGGING       log_level, log_format
    IDENTITY      server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" = all IPv4 interfaces."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Pending connections the kernel queues before refusing new ones."""

    buffer_size: int = 8192
    """Socket stream buffer size, also the file read chunk size."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    A client idle for longer is disconnected. None = wait forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # DOCUMENTS
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Directory to serve. The server chdir()s into it at startup."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 8192
    """Longest request line or header line accepted, in bytes."""

    max_headers: int = 100
    """Most header lines accepted in one request."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started up front."""

    max_workers: int = 8
    """Worker threads kept once load drops. Under load a thread is started
    for every connection that finds no idle one, so this is not a cap."""

    queue_size: int = 100
    """Connections handed to the pool but not yet picked up before new ones
    get 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    log_format: str = "text"
    """Access log format: 'text' (Common Log style) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "staticserver/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_HOST       Bind address (default: 0.0.0.0)
        STATIC_PORT       Port (default: 8080)
        STATIC_ROOT       Directory to serve (default: .)
        STATIC_WORKERS    Initial workers; max is twice this (default: 4)
        STATIC_TIMEOUT    Socket timeout in seconds (default: 30)
        STATIC_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================

        Raises:
            ValueError: A numeric variable doesn't parse.
        """
        workers = int(os.getenv("STATIC_WORKERS", "4"))
        return cls(
            host=os.getenv("STATIC_HOST", "0.0.0.0"),
            port=int(os.getenv("STATIC_PORT", "8080")),
            root=os.getenv("STATIC_ROOT", "."),
            min_workers=workers,
            max_workers=workers * 2,
            timeout=float(os.getenv("STATIC_TIMEOUT", "30")),
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value is reported before the socket is
        opened, not on the first request.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_size < 256:
            raise ValueError("max_line_size must be >= 256")

        if self.max_headers < 1:
            raise ValueError("max_headers must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.log_format}")
