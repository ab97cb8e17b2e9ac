"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the streaming HTTP server.

Built once at startup and shared read-only by every connection task:

    ┌──────────────┐      ┌──────────────┐      ┌──────────────────────┐
    │  CLI flags   │      │  Environment │      │  Dataclass defaults  │
    │  --port 8000 │  ──► │  HTTP_PORT   │  ──► │  port = 4221         │
    └──────────────┘      └──────────────┘      └──────────────────────┘
         highest                                        lowest

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .http.payload import COPY_BUFFER_DEFAULT_SIZE
from .http.request import DEFAULT_MAX_HEADERS, DEFAULT_MAX_LINE_SIZE


@dataclass
class ServerConfig:
    """
    Server configuration settings.

    Example:
        config = ServerConfig(port=8000, root_dir="/srv/files")
        config.validate()
        server = HTTPServer(config)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Interface to bind. "0.0.0.0" listens on every interface."""

    port: int = 4221
    """TCP port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.

    Bounds how long one read or write may stall. None removes the
    deadline, so a silent peer holds its thread until it disconnects.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Upper bound the pool may grow to when every worker is busy."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES AND TRANSFERS
    # ─────────────────────────────────────────────────────────────────────

    root_dir: Optional[str] = None
    """
    Directory that /files/ paths resolve against.
    None means the process working directory.
    """

    copy_buffer_size: int = COPY_BUFFER_DEFAULT_SIZE
    """Chunk size for upload and download copy loops, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # PARSER LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = DEFAULT_MAX_LINE_SIZE
    """Longest request line or header line accepted, in bytes."""

    max_headers: int = DEFAULT_MAX_HEADERS
    """Most header fields accepted in one request."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    def base_dir(self) -> Path:
        """Directory relative paths are joined onto."""
        return Path(self.root_dir) if self.root_dir else Path.cwd()

    def resolve_path(self, relative: str) -> Path:
        """
        Join `relative` onto the root directory.

        No normalization happens here; "../x" stays "../x". Callers that
        must stay inside the root check the result themselves.
        """
        return self.base_dir() / relative

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST       Bind address    (default: 127.0.0.1)
            HTTP_PORT       Port            (default: 4221)
            HTTP_WORKERS    Max workers     (default: 16)
            HTTP_TIMEOUT    Socket timeout  (default: 30, 0 disables)
            HTTP_ROOT_DIR   File root       (default: working directory)
            HTTP_LOG_LEVEL  Logging level   (default: INFO)

        Usage:
            HTTP_PORT=8000 HTTP_ROOT_DIR=/tmp python -m streamhttp
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "4221")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")) or None,
            root_dir=os.getenv("HTTP_ROOT_DIR") or None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values at startup.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.copy_buffer_size < 1:
            raise ValueError("copy_buffer_size must be >= 1")
        if self.max_line_size < 16:
            raise ValueError("max_line_size must be >= 16")
        if self.max_headers < 0:
            raise ValueError("max_headers must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.root_dir is not None and not os.path.isdir(self.root_dir):
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")
