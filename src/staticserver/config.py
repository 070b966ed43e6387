"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the static file server.

=============================================================================
ONE VALUE, BUILT ONCE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLI args / environment                                            │
    │          │                                                          │
    │          ▼                                                          │
    │   ServerConfig(...)        frozen dataclass                         │
    │          │  validate()     fail fast, before binding anything       │
    │          ▼                                                          │
    │   HTTPServer ──► SocketServer    (host, port, backlog)              │
    │              ──► ThreadPool      (workers, queue)                   │
    │              ──► RequestHandler  (document_root, limits)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The config is frozen, so every worker thread can read it without locks.
Nothing looks up the document root globally: each component receives the
config (or the one field it needs) when it is constructed.

Priority (highest to lowest):

    1. Command-line arguments     staticserver 8080 ./public
    2. Environment variables      HTTP_ROOT=./public staticserver ...
    3. Defaults in this dataclass

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - document_root, index_file

    NETWORK SETTINGS
    - host, port, backlog, timeout

    REQUEST LIMITS
    - max_request_size, buffer_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """
    Directory all served files must live under. Canonicalized on every
    request, so a root that is itself a symlink works.
    """

    index_file: str = "index.html"
    """File served for a request to "/"."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: Optional[str] = None
    """
    Address to bind to.
    - None: every local address (IPv4 and IPv6, passive resolution)
    - "127.0.0.1": localhost only
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 10
    """Maximum number of connections queued by the kernel."""

    timeout: Optional[float] = 30.0
    """
    Receive/send deadline per connection in seconds.
    None = block forever (a stalled client then holds its worker forever).
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 4096
    """
    Size of the request buffer. At most max_request_size - 1 bytes are
    read while looking for the end of the request line; the rest is never
    read.
    """

    buffer_size: int = 1024
    """Bytes requested per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads under load."""

    queue_size: int = 100
    """Accepted connections waiting for a worker."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_format: str = "text"
    """
    Access log format: 'text' (Apache-like) or 'json' (one object per line).
    """

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_ROOT        Document root (default: .)
        HTTP_HOST        Bind address (default: all interfaces)
        HTTP_PORT        Port (default: 8080)
        HTTP_WORKERS     Max worker threads (default: 16)
        HTTP_TIMEOUT     Receive/send deadline in seconds (default: 30)
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  text or json (default: text)

        =====================================================================

        Keyword arguments override the environment (the CLI passes its
        parsed arguments this way).
        """
        values = {
            "document_root": os.getenv("HTTP_ROOT", "."),
            "host": os.getenv("HTTP_HOST") or None,
            "port": int(os.getenv("HTTP_PORT", "8080")),
            "max_workers": int(os.getenv("HTTP_WORKERS", "16")),
            "timeout": float(os.getenv("HTTP_TIMEOUT", "30")),
            "log_level": os.getenv("HTTP_LOG_LEVEL", "INFO"),
            "log_format": os.getenv("HTTP_LOG_FORMAT", "text"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["min_workers"] = min(values.get("min_workers", cls.min_workers), values["max_workers"])
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup, before any socket is created, so a bad value
        fails immediately with a clear message.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not os.path.isdir(self.document_root):
            raise ValueError(f"Document root is not a directory: {self.document_root}")

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

        if self.max_request_size < 16:
            raise ValueError("max_request_size must be >= 16")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
