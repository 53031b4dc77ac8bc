"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server, as a single dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m miniserv --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINISERV_PORT=3000 python -m miniserv                     │
    │                                                                      │
    │   3. Defaults in ServerConfig                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


CONCURRENCY_THREAD = "thread"
CONCURRENCY_POOL = "pool"
CONCURRENCY_MODES = (CONCURRENCY_THREAD, CONCURRENCY_POOL)


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    CONCURRENCY SETTINGS
    - concurrency, max_workers, queue_size, queue_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to. All interfaces by default.
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 128
    """
    Maximum number of connections the OS queues before accept().
    """

    buffer_size: int = 4096
    """
    Size of the single read taken from each connection.
    Requests longer than this are silently truncated.
    """

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = block until the peer sends or closes.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    concurrency: str = CONCURRENCY_THREAD
    """
    How connections are scheduled:
    - "thread" - one new thread per connection, unbounded
    - "pool"   - fixed pool of max_workers threads fed by a bounded queue
    """

    max_workers: int = 16
    """
    Worker threads in "pool" mode.
    """

    queue_size: int = 100
    """
    Connections that may wait for a pool worker before new ones are refused.
    """

    queue_timeout: float = 5.0
    """
    Seconds the acceptor waits for queue space before refusing a connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    server_name: str = "miniserv/1.0"
    """
    Name used in log lines.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINISERV_HOST         Bind address (default: 0.0.0.0)
        MINISERV_PORT         Port (default: 8080)
        MINISERV_CONCURRENCY  "thread" or "pool" (default: thread)
        MINISERV_WORKERS      Pool size (default: 16)
        MINISERV_QUEUE_SIZE   Pool queue size (default: 100)
        MINISERV_LOG_LEVEL    Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("MINISERV_HOST", "0.0.0.0"),
            port=int(os.getenv("MINISERV_PORT", "8080")),
            concurrency=os.getenv("MINISERV_CONCURRENCY", CONCURRENCY_THREAD),
            max_workers=int(os.getenv("MINISERV_WORKERS", "16")),
            queue_size=int(os.getenv("MINISERV_QUEUE_SIZE", "100")),
            log_level=os.getenv("MINISERV_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called when the server is constructed, so a bad value fails at
        startup rather than on the first connection.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.concurrency not in CONCURRENCY_MODES:
            raise ValueError(
                f"Unknown concurrency {self.concurrency!r}, "
                f"expected one of {', '.join(CONCURRENCY_MODES)}"
            )

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.queue_timeout < 0:
            raise ValueError("queue_timeout must be >= 0")
