"""
=============================================================================
CONNECTION EXECUTORS
=============================================================================

Decide WHERE each accepted connection is handled.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop (one thread)                                          │
    │        │                                                             │
    │        └──► executor.execute(handle, conn)                          │
    │                  │                                                   │
    │                  ├── ThreadPerConnection                             │
    │                  │      new Thread per connection, no limit          │
    │                  │                                                   │
    │                  └── PooledExecutor                                  │
    │                         ThreadPool: fixed workers, bounded queue     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both run the same handler on a preemptible thread. The workers never talk
to each other or to the accept loop once started, and there is no
cancellation: a handler runs until it has answered or its read failed.

ThreadPerConnection has no admission control at all. Under load it will
start as many threads as there are connections. Use PooledExecutor to put
a ceiling on that.

=============================================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

from ..config import ServerConfig, CONCURRENCY_POOL
from .connection import Connection
from .thread_pool import ThreadPool


logger = logging.getLogger(__name__)


ConnectionHandler = Callable[[Connection], None]


class ConnectionExecutor(ABC):
    """Runs a connection handler somewhere other than the accept loop."""

    def start(self) -> None:
        """Prepare any worker threads. Called before the first execute()."""

    @abstractmethod
    def execute(self, handler: ConnectionHandler, conn: Connection) -> bool:
        """
        Schedule ``handler(conn)``.

        Returns:
            True if the connection was handed off, False if it was refused.
        """

    def shutdown(self) -> None:
        """Release worker threads. Called once the accept loop has stopped."""


class ThreadPerConnection(ConnectionExecutor):
    """One new daemon thread for every accepted connection."""

    def execute(self, handler: ConnectionHandler, conn: Connection) -> bool:
        thread = threading.Thread(
            target=handler,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()
        return True


class PooledExecutor(ConnectionExecutor):
    """
    Runs connections on a fixed ThreadPool.

    If the queue stays full for ``queue_timeout`` seconds the connection
    is refused and the caller answers it.
    """

    def __init__(self, max_workers: int, queue_size: int, queue_timeout: float):
        self.queue_timeout = queue_timeout
        self._pool = ThreadPool(num_workers=max_workers, queue_size=queue_size)

    @property
    def pool(self) -> ThreadPool:
        return self._pool

    def start(self) -> None:
        self._pool.start()

    def execute(self, handler: ConnectionHandler, conn: Connection) -> bool:
        return self._pool.submit(handler, args=(conn,), queue_timeout=self.queue_timeout)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True, timeout=30.0)


def create_executor(config: ServerConfig) -> ConnectionExecutor:
    """Build the executor selected by ``config.concurrency``."""
    if config.concurrency == CONCURRENCY_POOL:
        logger.debug(
            f"Using pooled executor: {config.max_workers} workers, "
            f"queue of {config.queue_size}"
        )
        return PooledExecutor(
            max_workers=config.max_workers,
            queue_size=config.queue_size,
            queue_timeout=config.queue_timeout,
        )
    return ThreadPerConnection()
