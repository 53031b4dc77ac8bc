"""
=============================================================================
CORE NETWORKING
=============================================================================

    socket_server.py  Listening socket and accept loop
    connection.py     One client socket: single read, single write, close
    executor.py       Where each connection runs (thread or pool)
    thread_pool.py    Fixed worker pool behind the "pool" executor

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .executor import ConnectionExecutor, ThreadPerConnection, PooledExecutor, create_executor
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",         # Accepts connections
    "Connection",           # Wraps a client socket
    "ConnectionState",      # Connection lifecycle states
    "ConnectionExecutor",   # Base class for scheduling strategies
    "ThreadPerConnection",  # Default: one thread per connection
    "PooledExecutor",       # Bounded: fixed pool + bounded queue
    "create_executor",      # Pick a strategy from ServerConfig
    "ThreadPool",           # Fixed worker threads
]
