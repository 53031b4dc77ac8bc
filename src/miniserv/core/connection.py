"""
=============================================================================
CONNECTION (TRANSPORT ADAPTER)
=============================================================================

Wraps one accepted client socket for exactly one request/response cycle.

=============================================================================
ONE READ, ONE WRITE, CLOSE
=============================================================================

TCP is a byte stream: a single recv() may return only part of what the
client sent. This server does NOT loop until it has a complete message.
It takes one read of at most ``buffer_size`` bytes and treats that as the
request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  Connection Lifecycle                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED            │
    │              │                                      ▲               │
    │              │  recv(buffer_size)                   │               │
    │              │  (one call, may truncate)            │               │
    │              │                                      │               │
    │              └── read error / empty read ───────────┘               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

In practice small requests arrive in one segment, so this works for the
short GET requests the server is meant for. Large or slow-trickling
requests are truncated, which is a known limitation.

There is no keep-alive: after the response is written the socket is closed.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                # Just accepted
    READING = "reading"        # Waiting on recv()
    PROCESSING = "processing"  # Parsing and dispatching
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log correlation.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Size of the single read.
        timeout: Socket timeout, None to block.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 4096
    timeout: Optional[float] = None

    def __post_init__(self):
        # settimeout(None) also puts the socket in blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read the request with a single ``recv`` call.

        Returns:
            Up to ``buffer_size`` bytes. Empty bytes mean the client closed
            the connection without sending anything.

        Raises:
            OSError: If the read fails (reset, timeout, ...).
        """
        self.state = ConnectionState.READING
        data = self.socket.recv(self.buffer_size)
        self.state = ConnectionState.PROCESSING
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the serialized response.

        Uses sendall() so a partial send never leaves the response cut off.

        Returns:
            True if the send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN first so the client sees the end of
        the response before the socket is released.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def abort_if_idle(self) -> bool:
        """
        Wake a worker that is still waiting for this client's request.

        Only NEW and READING connections are touched; one already being
        processed or written is left to finish. After the shutdown a
        pending or blocked recv() returns b"", which the server treats as
        a client that sent nothing.

        Returns:
            True if the connection was aborted.
        """
        if self.state not in (ConnectionState.NEW, ConnectionState.READING):
            return False

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            return False  # Already closed

        logger.debug(f"[{self.id}] Aborted idle connection")
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
