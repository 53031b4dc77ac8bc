"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from miniserv import HTTPServer, ServerConfig
from miniserv.handlers import register_examples


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with a query string."""
    return (
        b"GET /mult?number=21&mode=fast HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Foo: Bar\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    return (
        b"POST /echo HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: text/plain\r\n"
        b"Content-Length: 11\r\n"
        b"\r\n"
        b"hello world"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, dict, str]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.decode("utf-8").partition("\n\n")
    lines = head.split("\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.serve, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def send(self, data: bytes) -> bytes:
        return send_raw(self.port, data)

    def request(self, data: bytes) -> tuple[str, dict, str]:
        return split_response(self.send(data))


def make_test_server(**overrides) -> TestServer:
    config = ServerConfig(host="127.0.0.1", port=0, log_level="WARNING", **overrides)
    server = HTTPServer(config)
    register_examples(server.router)
    return TestServer(server)


@pytest.fixture
def test_server() -> Generator[TestServer, None, None]:
    """A running server with the example handlers, one thread per connection."""
    test_srv = make_test_server()
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def pooled_server() -> Generator[TestServer, None, None]:
    """A running server with the example handlers on a bounded pool."""
    test_srv = make_test_server(concurrency="pool", max_workers=2, queue_size=4)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory() -> Generator[Callable[..., TestServer], None, None]:
    """Build unstarted servers so a test can add routes first; stops them all."""
    created = []

    def factory(**overrides) -> TestServer:
        test_srv = make_test_server(**overrides)
        created.append(test_srv)
        return test_srv

    yield factory

    for test_srv in created:
        test_srv.stop()
