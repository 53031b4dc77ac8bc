"""
Integration tests: a real server on a loopback port, raw sockets as clients.
"""

import socket
import threading
import time

import pytest

from miniserv.core.connection import Connection
from miniserv.core.executor import ThreadPerConnection
from miniserv.http import ok


def open_idle_connection(port: int) -> socket.socket:
    """Connect without sending anything, keeping a worker busy on recv()."""
    return socket.create_connection(("127.0.0.1", port), timeout=5.0)


class TestRouting:
    """End-to-end request handling with the example handlers."""

    def test_mult(self, test_server):
        status, headers, body = test_server.request(
            b"GET /mult?number=21 HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )

        assert status == "HTTP/1.1 200 OK"
        assert body == "42"
        assert headers["Content-Length"] == "2"

    def test_mult_not_a_number(self, test_server):
        status, _, body = test_server.request(b"GET /mult?number=abc HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 MALFORMED REQUEST"
        assert body.startswith("malformed request: ")

    def test_unknown_path(self, test_server):
        status, _, body = test_server.request(b"GET /unknown HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 404 NOT FOUND"
        assert body == "HTTP/1.1 404 NOT FOUND"

    def test_passhead(self, test_server):
        status, _, body = test_server.request(b"GET /passhead HTTP/1.1\r\nFoo: Bar\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == "ok"

    def test_passhead_forbidden(self, test_server):
        status, headers, body = test_server.request(b"GET /passhead HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 402 FORBIDDEN"
        assert body == "unauthorized for access to resource /passhead"
        assert headers["Content-Type"] == "text/html; charset=utf-8"

    def test_passparam(self, test_server):
        status, _, body = test_server.request(b"GET /passparam?foo=1 HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == "ok"

    def test_echo_keeps_raw_path(self, test_server):
        _, _, body = test_server.request(b"GET /echo?a=1&b=two HTTP/1.1\r\n\r\n")

        assert body == "/echo?a=1&b=two"

    def test_method_does_not_affect_routing(self, test_server, sample_post_request):
        status, _, body = test_server.request(sample_post_request)

        assert status == "HTTP/1.1 200 OK"
        assert body == "/echo"

    def test_content_length_matches_body_bytes(self, test_server):
        raw = test_server.send("GET /echo?name=héllo HTTP/1.1\r\n\r\n".encode("utf-8"))
        head, _, body = raw.partition(b"\n\n")

        assert f"Content-Length: {len(body)}".encode() in head
        assert body.decode("utf-8") == "/echo?name=héllo"


class TestErrors:
    """Failures that still reach the client as responses."""

    @pytest.mark.parametrize("raw", [
        b"GET\r\n\r\n",
        b"GET /mult\r\n\r\n",
        b"\r\n",
    ])
    def test_short_start_line(self, test_server, raw: bytes):
        status, _, body = test_server.request(raw)

        assert status == "HTTP/1.1 400 MALFORMED REQUEST"
        assert body.startswith("malformed request: ")

    def test_handler_exception(self, server_factory):
        test_srv = server_factory()

        @test_srv.server.route("/boom")
        def boom(request):
            raise RuntimeError("secret detail")

        test_srv.start()
        status, _, body = test_srv.request(b"GET /boom HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 500 INTERNAL ERROR"
        assert "secret detail" not in body

        # The worker survived and the server keeps answering
        status, _, _ = test_srv.request(b"GET /mult?number=1 HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"

    def test_handler_bad_return_value(self, server_factory):
        test_srv = server_factory()
        test_srv.server.add("/none", lambda request: None)
        test_srv.start()

        status, _, _ = test_srv.request(b"GET /none HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 500 INTERNAL ERROR"

    def test_empty_connection_gets_no_response(self, test_server):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as sock:
            sock.shutdown(socket.SHUT_WR)
            assert sock.recv(4096) == b""

        status, _, _ = test_server.request(b"GET /echo HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"


class TestResilience:
    """Failures that cost one connection and leave the accept loop running."""

    def test_accept_failure_logged_and_loop_continues(self, test_server, monkeypatch):
        failed = threading.Event()
        original_accept = socket.socket.accept

        def flaky_accept(sock):
            if not failed.is_set():
                failed.set()
                raise OSError("accept failed")
            return original_accept(sock)

        monkeypatch.setattr(socket.socket, "accept", flaky_accept)
        assert failed.wait(timeout=5.0)

        status, _, body = test_server.request(b"GET /mult?number=4 HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == "8"

    def test_read_failure_abandons_connection(self, test_server, monkeypatch):
        failed = threading.Event()
        original_read = Connection.read_request

        def flaky_read(conn):
            if not failed.is_set():
                failed.set()
                raise ConnectionResetError("connection reset by peer")
            return original_read(conn)

        monkeypatch.setattr(Connection, "read_request", flaky_read)

        with open_idle_connection(test_server.port) as sock:
            assert sock.recv(4096) == b""
        assert failed.is_set()

        status, _, _ = test_server.request(b"GET /echo HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"

    def test_failed_hand_off_keeps_serving(self, test_server, monkeypatch):
        """A thread that cannot be started closes that connection only."""
        failed = threading.Event()
        original_execute = ThreadPerConnection.execute

        def flaky_execute(executor, handler, conn):
            if not failed.is_set():
                failed.set()
                raise RuntimeError("can't start new thread")
            return original_execute(executor, handler, conn)

        monkeypatch.setattr(ThreadPerConnection, "execute", flaky_execute)

        with open_idle_connection(test_server.port) as sock:
            assert sock.recv(4096) == b""
        assert failed.is_set()

        assert test_server.server.is_running
        status, _, body = test_server.request(b"GET /mult?number=3 HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"
        assert body == "6"


class TestConcurrency:
    """Connections are served independently of each other."""

    @pytest.mark.parametrize("fixture_name", ["test_server", "pooled_server"])
    def test_idle_client_does_not_block_others(self, request, fixture_name: str):
        test_srv = request.getfixturevalue(fixture_name)

        idle = open_idle_connection(test_srv.port)
        try:
            status, _, body = test_srv.request(b"GET /mult?number=5 HTTP/1.1\r\n\r\n")
        finally:
            idle.close()

        assert status == "HTTP/1.1 200 OK"
        assert body == "10"

    def test_many_sequential_requests_on_pool(self, pooled_server):
        for i in range(20):
            _, _, body = pooled_server.request(
                f"GET /mult?number={i} HTTP/1.1\r\n\r\n".encode()
            )
            assert body == str(i * 2)

    def test_routes_frozen_once_serving(self, test_server):
        with pytest.raises(RuntimeError):
            test_server.server.add("/late", lambda request: ok("late"))

    def test_overloaded_pool_refuses(self, server_factory):
        test_srv = server_factory(
            concurrency="pool", max_workers=1, queue_size=1, queue_timeout=0.2
        )
        test_srv.start()

        busy = open_idle_connection(test_srv.port)
        time.sleep(0.2)
        queued = open_idle_connection(test_srv.port)
        time.sleep(0.2)

        try:
            with open_idle_connection(test_srv.port) as refused:
                raw = b""
                while True:
                    chunk = refused.recv(4096)
                    if not chunk:
                        break
                    raw += chunk
        finally:
            busy.close()
            queued.close()

        status, _, body = raw.decode().partition("\n")
        assert status == "HTTP/1.1 500 INTERNAL ERROR"
        assert body.endswith("server overloaded")


class TestLifecycle:

    def test_bound_to_ephemeral_port(self, test_server):
        assert test_server.server.is_running
        assert test_server.port != 0

    def test_shutdown_stops_serving(self, server_factory):
        test_srv = server_factory()
        test_srv.start()
        port = test_srv.port

        test_srv.stop()

        assert not test_srv.server.is_running
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_shutdown_before_serve(self, server_factory):
        """A shutdown that lands before the socket is bound is not lost."""
        test_srv = server_factory()
        test_srv.server.shutdown()

        thread = threading.Thread(target=test_srv.server.serve, daemon=True)
        thread.start()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert not test_srv.server.is_running

    def test_pool_shutdown_aborts_idle_clients(self, server_factory):
        test_srv = server_factory(concurrency="pool", max_workers=1, queue_size=2)
        test_srv.start()

        busy = open_idle_connection(test_srv.port)
        time.sleep(0.2)
        queued = open_idle_connection(test_srv.port)
        time.sleep(0.2)

        try:
            started = time.monotonic()
            test_srv.stop()
            elapsed = time.monotonic() - started

            assert elapsed < 5.0
            assert not test_srv._thread.is_alive()
            assert busy.recv(4096) == b""
            assert queued.recv(4096) == b""
        finally:
            busy.close()
            queued.close()
