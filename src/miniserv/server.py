"""
=============================================================================
HTTP SERVER
=============================================================================

The HTTPServer class wires the layers together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST PROCESSING PIPELINE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer (accept thread)                                       │
    │        │  accept() → Connection                                      │
    │        ▼                                                             │
    │   ConnectionExecutor  ── new thread, or a pool worker               │
    │        │                                                             │
    │        ▼  (worker thread from here on)                               │
    │   Connection.read_request()     one recv(), up to buffer_size        │
    │        │                                                             │
    │        ▼                                                             │
    │   RequestParser.parse()         HTTPParseError → 400                 │
    │        │                                                             │
    │        ▼                                                             │
    │   Router.handle()               no match → 404                       │
    │        │                        handler raised → 500                 │
    │        ▼                                                             │
    │   Response.to_bytes()           Content-Length recomputed            │
    │        │                                                             │
    │        ▼                                                             │
    │   Connection.send_response()    then close                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every error that reaches the client is an ordinary response with a short
text body. Tracebacks go to the log, never onto the wire. Errors that
cannot reach the client (failed reads and writes) are logged and the
connection is simply closed.

=============================================================================
"""

import logging
import threading
import time
from typing import Dict, Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, create_executor
from .http import (
    Request, RequestParser, HTTPParseError,
    Response, Router, Handler,
    bad_request, internal_error,
)


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("miniserv.access")


class HTTPServer:
    """
    Minimal HTTP/1.1 server: exact-path routing, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(concurrency="pool", max_workers=8))

        @server.route("/echo")
        def echo(request):
            return ok(request.path)

        server.add("/mult", mult)

        server.serve(8080)   # blocks until SIGINT/SIGTERM or shutdown()

    All routes must be registered before serve(); the routing table is
    frozen when the server starts and shared by every worker.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.
            router: Pre-populated router. A new empty one if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._executor = create_executor(self.config)
        self._parser = RequestParser()
        self._router = router or Router()

        self._running = False

        # Connections accepted but not yet finished, aborted on shutdown
        self._connections: Dict[str, Connection] = {}
        self._connections_lock = threading.Lock()

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def add(self, path: str, handler: Handler) -> "HTTPServer":
        """Bind a handler to an exact path. Returns self for chaining."""
        self._router.add(path, handler)
        return self

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of add()."""
        return self._router.route(path)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (ip, port) once listening."""
        return self._socket_server.address

    def serve(self, port: Optional[int] = None):
        """
        Listen on ``port`` (or ``config.port``) and serve until stopped.

        Under normal operation this never returns: it blocks in the accept
        loop until a signal or shutdown() ends it.

        Raises:
            OSError: If the port cannot be bound.
        """
        if port is not None:
            self.config.port = port
            self.config.validate()

        self._setup_logging()

        self._router.freeze()
        self._executor.start()
        self._running = True

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.concurrency} concurrency, {len(self._router.routes)} routes)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Stop accepting connections. Safe to call from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("miniserv").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._abort_idle_connections()
        self._executor.shutdown()
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a freshly accepted connection to the executor.

        Runs on the accept thread, so it must not block on the client.
        """
        with self._connections_lock:
            self._connections[conn.id] = conn

        try:
            accepted = self._executor.execute(self._process_connection, conn)
        except Exception:
            self._forget(conn)
            raise

        if accepted:
            return

        self._forget(conn)
        logger.warning(f"[{conn.id}] Worker queue full, refusing connection")
        with conn:
            conn.send_response(internal_error("server overloaded").to_bytes())

    def _forget(self, conn: Connection):
        with self._connections_lock:
            self._connections.pop(conn.id, None)

    def _abort_idle_connections(self):
        """
        Unblock workers still waiting on a client that never sent anything.

        A pool worker parked in recv() with no timeout would otherwise
        hold up the pool drain in ThreadPool.shutdown.
        """
        with self._connections_lock:
            pending = list(self._connections.values())

        aborted = sum(1 for conn in pending if conn.abort_if_idle())
        if aborted:
            logger.info(f"Aborted {aborted} idle connection(s)")

    def _process_connection(self, conn: Connection):
        """Run one connection on a worker, then stop tracking it."""
        try:
            self._serve_connection(conn)
        finally:
            self._forget(conn)

    def _serve_connection(self, conn: Connection):
        """
        One read, parse, dispatch, respond cycle (runs on a worker).
        """
        with conn:
            try:
                raw_request = conn.read_request()
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            if not raw_request:
                logger.debug(f"[{conn.id}] Client closed before sending a request")
                return

            start_time = time.time()
            request: Optional[Request] = None

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Invalid request sent: {e}")
                response = bad_request(str(e))
            else:
                response = self._dispatch(conn, request)

            try:
                payload = response.to_bytes()
            except Exception as e:
                logger.exception(f"[{conn.id}] Could not serialize response: {e}")
                response = internal_error("handler failed")
                payload = response.to_bytes()

            if conn.send_response(payload):
                self._log_access(conn, request, response, start_time)

    def _dispatch(self, conn: Connection, request: Request) -> Response:
        try:
            return self._router.handle(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error for {request}: {e}")
            return internal_error("handler failed")

    def _log_access(
        self,
        conn: Connection,
        request: Optional[Request],
        response: Response,
        start_time: float,
    ):
        # 127.0.0.1 "GET /mult?number=21 HTTP/1.1" 200 2 0.41ms
        request_line = (
            f"{request.method} {request.path} {request.version}" if request else "-"
        )
        duration_ms = (time.time() - start_time) * 1000
        access_logger.info(
            f'{conn.client_ip} "{request_line}" {int(response.status)} '
            f'{response.get_header("Content-Length")} {duration_ms:.2f}ms'
        )
