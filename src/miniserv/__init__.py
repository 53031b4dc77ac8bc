"""
=============================================================================
MINISERV - A Minimal HTTP Server Engine
=============================================================================

Accepts raw TCP connections, parses each one as a single HTTP/1.1 request,
dispatches it to a handler by exact path match and writes the handler's
response back before closing the connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           LAYERS                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   server.py          HTTPServer: wires everything together          │
    │                                                                      │
    │   http/              Wire model: Request, Response, Router,         │
    │                      StatusCode, standard error responses           │
    │                                                                      │
    │   core/              Sockets and threads: SocketServer,             │
    │                      Connection, executors, ThreadPool              │
    │                                                                      │
    │   handlers/          Example handlers (/echo, /mult, ...)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from miniserv import HTTPServer
    from miniserv.http import ok

    server = HTTPServer()

    @server.route("/hello")
    def hello(request):
        return ok("hello")

    server.serve(8080)

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
