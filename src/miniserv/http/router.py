"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request's location to a handler by EXACT string match.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /mult?number=21          loc = "/mult"                         │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER (scanned in registration order)                      │   │
    │   │                                                              │   │
    │   │   1. /echo      → echo          "/echo" == "/mult"?  no      │   │
    │   │   2. /mult      → mult          "/mult" == "/mult"?  YES     │   │
    │   │   3. /mult      → other         (never reached)              │   │
    │   │                                                              │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   mult(request) → Response                                           │
    │                                                                      │
    │   No match at all → not_found() (404)                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There are no path parameters, no wildcards and no method filtering: the
method token plays no part in routing. Registering the same path twice
appends a second binding, and the first one always wins.

=============================================================================
THE FROZEN ROUTING TABLE
=============================================================================

All routes are registered before the server starts accepting. The server
then calls ``freeze()``, which turns the binding list into a tuple. Every
worker thread reads that same tuple: no copies, and no locks, because
nothing mutates it afterwards. Adding a route after ``freeze()`` raises
RuntimeError instead of racing with the workers.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .request import Request
from .response import Response, not_found


# Handler: a function that takes a request and returns a response
Handler = Callable[[Request], Response]


@dataclass(frozen=True)
class Route:
    """A literal path bound to the handler invoked when ``loc`` equals it."""

    path: str
    handler: Handler


class Router:
    """
    Ordered list of route bindings with first-match-wins dispatch.

    Usage:
        router = Router()
        router.add("/echo", echo)

        @router.route("/mult")
        def mult(request):
            ...

        router.freeze()
        response = router.handle(request)
    """

    def __init__(self):
        self._routes: Sequence[Route] = []
        self._frozen = False

    @property
    def routes(self) -> Sequence[Route]:
        """The registered bindings, in registration order."""
        return tuple(self._routes)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, path: str, handler: Handler) -> Route:
        """
        Bind ``path`` to ``handler``.

        The path is not validated; a leading slash is conventional, not
        enforced.

        Raises:
            RuntimeError: If the router has been frozen.
        """
        if self._frozen:
            raise RuntimeError(f"cannot add route {path!r}: router is frozen")

        route = Route(path=path, handler=handler)
        self._routes.append(route)
        return route

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of ``add``.

            @router.route("/echo")
            def echo(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add(path, handler)
            return handler  # unchanged, so decorators can stack
        return decorator

    def freeze(self) -> None:
        """Make the binding list immutable. Idempotent."""
        if not self._frozen:
            self._routes = tuple(self._routes)
            self._frozen = True

    def match(self, loc: str) -> Optional[Route]:
        """First route whose path equals ``loc``, or None."""
        for route in self._routes:
            if route.path == loc:
                return route
        return None

    def handle(self, request: Request) -> Response:
        """
        Dispatch a request.

        Returns the first matching handler's response, or a 404 response
        when nothing matches ``request.loc``.
        """
        route = self.match(request.loc)
        if route is None:
            return not_found()
        return route.handler(request)
