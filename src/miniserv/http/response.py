"""
=============================================================================
HTTP RESPONSE
=============================================================================

The Response data type, its wire serialization, and the standard error
responses handlers and the router reach for.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\\n                       ← status line            │
    │    ───┬──── ───┬──                                                  │
    │    version  status_text                                             │
    │                                                                      │
    │    Content-Type: text/html; charset=utf-8\\n ← headers, in order     │
    │    Content-Length: 2\\n                      ← always recomputed     │
    │    \\n                                       ← blank line            │
    │    42                                       ← body (UTF-8 text)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Lines are terminated with a bare line-feed. Content-Length is set on the
response itself right before serialization, so it always matches the UTF-8
byte length of the body, even if a handler set a stale value.

=============================================================================
STANDARD RESPONSES
=============================================================================

    bad_request(detail)     400  "malformed request: {detail}"
    forbidden(request)      402  "unauthorized for access to resource {loc}"
    not_found()             404  "HTTP/1.1 404 NOT FOUND"
    internal_error(detail)  500  "HTTP/1.1 500 INTERNAL ERROR\\n{detail}"

All of them carry ``Content-Type: text/html; charset=utf-8``.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .request import Header, Request
from .status_codes import StatusCode


HTTP_VERSION = "HTTP/1.1"
LINE_END = "\n"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass
class Response:
    """
    A response to be written back to the client.

    Handlers own the Response they return and may mutate it freely:

        response = Response()
        response.set_header("Content-Type", HTML_CONTENT_TYPE)
        response.body = "42"
        return response
    """

    status: StatusCode = StatusCode.OK
    headers: List[Header] = field(default_factory=list)
    body: str = ""
    version: str = field(default=HTTP_VERSION, init=False)

    @property
    def status_line(self) -> str:
        """The first line of the response, e.g. ``"HTTP/1.1 200 OK"``."""
        return f"{self.version} {self.status.status_text}"

    def __str__(self) -> str:
        return self.status_line

    def get_header(self, key: str) -> Optional[str]:
        """Value of the first header named ``key``, or None."""
        for header in self.headers:
            if header.key == key:
                return header.value
        return None

    def set_header(self, key: str, value: str) -> "Response":
        """
        Replace the first header named ``key``, or append one if absent.

        Later duplicates of the same key are left untouched.

        Returns:
            Self for method chaining
        """
        for header in self.headers:
            if header.key == key:
                header.value = value
                return self
        self.headers.append(Header(key=key, value=value))
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response for ``socket.sendall``.

        Sets Content-Length on this response first, then emits:

            status line, each header, blank line, body
        """
        body = self.body.encode("utf-8")
        self.set_header("Content-Length", str(len(body)))

        head = self.status_line + LINE_END
        for header in self.headers:
            head += str(header) + LINE_END
        head += LINE_END

        return head.encode("utf-8") + body


def ok(body: str = "") -> Response:
    """200 OK with the given text body and no headers."""
    return Response(status=StatusCode.OK, body=body)


# =============================================================================
# STANDARD ERROR RESPONSES
# =============================================================================


def _html_response(status: StatusCode) -> Response:
    return Response(status=status).set_header("Content-Type", HTML_CONTENT_TYPE)


def bad_request(detail: str) -> Response:
    """
    400, for input a handler (or the parser) could not make sense of.

    Example:
        bad_request("invalid literal for int() with base 10: 'abc'")
    """
    response = _html_response(StatusCode.MALFORMED_REQUEST)
    response.body = f"malformed request: {detail}"
    return response


def forbidden(request: Request) -> Response:
    """402, for a request missing a parameter or header the handler needs."""
    response = _html_response(StatusCode.FORBIDDEN)
    response.body = f"unauthorized for access to resource {request.loc}"
    return response


def not_found() -> Response:
    """404, produced by the router when no binding matches."""
    response = _html_response(StatusCode.NOT_FOUND)
    response.body = response.status_line
    return response


def internal_error(detail: str) -> Response:
    """500, carrying the status line and a short description of the fault."""
    response = _html_response(StatusCode.INTERNAL_ERROR)
    response.body = f"{response.status_line}\n{detail}"
    return response
