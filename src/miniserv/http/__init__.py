"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Pure data and text processing, no sockets:

    request.py       Bytes → Request (Header, Query, HTTPParseError)
    response.py      Response → bytes, plus the standard error responses
    router.py        Request → handler → Response
    status_codes.py  The five status codes this server emits

=============================================================================
"""

from .request import Header, Query, Request, RequestParser, HTTPParseError, parse_request
from .response import (
    Response,
    ok,              # 200 OK
    bad_request,     # 400 Malformed Request
    forbidden,       # 402 Forbidden
    not_found,       # 404 Not Found
    internal_error,  # 500 Internal Error
)
from .router import Router, Route, Handler
from .status_codes import StatusCode

__all__ = [
    # Request parsing
    "Header",
    "Query",
    "Request",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "Response",
    "ok",
    "bad_request",
    "forbidden",
    "not_found",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "Handler",

    # Status codes
    "StatusCode",
]
