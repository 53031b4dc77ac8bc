"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes of a single socket read into a structured Request.

=============================================================================
WHAT ARRIVES ON THE WIRE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /mult?number=21 HTTP/1.1\\r\\n        ← start line             │
    │    ─┬─ ───────┬─────── ───┬────                                     │
    │   method    path       version                                      │
    │               │                                                      │
    │        ┌──────┴──────┐                                              │
    │       loc         query string                                      │
    │      /mult         number=21                                        │
    │                                                                      │
    │    Host: localhost:8080\\r\\n                ← headers               │
    │    Foo: Bar\\r\\n                                                     │
    │    \\r\\n                                    ← blank line            │
    │    ...                                      ← body (if any)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
A BEST-EFFORT, SINGLE-READ PARSER
=============================================================================

This parser is intentionally forgiving. It never asks the socket for more
data and it never rejects a request because of a bad header:

    1. The request is whatever one recv() returned (at most buffer_size
       bytes). Anything longer is silently truncated.

    2. The input is split on line-feed and every line is stripped, so both
       "\\n" and "\\r\\n" line endings work.

    3. The start line must contain at least three space-separated tokens.
       This is the ONLY hard failure: HTTPParseError (400).

    4. Every other line is a header candidate, split once on ": ".
       Lines without a non-empty key AND value are skipped, which also
       skips the blank line before the body.

    5. The path is split on the first "?" into the routing location
       (``loc``) and the query string. Query pairs with an empty key or
       empty value are dropped.

Header keys are NOT case-normalized. "foo" and "Foo" are different headers,
and lookups are exact-string matches.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional


class HTTPParseError(Exception):
    """
    Raised when the bytes read from a connection cannot form a request.

    Carries the status code the caller should answer with, so the server
    can turn a parse failure into an ordinary response instead of dropping
    the connection.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Header:
    """A single ``key: value`` header line."""

    key: str
    value: str

    def __str__(self) -> str:
        return f"{self.key}: {self.value}"


@dataclass
class Query:
    """A single ``key=value`` pair from the query string."""

    key: str
    value: str


@dataclass
class Request:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method token, as sent ("GET", "POST", ...)
        path:           Full raw path INCLUDING the query string
                        "/mult?number=21"
        version:        Protocol version token ("HTTP/1.1")
        headers:        Ordered list of Header, duplicates allowed
        body:           Text after the first blank line, if any
        client_address: (ip, port) of the peer, for logging

    Derived once in __post_init__:

        loc:            path with the query string removed, the routing key
                        "/mult"
        query:          Parsed query parameters, in order
                        [Query(key="number", value="21")]

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: List[Header] = field(default_factory=list)
    body: str = ""
    client_address: tuple[str, int] = ("", 0)

    loc: str = field(init=False)
    query: List[Query] = field(init=False, default_factory=list)

    def __post_init__(self):
        self.loc, self.query = split_path(self.path)

    def __str__(self) -> str:
        return f"{self.method} {self.path} {self.version} ({len(self.headers)} headers)"

    # =========================================================================
    # ACCESSORS - the read-only surface handlers work with
    # =========================================================================

    def get_header(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the value of the first header whose key equals ``key`` exactly.

        Args:
            key: Header name, case-sensitive.
            default: Returned when no header matches.

        Example:
            request.get_header("Foo")   # "Bar"
            request.get_header("foo")   # None - keys are not normalized
        """
        for header in self.headers:
            if header.key == key:
                return header.value
        return default

    def get_param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the value of the first query parameter named ``key``.

        Example:
            # path: /mult?number=21&number=5
            request.get_param("number")   # "21"
        """
        for param in self.query:
            if param.key == key:
                return param.value
        return default


def split_path(path: str) -> tuple[str, List[Query]]:
    """
    Split a raw path into its routing location and query parameters.

        "/x"                  → ("/x", [])
        "/x?a=1&b=2"          → ("/x", [a=1, b=2])
        "/x?=1&a=&b"          → ("/x", [])
        "/x?a=1=2"            → ("/x", [a="1=2"])
    """
    loc, sep, query_string = path.partition("?")
    if not sep:
        return path, []

    query: List[Query] = []
    for pair in query_string.split("&"):
        key, has_value, value = pair.partition("=")
        # Pairs without "=" or with an empty side are dropped
        if has_value and key and value:
            query.append(Query(key=key, value=value))
    return loc, query


class RequestParser:
    """
    Parses raw request bytes into Request objects.

    Stateless; one instance is shared by all workers.

        Raw bytes (one recv)
              │
              ▼
        decode UTF-8 (invalid bytes replaced)
              │
              ▼
        split on "\\n", strip each line
              │
              ├──► line 0  → _parse_start_line() → method, path, version
              │
              └──► lines 1.. → _parse_headers()  → [Header, ...]
              │
              ▼
        Request(...)  (loc + query derived in __post_init__)
    """

    def parse(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> Request:
        """
        Parse one buffer into a Request.

        Args:
            data: Bytes from a single read of the connection.
            client_address: Peer address for logging.

        Returns:
            The parsed Request.

        Raises:
            HTTPParseError: If the start line has fewer than three tokens.
        """
        text = data.decode("utf-8", errors="replace")
        lines = [line.strip() for line in text.split("\n")]

        method, path, version = self._parse_start_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return Request(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=self._extract_body(text),
            client_address=client_address,
        )

    def _parse_start_line(self, line: str) -> tuple[str, str, str]:
        """
        Parse ``METHOD SP PATH SP VERSION``.

        Tokens past the third are ignored.
        """
        tokens = line.split(" ")
        if len(tokens) < 3:
            raise HTTPParseError(f"invalid start line: {line!r}")
        return tokens[0], tokens[1], tokens[2]

    def _parse_headers(self, lines: List[str]) -> List[Header]:
        """
        Collect every ``key: value`` line, in order.

        There is no header/body boundary here: a body line that happens to
        look like a header is collected too.
        """
        headers: List[Header] = []
        for line in lines:
            key, _, value = line.partition(": ")
            if key and value:
                headers.append(Header(key=key, value=value))
        return headers

    def _extract_body(self, text: str) -> str:
        # Whatever follows the first blank line; no Content-Length framing
        for separator in ("\r\n\r\n", "\n\n"):
            head, found, body = text.partition(separator)
            if found:
                return body
        return ""


def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> Request:
    """Convenience wrapper around ``RequestParser().parse``."""
    return RequestParser().parse(data, client_address)
