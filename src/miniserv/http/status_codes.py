"""
=============================================================================
STATUS CODES
=============================================================================

The closed set of status codes this server speaks.

=============================================================================
A DELIBERATELY SMALL VOCABULARY
=============================================================================

Real HTTP defines dozens of status codes. This engine only ever emits five:

    ┌──────┬──────────────────────┬────────────────────────────────────────┐
    │ Code │ Status text          │ Produced by                            │
    ├──────┼──────────────────────┼────────────────────────────────────────┤
    │ 200  │ 200 OK               │ Handlers, on success                   │
    │ 400  │ 400 MALFORMED REQUEST│ Parser (short start line), handlers    │
    │ 402  │ 402 FORBIDDEN        │ Handlers (missing param / header)      │
    │ 404  │ 404 NOT FOUND        │ Router, when no binding matches        │
    │ 500  │ 500 INTERNAL ERROR   │ Server (handler crash, overload)       │
    └──────┴──────────────────────┴────────────────────────────────────────┘

Note that 402 is NOT "Payment Required" here. It is used as an
application-level "forbidden" signal, and the status texts are upper-case.
Clients that only look at the numeric code will still behave sensibly.

=============================================================================
"""

from enum import IntEnum


class StatusCode(IntEnum):
    """
    Status codes and their status-line text.

    Like any IntEnum, members compare equal to plain integers:

        >>> StatusCode.NOT_FOUND == 404
        True
        >>> StatusCode.NOT_FOUND.status_text
        '404 NOT FOUND'
    """

    OK = 200
    MALFORMED_REQUEST = 400
    FORBIDDEN = 402            # application-level forbidden, not payment
    NOT_FOUND = 404
    INTERNAL_ERROR = 500

    @property
    def phrase(self) -> str:
        """The reason phrase, e.g. ``"NOT FOUND"``."""
        return _PHRASES[self]

    @property
    def status_text(self) -> str:
        """
        The fragment that follows the version on the status line.

            HTTP/1.1 404 NOT FOUND
                     ─────┬──────
                          └── status_text
        """
        return f"{self.value} {self.phrase}"


_PHRASES = {
    StatusCode.OK: "OK",
    StatusCode.MALFORMED_REQUEST: "MALFORMED REQUEST",
    StatusCode.FORBIDDEN: "FORBIDDEN",
    StatusCode.NOT_FOUND: "NOT FOUND",
    StatusCode.INTERNAL_ERROR: "INTERNAL ERROR",
}
