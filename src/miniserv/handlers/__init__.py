"""
=============================================================================
EXAMPLE HANDLERS
=============================================================================

Small handlers that show the handler contract in use:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │ /echo        │ Body is the raw request path, query string included  │
    │ /mult        │ ?number=N → body is 2*N; bad N → 400; no N → 402     │
    │ /passhead    │ Header "Foo" present → "ok"; absent → 402            │
    │ /passparam   │ Param "foo" present → "ok"; absent → 402             │
    └──────────────┴──────────────────────────────────────────────────────┘

Each one is a plain function ``Request -> Response``. They only use the
public request accessors (get_header, get_param) and the standard error
responses.

=============================================================================
"""

from .examples import echo, mult, passhead, passparam, register_examples

__all__ = ["echo", "mult", "passhead", "passparam", "register_examples"]
