from ..http import Request, Response, Router, ok, bad_request, forbidden
from ..http.response import HTML_CONTENT_TYPE


def echo(request: Request) -> Response:
    """Answer with the raw path the client asked for."""
    response = ok(request.path)
    response.set_header("Content-Type", HTML_CONTENT_TYPE)
    return response


def mult(request: Request) -> Response:
    """Double the integer passed as ``?number=``."""
    number = request.get_param("number")
    if number is None:
        return forbidden(request)

    # Python int(): unbounded, and "1_000" or non-ASCII digits parse too
    try:
        value = int(number.strip())
    except ValueError as e:
        return bad_request(str(e))

    return ok(str(value * 2))


def passhead(request: Request) -> Response:
    """Only let requests carrying a ``Foo`` header through."""
    if request.get_header("Foo") is None:
        return forbidden(request)
    return ok("ok")


def passparam(request: Request) -> Response:
    """Only let requests carrying a ``foo`` query parameter through."""
    if request.get_param("foo") is None:
        return forbidden(request)
    return ok("ok")


def register_examples(router: Router) -> Router:
    router.add("/echo", echo)
    router.add("/mult", mult)
    router.add("/passhead", passhead)
    router.add("/passparam", passparam)
    return router
