"""
Small text endpoints: "/", "/user-agent" and "/echo/<message>".

All three ignore the request method and answer with text/plain bodies
(or no body at all for "/").
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, not_found


def index(request: HTTPRequest) -> HTTPResponse:
    """200 with no headers and no body: "HTTP/1.1 200 OK\\r\\n\\r\\n"."""
    return ok()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """
    Reflect the User-Agent header back as the body.

    Only a header named exactly "User-Agent" counts, and when it is repeated
    the first one wins. A request without it still gets 200, with an empty
    text body.
    """
    return ok(request.get_header("User-Agent", ""))


def echo(request: HTTPRequest) -> HTTPResponse:
    """Answer with whatever follows "/echo/" in the path, verbatim."""
    message = request.path_params.get("message")
    if message is None:
        return not_found()
    return ok(message)
