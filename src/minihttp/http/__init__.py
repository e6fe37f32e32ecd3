"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

Turns bytes from TCP into requests and responses back into bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   b"GET /echo/abc HTTP/1.1\r\n\r\n" → HTTPRequest(method="GET", ...) │
    │   incremental: feed() bytes as they arrive                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ROUTER (router.py)                                                  │
    │   ordered (method, pattern) → handler table, 404 on no match        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE (response.py)                                              │
    │   HTTPResponse / ResponseBuilder → bytes, ResponseWriter → socket   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │   200 OK, 201 CREATED, 404 NOT FOUND                                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    Header,
    RequestParser,
    ParserState,
    HTTPParseError,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    ok,             # 200 OK
    created,        # 201 CREATED
    not_found,      # 404 NOT FOUND
    internal_error,  # 500 INTERNAL SERVER ERROR
)
from .router import Router, Route, RouteMatch, Handler
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "Header",
    "RequestParser",
    "ParserState",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseWriter",
    "ok",
    "created",
    "not_found",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Handler",

    # Status codes
    "HTTPStatus",
]
