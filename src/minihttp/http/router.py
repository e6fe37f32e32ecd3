"""
=============================================================================
HTTP ROUTER
=============================================================================

Maps (method, path) to a handler through an explicit, ordered route table.

=============================================================================
PATTERN SYNTAX
=============================================================================

    /user-agent         static       exact match only
    /users/:id          param        one path segment, no "/"
    /echo/*message      wildcard     the rest of the path, may be empty
                                     and may contain "/"

Patterns match the whole request path. Paths are NOT normalized first:
"/echo/abc/" captures "abc/" and "/user-agent/" does not match
"/user-agent".

=============================================================================
ROUTE TABLE
=============================================================================

Routes are tried in registration order and the first match wins:

    ┌────────┬──────────────────┬─────────────────────────────┐
    │ method │ pattern          │ handler                     │
    ├────────┼──────────────────┼─────────────────────────────┤
    │ any    │ /                │ index                       │
    │ any    │ /user-agent      │ user_agent                  │
    │ any    │ /echo/*message   │ echo                        │
    │ any    │ /files/*filename │ FileTransferHandler.handle  │
    └────────┴──────────────────┴─────────────────────────────┘
              no match → 404 NOT FOUND

Adding a route is a data change (`router.add_route(...)` or a decorator),
not a new branch in a dispatch function.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found


# Handler: every route handler takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    One row of the route table.

        Route(
            path="/echo/*message",
            method=None,               # None = any method
            handler=echo,
            _pattern=<^/echo/(?P<message>.*)\\Z>,
            _param_names=["message"],
        )
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """A matched route plus the parameters captured from the path."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table with decorator-style registration.

        router = Router()

        @router.route("/echo/*message")
        def echo(request):
            return ok(request.path_params["message"])

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Append a route to the table.

        Args:
            path: Pattern such as "/files/*filename".
            handler: Called with the request when the route matches.
            method: "GET", "POST", or None for any method.
            name: Optional label, shown by describe().
        """
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern into a regex.

            "/files/*filename"  →  ^/files/(?P<filename>.*)\\Z
            "/users/:id"        →  ^/users/(?P<id>[^/]+)\\Z
            "/"                 →  ^/\\Z

        Only the first segment boundary is skipped, so a trailing "/" in a
        pattern is significant.
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        segments = path.split("/")[1:] if path.startswith("/") else path.split("/")
        for segment in segments:
            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                # Wildcard swallows the rest of the path, so it ends the pattern
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        regex_parts.append(r"\Z")
        pattern = re.compile("".join(regex_parts), re.DOTALL)

        return pattern, param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route whose method and pattern both match, or None."""
        for route in self._routes:
            if route.method and route.method != method.upper():
                continue

            if route._pattern:
                match = route._pattern.match(path)
                if match:
                    return RouteMatch(route=route, params=match.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request and run its handler.

        Captured parameters are placed in `request.path_params`. Unknown
        paths answer 404 with an empty body, whatever the method.
        """
        match = self.match(request.method, request.path)
        if match is None:
            return not_found()

        request.path_params = match.params
        return match.route.handler(request)

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a GET-only route."""
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a POST-only route."""
        return self.route(path, "POST", name)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        return list(self._routes)

    def describe(self) -> List[str]:
        """One line per route, e.g. "ANY      /echo/*message -> echo"."""
        return [
            f"{route.method or 'ANY':8} {route.path} -> {route.name}"
            for route in self._routes
        ]
