"""
=============================================================================
MIDDLEWARE
=============================================================================

A middleware sees every parsed request before the router does and every
response after it:

        request ──► access log ──► ... ──► Router.handle
        response ◄── access log ◄── ... ◄──┘

It may also answer on its own without calling `next` at all. Unparsable
requests never reach middleware; the connection is dropped first.

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# What a middleware calls to continue: the next middleware or the router
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Wraps request handling.

        class Timing(Middleware):
            def __call__(self, request, next):
                started = time.perf_counter()
                response = next(request)
                ...
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle `request`, usually by delegating to `next`."""

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """
    Middleware in registration order; the first one registered sees the
    request first.

        chain = MiddlewarePipeline().add(outer).add(inner)
        handler = chain.wrap(router.handle)     # outer(inner(router.handle))
    """

    def __init__(self):
        self._chain: List[Middleware] = []

    def __len__(self) -> int:
        return len(self._chain)

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._chain.append(middleware)
        logger.debug(f"Middleware registered: {middleware.name} (position {len(self._chain)})")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Compose the chain around `handler`, innermost first."""
        for middleware in reversed(self._chain):
            handler = partial(_invoke, middleware, handler)
        return handler


def _invoke(middleware: Middleware, next: NextHandler, request: HTTPRequest) -> HTTPResponse:
    return middleware(request, next)
