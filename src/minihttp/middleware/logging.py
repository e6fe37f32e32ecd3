"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per handled request on the "minihttp.access" logger:

    127.0.0.1 - [19/Oct/2026:10:00:00 +0000] "GET /echo/abc" 200 3 0.12ms

The line is emitted when the handler returns, so for file downloads the
duration covers opening the file, not sending it. Requests that never
parse are not logged here; the connection handler logs those at DEBUG.

Sending the access log elsewhere is plain logging configuration:

    logging.getLogger("minihttp.access").addHandler(
        logging.FileHandler("access.log"))

=============================================================================
"""

import time
import logging
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """One access log entry."""

    client_ip: str
    timestamp: str
    method: str
    path: str
    status_code: int
    content_length: int
    duration_ms: float
    user_agent: str = "-"

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        client = self.client_ip or "-"
        return (
            f'{client} - [{self.timestamp}] "{self.method} {self.path}" '
            f'{self.status_code} {self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access log.

    Register it first so its timing covers everything behind it:

        server.use(LoggingMiddleware())

    The response passes through untouched; the bytes on the wire are the
    same with or without it.
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({elapsed:.2f}ms)"
            )
            raise

        if logger.isEnabledFor(self.log_level):
            entry = RequestLog(
                client_ip=request.client_address[0],
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
                method=request.method,
                path=request.path,
                status_code=int(response.status),
                content_length=response.content_length,
                duration_ms=(time.perf_counter() - started) * 1000,
                user_agent=request.user_agent or "-",
            )
            logger.log(self.log_level, entry.to_text())

        return response
