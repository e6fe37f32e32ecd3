"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server ever writes, with the reason
phrases that appear on the status line.

    HTTP/1.1 404 NOT FOUND
             ─┬─ ────┬────
              │      │
             Code  Reason phrase

Reason phrases are informational only (RFC 7230 section 3.1.2), so clients
must not depend on their exact text. This server uses upper-case phrases
for every status it sends.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'CREATED'
    """

    OK = 200                        # Route matched, body (if any) follows
    CREATED = 201                   # POST /files/<name> stored the body
    NOT_FOUND = 404                 # No route, no directory, or I/O failure
    INTERNAL_SERVER_ERROR = 500     # Handler raised unexpectedly

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code on the status line."""
        return _STATUS_PHRASES.get(self, "UNKNOWN")

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "CREATED",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.INTERNAL_SERVER_ERROR: "INTERNAL SERVER ERROR",
}
