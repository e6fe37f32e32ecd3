"""
=============================================================================
HTTP RESPONSE BUILDER AND WRITER
=============================================================================

Builds HTTP/1.1 responses and writes them to a connection.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                        ← status line           │
    │  Content-Type: text/plain\r\n               ← zero or more headers  │
    │  Content-Length: 3\r\n                                              │
    │  \r\n                                       ← blank line            │
    │  abc                                        ← optional body         │
    └─────────────────────────────────────────────────────────────────────┘

Rules this module enforces:

    - a response with a body always declares Content-Length equal to the
      body's byte length
    - a bare status response ("HTTP/1.1 404 NOT FOUND\r\n\r\n") carries no
      headers at all; nothing is added automatically

=============================================================================
STREAMED BODIES
=============================================================================

A file download should not be loaded into memory. A response may instead
carry an open binary file in `stream`; the ResponseWriter sends the header
block (which already declares Content-Length) and then copies the file to
the socket chunk by chunk:

    header block ──► chunk 1 ──► chunk 2 ──► ... ──► EOF (stream closed)

=============================================================================
"""

from dataclasses import dataclass, field
import logging
from typing import Optional, Dict, Union, BinaryIO, Protocol

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Attributes:
        status:  HTTPStatus member
        headers: Header name → value, written in insertion order
        body:    In-memory body bytes
        version: Protocol version on the status line
        stream:  Optional open binary file streamed after `body`; the
                 Content-Length header must already account for it
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    stream: Optional[BinaryIO] = field(default=None, repr=False)

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 201 CREATED"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Declared Content-Length, falling back to the in-memory body size."""
        try:
            return int(self.headers.get("Content-Length", len(self.body)))
        except ValueError:
            return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding text as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def header_bytes(self) -> bytes:
        """
        Serialize the status line, headers and blank line.

        Content-Length is added when there is an in-memory body and the
        caller did not declare one.
        """
        headers = dict(self.headers)
        if self.body and "Content-Length" not in headers:
            headers["Content-Length"] = str(len(self.body))

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")
        lines.append("")
        return "\r\n".join(lines).encode("utf-8")

    def to_bytes(self) -> bytes:
        """
        Complete in-memory serialization.

        Streamed bodies are not included; use ResponseWriter for those.
        """
        return self.header_bytes() + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("abc")
            .build())

    Each method returns `self` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._stream: Optional[BinaryIO] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body and its Content-Length."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._headers["Content-Length"] = str(len(self._body))
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """
        Plain-text body.

        Content-Type and Content-Length are set even for an empty string,
        so "/echo/" answers with "Content-Length: 0".
        """
        return self.content_type(content_type).body(text)

    def stream(
        self,
        file: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> "ResponseBuilder":
        """
        Stream an open binary file as the body.

        Args:
            file: Open file positioned at the first byte to send. The
                  writer closes it once sent.
            length: Number of bytes the file will yield, declared up front
                    as Content-Length.
            content_type: Content-Type header value.
        """
        self._stream = file
        self._body = b""
        self.content_type(content_type)
        self._headers["Content-Length"] = str(length)
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            stream=self._stream,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes()


# =============================================================================
# RESPONSE WRITER
# =============================================================================

class Sink(Protocol):
    """Anything with a best-effort send, such as core.Connection."""

    def send(self, data: bytes) -> bool:
        ...


class ResponseWriter:
    """
    Writes an HTTPResponse to a connection.

    =========================================================================
    DELIVERY GUARANTEES
    =========================================================================

    None beyond "we tried". Every write goes through `sink.send()`, which
    returns False instead of raising when the peer has gone away. The
    writer stops at the first failed send; nothing is retried and nothing
    is reported to the caller beyond the return value.

    If reading a streamed file fails after the 200 header block has been
    sent, the writer logs the error and still appends a 404 status response.
    The client then sees a truncated body followed by a stray status line.
    There is no well-formed way to signal this once Content-Length has been
    promised; the connection is closed right after.

    =========================================================================
    """

    def __init__(self, sink: Sink, chunk_size: int = 1024):
        self.sink = sink
        self.chunk_size = chunk_size

    def write(self, response: HTTPResponse) -> bool:
        """
        Send the response, streaming the file body if there is one.

        Returns:
            True if every byte was handed to the socket.
        """
        try:
            if not self.sink.send(response.header_bytes() + response.body):
                return False
            if response.stream is None:
                return True
            return self._write_stream(response.stream)
        finally:
            if response.stream is not None:
                response.stream.close()

    def _write_stream(self, stream: BinaryIO) -> bool:
        while True:
            try:
                chunk = stream.read(self.chunk_size)
            except OSError as e:
                logger.error(f"Read failed while streaming {getattr(stream, 'name', stream)!r}: {e}")
                self.sink.send(not_found().to_bytes())
                return False

            if not chunk:
                return True
            if not self.sink.send(chunk):
                return False


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(text: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    Without `text` the response is just the status line. With `text` it is
    a text/plain body (possibly empty) with matching Content-Length.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if text is not None:
        builder.text(text)
    return builder.build()


def created() -> HTTPResponse:
    """201 CREATED, no body."""
    return ResponseBuilder().status(HTTPStatus.CREATED).build()


def not_found() -> HTTPResponse:
    """404 NOT FOUND, no body."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def internal_error() -> HTTPResponse:
    """500 INTERNAL SERVER ERROR, no body."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).build()
