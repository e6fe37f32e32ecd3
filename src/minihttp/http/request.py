"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects.

=============================================================================
ACCEPTED GRAMMAR
=============================================================================

The server understands a deliberately small subset of HTTP/1.1:

    request    := method SP path SP version CRLF headers CRLF body
    method     := "GET" | "POST"
    path       := 1*(byte != SP)            ; must start with "/"
    version    := "HTTP/1.1"
    headers    := *header                   ; zero headers is fine
    header     := name ": " value CRLF
    name       := 1*(byte != ":")
    value      := 1*(byte != CR)
    body       := *byte

Every text field (method, path, version, header name, header value) must be
valid UTF-8 on its own. Header names keep the exact case they arrived with,
and duplicate headers are kept in arrival order.

=============================================================================
INCREMENTAL PARSING
=============================================================================

TCP delivers a byte stream in arbitrary pieces. A request line may arrive
in one segment and the headers in the next, and a POST body can trail the
headers by several reads. The parser therefore keeps a growable buffer and
only moves forward once a complete grammar element is available:

    ┌──────────────┐  CRLF-terminated   ┌──────────┐  blank line  ┌──────┐
    │ REQUEST_LINE │ ─────────────────► │ HEADERS  │ ───────────► │ BODY │
    └──────────────┘     line seen      └──────────┘     seen     └──┬───┘
                                           ▲    │                    │
                                           └────┘ one header         │ framed
                                                  per line           ▼
                                                               ┌──────────┐
                                                               │ COMPLETE │
                                                               └──────────┘

Body framing:

    Content-Length: N present  →  body is exactly N bytes (wait for them)
    no Content-Length          →  body is whatever arrived with the headers

Bytes past the end of the framed body are ignored: one request per
connection, no pipelining.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List


CRLF = b"\r\n"


class HTTPParseError(Exception):
    """
    Raised when the received bytes are not a well-formed request.

    The connection handler drops the connection without answering, so the
    status code is informational: it says which HTTP status *would* fit
    (400 for syntax, 413 for size) and is used in log messages.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class Header:
    """A single header line, exactly as received."""

    name: str
    value: str

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         "GET" or "POST"
        path:           Request target, e.g. "/echo/abc" (not decoded)
        version:        Always "HTTP/1.1"
        headers:        Ordered list of Header; duplicates are kept and
                        names are NOT case-normalized
        body:           Body bytes (see framing in the module docstring)
        path_params:    Values captured by the router, e.g.
                        "/echo/*message" + "/echo/abc" → {"message": "abc"}
        client_address: (ip, port) of the peer, for logging
        raw:            The bytes the parser consumed

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: List[Header] = field(default_factory=list)
    body: bytes = b""

    # Router-injected parameters
    path_params: Dict[str, str] = field(default_factory=dict)

    # Metadata
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Value of the first header whose name equals `name` exactly.

        The comparison is case-sensitive: "user-agent" does not match a
        header sent as "User-Agent".
        """
        for header in self.headers:
            if header.name == name:
                return header.value
        return default

    def get_all_headers(self, name: str) -> List[str]:
        """Values of every header named `name`, in arrival order."""
        return [header.value for header in self.headers if header.name == name]

    @property
    def user_agent(self) -> Optional[str]:
        return self.get_header("User-Agent")

    @property
    def content_length(self) -> Optional[int]:
        """Declared body length, or None when no Content-Length was sent."""
        return declared_content_length(self.headers)


def declared_content_length(headers: List[Header]) -> Optional[int]:
    """
    Find the body length declared by the Content-Length header(s).

    Unlike ordinary header lookups this one ignores case, since it decides
    message framing and clients differ in how they spell the name. Repeated
    Content-Length headers must agree.

    Raises:
        HTTPParseError: If a value is not a decimal integer, or two
                        Content-Length headers disagree.
    """
    lengths = set()
    for header in headers:
        if header.name.lower() != "content-length":
            continue
        value = header.value.strip()
        if not (value.isascii() and value.isdigit()):
            raise HTTPParseError(f"Invalid Content-Length: {header.value!r}")
        lengths.add(int(value))

    if len(lengths) > 1:
        raise HTTPParseError(f"Conflicting Content-Length values: {sorted(lengths)}")
    return lengths.pop() if lengths else None


class ParserState(Enum):
    """Where the parser is in the request grammar."""

    REQUEST_LINE = "request_line"   # Waiting for the first CRLF
    HEADERS = "headers"             # Consuming header lines up to the blank line
    BODY = "body"                   # Waiting for the framed body bytes
    COMPLETE = "complete"           # Request built, further input ignored


class RequestParser:
    """
    Resumable parser for a single request.

    Feed it bytes as they arrive; it returns the request once the grammar
    and body framing are satisfied:

        parser = RequestParser()
        while (request := parser.feed(conn.recv(1024))) is None:
            ...
        # or, when the peer stops sending:
        request = parser.finish()   # raises HTTPParseError if incomplete

    A parser instance handles exactly one request.
    """

    VALID_METHODS = ("GET", "POST")
    VERSION = b"HTTP/1.1"

    def __init__(
        self,
        max_request_size: int = 10 * 1024 * 1024,
        client_address: tuple[str, int] = ("", 0),
    ):
        """
        Args:
            max_request_size: Upper bound on buffered bytes (header block
                              plus body). Exceeding it is a 413 parse error.
            client_address: Copied onto the resulting HTTPRequest.
        """
        self.max_request_size = max_request_size
        self.client_address = client_address

        self.state = ParserState.REQUEST_LINE
        self._buffer = bytearray()
        self._pos = 0                       # First unconsumed byte in _buffer

        # Pieces collected so far
        self._method: Optional[str] = None
        self._path: Optional[str] = None
        self._version: Optional[str] = None
        self._headers: List[Header] = []
        self._content_length: Optional[int] = None

        self._request: Optional[HTTPRequest] = None

    @property
    def is_complete(self) -> bool:
        return self.state is ParserState.COMPLETE

    @property
    def request(self) -> Optional[HTTPRequest]:
        """The parsed request, or None while incomplete."""
        return self._request

    @property
    def bytes_received(self) -> int:
        return len(self._buffer)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def feed(self, data: bytes) -> Optional[HTTPRequest]:
        """
        Append `data` and advance as far as the buffered bytes allow.

        Returns:
            The HTTPRequest once complete, otherwise None.

        Raises:
            HTTPParseError: As soon as the bytes cannot be a valid request.
        """
        if self.state is ParserState.COMPLETE:
            return self._request

        self._buffer += data
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(self._buffer)} bytes",
                status_code=413,
            )

        while self.state is not ParserState.COMPLETE:
            if not self._advance():
                break

        return self._request

    def finish(self) -> HTTPRequest:
        """
        Signal that no more bytes will arrive.

        Raises:
            HTTPParseError: If the request is still incomplete.
        """
        if self._request is None:
            raise HTTPParseError(
                f"Incomplete request: input ended in state {self.state.value} "
                f"after {len(self._buffer)} bytes"
            )
        return self._request

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _advance(self) -> bool:
        """Run one step of the state machine. Returns False when starved."""
        if self.state is ParserState.REQUEST_LINE:
            line = self._next_line()
            if line is None:
                self._check_method_prefix()
                return False
            self._parse_request_line(line)
            self.state = ParserState.HEADERS
            return True

        if self.state is ParserState.HEADERS:
            line = self._next_line()
            if line is None:
                return False
            if line:
                self._headers.append(self._parse_header(line))
                return True

            # Blank line: header block is over, work out body framing
            self._content_length = declared_content_length(self._headers)
            if (self._content_length is not None
                    and self._pos + self._content_length > self.max_request_size):
                raise HTTPParseError(
                    f"Declared body too large: {self._content_length} bytes",
                    status_code=413,
                )
            self.state = ParserState.BODY
            return True

        if self.state is ParserState.BODY:
            available = len(self._buffer) - self._pos
            if self._content_length is None:
                # No framing information: take what came with the headers
                length = available
            elif available >= self._content_length:
                length = self._content_length
            else:
                return False

            body = bytes(self._buffer[self._pos:self._pos + length])
            self._pos += length
            self._complete(body)
            return True

        return False

    def _next_line(self) -> Optional[bytes]:
        """Pop the next CRLF-terminated line (without the CRLF), if buffered."""
        end = self._buffer.find(CRLF, self._pos)
        if end == -1:
            return None
        line = bytes(self._buffer[self._pos:end])
        self._pos = end + len(CRLF)
        return line

    def _check_method_prefix(self) -> None:
        """
        Reject garbage before the request line is complete.

        Without this a peer sending "HELLO" and then waiting would hold the
        connection until the read timeout.
        """
        head = bytes(self._buffer[:5])
        for method in self.VALID_METHODS:
            token = method.encode("ascii") + b" "
            if token.startswith(head) or head.startswith(token):
                return
        raise HTTPParseError(f"Invalid method in request line: {head!r}")

    def _complete(self, body: bytes) -> None:
        self._request = HTTPRequest(
            method=self._method,
            path=self._path,
            version=self._version,
            headers=self._headers,
            body=body,
            client_address=self.client_address,
            raw=bytes(self._buffer[:self._pos]),
        )
        self.state = ParserState.COMPLETE

    # =========================================================================
    # GRAMMAR ELEMENTS
    # =========================================================================

    def _parse_request_line(self, line: bytes) -> None:
        """
        Parse `method SP path SP version`.

            POST /files/bar.txt HTTP/1.1
            ─┬── ───────┬────── ───┬────
             │          │          │
          "GET"|"POST"  │     exactly "HTTP/1.1"
                 up to next space, starts with "/"
        """
        for method in self.VALID_METHODS:
            token = method.encode("ascii") + b" "
            if line.startswith(token):
                rest = line[len(token):]
                break
        else:
            raise HTTPParseError(f"Invalid method in request line: {line[:16]!r}")

        path, sep, version = rest.partition(b" ")
        if not sep:
            raise HTTPParseError(f"Missing HTTP version in request line: {line!r}")
        if not path:
            raise HTTPParseError("Empty request path")
        if version != self.VERSION:
            raise HTTPParseError(f"Unsupported HTTP version: {version!r}")

        self._method = method
        self._path = _decode(path, "path")
        self._version = _decode(version, "version")

        if not self._path.startswith("/"):
            raise HTTPParseError(f"Request path must start with '/': {self._path!r}")

    def _parse_header(self, line: bytes) -> Header:
        """
        Parse `name ": " value`.

        The name runs up to the first colon, which must be followed by
        exactly one space. The value is the rest of the line and may not
        be empty or contain a bare CR.
        """
        name, sep, value = line.partition(b":")
        if not sep or not name:
            raise HTTPParseError(f"Invalid header line: {line!r}")
        if not value.startswith(b" "):
            raise HTTPParseError(f"Expected ': ' after header name: {line!r}")

        value = value[1:]
        if not value:
            raise HTTPParseError(f"Empty header value: {line!r}")
        if b"\r" in value:
            raise HTTPParseError(f"Bare CR in header value: {line!r}")

        return Header(_decode(name, "header name"), _decode(value, "header value"))


def _decode(raw: bytes, what: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPParseError(f"Invalid UTF-8 in {what}: {e}") from e


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """
    Parse one complete request held entirely in `data`.

    Equivalent to feeding the bytes to a fresh RequestParser and calling
    finish(), so a Content-Length larger than the bytes supplied is an
    error here.
    """
    parser = RequestParser(max_request_size=max_size, client_address=client_address)
    parser.feed(data)
    return parser.finish()
