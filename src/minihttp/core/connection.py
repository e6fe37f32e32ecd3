"""
=============================================================================
CONNECTION - One accepted client socket
=============================================================================

Wraps the socket returned by accept() with what a single request/response
exchange needs:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BOUNDED READS                                                    │
    │     └── recv() at most buffer_size bytes at a time                   │
    │     └── feed each chunk to a RequestParser until it completes        │
    │                                                                      │
    │  2. BEST-EFFORT WRITES                                               │
    │     └── sendall(), but a dead peer is logged and reported as False  │
    │     └── never raises to the caller                                   │
    │                                                                      │
    │  3. TIMEOUTS                                                         │
    │     └── every read is bounded by the configured timeout              │
    │                                                                      │
    │  4. CLOSE                                                            │
    │     └── FIN, drain, close; idempotent                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request per connection: after the response is written the connection
is closed.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.request import HTTPRequest, RequestParser


logger = logging.getLogger(__name__)

# Upper bound on the time close() spends discarding unread client input
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and close bookkeeping."""

    NEW = "new"                 # Accepted, nothing read yet
    READING = "reading"         # Receiving request bytes
    PROCESSING = "processing"   # Request parsed, handler running
    WRITING = "writing"         # Sending the response
    CLOSING = "closing"         # Shutdown sequence in progress
    CLOSED = "closed"           # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port).
        id: Short random id used to tag log lines.
        state: Current ConnectionState.
        buffer_size: Maximum bytes per recv().
        timeout: Per-read timeout in seconds (None = block forever).
        max_request_size: Passed to the RequestParser.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    def __post_init__(self):
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> HTTPRequest:
        """
        Receive bytes until one complete request has been parsed.

        ┌─────────────────────────────────────────────────────────────────┐
        │   parser = RequestParser()                                       │
        │   loop:                                                          │
        │       chunk = recv(buffer_size)                                  │
        │       chunk empty?  → parser.finish()   (peer closed)            │
        │       parser.feed(chunk) returned a request? → done              │
        └─────────────────────────────────────────────────────────────────┘

        The parser decides when the request is complete, including waiting
        for a Content-Length body that trails the headers.

        Returns:
            The parsed request.

        Raises:
            HTTPParseError: Malformed input, or the peer closed early.
            TimeoutError: A single read exceeded the timeout.
        """
        self.state = ConnectionState.READING
        parser = RequestParser(
            max_request_size=self.max_request_size,
            client_address=self.address,
        )

        while True:
            chunk = self._recv()
            if not chunk:
                return parser.finish()

            request = parser.feed(chunk)
            if request is not None:
                logger.debug(
                    f"[{self.id}] Parsed {request.method} {request.path} "
                    f"({parser.bytes_received} bytes)"
                )
                return request

    def _recv(self) -> bytes:
        """
        One bounded read from the socket.

        A reset or otherwise failed socket reads as end of input, so the
        parser reports the request as incomplete. Timeouts propagate as
        TimeoutError.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError(f"No data from {self.client_ip} within {self.timeout}s")
        except OSError as e:
            logger.debug(f"[{self.id}] recv failed: {e}")
            return b""

        self.bytes_received += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send all of `data`.

        Returns:
            True on success, False if the peer is gone. Never raises.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of response
        2. drain whatever the client still sends, for at most
           DRAIN_TIMEOUT seconds in total
        3. close() releases the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.age:.3f}s "
            f"({self.bytes_received} in, {self.bytes_sent} out)"
        )

    def _drain(self):
        """Discard unread input until EOF or the drain deadline passes."""
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug(f"[{self.id}] Peer still sending, closing anyway")
                    return
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    return
        except OSError:
            pass  # Includes socket.timeout

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
