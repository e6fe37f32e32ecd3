"""
=============================================================================
SOCKET SERVER - Listening socket and accept loop
=============================================================================

    start(handler)
        │
        ├── open listening socket     SO_REUSEADDR, TCP_NODELAY
        ├── bind / listen             OSError propagates (port in use, ...)
        ├── SIGINT/SIGTERM → shutdown()        (main thread only)
        │
        └── while running:
                accept()  ── 1s timeout ──► re-check `running`
                   │
                   └──► handler(Connection(...))

The handler must return quickly. HTTPServer hands each connection to its
own thread, so one slow client never delays the next accept().

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# How often a blocked accept() wakes up to notice shutdown()
ACCEPT_POLL_INTERVAL = 1.0

ConnectionHandler = Callable[[Connection], None]


class SocketServer:
    """
    Owns the listening socket and turns accepted sockets into Connections.

        server = SocketServer(config)
        server.start(lambda conn: ...)     # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._listener: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._running = False

        self._ready = threading.Event()
        self._previous_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound, once listening.

        Differs from the configured one when port 0 asked the OS to choose.
        """
        return self._bound or (self.config.host, self.config.port)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _listen(self) -> socket.socket:
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            listener.settimeout(ACCEPT_POLL_INTERVAL)
            listener.bind((self.config.host, self.config.port))
            listener.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            listener.close()
            raise
        return listener

    def _install_signal_handlers(self):
        """
        Route SIGINT/SIGTERM to shutdown().

        signal.signal() only works in the main thread. When the server runs
        in a background thread (tests, embedding) the handlers are left
        alone and shutdown() must be called explicitly.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.signal(signum, on_signal)

    def _restore_signal_handlers(self):
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    def start(self, connection_handler: ConnectionHandler):
        """
        Listen and dispatch connections until shutdown().

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._listener = self._listen()
        self._bound = self._listener.getsockname()[:2]

        self._running = True
        self._install_signal_handlers()
        self._ready.set()

        logger.info(f"Listening on {self._bound[0]}:{self._bound[1]}")

        try:
            self._serve(connection_handler)
        finally:
            self._close()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _serve(self, connection_handler: ConnectionHandler):
        while self._running:
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {e}")
                return

            logger.debug(f"Connection from {peer[0]}:{peer[1]}")
            connection_handler(Connection(
                socket=client,
                address=peer,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            ))

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Stopping accept loop")
        self._running = False

    def _close(self):
        self._restore_signal_handlers()

        if self._listener is not None:
            self._listener.close()
            self._listener = None

        self._running = False
        self._ready.clear()
        logger.info("Listener closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)
