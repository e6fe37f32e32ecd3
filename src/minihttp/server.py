"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together. For every accepted connection:

    ┌──────────┐   ┌───────────┐   ┌────────────┐   ┌────────┐   ┌───────┐
    │  accept  │──►│ read +    │──►│ middleware │──►│ router │──►│ write │
    │ (thread) │   │ parse     │   │            │   │        │   │       │
    └──────────┘   └─────┬─────┘   └────────────┘   └────────┘   └───┬───┘
                         │ HTTPParseError / timeout                  │
                         ▼                                           ▼
                    close, no response                             close

Exactly one request is served per connection. Each connection gets its own
daemon thread, so a slow client only ever blocks itself. The only state
the threads share is the frozen ServerConfig and the router built from it
at startup.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .handlers import FileTransferHandler, index, user_agent, echo
from .http import (
    HTTPRequest, HTTPParseError,
    HTTPResponse, ResponseWriter, Router,
    internal_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


def build_router(config: ServerConfig) -> Router:
    """
    The default route table.

    Order matters: the first matching route wins. "/files/*filename" is
    only registered when a directory is configured, so without one those
    paths fall through to 404 like any unknown path.
    """
    router = Router()
    router.add_route("/", index)
    router.add_route("/user-agent", user_agent)
    router.add_route("/echo/*message", echo)

    if config.directory is not None:
        files = FileTransferHandler(config.directory, chunk_size=config.chunk_size)
        router.add_route("/files/*filename", files.handle, name="files")

    return router


class HTTPServer:
    """
    Single-process, thread-per-connection HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(directory="/srv/data"))
        server.use(LoggingMiddleware())
        server.run()                     # blocks until Ctrl+C / stop()

    Extra routes can be registered before run():

        @server.route("/health")
        def health(request):
            return ok("up")

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration, validated here. Defaults apply
                    when omitted.
            router: Route table. Defaults to build_router(config).
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._router = router if router is not None else build_router(self.config)
        self._middleware = MiddlewarePipeline()

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        """Register an extra route (decorator)."""
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port once listening on port 0."""
        return self._socket_server.address

    def run(self):
        """Start serving (blocking) until stop() or SIGINT/SIGTERM."""
        self._setup_logging()

        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        if self.config.directory is not None:
            logger.info(f"Serving files from {self.config.directory}")
        for line in self._router.describe():
            logger.debug(f"Route: {line}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def stop(self):
        """Stop accepting connections. In-flight connections finish on their own."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by the accept loop: give the connection its own thread."""
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """
        Serve one request on `conn`, then close it (runs in its own thread).

        Unparsable or incomplete input, a read timeout, or a peer that
        vanishes mid-request all end the same way: the connection closes
        without a response.
        """
        with conn:
            try:
                request = conn.read_request()
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Dropping request ({e.status_code}): {e}")
                return
            except TimeoutError as e:
                logger.debug(f"[{conn.id}] Dropping request: {e}")
                return

            conn.state = ConnectionState.PROCESSING
            response = self.dispatch(request)

            ResponseWriter(conn, chunk_size=self.config.chunk_size).write(response)

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run a parsed request through middleware and the router.

        An exception escaping a handler or middleware is logged and answered
        with 500. A file a handler opened for streaming is closed whenever
        it does not end up in the response that is returned.
        """
        produced = []

        def route(req: HTTPRequest) -> HTTPResponse:
            response = self._router.handle(req)
            produced.append(response)
            return response

        try:
            response = self._middleware.wrap(route)(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            response = internal_error()

        for discarded in produced:
            if discarded.stream is not None and discarded.stream is not response.stream:
                discarded.stream.close()

        return response


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Factory for a server with the default route table.

        app = create_app(ServerConfig(directory="/tmp"))
        app.run()
    """
    return HTTPServer(config)
