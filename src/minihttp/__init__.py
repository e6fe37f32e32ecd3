"""
=============================================================================
MINIHTTP - A small HTTP/1.1 server on raw sockets
=============================================================================

Serves a fixed set of endpoints, one request per connection:

    GET|POST  /                 →  200, empty
    GET|POST  /user-agent       →  200, User-Agent header echoed as text
    GET|POST  /echo/<message>   →  200, <message> echoed as text
    GET       /files/<name>     →  200, file contents (streamed)
    POST      /files/<name>     →  201, request body stored as the file
    anything else               →  404

The /files/ endpoints only exist when a directory is configured, and names
that would escape that directory are answered with 404.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp)
    ├── server.py            # HTTPServer, route table, create_app()
    ├── config.py            # ServerConfig (frozen dataclass)
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket and accept loop
    │   └── connection.py    # One client socket
    ├── http/                # Protocol
    │   ├── request.py       # Incremental request parser
    │   ├── response.py      # Response model, builder and writer
    │   ├── router.py        # Ordered route table
    │   └── status_codes.py  # 200 / 201 / 404 / 500
    ├── middleware/          # Around-request behaviour
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   └── logging.py       # Access log
    └── handlers/            # Endpoints
        ├── text.py          # /, /user-agent, /echo/
        └── files.py         # /files/

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, ServerConfig
    from minihttp.middleware import LoggingMiddleware

    server = HTTPServer(ServerConfig(port=4221, directory="/tmp/data"))
    server.use(LoggingMiddleware())
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app, build_router
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "build_router", "__version__"]
