"""
=============================================================================
CORE MODULE - Transport layer
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SocketServer (socket_server.py)                                     │
    │   listening socket, accept loop, signal-driven shutdown             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Connection (connection.py)                                          │
    │   bounded reads into the request parser, best-effort writes, close  │
    └─────────────────────────────────────────────────────────────────────┘

Nothing here knows about routes or files; it moves bytes.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Wraps one client socket
    "ConnectionState",  # Lifecycle states of a Connection
]
