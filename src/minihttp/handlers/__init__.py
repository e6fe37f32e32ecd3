"""
=============================================================================
HANDLERS MODULE
=============================================================================

Route handlers. Each is a callable taking an HTTPRequest and returning an
HTTPResponse, so the router can treat them all alike:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Handlers                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function Handler  │ index, user_agent, echo                         │
    │ Class Handler     │ FileTransferHandler (holds the directory)       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .text import index, user_agent, echo
from .files import FileTransferHandler, PathTraversalError

__all__ = [
    "index",
    "user_agent",
    "echo",
    "FileTransferHandler",
    "PathTraversalError",
]
