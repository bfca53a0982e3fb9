"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer          accept() loop on the listening socket        │
    │        │                                                             │
    │        │ Connection(client socket)                                   │
    │        ▼                                                             │
    │   ThreadPool.submit()   one task, one thread per connection         │
    │        │                                                             │
    │        ▼                                                             │
    │   Worker thread         reads the request from conn.rfile,           │
    │                         writes the response to conn.wfile,           │
    │                         closes the connection                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing here knows about HTTP; StaticFileServer (server.py) wires the
pieces to the request parser and handler.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Listening socket and accept loop
    "Connection",       # Client socket with rfile/wfile and graceful close
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Worker threads, one task per connection
]
