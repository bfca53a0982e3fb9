"""
=============================================================================
STATICSERVER
=============================================================================

A small HTTP/1.1 server for a directory of files, built on raw sockets.

    GET /              → directory listing (or index.html / index.htm)
    GET /docs          → 301 to /docs/ (it's a directory)
    GET /css/site.css  → the file, with Content-Type from its extension
    GET /missing       → 404

=============================================================================
PACKAGE LAYOUT
=============================================================================

    staticserver/
    ├── __main__.py       CLI (python -m staticserver)
    ├── config.py         ServerConfig
    ├── server.py         StaticFileServer: wires everything together
    ├── core/             sockets, connections, thread pool
    ├── http/             request parser, responses, paths, URL codec
    ├── handlers/         resolver, directory listing, static handler
    └── middleware/       access log, request validation

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StartupError, StaticFileServer

__all__ = ["StaticFileServer", "ServerConfig", "StartupError", "__version__"]
