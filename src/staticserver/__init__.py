"""
=============================================================================
STATICSERVER - Minimal Static File Server Over Raw Sockets
=============================================================================

Serves files from one directory over a tiny subset of HTTP/1.0: GET only,
one request per connection, errors as small JSON bodies, and no way out
of the document root.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. LISTENER          resolve, bind, listen, accept                │
    │   2. CONCURRENCY       one connection per worker-pool task          │
    │   3. REQUEST LINE      "METHOD TARGET VERSION", GET only            │
    │   4. PATH RESOLVER     ".." filter + canonical containment          │
    │   5. FILE LOADER       whole file into memory                       │
    │   6. CONTENT TYPE      fixed extension table                        │
    │   7. RESPONSE WRITER   status line, two headers, body; then close   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (staticserver PORT ROOT)
    ├── server.py            # HTTPServer + per-connection RequestHandler
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One access record per connection
    ├── core/                # Sockets and threads, no HTTP
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # Worker threads
    ├── http/                # HTTP wire format, no sockets
    │   ├── request.py       # Request-line parsing
    │   ├── response.py      # Response framing and writer
    │   ├── errors.py        # HTTPError hierarchy
    │   ├── status_codes.py  # Status codes and reason phrases
    │   └── mime_types.py    # Content-Type table
    └── handlers/
        └── static.py        # Path resolution and file loading

=============================================================================
QUICK START
=============================================================================

    from staticserver import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(document_root="./public", port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, RequestHandler, RequestState, RequestOutcome, create_app
from .config import ServerConfig

__all__ = [
    "HTTPServer",
    "RequestHandler",
    "RequestState",
    "RequestOutcome",
    "ServerConfig",
    "create_app",
    "__version__",
]
