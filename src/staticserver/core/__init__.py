"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The parts of the server that deal with sockets and threads, with no HTTP
knowledge:

    socket_server.py  Resolve, bind, listen, accept loop, signals
    connection.py     One client socket: read head, send all, close once
    thread_pool.py    Worker threads, one connection per task

=============================================================================
"""

from .socket_server import SocketServer, ListenerError, AddressResolutionError, BindError
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "ListenerError",
    "AddressResolutionError",
    "BindError",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
