"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Resolves the listening address, binds, listens, and hands every accepted
client socket to a callback. It knows nothing about HTTP.

=============================================================================
ADDRESS RESOLUTION: TRY EVERY CANDIDATE
=============================================================================

    getaddrinfo(host=None, port, AF_UNSPEC, SOCK_STREAM, AI_PASSIVE)
        │
        ├──► ("::",      8080)   IPv6 wildcard
        └──► ("0.0.0.0", 8080)   IPv4 wildcard

    for each candidate:
        socket()  ── fails? log, try next
        bind()    ── fails? log, close, try next
        listen()  ── fails? log, close, try next
        └── success: stop, this is our listening socket

    no candidate worked ──► BindError          (CLI exits with 2)
    getaddrinfo failed  ──► AddressResolutionError (CLI exits with 1)

With host=None the passive flag yields wildcard addresses, so the server
is reachable on every interface, IPv4 or IPv6, whichever binds first.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind immediately after a restart instead of waiting out TIME_WAIT.
    SO_REUSEPORT is NOT set: a second server on the same port must fail
    to bind rather than silently share the port.

TCP_NODELAY:
    Disable Nagle's algorithm. Inherited by accepted sockets on Linux, so
    the response header is not held back waiting for the body.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) stop the accept loop;
connections already handed to workers still finish. Python only allows
installing signal handlers from the main thread, so a server started in a
background thread (as the tests do) skips this step.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class ListenerError(Exception):
    """Startup failure of the listening socket."""


class AddressResolutionError(ListenerError):
    """getaddrinfo() could not resolve the listening address."""


class BindError(ListenerError):
    """No resolved address could be bound and listened on."""


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            Resolve + bind + listen (raises on failure)     │
    │    start(callback)   bind() if needed, then accept loop (blocks)     │
    │        └──► while running:                                           │
    │                accept()       1s timeout to notice shutdown         │
    │                Connection()   wrap client socket                     │
    │                callback(conn) hand off to the HTTP server            │
    │    shutdown()        Stop the loop (any thread, idempotent)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, limits).

        The socket is not created here; see bind().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, for callers in other threads
        self._ready = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Optional[tuple]:
        """The bound (host, port, ...) tuple, or None before bind()."""
        if self._socket is None:
            return None
        return self._socket.getsockname()

    @property
    def port(self) -> Optional[int]:
        """The bound port (useful when the config asked for port 0)."""
        address = self.address
        return address[1] if address else None

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    # =========================================================================
    # SOCKET SETUP
    # =========================================================================

    def _resolve(self) -> list:
        """
        Candidate addresses for the listening socket.

        Raises:
            AddressResolutionError: getaddrinfo() failed.
        """
        try:
            return socket.getaddrinfo(
                self.config.host,
                self.config.port,
                family=socket.AF_UNSPEC,
                type=socket.SOCK_STREAM,
                flags=socket.AI_PASSIVE,
            )
        except socket.gaierror as e:
            raise AddressResolutionError(f"getaddrinfo error: {e}") from e

    def _create_socket(self, family: int, type_: int, proto: int) -> socket.socket:
        sock = socket.socket(family, type_, proto)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass  # Not supported for this family

        # accept() wakes up every second to check the running flag
        sock.settimeout(1.0)
        return sock

    def bind(self) -> tuple:
        """
        Resolve, bind and listen on the first address that works.

        Returns:
            The bound address.

        Raises:
            AddressResolutionError: Address could not be resolved.
            BindError: Every candidate failed.
        """
        if self._socket is not None:
            return self.address

        for family, type_, proto, _canonname, sockaddr in self._resolve():
            try:
                sock = self._create_socket(family, type_, proto)
            except OSError as e:
                logger.warning(f"socket: {e}")
                continue

            try:
                sock.bind(sockaddr)
            except OSError as e:
                logger.warning(f"bind {sockaddr[0]}:{sockaddr[1]}: {e}")
                sock.close()
                continue

            try:
                sock.listen(self.config.backlog)
            except OSError as e:
                logger.warning(f"listen {sockaddr[0]}:{sockaddr[1]}: {e}")
                sock.close()
                continue

            self._socket = sock
            host, port = sock.getsockname()[:2]
            logger.info(f"Server listening on {host}:{port}")
            return self.address

        raise BindError("Failed to bind socket")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called. Blocks.

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            AddressResolutionError, BindError: See bind().
        """
        self.bind()

        self._running = True
        self._setup_signals()
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                # EMFILE, ECONNABORTED, ... keep serving
                logger.error(f"Accept error: {e}")
                continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                max_request_size=self.config.max_request_size,
                timeout=self.config.timeout,
            )
            logger.debug(f"[{conn.id}] Client connected from {conn.client_ip}:{conn.client_port}")

            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Safe to call repeatedly."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        self._ready.clear()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Socket server stopped")
