"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The orchestrator: ties the listener, the worker pool and the request
pipeline together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer          accept()  ──► Connection                     │
    │        │                                                             │
    │        ▼                                                             │
    │   HTTPServer._handle_connection   ──► ThreadPool.submit()            │
    │                                              │                       │
    │                                              ▼  (worker thread)      │
    │   RequestHandler.handle(conn)                                        │
    │        ├── Connection.read_request_head()                            │
    │        ├── RequestParser.parse()                                     │
    │        ├── StaticFileHandler.resolve()   (Path Resolver)             │
    │        ├── StaticFileHandler.load()      (File Loader)               │
    │        ├── get_content_type()            (Content-Type Resolver)     │
    │        ├── write_response()              (Response Writer)           │
    │        └── Connection.close()            always, exactly once        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PER-CONNECTION STATE MACHINE
=============================================================================

    AWAITING_REQUEST ──► PARSED ──► PATH_RESOLVED ──► FILE_LOADED ──► RESPONSE_SENT
          │                 │             │                │               │
          │ nothing         └─────────────┴────────────────┘               │
          │ received                      │ HTTPError                      │
          │                               ▼                                │
          │                     ERROR_RESPONSE_SENT                        │
          │                               │                                │
          └───────────────────────────────┴────────────────────────────────┘
                                          ▼
                                        CLOSED

    400  request line is not exactly three tokens
    403  ".." in the path (checked before the method)
    501  method is not GET
    403  the canonical path escapes the root
    404  cannot canonicalize, or cannot read the file
    500  unexpected exception before any byte was sent

If the body of a 200 fails to send, the header is already on the wire.
No second response is attempted; the connection is just closed.

=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest,
    RequestParser,
    HTTPResponse,
    HTTPStatus,
    HTTPError,
    SendFailure,
    error_response,
    write_response,
)
from .handlers import StaticFileHandler
from .access_log import AccessLogger


logger = logging.getLogger(__name__)


class RequestState(Enum):
    """Where a connection is in the request pipeline."""

    AWAITING_REQUEST = "awaiting_request"
    PARSED = "parsed"
    PATH_RESOLVED = "path_resolved"
    FILE_LOADED = "file_loaded"
    RESPONSE_SENT = "response_sent"
    ERROR_RESPONSE_SENT = "error_response_sent"
    CLOSED = "closed"


@dataclass
class RequestOutcome:
    """
    What happened on one connection.

    Attributes:
        state: Last state reached (CLOSED once handle() returns).
        status: Status of the response sent, None if none was sent.
        request: Parsed request, None if parsing failed or nothing came in.
        error: The HTTPError that ended the request, if any.
        aborted: True if a send failed mid-response.
    """

    state: RequestState = RequestState.AWAITING_REQUEST
    status: Optional[int] = None
    request: Optional[HTTPRequest] = None
    error: Optional[HTTPError] = None
    aborted: bool = False


class RequestHandler:
    """
    Runs the request pipeline for one connection at a time.

    Holds no per-request state, so a single instance is shared by every
    worker thread.

    Usage:
        handler = RequestHandler(config)
        outcome = handler.handle(conn)     # conn is closed afterwards
    """

    def __init__(self, config: ServerConfig, access_logger: Optional[AccessLogger] = None):
        self.config = config
        self._parser = RequestParser()
        self._static = StaticFileHandler(config.document_root, config.index_file)
        self._access = access_logger or AccessLogger(log_format=config.log_format)

    def handle(self, conn: Connection) -> RequestOutcome:
        """
        Serve one request on conn, then close it.

        Never raises for request-level problems: every HTTPError becomes
        an error response. The connection is closed on every path.
        """
        outcome = RequestOutcome()
        started_at = time.time()

        try:
            self._process(conn, outcome)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unexpected error: {e}")
            if conn.bytes_sent == 0 and outcome.status is None:
                self._send_error(
                    conn, outcome, HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"
                )
        finally:
            conn.close()
            outcome.state = RequestState.CLOSED
            self._access.log(self._access.record(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                request_line=outcome.request.request_line if outcome.request else None,
                status_code=outcome.status,
                bytes_sent=conn.bytes_sent,
                started_at=started_at,
            ))

        return outcome

    def _process(self, conn: Connection, outcome: RequestOutcome):
        # ─────────────────────────────────────────────────────────────────
        # AWAITING_REQUEST
        # ─────────────────────────────────────────────────────────────────
        data = conn.read_request_head()
        if not data:
            logger.debug(f"[{conn.id}] Client sent nothing, closing")
            return

        try:
            # ─────────────────────────────────────────────────────────────
            # PARSED: three tokens, no "..", GET only
            # ─────────────────────────────────────────────────────────────
            request = self._parser.parse(data, conn.address)
            outcome.request = request
            outcome.state = RequestState.PARSED

            # ─────────────────────────────────────────────────────────────
            # PATH_RESOLVED: canonicalization, containment
            # ─────────────────────────────────────────────────────────────
            resolved = self._static.resolve(request)
            outcome.state = RequestState.PATH_RESOLVED

            # ─────────────────────────────────────────────────────────────
            # FILE_LOADED: whole file in memory
            # ─────────────────────────────────────────────────────────────
            content = self._static.load(resolved)
            outcome.state = RequestState.FILE_LOADED

            response = self._static.respond(resolved, content)
        except HTTPError as e:
            logger.debug(f"[{conn.id}] {e.status_code} {e.message}")
            outcome.error = e
            self._send_error(conn, outcome, e.status_code, e.message)
            return

        # ─────────────────────────────────────────────────────────────────
        # RESPONSE_SENT
        # ─────────────────────────────────────────────────────────────────
        self._send(conn, outcome, response, RequestState.RESPONSE_SENT)

    def _send(
        self,
        conn: Connection,
        outcome: RequestOutcome,
        response: HTTPResponse,
        final_state: RequestState,
    ):
        try:
            write_response(conn, response)
        except SendFailure as e:
            outcome.aborted = True
            outcome.error = e
            if e.header_sent:
                # The status line is out; nothing valid can follow it
                logger.warning(
                    f"[{conn.id}] Body send failed after {int(response.status)} header, aborting"
                )
                outcome.status = int(response.status)
            else:
                logger.warning(f"[{conn.id}] Header send failed, closing")
            return

        outcome.status = int(response.status)
        outcome.state = final_state

    def _send_error(self, conn: Connection, outcome: RequestOutcome, status: int, message: str):
        self._send(conn, outcome, error_response(status, message), RequestState.ERROR_RESPONSE_SENT)


class HTTPServer:
    """
    Static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(document_root="/srv/www", port=8080))
        server.run()          # blocks until Ctrl+C / SIGTERM / shutdown()

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Validated immediately.

        Raises:
            ValueError: Invalid configuration.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._handler = RequestHandler(self.config)

        self._running = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> Optional[int]:
        """Bound port, once listening."""
        return self._socket_server.port

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def bind(self) -> tuple:
        """
        Bind the listening socket without entering the accept loop.

        Raises:
            AddressResolutionError, BindError
        """
        return self._socket_server.bind()

    def run(self, configure_logging: bool = True):
        """
        Start the server (blocking).

        Args:
            configure_logging: Call logging.basicConfig() with the
                               configured level. Embedders that manage
                               logging themselves pass False.

        Raises:
            AddressResolutionError, BindError: Listening socket setup failed.
        """
        if configure_logging:
            self._setup_logging()

        self.bind()

        self._running = True
        self._thread_pool.start()
        self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask the accept loop to stop; run() then returns."""
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        print(f"Serving {self.config.document_root} on port {self.port}")
        print(f"Workers: {self.config.min_workers}-{self.config.max_workers} threads")
        print("Press Ctrl+C to stop")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout or 30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION DISPATCH
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        When the queue stays full for the connection timeout, the client
        gets 503 straight from the accept thread.
        """
        submitted = self._thread_pool.submit(
            self._handler.handle,
            args=(conn,),
            queue_timeout=self.config.timeout,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            try:
                write_response(
                    conn, error_response(HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
                )
            except SendFailure:
                pass  # Already logged by the connection
            finally:
                conn.close()


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server instance.

    Example:
        app = create_app(ServerConfig(document_root="./public", port=3000))
        app.run()
    """
    return HTTPServer(config)
