"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the three operations the request
handler needs: read the request head, send bytes completely, close once.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        "GET /index.html HTTP/1.0\r\n\r\n"

    Server might receive:
        recv() → "GET /ind"                 (partial)
        recv() → "ex.html HTTP/1.0\r\n"     (rest of the line)
        recv() → "\r\n"

A single recv() is not guaranteed to hold the whole request line. We keep
reading until the line terminator shows up, the buffer limit is reached,
or the client stops sending:

    ┌─────────────────────────────────────────────────────────────────┐
    │                 read_request_head() Flow                         │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   while no "\n" in buffer and buffer < max_request_size - 1:    │
    │       chunk = recv()                                             │
    │       if chunk is empty (EOF, reset, timeout): stop              │
    │       buffer += chunk                                            │
    │                                                                  │
    │   return buffer        (b"" means the client sent nothing)       │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

Anything past max_request_size - 1 bytes is never read.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► WRITING ──────► CLOSING ──────► CLOSED
     │             │                                ▲
     └─────────────┴────────────────────────────────┘

close() is idempotent: however many error paths call it, the socket is
shut down and released exactly once.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


# Upper bound on unread request bytes discarded while closing
MAX_DRAIN_BYTES = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, mostly for logging and tests."""

    NEW = "new"              # Just accepted
    READING = "reading"      # Reading the request head
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log correlation.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes successfully written.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 1024
    max_request_size: int = 4096
    timeout: Optional[float] = 30.0

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # None keeps the socket fully blocking
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return str(self.address[0]) if self.address else ""

    @property
    def client_port(self) -> int:
        return int(self.address[1]) if self.address and len(self.address) > 1 else 0

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request_head(self) -> bytes:
        """
        Read until the end of the request line.

        Returns:
            The bytes received, at most max_request_size - 1 of them.
            Empty bytes if the client closed, reset, or timed out before
            sending anything.
        """
        self.state = ConnectionState.READING
        limit = self.max_request_size - 1

        while b"\n" not in self._buffer and len(self._buffer) < limit:
            chunk = self._recv(min(self.buffer_size, limit - len(self._buffer)))
            if not chunk:
                break
            self._buffer += chunk

        return self._buffer

    def _recv(self, size: int) -> bytes:
        """
        socket.recv() that reports every failure as end of stream.
        """
        try:
            return self.socket.recv(size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Receive timed out after {self.timeout}s")
            return b""
        except OSError as e:
            # ConnectionResetError, BrokenPipeError, ...
            logger.debug(f"[{self.id}] Receive failed: {e}")
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_all(self, data: bytes) -> bool:
        """
        Send every byte of data, or fail.

        sendall() loops over partial writes internally, so success means
        the kernel accepted all of it.

        Returns:
            True if all bytes were sent, False if the connection failed.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            # Peer reset, broken pipe, or send deadline exceeded
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        1. shutdown(SHUT_WR): send FIN so the client sees end of response
        2. drain: discard request bytes we never read (headers), otherwise
           the kernel answers them with RST and the client may lose the
           tail of the response
        3. close(): release the file descriptor
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < MAX_DRAIN_BYTES:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
