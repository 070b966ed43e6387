"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig, create_app
from staticserver.core import Connection


INDEX_HTML = b"<h1>Hi</h1>\n"
LOGO_PNG = bytes(range(256)) + bytes(range(244))


@pytest.fixture
def document_root(tmp_path: Path) -> Path:
    """
    A small site:

        www/index.html      12 bytes
        www/img/logo.png    500 bytes
        www/style.css
        secret.txt          outside the root
    """
    root = tmp_path / "www"
    (root / "img").mkdir(parents=True)
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "img" / "logo.png").write_bytes(LOGO_PNG)
    (root / "style.css").write_bytes(b"body { color: red; }\n")
    (tmp_path / "secret.txt").write_bytes(b"top secret\n")
    return root


@pytest.fixture
def config(document_root: Path) -> ServerConfig:
    """Test server configuration rooted at document_root."""
    return ServerConfig(
        document_root=str(document_root),
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=2.0,
        log_level="WARNING",
    )


@pytest.fixture
def socket_pair() -> Generator[tuple, None, None]:
    """(server_side, client_side) connected stream sockets."""
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


@pytest.fixture
def make_connection(socket_pair, config: ServerConfig):
    """Wrap the server side of socket_pair in a Connection."""
    server_side, _ = socket_pair

    def factory(**overrides) -> Connection:
        options = {
            "buffer_size": config.buffer_size,
            "max_request_size": config.max_request_size,
            "timeout": config.timeout,
        }
        options.update(overrides)
        return Connection(socket=server_side, address=("127.0.0.1", 40000), **options)

    return factory


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@dataclass
class RawResponse:
    """A response as read off the socket, split into its parts."""

    raw: bytes
    status_line: str
    headers: dict
    body: bytes

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ", 2)[1])

    @classmethod
    def parse(cls, raw: bytes) -> "RawResponse":
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("iso-8859-1").split("\r\n")
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            headers[name] = value
        return cls(raw=raw, status_line=lines[0], headers=headers, body=body)


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock

    def send_raw(self, data: bytes) -> bytes:
        """Send data, half-close, and return everything the server sent back."""
        with self.connect() as sock:
            sock.sendall(data)
            sock.shutdown(socket.SHUT_WR)
            return recv_all(sock)

    def request(self, data: bytes) -> RawResponse:
        return RawResponse.parse(self.send_raw(data))

    def get(self, target: str) -> RawResponse:
        return self.request(f"GET {target} HTTP/1.0\r\n\r\n".encode("iso-8859-1"))


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A live server on an OS-assigned port, serving document_root."""
    srv = RunningServer(create_app(config))
    srv.start()

    yield srv

    srv.stop()
