"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames HTTP/1.0 responses and puts them on the wire.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.0 200 OK\r\n                 ◄── status line               │
    │    Content-Type: image/png\r\n         ◄── always present            │
    │    Content-Length: 500\r\n             ◄── decimal octet count       │
    │    \r\n                                ◄── end of header block       │
    │    <500 raw bytes>                     ◄── omitted when length is 0  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing else is emitted: no Date, no Server, no Connection header. The
connection is always closed after one response, which is how an HTTP/1.0
client knows the exchange is over.

Errors use the same framing with a JSON body:

    HTTP/1.0 404 Not Found\r\n
    Content-Type: application/json\r\n
    Content-Length: 27\r\n
    \r\n
    {"error": "File not found"}

=============================================================================
TWO SENDS, EACH COMPLETE
=============================================================================

The header block and the body go out as two separate sends. Each one uses
sendall(), which keeps writing until every byte is accepted by the kernel
or the socket reports an error. A short write is therefore never mistaken
for success.

If the body send fails, the header for the original status is already on
the wire. Sending a second response at that point would corrupt the
stream, so the writer raises SendFailure(header_sent=True) and the caller
only closes the connection.

=============================================================================
"""

import json
from dataclasses import dataclass
from typing import Protocol

from .errors import SendFailure
from .status_codes import HTTPStatus, reason_phrase


JSON_CONTENT_TYPE = "application/json"


class Sender(Protocol):
    """Anything that can push bytes to the client (see core.Connection)."""

    def send_all(self, data: bytes) -> bool:
        ...


@dataclass
class HTTPResponse:
    """
    An HTTP/1.0 response ready to be serialized.

    Attributes:
        status:       Status code (HTTPStatus or any int).
        content_type: Value of the Content-Type header.
        body:         Raw body bytes (may be empty).
        version:      Protocol version for the status line.
    """

    status: int = HTTPStatus.OK
    content_type: str = "text/plain"
    body: bytes = b""
    version: str = "HTTP/1.0"

    @property
    def status_line(self) -> str:
        """
        Example: "HTTP/1.0 404 Not Found". Unknown codes use "Error".
        """
        code = int(self.status)
        return f"{self.version} {code} {reason_phrase(code)}"

    @property
    def content_length(self) -> int:
        return len(self.body)

    def header_bytes(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line.
        """
        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {self.content_length}",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("iso-8859-1")

    def to_bytes(self) -> bytes:
        """Complete response as it appears on the wire."""
        return self.header_bytes() + self.body


def error_body(message: str) -> bytes:
    """
    JSON body for an error response.

        >>> error_body("File not found")
        b'{"error": "File not found"}'
    """
    return json.dumps({"error": message}).encode("utf-8")


def error_response(status: int, message: str) -> HTTPResponse:
    """
    Create an error response with a {"error": message} JSON body.

    Args:
        status: HTTP status code.
        message: Error description for the client.
    """
    return HTTPResponse(
        status=status,
        content_type=JSON_CONTENT_TYPE,
        body=error_body(message),
    )


def ok(body: bytes, content_type: str) -> HTTPResponse:
    """Create a 200 OK response."""
    return HTTPResponse(status=HTTPStatus.OK, content_type=content_type, body=body)


def write_response(conn: Sender, response: HTTPResponse) -> int:
    """
    Send a response: header block first, then the body (if any).

    Args:
        conn: Connection to write to.
        response: The response to send.

    Returns:
        Number of bytes written.

    Raises:
        SendFailure: A send failed. header_sent tells whether the header
                     block had already been fully written.
    """
    header = response.header_bytes()
    if not conn.send_all(header):
        raise SendFailure("Failed to send response header", header_sent=False)

    if response.body:
        if not conn.send_all(response.body):
            raise SendFailure(header_sent=True)

    return len(header) + response.content_length
