"""
=============================================================================
REQUEST ERRORS
=============================================================================

Every failure the request pipeline can detect is an exception that
carries the HTTP status code and the message the client will see:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ERROR → RESPONSE                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPError                        500                               │
    │    ├── MalformedRequest            400  "Malformed request"          │
    │    ├── UnsupportedMethod           501  "Only GET is supported"      │
    │    ├── ForbiddenTraversal          403  "Forbidden path traversal"   │
    │    ├── NotFound                    404  "File not found"             │
    │    │    └── FileReadError          404  (allocation failure)         │
    │    └── SendFailure                 500  (never answered once the     │
    │                                          header is on the wire)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The request handler catches HTTPError at one place and turns it into a
JSON error response, so no error ever outlives its connection.

=============================================================================
"""

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for errors that end a request with an HTTP status.

    Attributes:
        status_code: HTTP status to return to the client.
        message: Client-facing description, placed in the JSON body.
    """

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedRequest(HTTPError):
    """The request line is not exactly METHOD SP TARGET SP VERSION."""

    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Malformed request"


class UnsupportedMethod(HTTPError):
    """Anything but GET. Answered with 501 rather than 405."""

    status_code = HTTPStatus.NOT_IMPLEMENTED
    default_message = "Only GET is supported"


class ForbiddenTraversal(HTTPError):
    """Target contains ".." or canonicalizes outside the document root."""

    status_code = HTTPStatus.FORBIDDEN
    default_message = "Forbidden path traversal"


class NotFound(HTTPError):
    """Target does not exist, cannot be canonicalized, or cannot be read."""

    status_code = HTTPStatus.NOT_FOUND
    default_message = "File not found"


class FileReadError(NotFound):
    """The file exists but could not be buffered in memory."""


class SendFailure(HTTPError):
    """
    Writing the response to the socket failed.

    Attributes:
        header_sent: True when the status line and headers were already
                     flushed, so no other response may follow.
    """

    default_message = "Failed to send response body"

    def __init__(self, message: str | None = None, header_sent: bool = False):
        super().__init__(message)
        self.header_sent = header_sent
