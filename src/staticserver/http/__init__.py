"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Everything that knows about the HTTP wire format, and nothing that knows
about sockets or the filesystem:

    request.py       Request-line parsing (METHOD TARGET VERSION)
    response.py      HTTP/1.0 response framing and the two-send writer
    errors.py        Exceptions that carry an HTTP status
    status_codes.py  Status codes and reason phrases
    mime_types.py    Content-Type from a file path

=============================================================================
"""

from .request import HTTPRequest, RequestParser, parse_request, strip_query_and_fragment
from .response import HTTPResponse, error_response, ok, write_response
from .errors import (
    HTTPError,
    MalformedRequest,
    UnsupportedMethod,
    ForbiddenTraversal,
    NotFound,
    FileReadError,
    SendFailure,
)
from .status_codes import HTTPStatus, reason_phrase
from .mime_types import get_content_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "strip_query_and_fragment",

    # Responses
    "HTTPResponse",
    "error_response",
    "ok",
    "write_response",

    # Errors
    "HTTPError",
    "MalformedRequest",
    "UnsupportedMethod",
    "ForbiddenTraversal",
    "NotFound",
    "FileReadError",
    "SendFailure",

    # Status codes
    "HTTPStatus",
    "reason_phrase",

    # MIME types
    "get_content_type",
]
