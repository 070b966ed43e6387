"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server can produce, with their reason
phrases.

    ┌────────────────────────────────────────────────────────────────────┐
    │  Code │ Phrase                 │ When                              │
    ├───────┼────────────────────────┼───────────────────────────────────┤
    │  200  │ OK                     │ File served                       │
    │  400  │ Bad Request            │ Request line not METHOD PATH VER  │
    │  403  │ Forbidden              │ Traversal or path outside root    │
    │  404  │ Not Found              │ Missing or unreadable file        │
    │  500  │ Internal Server Error  │ Unexpected failure before sending │
    │  501  │ Error                  │ Any method other than GET         │
    │  503  │ Error                  │ Worker queue full                 │
    └───────┴────────────────────────┴───────────────────────────────────┘

Only 200, 400, 403, 404 and 500 have a phrase of their own. Every other
code, 501 and 503 included, is rendered with the generic text "Error", so
a POST is answered with `HTTP/1.0 501 Error`.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, FALLBACK_PHRASE)

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


# Used for any code that has no entry in _STATUS_PHRASES
FALLBACK_PHRASE = "Error"

_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def reason_phrase(code: int) -> str:
    """
    Get the reason phrase for any integer status code.

    Examples:
        >>> reason_phrase(404)
        'Not Found'
        >>> reason_phrase(418)
        'Error'
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return FALLBACK_PHRASE
