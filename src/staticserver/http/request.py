"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Turns the first bytes received on a connection into an HTTPRequest.

=============================================================================
WHAT WE PARSE (AND WHAT WE IGNORE)
=============================================================================

    GET /img/logo.png?v=2 HTTP/1.0\r\n      ◄── request line: PARSED
    Host: localhost\r\n                     ◄── headers: IGNORED
    User-Agent: curl/8.0\r\n
    \r\n

Only the request line matters. It must consist of exactly three tokens
separated by whitespace:

        GET      /img/logo.png?v=2      HTTP/1.0
        ─┬─      ────────┬────────      ───┬────
       method          target            version

    - method:  must be GET, anything else is 501
    - target:  kept raw; a ".." in its path part is 403, even for non-GET
    - version: kept but never validated; we always answer HTTP/1.0

Two tokens, four tokens, or an empty line are all 400 Bad Request. There
are no defaults: "GET /" is not upgraded to "GET / HTTP/1.0".

=============================================================================
BYTES → TEXT
=============================================================================

The request line is decoded as ISO-8859-1. Every byte maps to exactly one
character, so decoding never fails and the target keeps the same bytes
the client sent (no percent-decoding happens anywhere).

=============================================================================
"""

import re
import logging
from dataclasses import dataclass

from .errors import MalformedRequest, ForbiddenTraversal, UnsupportedMethod


logger = logging.getLogger(__name__)

# Same characters C's isspace() accepts; str.split() would also split on
# U+0085 and U+00A0, which ISO-8859-1 decoding can produce.
TOKEN_SEPARATOR = re.compile(r"[ \t\n\v\f\r]+")

# Query strings and fragments are never part of the file path
TARGET_SUFFIX_MARKERS = re.compile(r"[?#]")


def strip_query_and_fragment(target: str) -> str:
    """
    Cut the target at the first "?" or "#".

    Examples:
        >>> strip_query_and_fragment("/index.html?v=1#top")
        '/index.html'
        >>> strip_query_and_fragment("/a#b?c")
        '/a'
    """
    match = TARGET_SUFFIX_MARKERS.search(target)
    if match is None:
        return target
    return target[:match.start()]


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Attributes:
        method:         Request method, e.g. "GET".
        target:         Raw request target exactly as received.
        version:        Protocol token, e.g. "HTTP/1.0" (unvalidated).
        client_address: Peer (ip, port), for logging.
    """

    method: str
    target: str
    version: str
    client_address: tuple = ("", 0)

    @property
    def path(self) -> str:
        """Target without query string or fragment."""
        return strip_query_and_fragment(self.target)

    @property
    def request_line(self) -> str:
        """The request line as it would appear in an access log."""
        return f"{self.method} {self.target} {self.version}"


class RequestParser:
    """
    Parses the head of a request into an HTTPRequest.

    =========================================================================
    PARSING ALGORITHM
    =========================================================================

        1. Decode bytes as ISO-8859-1
        2. Keep only the first line (up to the first LF)
        3. Split on whitespace
        4. Exactly three tokens?            else → MalformedRequest (400)
        5. ".." in the path?                then → ForbiddenTraversal (403)
        6. Method in allowed_methods?       else → UnsupportedMethod (501)

    The ".." filter runs before the method check, so "POST /../x" is a
    403, not a 501.

    =========================================================================
    """

    def __init__(self, allowed_methods: frozenset = frozenset({"GET"})):
        """
        Args:
            allowed_methods: Methods the server serves. Anything else is
                             rejected with UnsupportedMethod.
        """
        self.allowed_methods = allowed_methods

    def parse(self, data: bytes, client_address: tuple = ("", 0)) -> HTTPRequest:
        """
        Parse received bytes into an HTTPRequest.

        Args:
            data: Bytes received from the client (at least the request line,
                  possibly more).
            client_address: Client's (ip, port) tuple.

        Returns:
            The parsed request.

        Raises:
            MalformedRequest: The first line is not exactly three tokens.
            ForbiddenTraversal: The path (query and fragment stripped)
                                contains "..".
            UnsupportedMethod: The method is not allowed.
        """
        text = data.decode("iso-8859-1")
        request_line = text.split("\n", 1)[0]
        method, target, version = self._split_request_line(request_line)

        request = HTTPRequest(
            method=method,
            target=target,
            version=version,
            client_address=client_address,
        )

        if ".." in request.path:
            logger.warning(f"Path traversal attempt: {target!r}")
            raise ForbiddenTraversal()

        if method not in self.allowed_methods:
            raise UnsupportedMethod()

        return request

    def _split_request_line(self, line: str) -> tuple[str, str, str]:
        tokens = [token for token in TOKEN_SEPARATOR.split(line) if token]
        if len(tokens) != 3:
            raise MalformedRequest()
        return tokens[0], tokens[1], tokens[2]


def parse_request(data: bytes, client_address: tuple = ("", 0)) -> HTTPRequest:
    """
    Convenience function to parse a request with the default parser.

    Example:
        >>> parse_request(b"GET / HTTP/1.0\\r\\n\\r\\n").target
        '/'
    """
    return RequestParser().parse(data, client_address)
