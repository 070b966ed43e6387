"""
Unit tests for HTTP request-line parsing.
"""

import pytest

from staticserver.http.request import (
    HTTPRequest,
    RequestParser,
    parse_request,
    strip_query_and_fragment,
)
from staticserver.http.errors import ForbiddenTraversal, MalformedRequest, UnsupportedMethod


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.0\r\n\r\n", ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.target == "/index.html"
        assert request.version == "HTTP/1.0"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_headers_are_ignored(self):
        """Only the first line is looked at."""
        raw = (
            b"GET /img/logo.png HTTP/1.1\r\n"
            b"Host: localhost:8080\r\n"
            b"User-Agent: pytest\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.target == "/img/logo.png"
        assert request.version == "HTTP/1.1"

    def test_bare_lf_and_mixed_whitespace(self):
        """Tokens may be separated by any run of whitespace."""
        request = parse_request(b"GET \t /a.css  \tHTTP/1.0\n")

        assert request.method == "GET"
        assert request.target == "/a.css"
        assert request.version == "HTTP/1.0"

    def test_request_line_without_terminator(self):
        """A partial head that still has three tokens parses."""
        request = parse_request(b"GET / HTTP/1.0")
        assert request.target == "/"

    def test_target_kept_raw(self):
        """The query string stays on the target; path strips it."""
        request = parse_request(b"GET /search%20me?q=1#frag HTTP/1.0\r\n")

        assert request.target == "/search%20me?q=1#frag"
        assert request.path == "/search%20me"

    def test_version_not_validated(self):
        request = parse_request(b"GET / FOO/9.9\r\n")
        assert request.version == "FOO/9.9"

    def test_latin1_bytes_survive(self):
        """Non-ASCII bytes map one-to-one to characters."""
        request = parse_request(b"GET /caf\xe9.html HTTP/1.0\r\n")
        assert request.target == "/café.html"

    def test_request_line_property(self):
        request = parse_request(b"GET  /x   HTTP/1.0\r\n")
        assert request.request_line == "GET /x HTTP/1.0"


class TestMalformedRequests:
    """Anything but exactly three tokens is a 400."""

    @pytest.mark.parametrize("raw", [
        b"GET /\r\n\r\n",
        b"GET / HTTP/1.0 extra\r\n",
        b"\r\n",
        b"   \r\n",
        b"GET\r\nHost: test\r\n\r\n",
    ])
    def test_wrong_token_count(self, raw: bytes):
        with pytest.raises(MalformedRequest) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Malformed request"

    def test_tokens_on_later_lines_do_not_count(self):
        """Tokens after the first LF are not part of the request line."""
        with pytest.raises(MalformedRequest):
            parse_request(b"GET /\nHTTP/1.0\r\n")

    def test_nbsp_is_not_a_separator(self):
        """Only ASCII whitespace splits tokens."""
        with pytest.raises(MalformedRequest):
            parse_request(b"GET\xa0/ HTTP/1.0\r\n")


class TestUnsupportedMethods:
    """Anything but GET is a 501."""

    @pytest.mark.parametrize("method", [b"POST", b"PUT", b"DELETE", b"HEAD", b"get"])
    def test_non_get_rejected(self, method: bytes):
        with pytest.raises(UnsupportedMethod) as exc_info:
            parse_request(method + b" / HTTP/1.0\r\n")

        assert exc_info.value.status_code == 501
        assert exc_info.value.message == "Only GET is supported"

    def test_traversal_checked_before_method(self):
        """A traversal attempt with the wrong method is a 403, not a 501."""
        with pytest.raises(ForbiddenTraversal) as exc_info:
            parse_request(b"POST /../etc/passwd HTTP/1.0\r\n")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Forbidden path traversal"

    def test_dots_in_query_do_not_hide_method(self):
        with pytest.raises(UnsupportedMethod):
            parse_request(b"POST /index.html?a=../b HTTP/1.0\r\n")

    def test_custom_allowed_methods(self):
        parser = RequestParser(allowed_methods=frozenset({"GET", "HEAD"}))
        assert parser.parse(b"HEAD / HTTP/1.0\r\n").method == "HEAD"


class TestStripQueryAndFragment:

    @pytest.mark.parametrize("target,expected", [
        ("/index.html", "/index.html"),
        ("/index.html?v=1", "/index.html"),
        ("/index.html#top", "/index.html"),
        ("/a?b#c", "/a"),
        ("/a#b?c", "/a"),
        ("/?", "/"),
        ("?x", ""),
    ])
    def test_strip(self, target: str, expected: str):
        assert strip_query_and_fragment(target) == expected


class TestHTTPRequest:

    def test_is_immutable(self):
        request = HTTPRequest(method="GET", target="/", version="HTTP/1.0")
        with pytest.raises(AttributeError):
            request.target = "/other"
