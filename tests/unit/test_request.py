"""
Unit tests for HTTP request parsing.
"""

import pytest

from minihttp.http.request import (
    Header,
    HTTPRequest,
    RequestParser,
    ParserState,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for parsing complete requests."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Request line fields and client address are captured."""
        request = parse_request(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/user-agent"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body == b""

    def test_parse_headers_in_order(self, sample_get_request: bytes):
        """Headers keep arrival order and original case."""
        request = parse_request(sample_get_request)

        assert request.headers == [
            Header("Host", "localhost:4221"),
            Header("User-Agent", "foobar/1.2.3"),
            Header("Accept", "*/*"),
        ]
        assert request.user_agent == "foobar/1.2.3"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Content-Length frames the body."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/files/number"
        assert request.content_length == 5
        assert request.body == b"12345"

    def test_parse_missing_headers(self):
        """Zero headers is a valid request."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/"
        assert request.headers == []

    def test_body_without_content_length(self):
        """Without Content-Length the body is what came with the headers."""
        request = parse_request(b"POST /files/a HTTP/1.1\r\nHost: x\r\n\r\nraw bytes")

        assert request.content_length is None
        assert request.body == b"raw bytes"

    def test_bytes_past_content_length_ignored(self):
        """Trailing bytes after the framed body are not part of it."""
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"
        request = parse_request(raw)

        assert request.body == b"abc"

    def test_content_length_case_insensitive(self):
        """Framing honours Content-Length whatever its case."""
        raw = b"POST /files/a HTTP/1.1\r\ncontent-length: 2\r\n\r\nhiZZ"
        request = parse_request(raw)

        assert request.body == b"hi"

    def test_path_is_not_decoded(self):
        """Percent escapes and queries stay in the path verbatim."""
        request = parse_request(b"GET /echo/a%20b?x=1 HTTP/1.1\r\n\r\n")

        assert request.path == "/echo/a%20b?x=1"

    def test_utf8_fields(self):
        """Non-ASCII UTF-8 is accepted in path and header values."""
        raw = "GET /echo/héllo HTTP/1.1\r\nUser-Agent: café\r\n\r\n".encode("utf-8")
        request = parse_request(raw)

        assert request.path == "/echo/héllo"
        assert request.get_header("User-Agent") == "café"

    @pytest.mark.parametrize("raw", [
        b"PUT / HTTP/1.1\r\n\r\n",
        b"get / HTTP/1.1\r\n\r\n",
        b"GET / HTTP/1.0\r\n\r\n",
        b"GET /\r\n\r\n",
        b"GET  HTTP/1.1\r\n\r\n",
        b"GET echo HTTP/1.1\r\n\r\n",
        b"GET / HTTP/1.1 \r\n\r\n",
    ])
    def test_invalid_request_line(self, raw: bytes):
        """Anything but "GET|POST SP /path SP HTTP/1.1" is rejected."""
        with pytest.raises(HTTPParseError):
            parse_request(raw)

    @pytest.mark.parametrize("line", [
        b"Host localhost",
        b"Host:localhost",
        b": value",
        b"Host: ",
    ])
    def test_invalid_header_line(self, line: bytes):
        """Header lines need a name, ": " and a non-empty value."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\n" + line + b"\r\n\r\n")

    def test_invalid_utf8_rejected(self):
        """Each field must decode as UTF-8."""
        with pytest.raises(HTTPParseError, match="UTF-8"):
            parse_request(b"GET /echo/\xff HTTP/1.1\r\n\r\n")

        with pytest.raises(HTTPParseError, match="UTF-8"):
            parse_request(b"GET / HTTP/1.1\r\nUser-Agent: \xc3\r\n\r\n")

    def test_invalid_content_length(self):
        """Content-Length must be a decimal integer."""
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: ten\r\n\r\n")

    def test_conflicting_content_length(self):
        """Repeated Content-Length headers must agree."""
        raw = b"POST / HTTP/1.1\r\nContent-Length: 1\r\nContent-Length: 2\r\n\r\nab"
        with pytest.raises(HTTPParseError, match="Conflicting"):
            parse_request(raw)

    def test_short_body_is_incomplete(self):
        """A body shorter than declared never completes."""
        with pytest.raises(HTTPParseError, match="Incomplete"):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")

    def test_missing_blank_line_is_incomplete(self):
        with pytest.raises(HTTPParseError, match="Incomplete"):
            parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n")

    def test_parse_request_too_large(self):
        """Oversized requests are rejected with 413."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.feed(raw)

        assert exc_info.value.status_code == 413

    def test_declared_body_too_large(self):
        """A Content-Length beyond the limit fails before the body arrives."""
        parser = RequestParser(max_request_size=100)

        with pytest.raises(HTTPParseError) as exc_info:
            parser.feed(b"POST / HTTP/1.1\r\nContent-Length: 1000\r\n\r\n")

        assert exc_info.value.status_code == 413


class TestIncrementalParsing:
    """Tests for feeding the parser in pieces."""

    def test_byte_at_a_time(self, sample_post_request: bytes):
        """Any segmentation yields the same request."""
        parser = RequestParser()

        results = [parser.feed(sample_post_request[i:i + 1])
                   for i in range(len(sample_post_request))]

        assert all(result is None for result in results[:-1])
        assert results[-1] is not None
        assert results[-1].body == b"12345"
        assert parser.is_complete

    def test_body_in_later_segment(self):
        """The parser waits for a body that trails the headers."""
        parser = RequestParser()

        assert parser.feed(b"POST /files/x HTTP/1.1\r\nContent-Length: 4\r\n\r\n") is None
        assert parser.state is ParserState.BODY
        assert parser.feed(b"da") is None

        request = parser.feed(b"ta")
        assert request.body == b"data"

    def test_states_progress(self):
        parser = RequestParser()
        assert parser.state is ParserState.REQUEST_LINE

        parser.feed(b"GET / HTTP/1.1\r\n")
        assert parser.state is ParserState.HEADERS

        parser.feed(b"Host: x\r\n\r\n")
        assert parser.state is ParserState.COMPLETE
        assert parser.request.get_header("Host") == "x"

    def test_bad_method_rejected_early(self):
        """Garbage is rejected before a full request line arrives."""
        parser = RequestParser()

        with pytest.raises(HTTPParseError):
            parser.feed(b"HELLO")

    def test_partial_valid_method_waits(self):
        parser = RequestParser()

        assert parser.feed(b"PO") is None
        assert parser.feed(b"ST /echo/x HTT") is None
        assert parser.feed(b"P/1.1\r\n\r\n").path == "/echo/x"

    def test_feed_after_complete_returns_same_request(self):
        parser = RequestParser()
        first = parser.feed(b"GET / HTTP/1.1\r\n\r\n")

        assert parser.feed(b"GET /other HTTP/1.1\r\n\r\n") is first

    def test_finish_returns_completed_request(self):
        parser = RequestParser()
        parser.feed(b"GET / HTTP/1.1\r\n\r\n")

        assert parser.finish().path == "/"

    def test_raw_holds_consumed_bytes(self):
        parser = RequestParser()
        request = parser.feed(b"POST / HTTP/1.1\r\nContent-Length: 1\r\n\r\nab")

        assert request.raw == b"POST / HTTP/1.1\r\nContent-Length: 1\r\n\r\na"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """get_header falls back to the default."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") is None
        assert request.get_header("X-Missing", "default") == "default"

    def test_get_header_is_case_sensitive(self):
        """Only the exact name matches."""
        request = HTTPRequest(
            method="GET",
            path="/",
            headers=[Header("user-agent", "lower")],
        )

        assert request.get_header("User-Agent") is None
        assert request.user_agent is None
        assert request.get_header("user-agent") == "lower"

    def test_duplicate_headers_first_wins(self):
        request = HTTPRequest(
            method="GET",
            path="/",
            headers=[Header("User-Agent", "a"), Header("User-Agent", "b")],
        )

        assert request.get_header("User-Agent") == "a"
        assert request.get_all_headers("User-Agent") == ["a", "b"]

    def test_header_str(self):
        assert str(Header("Host", "example.com")) == "Host: example.com"
