"""
Unit tests for HTTP request parsing.
"""

import dataclasses
import io
import logging

import pytest

from pyhttpd.http.request import (
    HTTPRequest,
    NoMoreRequests,
    ParseError,
    ParseOk,
    RequestParser,
    parse_request,
)


def parse_ok(data: bytes) -> HTTPRequest:
    """Parse and unwrap a request that must be valid."""
    result = parse_request(data)
    assert isinstance(result, ParseOk), result
    return result.request


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        request = parse_ok(sample_get_request)

        assert request.method == "GET"
        assert request.path == "/echo/abc?page=1"
        assert request.version == "HTTP/1.1"
        assert request.body == b""

    def test_parse_headers(self, sample_get_request: bytes):
        """Header names are lowercased, values trimmed."""
        request = parse_ok(sample_get_request)

        assert request.headers["host"] == "localhost:4221"
        assert request.headers["user-agent"] == "pytest"
        assert request.headers["accept"] == "*/*"
        assert "Host" not in request.headers

    def test_header_whitespace_trimmed(self):
        request = parse_ok(b"GET / HTTP/1.1\r\nX-Name :   padded value  \r\n\r\n")
        assert request.headers["x-name"] == "padded value"

    def test_uppercase_header_name_normalized(self):
        request = parse_ok(b"GET /user-agent HTTP/1.1\r\nUSER-AGENT: foobar/1.2.3\r\n\r\n")

        assert request.headers == {"user-agent": "foobar/1.2.3"}
        assert request.user_agent == "foobar/1.2.3"

    def test_header_value_keeps_later_colons(self):
        request = parse_ok(b"GET / HTTP/1.1\r\nHost: localhost:4221\r\n\r\n")
        assert request.headers["host"] == "localhost:4221"

    def test_duplicate_header_last_wins(self):
        request = parse_ok(
            b"GET / HTTP/1.1\r\nX-Token: first\r\nx-token: second\r\n\r\n"
        )
        assert request.headers["x-token"] == "second"

    def test_malformed_header_skipped(self, caplog):
        """Lines without a colon or with an empty name are skipped."""
        with caplog.at_level(logging.WARNING):
            request = parse_ok(
                b"GET / HTTP/1.1\r\nno colon here\r\n: empty name\r\nHost: ok\r\n\r\n"
            )

        assert dict(request.headers) == {"host": "ok"}
        assert "Malformed header line" in caplog.text

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing a POST request with a body."""
        request = parse_ok(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/files/notes.txt"
        assert request.body == b"hello, file"
        assert request.content_length == 11

    def test_bare_lf_tolerated(self):
        request = parse_ok(b"GET /echo/x HTTP/1.1\nHost: a\n\n")
        assert request.path == "/echo/x"
        assert request.headers["host"] == "a"

    def test_extra_request_line_tokens_ignored(self):
        request = parse_ok(b"GET / HTTP/1.1 extra\r\n\r\n")
        assert request.version == "HTTP/1.1"

    def test_path_not_decoded(self):
        request = parse_ok(b"GET /echo/hello%20world HTTP/1.1\r\n\r\n")
        assert request.path == "/echo/hello%20world"

    def test_method_case_preserved(self):
        request = parse_ok(b"get / HTTP/1.1\r\n\r\n")
        assert request.method == "get"


class TestParseOutcomes:
    """NoMoreRequests and ParseError cases."""

    def test_empty_stream_is_no_more_requests(self):
        assert isinstance(parse_request(b""), NoMoreRequests)

    def test_partial_request_line(self):
        result = parse_request(b"GET / HTT")
        assert isinstance(result, ParseError)

    def test_request_line_with_two_tokens(self):
        result = parse_request(b"GET /\r\n\r\n")
        assert isinstance(result, ParseError)
        assert "request line" in result.reason

    def test_empty_request_line(self):
        assert isinstance(parse_request(b"\r\n\r\n"), ParseError)

    def test_eof_inside_headers(self):
        result = parse_request(b"GET / HTTP/1.1\r\nHost: localhost\r\n")
        assert isinstance(result, ParseError)

    def test_line_too_long(self):
        parser = RequestParser(max_line_length=64)
        result = parser.parse(io.BytesIO(b"GET /" + b"a" * 100 + b" HTTP/1.1\r\n\r\n"))
        assert isinstance(result, ParseError)

    def test_line_at_limit_accepted(self):
        line = b"GET /" + b"a" * 50 + b" HTTP/1.1"
        parser = RequestParser(max_line_length=len(line))
        result = parser.parse(io.BytesIO(line + b"\r\n\r\n"))
        assert isinstance(result, ParseOk)

    def test_header_line_too_long(self):
        parser = RequestParser(max_line_length=64)
        data = b"GET / HTTP/1.1\r\nX-Big: " + b"v" * 100 + b"\r\n\r\n"
        assert isinstance(parser.parse(io.BytesIO(data)), ParseError)

    def test_too_many_headers(self):
        parser = RequestParser(max_headers=3)
        data = b"GET / HTTP/1.1\r\n" + b"".join(
            f"X-H{i}: v\r\n".encode() for i in range(4)
        ) + b"\r\n"

        result = parser.parse(io.BytesIO(data))

        assert isinstance(result, ParseError)
        assert "header lines" in result.reason

    def test_header_count_at_limit_accepted(self):
        parser = RequestParser(max_headers=3)
        data = b"GET / HTTP/1.1\r\nA: 1\r\nB: 2\r\nC: 3\r\n\r\n"
        assert isinstance(parser.parse(io.BytesIO(data)), ParseOk)


class TestBodyFraming:
    """Content-Length handling and request boundaries."""

    @pytest.mark.parametrize("value", ["abc", "-5", "0", "+5", "", " "])
    def test_unusable_content_length_means_no_body(self, value):
        data = f"POST /files/a HTTP/1.1\r\nContent-Length: {value}\r\n\r\n".encode()
        stream = io.BytesIO(data + b"GET / HTTP/1.1\r\n\r\n")

        first = RequestParser().parse(stream)
        assert isinstance(first, ParseOk)
        assert first.request.body == b""

        # the following bytes are left for the next request
        second = RequestParser().parse(stream)
        assert isinstance(second, ParseOk)
        assert second.request.path == "/"

    def test_body_read_exactly(self):
        stream = io.BytesIO(
            b"POST /files/a HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcGET / HTTP/1.1\r\n\r\n"
        )
        parser = RequestParser()

        first = parser.parse(stream)
        second = parser.parse(stream)

        assert first.request.body == b"abc"
        assert second.request.method == "GET"
        assert isinstance(parser.parse(stream), NoMoreRequests)

    def test_truncated_body_returned(self, caplog):
        with caplog.at_level(logging.WARNING):
            request = parse_ok(
                b"POST /files/a HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc"
            )

        assert request.body == b"abc"
        assert "truncated" in caplog.text

    def test_oversized_body_rejected_before_reading(self):
        parser = RequestParser(max_body_size=10)
        stream = io.BytesIO(
            b"POST /files/a HTTP/1.1\r\nContent-Length: 11\r\n\r\n" + b"b" * 11
        )

        result = parser.parse(stream)

        assert isinstance(result, ParseError)
        assert "exceeds 10 bytes" in result.reason
        assert stream.read() == b"b" * 11

    def test_body_at_size_limit_accepted(self):
        parser = RequestParser(max_body_size=3)
        stream = io.BytesIO(b"POST /files/a HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc")
        assert parser.parse(stream).request.body == b"abc"

    def test_body_bytes_are_binary_safe(self):
        payload = bytes(range(256))
        data = (
            b"POST /files/bin HTTP/1.1\r\n"
            + f"Content-Length: {len(payload)}\r\n\r\n".encode()
            + payload
        )
        assert parse_ok(data).body == payload


class TestHTTPRequest:
    """Tests for HTTPRequest accessors."""

    def test_headers_normalized_on_construction(self):
        request = HTTPRequest(method="GET", path="/", headers={"User-Agent": "curl/8.4.0"})
        assert request.headers == {"user-agent": "curl/8.4.0"}
        assert request.user_agent == "curl/8.4.0"

    def test_get_header_case_insensitive(self):
        request = HTTPRequest(method="GET", path="/", headers={"x-trace": "1"})
        assert request.get_header("X-Trace") == "1"
        assert request.get_header("missing") == ""
        assert request.get_header("missing", "fallback") == "fallback"

    def test_user_agent_absent(self):
        assert HTTPRequest(method="GET", path="/user-agent").user_agent == ""

    @pytest.mark.parametrize("value, expected", [
        ("close", True),
        ("Close", True),
        (" CLOSE ", True),
        ("keep-alive", False),
        (None, False),
    ])
    def test_wants_close(self, value, expected):
        headers = {"connection": value} if value is not None else {}
        assert HTTPRequest(method="GET", path="/", headers=headers).wants_close is expected

    def test_route_path_strips_query(self):
        request = HTTPRequest(method="GET", path="/echo/abc?x=1&y=2")
        assert request.route_path == "/echo/abc"

    def test_query_params(self):
        request = HTTPRequest(method="GET", path="/echo/abc?tag=a&tag=b&empty=")
        assert request.query_params == {"tag": ["a", "b"], "empty": [""]}
        assert HTTPRequest(method="GET", path="/").query_params == {}

    def test_request_is_frozen(self):
        request = HTTPRequest(method="GET", path="/")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.path = "/other"

    def test_headers_are_read_only(self):
        request = HTTPRequest(method="GET", path="/", headers={"a": "1"})
        with pytest.raises(TypeError):
            request.headers["a"] = "2"

    def test_bind_path_params_replaces(self):
        request = HTTPRequest(method="GET", path="/echo/x")
        request.bind_path_params({"str": "x"})
        request.bind_path_params({"other": "y"})
        assert request.path_params == {"other": "y"}

    def test_hashable(self):
        first = HTTPRequest(method="GET", path="/", headers={"a": "1"})
        second = HTTPRequest(method="GET", path="/", headers={"a": "1"})

        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1
