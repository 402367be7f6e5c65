"""
Unit tests for HTTP request parsing.
"""

import pytest

from htmlserver.http.request import HTTPRequest, RequestParser, HTTPParseError


def parse_request(data: bytes) -> HTTPRequest:
    return RequestParser().parse(data)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/third/7"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.get_header("host") == "localhost:8000"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "text/html"
        assert request.is_keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.query_params == {"ref": ["nav"]}
        assert "missing" not in request.query_params

    def test_parse_post_with_body(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/second"
        assert request.body == b"name=John&email=john%40example.com"
        assert request.is_keep_alive is False

    def test_parse_url_encoded_path(self):
        raw = b"GET /static/my%20file.css?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/static/my file.css"
        assert request.query_params["q"] == ["hello world"]

    def test_parse_invalid_method(self):
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_unsupported_version(self):
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_parse_invalid_request_line(self):
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_missing_terminator(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self):
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/"
        assert request.headers == {}

    def test_parse_path_traversal_blocked(self):
        raw = b"GET /static/../../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert "path" in str(exc_info.value).lower()

    def test_dots_inside_a_name_are_allowed(self):
        request = parse_request(b"GET /static/app..min.js HTTP/1.1\r\n\r\n")
        assert request.path == "/static/app..min.js"

    def test_parse_request_too_large(self):
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_http_version_keep_alive_defaults(self):
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: keep-alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.is_keep_alive is True

    def test_content_length_handling(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 9\r\n\r\ntest body"

        request = parse_request(raw)
        assert request.get_header("content-length") == "9"
        assert request.body == b"test body"

    def test_incomplete_body(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 50\r\n\r\nshort"

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_invalid_content_length(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: lots\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_case_insensitive_headers(self):
        request = parse_request(b"GET / HTTP/1.1\r\nACCEPT: text/html\r\n\r\n")

        assert request.get_header("Accept") == "text/html"
        assert request.get_header("accept") == "text/html"

    def test_repeated_headers_are_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: text/css\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("accept") == "text/html, text/css"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_connection_close(self):
        request = HTTPRequest(method="GET", path="/", headers={"connection": "close"})
        assert request.is_keep_alive is False
