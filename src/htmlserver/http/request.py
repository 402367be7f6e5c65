"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes (as collected by Connection.read_request)
into HTTPRequest objects.

    GET /third/7?ref=nav HTTP/1.1\r\n        <- request line
    Host: localhost:8000\r\n                 <- headers
    Accept: text/html\r\n
    \r\n                                     <- separator
    (body, Content-Length bytes)

Header names are case-insensitive, so they are stored lowercased. The
page server only cares about GET and HEAD, but every standard method is
parsed so the router can answer 405 instead of 400.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed or breaks a size limit.

    Carries the status code the client should receive:

        400 Bad Request                     - Malformed syntax
        405 Method Not Allowed              - Unknown method
        413 Payload Too Large               - Request exceeds max_request_size
        431 Request Header Fields Too Large - Headers exceed max_header_bytes
        505 HTTP Version Not Supported      - Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: HTTP method, uppercase.
        path: URL-decoded path without the query string.
        version: "HTTP/1.0" or "HTTP/1.1".
        headers: Header map with lowercase names.
        query_params: Query string as a dict of lists.
        body: Raw body bytes.
        path_params: Values captured by the router (":number" etc).
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: Tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 keeps alive unless "Connection: close" is sent; HTTP/1.0
        closes unless "Connection: keep-alive" is sent.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Turns raw request bytes into an HTTPRequest.

        1. Size check                      -> 413
        2. Split on \r\n\r\n               -> 400 if missing
        3. Request line                    -> 400 / 405 / 505
        4. Headers (lowercased, folded)
        5. Body, exactly Content-Length bytes
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: One complete request (headers plus body).
            client_address: Peer (ip, port), kept for logging.

        Raises:
            HTTPParseError: If the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # latin-1 maps every byte, so decoding the head cannot fail
        lines = data[:header_end].decode("latin-1").split("\r\n")
        body = data[header_end + 4:]

        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str,
    ) -> Tuple[str, str, Dict[str, List[str]], str]:
        """Split "METHOD URI VERSION" and decode the URI."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(
                f"Invalid method: {method}",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
            )

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid path: {path!r}")

        # "GET /static/../../etc/passwd" never reaches a handler
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, query_params, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines.

        Continuation lines (leading whitespace) extend the previous header,
        repeated headers are joined with ", ", and malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name = match.group(1).strip().lower()
            value = match.group(2).strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers
