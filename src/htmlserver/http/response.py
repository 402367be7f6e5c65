"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Constructs HTTP/1.1 responses and serializes them to bytes.

    HTTP/1.1 200 OK\r\n                        <- status line
    Content-Type: text/html; charset=utf-8\r\n
    Content-Length: 1042\r\n                   <- always added
    Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n    <- always added
    Server: htmlserver/1.0\r\n                 <- always added
    \r\n
    <!DOCTYPE html>...

Pages are rendered to a complete string before anything is written, so
Content-Length is always known and chunked encoding is never needed.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "htmlserver/1.0"


@dataclass
class HTTPResponse:
    """
    A response ready to be written to the client.

    Handlers return these; the socket server serializes them with
    to_bytes().
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def closes_connection(self) -> bool:
        return self.headers.get("Connection", "").lower() == "close"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME, include_body: bool = True) -> bytes:
        """
        Serialize the response.

        Args:
            server_name: Value for the Server header.
            include_body: False for HEAD requests. Headers (Content-Length
                included) are identical to the GET response.

        Returns:
            Complete response bytes for socket.sendall().
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return head + self.body if include_body else head


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (
            ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(page)
            .header("Cache-Control", "no-cache")
            .build()
        )
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        return self.content_type("text/plain; charset=utf-8").body(text)

    def html(self, html: str) -> "ResponseBuilder":
        return self.content_type("text/html; charset=utf-8").body(html)

    def no_cache(self) -> "ResponseBuilder":
        return self.header("Cache-Control", "no-cache, no-store, must-revalidate")

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        return self.header("Cache-Control", f"public, max-age={max_age}")

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

        >>> format_http_date(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    dt = dt.astimezone(timezone.utc) if dt.tzinfo else dt
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Error responses are short plain-text bodies, one line each:
#
#     return not_found()            -> "404 page not found"
#     return bad_request("bad id")  -> "bad id"
#
# =============================================================================

def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text response for a redirect or error status."""
    status = HTTPStatus(status)
    text = message or f"{int(status)} {status.phrase.lower()}"
    return (
        ResponseBuilder()
        .status(status)
        .text(text + "\n")
        .header("X-Content-Type-Options", "nosniff")
        .build()
    )


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "404 page not found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: List[str]) -> HTTPResponse:
    """405 with the Allow header listing what the path does accept."""
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
    response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def redirect(location: str) -> HTTPResponse:
    """301 to location, e.g. a directory URL missing its trailing slash."""
    response = error_response(HTTPStatus.MOVED_PERMANENTLY, f"Moved Permanently: {location}")
    response.set_header("Location", location)
    return response
