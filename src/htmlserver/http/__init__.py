"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates between raw bytes and structured messages.

    request.py       bytes -> HTTPRequest (RequestParser, HTTPParseError)
    response.py      HTTPResponse / ResponseBuilder -> bytes
    router.py        (method, path) -> handler, with :param and *wildcard
    status_codes.py  HTTPStatus with reason phrases
    mime_types.py    file extension -> Content-Type

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    error_response,
    bad_request,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
    redirect,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "error_response",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "redirect",
    "Router",
    "Route",
    "RouteMatch",
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
