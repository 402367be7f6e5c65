"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one line per request to the "htmlserver.access" logger:

    127.0.0.1 - - [17/Oct/2026:12:00:00 +0000] "GET /third/7" 200 1042 0.84ms

or, with log_format="json", one JSON object per line for log shippers.

The access logger is separate from the module loggers so it can be routed
or silenced on its own:

    logging.getLogger("htmlserver.access").setLevel(logging.WARNING)

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("htmlserver.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Common log format plus the handling time."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be added first so its timing covers everything downstream.

    Args:
        log_format: "text" (common log format) or "json".
        include_request_id: Add an X-Request-ID header to each response.
        log_level: Level used for successful requests. 5xx responses are
            always logged at ERROR.
        skip_paths: Request paths that are never logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown log format: {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.ERROR if entry.status_code >= 500 else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return response
