"""
Middleware: layers wrapped around the router.

    Middleware / MiddlewarePipeline   chain of responsibility
    LoggingMiddleware                 access log ("htmlserver.access")
"""

from .base import Middleware, MiddlewarePipeline
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "LoggingMiddleware",
    "RequestLog",
]
