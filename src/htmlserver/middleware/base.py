"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Middleware wraps the router so cross-cutting behaviour (access logging,
response headers) does not live in the page handlers.

    request ──► MW1 ──► MW2 ──► router.handle ──► page handler
                 │       │                              │
    response ◄── MW1 ◄── MW2 ◄──────────────────────────┘

The first middleware added is the outermost layer: it sees the request
first and the response last.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterator, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    A layer in the request pipeline.

        class ServerTiming(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()
                response = next(request)
                response.set_header("Server-Timing", f"app;dur={...}")
                return response

    Returning a response without calling next() short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, normally by delegating to next()."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware list that wraps a final handler.

        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around handler.

        Wrapping runs in reverse so that [A, B, C] becomes A(B(C(handler))).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    @staticmethod
    def _create_wrapped_handler(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
