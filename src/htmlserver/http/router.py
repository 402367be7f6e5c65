"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) pairs to handler functions.

    GET /                   -> home page
    GET /second             -> second page
    GET /third/:number      -> third page, request.path_params["number"]
    GET /static/*filepath   -> static file, request.path_params["filepath"]

=============================================================================
PATTERN SYNTAX
=============================================================================

    /second          static segment, exact match
    /third/:number   ":name" captures one segment (no slashes)
    /static/*path    "*name" captures the rest of the path, slashes included

Routes are compiled to anchored regexes once at registration time and
tried in registration order; the first match wins.

A HEAD request falls back to the GET route for the same path. The socket
server strips the body when it writes the response.

=============================================================================
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A registered URL pattern bound to a handler."""

    path: str
    method: Optional[str]            # None = any method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """
    Result of a successful match.

        Pattern: /third/:number
        Path:    /third/7
        Result:  RouteMatch(route=<Route>, params={"number": "7"})
    """
    route: Route
    params: Dict[str, str]


class Router:
    """
    Request router with ":param" and "*wildcard" segments.

        router = Router()

        @router.get("/third/:number")
        def third(request):
            ...
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern, e.g. "/third/:number".
            handler: Callable taking an HTTPRequest, returning an HTTPResponse.
            method: HTTP method, or None for any.
            name: Optional route name (shows up in logs).
        """
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        logger.debug(f"Route registered: {route.method or 'ANY'} {path}")
        return route

    def _compile_pattern(self, path: str) -> Tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern into an anchored regex.

            "/third/:number"  ->  ^/third/(?P<number>[^/]+)$
            "/static/*path"   ->  ^/static(?:/(?P<path>.*))?$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts[-1] = f"(?:/(?P<{param_name}>.*))?"
                break  # Wildcard consumes the rest, "/static" included
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")  # Root route
        regex_parts.append("$")

        return re.compile("".join(regex_parts)), param_names

    def route(self, path: str, method: Optional[str] = None, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method=method, name=name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, method="GET", name=name)

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Trailing slashes are ignored except on "/" itself. HEAD matches GET
        routes when no explicit HEAD route exists.
        """
        path = _normalize(path)
        method = method.upper()

        fallback = None
        for route in self._routes:
            found = route._pattern.match(path) if route._pattern else None
            if not found:
                continue
            if route.method is None or route.method == method:
                return RouteMatch(route=route, params=_params(found))
            if method == "HEAD" and route.method == "GET" and fallback is None:
                fallback = RouteMatch(route=route, params=_params(found))

        return fallback

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods accepted for a path, for the Allow header of a 405."""
        path = _normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern and route._pattern.match(path):
                if route.method is None:
                    return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
                methods.add(route.method)
                if route.method == "GET":
                    methods.add("HEAD")

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        Path parameters are stored on request.path_params before the
        handler runs. Unknown paths get 404, known paths with the wrong
        method get 405.
        """
        found = self.match(request.method, request.path)
        if found:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()

    def routes(self) -> List[Route]:
        return list(self._routes)


def _normalize(path: str) -> str:
    return "/" + path.strip("/") if path != "/" else "/"


def _params(found: "re.Match") -> Dict[str, str]:
    # An empty wildcard does not participate in the match
    return {name: value or "" for name, value in found.groupdict().items()}
