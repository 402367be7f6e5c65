"""
Unit tests for URL routing.
"""

import pytest

from htmlserver.http.router import Router
from htmlserver.http.request import HTTPRequest
from htmlserver.http.response import ResponseBuilder
from htmlserver.http.status_codes import HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create test requests."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request):
    """Dummy handler for testing."""
    return ResponseBuilder().text("OK").build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET", name="second")

        routes = router.routes()
        assert len(routes) == 1
        assert routes[0].path == "/second"
        assert routes[0].method == "GET"
        assert routes[0].name == "second"

    def test_method_is_uppercased(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="get")

        assert router.routes()[0].method == "GET"

    def test_match_root(self):
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/second") is None

    def test_match_static_path(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")

        match = router.match("GET", "/second")
        assert match is not None
        assert match.params == {}

    def test_trailing_slash_ignored(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")

        assert router.match("GET", "/second/") is not None

    def test_match_dynamic_param(self):
        router = Router()
        router.add_route("/third/:number", dummy_handler, method="GET")

        match = router.match("GET", "/third/42")
        assert match is not None
        assert match.params == {"number": "42"}

    def test_param_does_not_span_segments(self):
        router = Router()
        router.add_route("/third/:number", dummy_handler, method="GET")

        assert router.match("GET", "/third/4/2") is None
        assert router.match("GET", "/third") is None

    def test_match_wildcard(self):
        router = Router()
        router.add_route("/static/*path", dummy_handler, method="GET")

        match = router.match("GET", "/static/css/style.css")
        assert match is not None
        assert match.params == {"path": "css/style.css"}

    def test_wildcard_matches_prefix_alone(self):
        router = Router()
        router.add_route("/static/*path", dummy_handler, method="GET")

        match = router.match("GET", "/static/")
        assert match is not None
        assert match.params == {"path": ""}

    def test_no_match(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")

        assert router.match("GET", "/fourth") is None
        assert router.match("POST", "/second") is None

    def test_route_without_method_matches_any(self):
        router = Router()
        router.add_route("/any", dummy_handler)

        assert router.match("GET", "/any") is not None
        assert router.match("DELETE", "/any") is not None

    def test_head_falls_back_to_get(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")

        match = router.match("HEAD", "/second")
        assert match is not None
        assert match.route.method == "GET"

    def test_explicit_head_route_wins(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET", name="get")
        router.add_route("/second", dummy_handler, method="HEAD", name="head")

        assert router.match("HEAD", "/second").route.name == "head"

    def test_get_allowed_methods_includes_head(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")
        router.add_route("/second", dummy_handler, method="POST")

        assert router.get_allowed_methods("/second") == ["GET", "HEAD", "POST"]
        assert router.get_allowed_methods("/missing") == []


class TestRouterHandle:
    """Tests for Router.handle dispatch."""

    def test_handle_success(self):
        router = Router()

        @router.get("/hello")
        def hello(request):
            return ResponseBuilder().text("Hello!").build()

        response = router.handle(make_request("GET", "/hello"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello!"

    def test_handle_not_found(self):
        router = Router()
        router.add_route("/second", dummy_handler, method="GET")

        response = router.handle(make_request("GET", "/fourth"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found\n"

    def test_handle_method_not_allowed(self):
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        response = router.handle(make_request("POST", "/"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"

    def test_path_params_in_request(self):
        router = Router()
        captured = {}

        @router.get("/third/:number")
        def third(request):
            captured.update(request.path_params)
            return dummy_handler(request)

        router.handle(make_request("GET", "/third/9"))

        assert captured == {"number": "9"}

    def test_handler_exceptions_propagate(self):
        router = Router()

        @router.get("/boom")
        def boom(request):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            router.handle(make_request("GET", "/boom"))


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    def test_get_decorator(self):
        router = Router()

        @router.get("/test")
        def handler(request):
            return dummy_handler(request)

        assert router.routes()[0].method == "GET"
        assert router.routes()[0].handler is handler

    def test_route_decorator_with_method(self):
        router = Router()

        @router.route("/test", method="POST")
        def handler(request):
            return dummy_handler(request)

        assert router.routes()[0].method == "POST"

    def test_named_route(self):
        router = Router()

        @router.route("/third/:number", method="GET", name="third")
        def third(request):
            return dummy_handler(request)

        assert router.routes()[0].name == "third"
