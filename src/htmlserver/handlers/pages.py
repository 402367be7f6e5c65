"""
=============================================================================
PAGE HANDLERS
=============================================================================

The three server-rendered views:

    GET /                 homepage
    GET /second           second view
    GET /third/:number    third view for page <number>

Handlers are methods on PageHandlers, which is built from an already
loaded TemplateSet; nothing is read from disk per request.

=============================================================================
"""

import logging
from typing import Any

from jinja2 import Template, TemplateError

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request, internal_error
from ..http.router import Router
from ..templates import TemplateSet


logger = logging.getLogger(__name__)


class PageHandlers:
    """Request handlers that render the page templates."""

    def __init__(self, templates: TemplateSet):
        self.templates = templates

    def _render(self, template: Template, **context: Any) -> HTTPResponse:
        try:
            page = template.render(**context)
        except TemplateError as e:
            logger.exception(f"Failed to render {template.name}: {e}")
            return internal_error()
        return ResponseBuilder().html(page).no_cache().build()

    def home(self, request: HTTPRequest) -> HTTPResponse:
        return self._render(self.templates.homepage, active="home")

    def second(self, request: HTTPRequest) -> HTTPResponse:
        return self._render(self.templates.second_view, active="second")

    def third(self, request: HTTPRequest) -> HTTPResponse:
        """/third/:number, where number is a non-negative integer."""
        raw = request.path_params.get("number", "")
        if not raw.isdigit():
            return bad_request(f"Invalid page number: {raw!r}")
        return self._render(self.templates.third_view, active="third", number=int(raw))


def register_pages(router: Router, templates: TemplateSet) -> PageHandlers:
    """Add the page routes to router."""
    pages = PageHandlers(templates)
    router.add_route("/", pages.home, method="GET", name="home")
    router.add_route("/second", pages.second, method="GET", name="second")
    router.add_route("/third/:number", pages.third, method="GET", name="third")
    return pages
