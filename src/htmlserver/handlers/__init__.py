"""
Request handlers.

    from htmlserver.handlers import StaticFileHandler, register_pages

    register_pages(router, load_templates())

    static = StaticFileHandler("/srv/site/static", url_prefix="/static")
    router.get("/static/*path")(static.handle)
"""

from .pages import PageHandlers, register_pages
from .static import StaticFileHandler

__all__ = [
    "PageHandlers",
    "register_pages",
    "StaticFileHandler",
]
