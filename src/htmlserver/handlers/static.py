"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves the stylesheet, scripts and images the pages link to from a
directory on disk, mounted under a URL prefix:

    GET /static/css/site.css   ->   <static_dir>/css/site.css

=============================================================================
PATH TRAVERSAL
=============================================================================

The requested path is joined to the root and resolved (following ".."
and symlinks). Anything that resolves outside the root is refused:

    full_path = (root_dir / user_input).resolve()
    full_path.relative_to(root_dir)     # ValueError -> 403

=============================================================================
DIRECTORIES
=============================================================================

    GET /static/css    ->  301 Location: /static/css/
    GET /static/css/   ->  css/index.html, or an HTML listing

=============================================================================
CACHING
=============================================================================

Each file gets an ETag built from its mtime and size. A request whose
If-None-Match matches gets 304 Not Modified with no body.

=============================================================================
"""

import html
import logging
from urllib.parse import quote
from datetime import datetime, timezone
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    forbidden,
    internal_error,
    not_found,
    redirect,
)
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for a directory of static assets.

    Args:
        root_dir: Directory to serve. Must exist.
        url_prefix: Prefix stripped from the request path when the route
            did not capture a "path" parameter.
        index_file: File served for a directory request.
        cache_max_age: Cache-Control max-age, in seconds.
        enable_directory_listing: Render an HTML index for directories
            without an index file instead of refusing them.

    Usage:
        static = StaticFileHandler("/srv/site/static")
        router.get("/static/*path")(static.handle)
    """

    def __init__(
        self,
        root_dir: str,
        url_prefix: str = "/static",
        index_file: str = "index.html",
        cache_max_age: int = 3600,
        enable_directory_listing: bool = True,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.index_file = index_file
        self.cache_max_age = cache_max_age
        self.enable_directory_listing = enable_directory_listing

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        file_path = request.path_params.get("path")
        if file_path is None:
            file_path = request.path
            if file_path.startswith(self.url_prefix):
                file_path = file_path[len(self.url_prefix):]
        file_path = file_path.lstrip("/")

        full_path = (self.root_dir / file_path).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {file_path!r}")
            return forbidden("Access denied")

        if full_path.is_dir():
            # Relative links in an index resolve against the directory only
            # when its URL ends in a slash
            if not request.path.endswith("/"):
                return redirect(quote(request.path) + "/")
            index_path = full_path / self.index_file
            if index_path.is_file():
                full_path = index_path
            elif self.enable_directory_listing:
                return self._directory_listing(full_path, request.path)
            else:
                return forbidden("Directory listing not allowed")

        if not full_path.is_file():
            return not_found()

        return self._serve_file(full_path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if request.get_header("if-none-match") == etag:
                return (
                    ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build()
                )

            content = path.read_bytes()
        except PermissionError:
            return forbidden("Permission denied")
        except OSError as e:
            logger.error(f"Error serving file {path}: {e}")
            return internal_error("Failed to read file")

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (
            ResponseBuilder()
            .content_type(get_content_type(path))
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .cache(self.cache_max_age)
            .body(content)
            .build()
        )

    def _directory_listing(self, path: Path, url_path: str) -> HTTPResponse:
        """Minimal HTML index of a directory, names escaped."""
        entries = []
        for entry in sorted(path.iterdir()):
            name = entry.name + ("/" if entry.is_dir() else "")
            quoted = html.escape(name, quote=True)
            entries.append(f'<a href="{quoted}">{quoted}</a>')

        title = html.escape(url_path)
        page = (
            "<!DOCTYPE html>\n"
            f"<html><head><title>Index of {title}</title></head>\n"
            f"<body>\n<h1>Index of {title}</h1>\n<pre>\n"
            + "\n".join(entries)
            + "\n</pre>\n</body></html>\n"
        )
        return ResponseBuilder().html(page).build()
