"""
Unit tests for static file serving.
"""

from pathlib import Path

import pytest

from htmlserver.handlers.static import StaticFileHandler
from htmlserver.http.mime_types import get_content_type, get_mime_type
from htmlserver.http.request import HTTPRequest
from htmlserver.http.response import HTTPResponse
from htmlserver.http.status_codes import HTTPStatus


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A small asset tree."""
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "style.css").write_text("body { color: #333; }")
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "index.html").write_text("<p>docs</p>")
    (tmp_path / "a&b.txt").write_text("ampersand")
    return tmp_path


def get(handler: StaticFileHandler, path: str, headers=None) -> HTTPResponse:
    request = HTTPRequest(method="GET", path="/static/" + path, headers=headers or {})
    request.path_params = {"path": path}
    return handler.handle(request)


class TestStaticFileHandler:
    """Tests for StaticFileHandler."""

    def test_missing_root_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            StaticFileHandler(str(tmp_path / "nope"))

    def test_serves_file(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "css/style.css")

        assert response.status == HTTPStatus.OK
        assert response.body == b"body { color: #333; }"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert response.headers["Cache-Control"] == "public, max-age=3600"
        assert "ETag" in response.headers
        assert "Last-Modified" in response.headers

    def test_binary_file(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "img/logo.png")

        assert response.headers["Content-Type"] == "image/png"
        assert response.body.startswith(b"\x89PNG")

    def test_missing_file(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "css/missing.css")
        assert response.status == HTTPStatus.NOT_FOUND

    def test_traversal_is_forbidden(self, static_root):
        handler = StaticFileHandler(str(static_root / "css"))

        response = get(handler, "../img/logo.png")

        assert response.status == HTTPStatus.FORBIDDEN

    def test_etag_not_modified(self, static_root):
        handler = StaticFileHandler(str(static_root))
        etag = get(handler, "css/style.css").headers["ETag"]

        response = get(handler, "css/style.css", headers={"if-none-match": etag})

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.body == b""

    def test_directory_index(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "docs/")
        assert response.body == b"<p>docs</p>"

    def test_directory_without_slash_redirects(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "css")

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/static/css/"

    def test_redirect_location_is_quoted(self, static_root):
        (static_root / "my dir").mkdir()

        response = get(StaticFileHandler(str(static_root)), "my dir")

        assert response.headers["Location"] == "/static/my%20dir/"

    def test_directory_listing(self, static_root):
        response = get(StaticFileHandler(str(static_root)), "")

        assert response.status == HTTPStatus.OK
        assert b'<a href="css/">css/</a>' in response.body
        assert b"a&amp;b.txt" in response.body

    def test_directory_listing_disabled(self, static_root):
        handler = StaticFileHandler(str(static_root), enable_directory_listing=False)
        assert get(handler, "img/").status == HTTPStatus.FORBIDDEN

    def test_prefix_stripped_without_route_param(self, static_root):
        handler = StaticFileHandler(str(static_root), url_prefix="/assets")

        response = handler.handle(HTTPRequest(method="GET", path="/assets/css/style.css"))

        assert response.status == HTTPStatus.OK


class TestMimeTypes:
    """Tests for extension based content types."""

    def test_known_types(self):
        assert get_mime_type("site.css") == "text/css"
        assert get_mime_type("LOGO.PNG") == "image/png"

    def test_unknown_type(self):
        assert get_mime_type("archive.xyz") == "application/octet-stream"
        assert get_mime_type("archive.xyz", default="text/plain") == "text/plain"

    def test_charset_only_on_text(self):
        assert get_content_type("index.html") == "text/html; charset=utf-8"
        assert get_content_type("logo.png") == "image/png"
