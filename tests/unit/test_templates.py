"""
Unit tests for template loading and the third view filters.
"""

import pytest
from jinja2 import TemplateAssertionError, TemplateNotFound, TemplateSyntaxError, UndefinedError

from htmlserver.templates import create_environment, load_templates, ordinal, plural


class TestFilters:
    """Tests for the ordinal and plural filters."""

    @pytest.mark.parametrize("value, expected", [
        (0, "0th"),
        (1, "1st"),
        (2, "2nd"),
        (3, "3rd"),
        (4, "4th"),
        (11, "11th"),
        (12, "12th"),
        (13, "13th"),
        (21, "21st"),
        (102, "102nd"),
        (111, "111th"),
    ])
    def test_ordinal(self, value, expected):
        assert ordinal(value) == expected

    def test_plural(self):
        assert plural(1, "page") == "1 page"
        assert plural(0, "page") == "0 pages"
        assert plural(3, "page") == "3 pages"

    def test_plural_irregular(self):
        assert plural(2, "entry", "entries") == "2 entries"
        assert plural(1, "entry", "entries") == "1 entry"


class TestLoadTemplates:
    """Tests for the bundled page templates."""

    def test_homepage(self, templates):
        page = templates.homepage.render(active="home")

        assert "<h1>Welcome to the homepage</h1>" in page
        assert '<a href="/" class="active">Home</a>' in page

    def test_second_view(self, templates):
        page = templates.second_view.render(active="second")

        assert "Second View" in page
        assert '<a href="/second" class="active">' in page

    def test_third_view(self, templates):
        page = templates.third_view.render(active="third", number=2)

        assert "2nd page" in page
        assert "2 pages" in page
        assert 'href="/third/1">Previous' in page
        assert 'href="/third/3">Next' in page

    def test_third_view_first_page_has_no_previous(self, templates):
        page = templates.third_view.render(active="third", number=1)
        assert "Previous" not in page

    def test_missing_variable_raises(self, templates):
        with pytest.raises(UndefinedError):
            templates.third_view.render(active="third")

    def test_missing_template_dir(self, tmp_path):
        with pytest.raises(TemplateNotFound):
            load_templates(tmp_path)

    def test_syntax_error_fails_at_load(self, tmp_path):
        (tmp_path / "index.html").write_text("{% if %}")
        (tmp_path / "second_view.html").write_text("ok")
        (tmp_path / "third_view.html").write_text("ok")

        with pytest.raises(TemplateSyntaxError):
            load_templates(tmp_path)


class TestEnvironment:
    """Tests for the Jinja2 environment settings."""

    def test_html_is_autoescaped(self, tmp_path):
        (tmp_path / "page.html").write_text("<p>{{ value }}</p>")
        env = create_environment(tmp_path)

        page = env.get_template("page.html").render(value="<script>")

        assert page == "<p>&lt;script&gt;</p>"

    def test_filters_only_on_third_view(self, templates):
        third = templates.third_view.environment
        assert third.filters["ordinal"] is ordinal
        assert third.filters["plural"] is plural

        for template in (templates.homepage, templates.second_view):
            assert "ordinal" not in template.environment.filters
            assert "plural" not in template.environment.filters

    def test_plain_environment_has_no_page_filters(self, tmp_path):
        env = create_environment(tmp_path)
        assert "ordinal" not in env.filters

    def test_unknown_filter_fails_outside_third_view(self, tmp_path):
        (tmp_path / "page.html").write_text("{{ 3|ordinal }}")

        with pytest.raises(TemplateAssertionError):
            create_environment(tmp_path).get_template("page.html")
