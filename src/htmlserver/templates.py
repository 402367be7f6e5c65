"""
=============================================================================
PAGE TEMPLATES
=============================================================================

Loads the Jinja2 templates the page handlers render.

    templates/
        navigation_bar.html   shared, pulled in with {% include %}
        index.html            GET /
        second_view.html      GET /second
        third_view.html       GET /third/:number

The templates are parsed once, at bootstrap, into an immutable TemplateSet
that is handed to the page handlers. A syntax error in any template fails
load_templates() instead of the first request.

Autoescaping is on for every .html template, so values passed in from the
URL (the :number segment) are never emitted as raw markup.

The third view is loaded from its own environment carrying
THIRD_VIEW_FILTERS (ordinal, plural); the other pages do not see them.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, select_autoescape


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# =============================================================================
# THIRD VIEW FILTERS
# =============================================================================

def ordinal(value: int) -> str:
    """
    English ordinal for an integer.

        >>> ordinal(1), ordinal(2), ordinal(3), ordinal(11), ordinal(22)
        ('1st', '2nd', '3rd', '11th', '22nd')
    """
    value = int(value)
    if 10 <= abs(value) % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(abs(value) % 10, "th")
    return f"{value}{suffix}"


def plural(count: int, singular: str, plural_form: Optional[str] = None) -> str:
    """
    "1 view", "2 views", "0 views".

    plural_form defaults to singular + "s".
    """
    count = int(count)
    word = singular if count == 1 else (plural_form or singular + "s")
    return f"{count} {word}"


THIRD_VIEW_FILTERS: Dict[str, Callable] = {
    "ordinal": ordinal,
    "plural": plural,
}


# =============================================================================
# TEMPLATE SET
# =============================================================================

@dataclass(frozen=True)
class TemplateSet:
    """The parsed page templates, one per view."""

    homepage: Template
    second_view: Template
    third_view: Template


def create_environment(
    template_dir: Union[str, Path, None] = None,
    filters: Optional[Dict[str, Callable]] = None,
) -> Environment:
    """
    Jinja2 environment for the page templates.

    Missing template variables raise instead of rendering as empty strings.
    Only the given filters are registered on top of the Jinja2 builtins.
    """
    directory = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    env = Environment(
        loader=FileSystemLoader(str(directory)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    if filters:
        env.filters.update(filters)
    return env


def load_templates(template_dir: Union[str, Path, None] = None) -> TemplateSet:
    """
    Parse every page template.

    Raises:
        jinja2.TemplateNotFound: If a template file is missing.
        jinja2.TemplateSyntaxError: If a template does not parse.
    """
    env = create_environment(template_dir)
    third_env = create_environment(template_dir, THIRD_VIEW_FILTERS)
    templates = TemplateSet(
        homepage=env.get_template("index.html"),
        second_view=env.get_template("second_view.html"),
        third_view=third_env.get_template("third_view.html"),
    )
    logger.debug(f"Loaded templates from {env.loader.searchpath}")
    return templates
