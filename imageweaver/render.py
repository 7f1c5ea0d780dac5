"""HTML rendering of the generation page with Jinja2."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .schemas import ASPECT_RATIOS
from .view import ViewState

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
PAGE_TEMPLATE = "page.html"

DATA_URI_PREFIX = "data:image/jpeg;base64,"


def image_data_uri(payload: str) -> str:
    """Wrap a base64 JPEG payload in a data URI."""
    return f"{DATA_URI_PREFIX}{payload}"


@lru_cache
def get_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    logger.debug("Template environment initialised from %s", TEMPLATE_DIR)
    return env


def render_page(state: ViewState) -> str:
    """Render the full page for ``state``.

    The output depends on nothing but the state, so identical states always
    produce identical markup.
    """
    template = get_environment().get_template(PAGE_TEMPLATE)
    return template.render(
        prompt=state.prompt,
        aspect_ratio=state.aspect_ratio,
        aspect_ratios=ASPECT_RATIOS,
        is_loading=state.is_loading,
        error=state.error,
        image_src=image_data_uri(state.image_data) if state.image_data else None,
    )
