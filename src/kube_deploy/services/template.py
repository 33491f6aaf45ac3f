"""Manifest template rendering.

The template context is scraped from the pipeline environment: every
``PLUGIN_<X>`` and ``DRONE_<X>`` variable becomes the lower-cased key
``<x>``. Rendering uses Jinja2; undefined variables render empty.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import jinja2
import structlog

from kube_deploy.integrations.kubernetes.exceptions import TemplateRenderError

logger = structlog.get_logger()

# Later prefixes win on key collisions.
CONTEXT_PREFIXES = ("PLUGIN_", "DRONE_")


def build_context(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect pipeline variables into a template context.

    Args:
        environ: Environment to scan, defaults to ``os.environ``.

    Returns:
        Mapping of lower-cased, prefix-stripped names to values.
    """
    env = os.environ if environ is None else environ
    context: dict[str, str] = {}
    for prefix in CONTEXT_PREFIXES:
        for key, value in env.items():
            if key.startswith(prefix) and len(key) > len(prefix):
                context[key[len(prefix) :].lower()] = value
    return context


def render_template(source: str, context: Mapping[str, str]) -> str:
    """Render template text against *context*.

    Raises:
        TemplateRenderError: If the template has a syntax error or fails to render.
    """
    env = jinja2.Environment(
        loader=jinja2.BaseLoader(),
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        return env.from_string(source).render(dict(context))
    except jinja2.TemplateError as e:
        raise TemplateRenderError(f"Failed to render manifest template: {e}") from e


def render_template_file(path: str | Path, context: Mapping[str, str]) -> str:
    """Read the template at *path* and render it.

    Raises:
        TemplateRenderError: If the file cannot be read or rendered.
    """
    template_path = Path(path)
    try:
        source = template_path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateRenderError(
            f"Error reading template file {template_path}: {e}", template=str(template_path)
        ) from e

    logger.debug("rendering_template", template=str(template_path), variables=len(context))
    try:
        return render_template(source, context)
    except TemplateRenderError as e:
        e.template = str(template_path)
        raise
