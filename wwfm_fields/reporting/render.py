"""Render aggregated field maps as Markdown using Jinja2 templates."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader

from wwfm_fields.reporting.context import build_field_report_context

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Markdown output doesn't need HTML escaping – it breaks apostrophes etc.
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_field_report(
    aggregated: Mapping[str, Any], *, title: str = "Aggregated solution fields"
) -> str:
    """Render a Markdown report for an aggregated field map."""

    context = build_field_report_context(aggregated, title=title)

    template = _env.get_template("field_report.md.j2")
    report = template.render(**context.to_dict())
    logger.debug(
        "Rendered field report title=%s sections=%d len=%d",
        title,
        len(context.sections),
        len(report),
    )
    return report
