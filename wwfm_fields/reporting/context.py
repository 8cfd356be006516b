"""Context dataclasses for rendering aggregated field reports.

This module defines `FieldReportContext`, a typed container that holds all
values expected by the Jinja2 template located in
`wwfm_fields/reporting/templates/field_report.md.j2`.

Keeping context building apart from template rendering lets the shaping
logic (ordering, truncation, bar sizes) be unit-tested without touching
template strings.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime as _dt
from datetime import timezone as _tz
from typing import Any, Dict, List, Mapping, Optional

from wwfm_fields.aggregation.models import Distribution
from wwfm_fields.aggregation.pipeline import METADATA_KEY
from wwfm_fields.exceptions import InvalidDistributionShape
from wwfm_fields.reporting import config

__all__ = [
    "ValueRow",
    "FieldSection",
    "FieldReportContext",
    "build_field_report_context",
]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValueRow:
    """One line of a field section."""

    label: str
    count: int
    percentage: float
    bar: str


@dataclass(slots=True)
class FieldSection:
    """Rendered summary of one aggregated field."""

    field_name: str
    title: str
    mode: str
    total_reports: int
    rows: List[ValueRow] = field(default_factory=list)
    hidden: int = 0  # values beyond MAX_VALUES_PER_FIELD


@dataclass(slots=True)
class FieldReportContext:
    """Container with all fields used by the field report template."""

    title: str
    date: str  # ISO-8601 date string (UTC)
    sections: List[FieldSection] = field(default_factory=list)

    # From the map's _metadata entry, when present
    total_ratings: Optional[int] = None
    data_source: Optional[str] = None
    confidence: Optional[str] = None

    bar_width: int = config.BAR_WIDTH

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` (recursively) for Jinja rendering."""
        return asdict(self)

    # Alias for convenience (e.g. template kwargs)
    __call__ = to_dict


# ---------------------------------------------------------------------------
# Local helper functions
# ---------------------------------------------------------------------------
def _bar(percentage: float, width: int = config.BAR_WIDTH) -> str:
    """Return a bar of ``width`` characters for 100%, clamped to ``width``.

    Array-field rates can exceed 100%; those draw a full bar.
    """
    filled = round(max(0.0, min(float(percentage), 100.0)) / 100 * width)
    return config.BAR_CHAR * filled


def _title_for(field_name: str) -> str:
    return field_name.replace("_", " ").strip().capitalize()


def _section_for(
    field_name: str, distribution: Distribution, *, max_values: int
) -> FieldSection:
    shown = distribution.values[:max_values]
    rows = [
        ValueRow(
            label=item.value,
            count=item.count,
            percentage=item.percentage,
            bar=_bar(item.percentage),
        )
        for item in shown
    ]
    return FieldSection(
        field_name=field_name,
        title=_title_for(field_name),
        mode=distribution.mode,
        total_reports=distribution.total_reports,
        rows=rows,
        hidden=len(distribution.values) - len(shown),
    )


def _metadata_dict(raw: Any) -> Mapping[str, Any]:
    if raw is None:
        return {}
    to_dict = getattr(raw, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return raw if isinstance(raw, Mapping) else {}


# ---------------------------------------------------------------------------
# Conversion helper
# ---------------------------------------------------------------------------
def build_field_report_context(
    aggregated: Mapping[str, Any],
    *,
    title: str = "Aggregated solution fields",
    max_values: int = config.MAX_VALUES_PER_FIELD,
) -> FieldReportContext:
    """Convert an aggregated field map into :class:`FieldReportContext`.

    The function is *pure* – it does not mutate *aggregated*.  Entries that
    are not distributions (legacy raw JSON) and empty distributions are
    skipped so rendering always succeeds.
    """
    sections: List[FieldSection] = []
    for field_name, raw in aggregated.items():
        if field_name == METADATA_KEY:
            continue
        try:
            distribution = Distribution.coerce(raw)
        except InvalidDistributionShape:
            logger.debug("Skipping non-distribution field %s in report", field_name)
            continue
        if distribution.is_empty:
            continue
        sections.append(_section_for(field_name, distribution, max_values=max_values))

    meta = _metadata_dict(aggregated.get(METADATA_KEY))

    return FieldReportContext(
        title=title,
        date=_dt.now(tz=_tz.utc).strftime("%Y-%m-%d"),
        sections=sections,
        total_ratings=meta.get("total_ratings"),
        data_source=meta.get("data_source"),
        confidence=meta.get("confidence"),
    )
