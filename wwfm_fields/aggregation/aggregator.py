"""Aggregate raw report rows into per-field :class:`Distribution` objects.

Three field shapes are supported:

* scalar fields (``cost``, ``frequency``...): one value per report,
  percentages partition the reports and sum to 100
* array fields (``side_effects``, ``time_of_day``...): several values per
  report, percentages are co-occurrence rates over reports and may sum to
  more than 100
* boolean fields (``still_following``...): bucketed as ``Yes`` / ``No``

Reports missing a field are skipped for that field only; nothing here raises
on bad data.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, List, Optional

from wwfm_fields.aggregation.models import (
    Distribution,
    DistributionValue,
    solution_fields_of,
)
from wwfm_fields.aggregation.percentages import absorb_remainder, share_of

logger = logging.getLogger(__name__)

__all__ = [
    "aggregate_value_field",
    "aggregate_array_field",
    "aggregate_boolean_field",
]

_YES = "Yes"
_NO = "No"
_BOOLEAN_STRINGS = {"true": True, "yes": True, "false": False, "no": False}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _stringify(value: Any) -> str:
    """Convert a raw field value to its category label (exact, no case folding)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _field_value(report: Any, field_name: str) -> Optional[Any]:
    fields = solution_fields_of(report)
    if fields is None:
        return None
    return fields.get(field_name)


def _build(counts: "Counter[str]", total: int, *, partition: bool) -> Distribution:
    if total == 0 or not counts:
        return Distribution.empty()

    # most_common() is stable, so ties keep first-seen order.
    values: List[DistributionValue] = [
        DistributionValue(value=label, count=count, percentage=share_of(count, total))
        for label, count in counts.most_common()
    ]
    if partition:
        values = absorb_remainder(values)

    return Distribution(mode=values[0].value, values=values, total_reports=total)


def aggregate_value_field(reports: Iterable[Any], field_name: str) -> Distribution:
    """Return the distribution of a single-valued field across *reports*.

    ``total_reports`` counts only reports that carried a non-empty value.
    """
    counts: Counter[str] = Counter()
    total = 0
    for report in reports:
        raw = _field_value(report, field_name)
        if _is_missing(raw):
            continue
        if isinstance(raw, (list, tuple, dict, set)):
            logger.debug("Skipping non-scalar value for %s: %r", field_name, raw)
            continue
        total += 1
        counts[_stringify(raw)] += 1

    logger.debug("Aggregated %s over %d reports", field_name, total)
    return _build(counts, total, partition=True)


def aggregate_array_field(reports: Iterable[Any], field_name: str) -> Distribution:
    """Return co-occurrence rates for a multi-select field.

    Each element of a report's list counts independently and the percentage
    denominator is the number of reports with a non-empty list, so
    percentages do not sum to 100.
    """
    counts: Counter[str] = Counter()
    total = 0
    for report in reports:
        raw = _field_value(report, field_name)
        if not isinstance(raw, (list, tuple)) or not raw:
            continue
        items = [_stringify(item) for item in raw if not _is_missing(item)]
        if not items:
            continue
        total += 1
        for item in items:
            counts[item] += 1

    logger.debug("Aggregated array field %s over %d reports", field_name, total)
    return _build(counts, total, partition=False)


def aggregate_boolean_field(reports: Iterable[Any], field_name: str) -> Distribution:
    """Return a ``Yes`` / ``No`` distribution for a boolean field.

    Real booleans and their common string spellings ("true", "no" ...) are
    counted; ``None`` and anything else is skipped.
    """
    counts: Counter[str] = Counter()
    total = 0
    for report in reports:
        raw = _field_value(report, field_name)
        if isinstance(raw, str):
            raw = _BOOLEAN_STRINGS.get(raw.strip().lower())
        if not isinstance(raw, bool):
            continue
        total += 1
        counts[_YES if raw else _NO] += 1

    logger.debug("Aggregated boolean field %s over %d reports", field_name, total)
    return _build(counts, total, partition=True)
