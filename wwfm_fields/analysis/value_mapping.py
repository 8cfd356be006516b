"""Map free-text model answers onto exact dropdown options.

The model is told to answer with the allowed options verbatim but often
drifts ("$75", "about 2 weeks", "bi-weekly").  Cost fields are matched by
amount, time fields by duration in weeks, everything else by a
case-insensitive match or a small per-field alias table.  Anything that
cannot be placed falls back to the first option.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from wwfm_fields.aggregation.models import Distribution

_logger = logging.getLogger(__name__)

__all__ = [
    "COST_FIELDS",
    "TIME_FIELDS",
    "FIELD_ALIASES",
    "map_cost_value",
    "map_time_value",
    "map_field_value",
    "map_distribution_values",
    "map_all_fields",
]

COST_FIELDS = frozenset({"cost", "startup_cost", "ongoing_cost", "cost_impact"})
TIME_FIELDS = frozenset({"time_to_results", "time_to_complete", "access_time", "recovery_time"})

FIELD_ALIASES: Dict[str, Dict[str, str]] = {
    "frequency": {
        "once daily": "Daily",
        "twice daily": "Daily",
        "three times daily": "5-6 times per week",
        "daily practice": "Daily",
        "daily sessions": "Daily",
        "weekly practice": "Weekly",
        "weekly sessions": "Weekly",
        "three-four times per week": "3-4 times per week",
        "three times per week": "3-4 times per week",
        "four times per week": "3-4 times per week",
        "five times per week": "5-6 times per week",
        "six times per week": "5-6 times per week",
        "multiple times per day": "Daily",
        "as-needed practice": "As needed",
    },
    "session_frequency": {
        "weekly sessions": "Weekly",
        "once weekly": "Weekly",
        "weekly therapy": "Weekly",
        "weekly check-ins": "Weekly",
        "bi-weekly": "Fortnightly",
        "biweekly": "Fortnightly",
        "every other week": "Fortnightly",
        "twice per month": "Fortnightly",
        "monthly check-ins": "Monthly",
        "monthly sessions": "Monthly",
        "daily check-ins": "Multiple times per week",
        "two times per week": "Multiple times per week",
        "twice weekly": "Multiple times per week",
        "multiple weekly sessions": "Multiple times per week",
        "as-needed sessions": "As needed",
        "on demand": "As needed",
        "one off": "One-time only",
        "single session": "One-time only",
    },
    "format": {
        "video/online": "Virtual/Online",
        "online (video)": "Virtual/Online",
        "online only": "Virtual/Online",
        "in-person only": "In-person",
        "phone call": "Phone",
        "phone session": "Phone",
    },
}

_AMOUNT = re.compile(r"\$?(\d+(?:\.\d+)?)")
_UNDER = re.compile(r"Under \$?(\d+(?:\.\d+)?)")
_OVER = re.compile(r"Over \$?(\d+(?:\.\d+)?)")
_COST_RANGE = re.compile(r"\$?(\d+(?:\.\d+)?)-\$?(\d+(?:\.\d+)?)")
_COST_POINT = re.compile(r"\$?(\d+(?:\.\d+)?)-?\$?(\d+(?:\.\d+)?)?")

_UNIT = r"(hour|day|week|month|year)s?"
_DURATION = re.compile(r"(\d+(?:\.\d+)?)\s*" + _UNIT, re.IGNORECASE)
_DURATION_RANGE = re.compile(
    r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*" + _UNIT, re.IGNORECASE
)
_DURATION_OPEN = re.compile(r"(\d+(?:\.\d+)?)\+\s*" + _UNIT, re.IGNORECASE)

# Weeks per unit.
_WEEKS = {"hour": 1 / 168, "day": 1 / 7, "week": 1.0, "month": 4.0, "year": 52.0}


def _direct_match(value: str, options: Sequence[str]) -> Optional[str]:
    lowered = value.strip().lower()
    for option in options:
        if option.lower() == lowered:
            return option
    return None


def map_cost_value(value: str, options: Sequence[str]) -> str:
    """Place a cost answer such as ``"$75"`` or ``"free"`` in a price band."""
    lowered = value.lower()
    if "free" in lowered or value.strip() in ("0", "$0"):
        return next((opt for opt in options if "free" in opt.lower()), options[0])

    match = _AMOUNT.search(value)
    if match is None:
        return options[0]
    amount = float(match.group(1))

    for option in options:
        if "Under" in option:
            bound = _UNDER.search(option)
            if bound and amount < float(bound.group(1)):
                return option
        elif "Over" in option:
            bound = _OVER.search(option)
            if bound and amount > float(bound.group(1)):
                return option
        elif "-" in option:
            band = _COST_RANGE.search(option)
            if band and float(band.group(1)) <= amount <= float(band.group(2)):
                return option

    closest, best = options[0], math.inf
    for option in options:
        point = _COST_POINT.search(option)
        if point is None:
            continue
        low = float(point.group(1))
        high = float(point.group(2)) if point.group(2) else low
        diff = abs(amount - (low + high) / 2)
        if diff < best:
            closest, best = option, diff
    return closest


def _option_span(option: str) -> Optional[Tuple[float, float]]:
    """Return the (min, max) duration in weeks an option covers."""
    lowered = option.lower()
    if "immediate" in lowered:
        return 0.0, 0.1
    band = _DURATION_RANGE.search(option)
    if band:
        unit = _WEEKS[band.group(3).lower()]
        return float(band.group(1)) * unit, float(band.group(2)) * unit
    open_ended = _DURATION_OPEN.search(option)
    if open_ended:
        return float(open_ended.group(1)) * _WEEKS[open_ended.group(2).lower()], math.inf
    if "days" in lowered:
        return 0.0, 1.0
    if "year" in lowered:
        return 52.0, 104.0
    return None


def map_time_value(value: str, options: Sequence[str]) -> str:
    """Place a duration answer such as ``"10 days"`` in the nearest time band.

    Options without a recognisable duration ("Still evaluating") only match
    by name.  Ties go to the earlier option.
    """
    lowered = value.strip().lower()
    if "immediate" in lowered:
        return next((opt for opt in options if "immediate" in opt.lower()), options[0])

    match = _DURATION.search(value)
    if match is None:
        first_word = lowered.split(" ")[0]
        return next((opt for opt in options if first_word in opt.lower()), options[0])

    weeks = float(match.group(1)) * _WEEKS[match.group(2).lower()]

    closest, best = options[0], math.inf
    for option in options:
        span = _option_span(option)
        if span is None:
            continue
        low, high = span
        diff = 0.0 if low <= weeks <= high else min(abs(weeks - low), abs(weeks - high))
        if diff < best:
            closest, best = option, diff
    return closest


def map_field_value(field_name: str, value: str, options: Sequence[str]) -> str:
    """Return the dropdown option *value* most plausibly means.

    Exact options (ignoring case) always map to themselves.
    """
    if not options:
        return value

    direct = _direct_match(value, options)
    if direct is not None:
        return direct

    if field_name in COST_FIELDS:
        return map_cost_value(value, options)
    if field_name in TIME_FIELDS:
        return map_time_value(value, options)

    alias = FIELD_ALIASES.get(field_name, {}).get(value.strip().lower())
    if alias is not None and alias in options:
        return alias

    _logger.debug("No option for %s value %r, using %r", field_name, value, options[0])
    return options[0]


def map_distribution_values(
    distribution: Distribution, field_name: str, options: Sequence[str]
) -> Distribution:
    """Map the mode and every value label of *distribution* onto *options*.

    Labels that land on the same option are left as separate entries for the
    deduplicator to merge.
    """
    if not options:
        return distribution
    return replace(
        distribution,
        mode=map_field_value(field_name, distribution.mode, options) if distribution.mode else "",
        values=tuple(
            replace(item, value=map_field_value(field_name, item.value, options))
            for item in distribution.values
        ),
    )


def _map_items(field_name: str, items: List[Any], options: Sequence[str]) -> List[Any]:
    return [
        map_field_value(field_name, item, options) if isinstance(item, str) else item
        for item in items
    ]


def map_all_fields(
    fields: Mapping[str, Any], options_by_field: Mapping[str, Sequence[str]]
) -> Dict[str, Any]:
    """Map every field of a solution's field map onto its dropdown options.

    Strings, lists of strings and distributions (as objects or JSON dicts) are
    mapped; ``None`` and anything else pass through unchanged.
    """
    mapped: Dict[str, Any] = {}
    for name, value in fields.items():
        options = options_by_field.get(name, ())
        if value is None:
            mapped[name] = value
        elif isinstance(value, str):
            mapped[name] = map_field_value(name, value, options)
        elif isinstance(value, list):
            mapped[name] = _map_items(name, value, options)
        elif isinstance(value, Distribution):
            mapped[name] = map_distribution_values(value, name, options)
        elif isinstance(value, Mapping) and "mode" in value and "values" in value:
            entry = dict(value)
            if isinstance(entry["mode"], str):
                entry["mode"] = map_field_value(name, entry["mode"], options)
            if isinstance(entry["values"], list):
                entry["values"] = [
                    {**item, "value": map_field_value(name, item["value"], options)}
                    if isinstance(item, Mapping) and isinstance(item.get("value"), str)
                    else item
                    for item in entry["values"]
                ]
            mapped[name] = entry
        else:
            mapped[name] = value
    return mapped
