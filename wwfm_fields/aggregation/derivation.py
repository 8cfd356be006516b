"""Synthesize ``cost`` / ``cost_type`` for practice and hobby categories.

Practice-shaped solutions (meditation, exercise, habits, hobbies) collect a
``startup_cost`` and an ``ongoing_cost`` instead of a single ``cost``.  The
display layer expects ``cost`` and ``cost_type`` for every category, so they
are derived here when the aggregated map lacks them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Mapping, MutableMapping, Optional

from wwfm_fields.aggregation import config
from wwfm_fields.aggregation.models import Distribution, DistributionValue

logger = logging.getLogger(__name__)

__all__ = [
    "PRACTICE_HOBBY_CATEGORIES",
    "derive_cost_fields",
    "derive_cost_fields_for_category",
]

PRACTICE_HOBBY_CATEGORIES: FrozenSet[str] = frozenset(
    {
        "meditation_mindfulness",
        "exercise_movement",
        "habits_routines",
        "hobbies_activities",
    }
)

_NOT_MEANINGFUL_MARKERS = ("don't remember", "unknown")


def _mode_of(distribution: Any) -> Optional[str]:
    """Return the mode of a ``Distribution`` or its JSON shape; *None* if malformed."""
    if isinstance(distribution, Distribution):
        return distribution.mode
    if isinstance(distribution, Mapping):
        mode = distribution.get("mode")
        return mode if isinstance(mode, str) else None
    return None


def _is_meaningful(distribution: Any) -> bool:
    mode = _mode_of(distribution)
    if mode is None:
        return False
    lowered = mode.lower()
    return not any(marker in lowered for marker in _NOT_MEANINGFUL_MARKERS)


def _is_free(distribution: Any) -> bool:
    mode = _mode_of(distribution)
    return mode is not None and "free" in mode.lower()


def _single_value(label: str) -> Distribution:
    return Distribution(
        mode=label,
        values=(
            DistributionValue(
                value=label,
                count=config.DEFAULT_TOTAL_REPORTS,
                percentage=100,
                source=config.DEFAULT_DATA_SOURCE,
            ),
        ),
        total_reports=config.DEFAULT_TOTAL_REPORTS,
        data_source=config.DEFAULT_DATA_SOURCE,
    )


def derive_cost_fields(category: str, aggregated_fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the ``cost`` / ``cost_type`` entries to add to *aggregated_fields*.

    Pure: the result is a patch (possibly empty) and nothing is mutated.
    Fields already present are never overwritten.
    """
    if category not in PRACTICE_HOBBY_CATEGORIES:
        return {}

    startup = aggregated_fields.get("startup_cost")
    ongoing = aggregated_fields.get("ongoing_cost")
    if startup is None and ongoing is None:
        return {}

    meaningful_startup = _is_meaningful(startup)
    meaningful_ongoing = _is_meaningful(ongoing)
    paid_startup = meaningful_startup and not _is_free(startup)
    paid_ongoing = meaningful_ongoing and not _is_free(ongoing)

    patch: Dict[str, Any] = {}

    if not aggregated_fields.get("cost"):
        if paid_ongoing:
            derived = ongoing
        elif paid_startup:
            derived = startup
        elif meaningful_ongoing:
            derived = ongoing
        elif meaningful_startup:
            derived = startup
        else:
            derived = ongoing if ongoing is not None else startup
        if derived is not None:
            patch["cost"] = derived

    if not aggregated_fields.get("cost_type"):
        cost_type: Optional[str] = None
        if paid_ongoing and paid_startup:
            cost_type = "dual"
        elif paid_ongoing:
            cost_type = "recurring"
        elif paid_startup:
            cost_type = "one_time"
        elif meaningful_ongoing or meaningful_startup:
            cost_type = "free" if _is_free(ongoing) or _is_free(startup) else "unknown"

        if cost_type is not None:
            patch["cost_type"] = _single_value(cost_type)

    if patch:
        logger.debug("Derived %s for category %s", sorted(patch), category)
    return patch


def derive_cost_fields_for_category(
    category: str,
    aggregated_fields: MutableMapping[str, Any],
    solution_fields: MutableMapping[str, Any],
) -> None:
    """Apply :func:`derive_cost_fields` to both maps in place."""
    patch = derive_cost_fields(category, aggregated_fields)
    aggregated_fields.update(patch)
    solution_fields.update(patch)
