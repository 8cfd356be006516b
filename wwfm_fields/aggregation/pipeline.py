"""Turn the full report set of one goal/solution pairing into a field map.

The map is always recomputed from scratch; callers persist the result
(see :mod:`wwfm_fields.queue_processor` for the serialized write path).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from wwfm_fields.aggregation.aggregator import (
    aggregate_array_field,
    aggregate_boolean_field,
    aggregate_value_field,
)
from wwfm_fields.aggregation.deduplicator import deduplicate_distribution_data
from wwfm_fields.aggregation.derivation import derive_cost_fields
from wwfm_fields.aggregation.metadata import compute_rating_metadata
from wwfm_fields.aggregation.models import AggregatedFieldMap, Distribution

logger = logging.getLogger(__name__)

__all__ = [
    "FieldKind",
    "FIELD_PLAN",
    "METADATA_KEY",
    "compute_aggregates",
    "serialize_field_map",
]

METADATA_KEY = "_metadata"


class FieldKind(str, Enum):
    """Shape of a tracked field on the report rows."""

    VALUE = "value"
    ARRAY = "array"
    BOOLEAN = "boolean"


_AGGREGATORS: Dict[FieldKind, Callable[[Iterable[Any], str], Distribution]] = {
    FieldKind.VALUE: aggregate_value_field,
    FieldKind.ARRAY: aggregate_array_field,
    FieldKind.BOOLEAN: aggregate_boolean_field,
}

_V, _A, _B = FieldKind.VALUE, FieldKind.ARRAY, FieldKind.BOOLEAN

# Every field the rating forms collect, grouped roughly by form.
FIELD_PLAN: Mapping[str, FieldKind] = {
    # shared
    "time_to_results": _V,
    "side_effects": _A,
    "challenges": _A,
    # cost
    "cost": _V,
    "startup_cost": _V,
    "ongoing_cost": _V,
    "brand": _V,
    # frequency / length
    "frequency": _V,
    "session_frequency": _V,
    "length_of_use": _V,
    "practice_length": _V,
    "session_length": _V,
    "time_commitment": _V,
    "wait_time": _V,
    "insurance_coverage": _V,
    "format": _V,
    # dosage
    "dosage_amount": _V,
    "dosage_unit": _V,
    "time_of_day": _A,
    "with_food": _B,
    # apps
    "usage_frequency": _V,
    "subscription_type": _V,
    "platform": _V,
    # practices
    "duration": _V,
    "best_time": _V,
    "location": _V,
    # lifestyle
    "weekly_prep_time": _V,
    "previous_sleep_hours": _V,
    "still_following": _B,
    "sustainability_reason": _V,
    "social_impact": _V,
    "sleep_quality_change": _V,
    "specific_approach": _V,
    "cost_impact": _V,
    # purchases
    "purchase_cost_type": _V,
    "cost_range": _V,
    "product_type": _V,
    "ease_of_use": _V,
    "learning_difficulty": _V,
    "completion_status": _V,
    # communities
    "meeting_frequency": _V,
    "group_size": _V,
    "payment_frequency": _V,
    "commitment_type": _V,
    "accessibility_level": _V,
    "leadership_style": _V,
    # financial
    "financial_benefit": _V,
    "access_time": _V,
    "provider": _V,
    "minimum_requirements": _A,
    # services
    "specialty": _V,
    "response_time": _V,
    "completed_treatment": _V,
    "typical_length": _V,
    "availability": _A,
    "notes": _V,
}


def _rank_by_count(distribution: Distribution) -> Distribution:
    """Re-sort merged values by count and point ``mode`` at the top entry.

    A merge can lift a later entry above the old mode; the sort is stable so
    ties keep first-seen order.
    """
    ranked = sorted(distribution.values, key=lambda item: -item.count)
    if not ranked:
        return distribution
    return replace(distribution, mode=ranked[0].value, values=ranked)


def compute_aggregates(
    reports: Iterable[Any],
    *,
    category: Optional[str] = None,
    plan: Mapping[str, FieldKind] = FIELD_PLAN,
    deduplicate: bool = True,
) -> AggregatedFieldMap:
    """Aggregate every field in *plan* over *reports*.

    Fields nobody reported are left out.  Value and boolean fields are
    deduplicated; array fields are not, because their percentages are
    independent rates rather than a partition.  When *category* is given the
    practice/hobby cost fields are derived.  The ``_metadata`` entry holds a
    :class:`~wwfm_fields.aggregation.metadata.RatingMetadata`.
    """
    rows = list(reports)
    aggregated: AggregatedFieldMap = {}

    for field_name, raw_kind in plan.items():
        kind = FieldKind(raw_kind)
        distribution = _AGGREGATORS[kind](rows, field_name)
        if distribution.total_reports == 0:
            continue
        if deduplicate and kind is not FieldKind.ARRAY:
            distribution = _rank_by_count(deduplicate_distribution_data(distribution))
        aggregated[field_name] = distribution

    if category:
        aggregated.update(derive_cost_fields(category, aggregated))

    aggregated[METADATA_KEY] = compute_rating_metadata(rows)
    logger.info(
        "Computed %d aggregated fields from %d reports",
        len(aggregated) - 1,
        len(rows),
    )
    return aggregated


def serialize_field_map(aggregated: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a JSON-ready copy of *aggregated*; unknown entries pass through."""
    payload: Dict[str, Any] = {}
    for key, value in aggregated.items():
        to_dict = getattr(value, "to_dict", None)
        payload[key] = to_dict() if callable(to_dict) else value
    return payload
