"""Descriptive envelopes stored next to an aggregated field map.

Neither record plays any statistical role; they describe where the numbers
came from and how much to trust them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime as _dt
from datetime import timezone as _tz
from typing import Any, Dict, Iterable, Mapping, Optional

from wwfm_fields.aggregation import config
from wwfm_fields.aggregation.models import user_id_of

__all__ = [
    "AggregatedMetadata",
    "RatingMetadata",
    "build_aggregated_metadata",
    "compute_rating_metadata",
    "confidence_for",
]


def _now_iso() -> str:
    return _dt.now(tz=_tz.utc).isoformat()


@dataclass(slots=True)
class AggregatedMetadata:
    """Envelope attached to AI-seeded field maps."""

    confidence: Any
    ai_enhanced: bool
    generated_at: str
    data_source: str
    value_mapped: bool
    mapping_version: str
    source_solution: str
    target_goal: str
    user_ratings: int

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` suitable for a JSON column."""
        return asdict(self)


@dataclass(slots=True)
class RatingMetadata:
    """``_metadata`` entry written by :func:`compute_aggregates`."""

    total_ratings: int
    last_aggregated: str
    data_source: str  # "user" | "ai" | "mixed"
    confidence: str  # "high" | "medium" | "low"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` suitable for a JSON column."""
        return asdict(self)


def build_aggregated_metadata(
    existing: Optional[Mapping[str, Any]],
    solution_name: str,
    goal_title: str,
) -> AggregatedMetadata:
    """Build the envelope for an AI-generated field map.

    ``confidence`` and ``user_ratings`` are carried over from *existing*
    when present; everything else is stamped fresh.
    """
    existing = existing or {}
    user_ratings = existing.get("user_ratings")
    return AggregatedMetadata(
        confidence=existing.get("confidence") or "high",
        ai_enhanced=True,
        generated_at=_now_iso(),
        data_source=config.DEFAULT_DATA_SOURCE,
        value_mapped=True,
        mapping_version=config.MAPPING_VERSION,
        source_solution=solution_name,
        target_goal=goal_title,
        user_ratings=user_ratings if user_ratings is not None else 0,
    )


def confidence_for(user_ratings: int) -> str:
    if user_ratings >= config.CONFIDENCE_HIGH_MIN:
        return "high"
    if user_ratings >= config.CONFIDENCE_MEDIUM_MIN:
        return "medium"
    return "low"


def compute_rating_metadata(reports: Iterable[Any]) -> RatingMetadata:
    """Summarize where *reports* came from (humans, AI seed rows, or both)."""
    total = 0
    ai_rows = 0
    for report in reports:
        total += 1
        if user_id_of(report) == config.AI_FOUNDATION_USER_ID:
            ai_rows += 1
    user_rows = total - ai_rows

    if ai_rows and user_rows:
        data_source = "mixed"
    elif ai_rows:
        data_source = "ai"
    else:
        data_source = "user"

    return RatingMetadata(
        total_ratings=total,
        last_aggregated=_now_iso(),
        data_source=data_source,
        confidence=confidence_for(user_rows),
    )
