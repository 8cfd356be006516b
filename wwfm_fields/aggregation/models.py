"""Data structures shared by the field aggregation pipeline.

``Distribution`` is the unit everything in :mod:`wwfm_fields.aggregation`
produces and consumes.  It is persisted as JSON (camelCase keys) next to a
goal/solution link, so :meth:`Distribution.to_dict` is the wire shape and
:meth:`Distribution.from_dict` the only way raw JSON enters the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from wwfm_fields.exceptions import InvalidDistributionShape

__all__ = [
    "DistributionValue",
    "Distribution",
    "DistributionLike",
    "RatingReport",
    "AggregatedFieldMap",
    "solution_fields_of",
    "user_id_of",
]


def _as_number(raw: Any) -> float:
    """Coerce a JSON number (or numeric string) to int/float; missing means 0."""
    if raw is None:
        return 0
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return raw
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise InvalidDistributionShape(f"Expected a number, got {raw!r}") from None
    return int(number) if number.is_integer() else number


@dataclass(frozen=True, slots=True)
class DistributionValue:
    """One observed categorical outcome and its share of the population."""

    value: str
    count: int
    percentage: float
    source: Optional[str] = None  # provenance tag, only used for merge tie-breaks

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "value": self.value,
            "count": self.count,
            "percentage": self.percentage,
        }
        if self.source is not None:
            payload["source"] = self.source
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DistributionValue":
        if not isinstance(data, Mapping):
            raise InvalidDistributionShape(
                f"Distribution value must be an object, got {type(data).__name__}"
            )
        return cls(
            value=str(data.get("value", "")),
            count=int(_as_number(data.get("count"))),
            percentage=_as_number(data.get("percentage")),
            source=data.get("source") or None,
        )


@dataclass(frozen=True, slots=True)
class Distribution:
    """Aggregated categorical summary of one field across all reports.

    ``total_reports`` is either the real number of contributing reports or
    ``100`` for synthetic data whose true sample size is unknown.
    """

    mode: str
    values: Tuple[DistributionValue, ...] = field(default_factory=tuple)
    total_reports: int = 0
    data_source: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept any iterable for convenience but always store a tuple.
        if not isinstance(self.values, tuple):
            object.__setattr__(self, "values", tuple(self.values))

    @property
    def is_empty(self) -> bool:
        return not self.values or self.total_reports <= 0

    def percentage_total(self) -> float:
        return sum(v.percentage for v in self.values)

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return the JSON-ready camelCase mapping persisted by callers."""
        payload: Dict[str, Any] = {
            "mode": self.mode,
            "values": [v.to_dict() for v in self.values],
            "totalReports": self.total_reports,
        }
        if self.data_source is not None:
            payload["dataSource"] = self.data_source
        return payload

    @classmethod
    def from_dict(cls, data: Any) -> "Distribution":
        """Build a :class:`Distribution` from its JSON shape.

        Raises
        ------
        InvalidDistributionShape
            If *data* is not a mapping or ``values`` is missing / not a list.
        """
        if not isinstance(data, Mapping):
            raise InvalidDistributionShape(
                f"Distribution must be an object, got {type(data).__name__}"
            )
        raw_values = data.get("values")
        if not isinstance(raw_values, (list, tuple)):
            raise InvalidDistributionShape("Distribution is missing a values array")

        total = data.get("totalReports", data.get("total_reports"))
        return cls(
            mode=str(data.get("mode") or ""),
            values=tuple(DistributionValue.from_dict(v) for v in raw_values),
            total_reports=(
                total
                if isinstance(total, (int, float)) and not isinstance(total, bool)
                else 0
            ),
            data_source=data.get("dataSource", data.get("data_source")) or None,
        )

    @classmethod
    def coerce(cls, data: "DistributionLike") -> "Distribution":
        """Return *data* unchanged if already a ``Distribution``, else parse it."""
        if isinstance(data, Distribution):
            return data
        return cls.from_dict(data)

    @classmethod
    def empty(cls) -> "Distribution":
        return cls(mode="", values=(), total_reports=0)


DistributionLike = Union[Distribution, Mapping[str, Any]]

# Field name -> Distribution, or arbitrary JSON for legacy/raw fields.
AggregatedFieldMap = Dict[str, Any]


@dataclass(slots=True)
class RatingReport:
    """One raw rating (human or AI seed) as supplied by the persistence layer."""

    solution_fields: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None


def solution_fields_of(report: Any) -> Optional[Mapping[str, Any]]:
    """Return the ``solution_fields`` map of *report* or *None*.

    Reports may be plain mappings (rows straight from the database) or any
    object exposing a ``solution_fields`` attribute.
    """
    if isinstance(report, Mapping):
        fields = report.get("solution_fields")
    else:
        fields = getattr(report, "solution_fields", None)
    return fields if isinstance(fields, Mapping) else None


def user_id_of(report: Any) -> Optional[str]:
    if isinstance(report, Mapping):
        return report.get("user_id")
    return getattr(report, "user_id", None)

