"""Merge distribution entries that are the same answer phrased differently.

"Once daily", "once daily" and "1x daily" are one answer to a frequency
question.  :class:`Deduplicator` folds such entries together, keeps the most
presentable label and the best-quality source, then rescales percentages so
they still sum to 100.

The equivalence table is data, not code: pass extra ``synonym_groups`` or
``rules`` to a :class:`Deduplicator` to teach it new phrasings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from wwfm_fields.aggregation.models import Distribution, DistributionLike, DistributionValue
from wwfm_fields.aggregation.percentages import redistribute_to_hundred

logger = logging.getLogger(__name__)

__all__ = [
    "SOURCE_QUALITY_RANKING",
    "DEFAULT_SYNONYM_GROUPS",
    "STANDARD_TERMS",
    "Deduplicator",
    "deduplicate_distribution_data",
]

# Higher is better.  Unknown sources rank 1.
SOURCE_QUALITY_RANKING: Mapping[str, int] = MappingProxyType(
    {
        "research": 10,
        "studies": 9,
        "clinical_trials": 8,
        "medical_literature": 7,
        "consumer_reports": 6,
        "user_experiences": 5,
        "community_feedback": 4,
        "expert_opinions": 3,
        "general_knowledge": 2,
        "fallback": 1,
    }
)

DEFAULT_SYNONYM_GROUPS: Sequence[FrozenSet[str]] = (
    frozenset({"once daily", "daily", "1x daily", "once per day", "one time daily"}),
    frozenset({"twice daily", "2x daily", "two times daily", "twice per day"}),
    frozenset({"as needed", "when needed", "prn", "on demand"}),
)

STANDARD_TERMS: FrozenSet[str] = frozenset(
    {
        "Once daily",
        "Twice daily",
        "Three times daily",
        "Daily",
        "Weekly",
        "Monthly",
        "As needed",
        "Every other day",
    }
)

EquivalenceRule = Callable[[str, str], bool]


def _normalize(value: str) -> str:
    return value.strip().lower()


def _starts_upper(value: str) -> bool:
    return value[:1] == value[:1].upper()


def _starts_lower(value: str) -> bool:
    return value[:1] == value[:1].lower()


@dataclass
class _Bucket:
    """Accumulator entry: the merged value plus every raw label folded into it."""

    item: DistributionValue
    labels: List[str] = field(default_factory=list)


class Deduplicator:
    """Configurable equivalence-based merger for distribution values."""

    def __init__(
        self,
        synonym_groups: Iterable[Iterable[str]] = DEFAULT_SYNONYM_GROUPS,
        *,
        standard_terms: Iterable[str] = STANDARD_TERMS,
        source_ranking: Mapping[str, int] = SOURCE_QUALITY_RANKING,
        rules: Sequence[EquivalenceRule] = (),
    ) -> None:
        self._groups: Dict[str, int] = {}
        for idx, group in enumerate(synonym_groups):
            for term in group:
                self._groups[_normalize(term)] = idx
        self._standard_terms = frozenset(standard_terms)
        self._source_ranking = source_ranking
        self._rules = tuple(rules)

    # ------------------------------------------------------------------
    # Equivalence & tie-break policy
    # ------------------------------------------------------------------
    def are_duplicates(self, first: str, second: str) -> bool:
        if first == second:
            return True
        norm_first, norm_second = _normalize(first), _normalize(second)
        if norm_first == norm_second:
            return True
        group = self._groups.get(norm_first)
        if group is not None and group == self._groups.get(norm_second):
            return True
        return any(rule(first, second) for rule in self._rules)

    def source_quality(self, source: Optional[str]) -> int:
        return self._source_ranking.get(source or "", 1)

    def better_source(self, first: Optional[str], second: Optional[str]) -> Optional[str]:
        if self.source_quality(first) >= self.source_quality(second):
            return first
        return second

    def canonical_value(self, first: str, second: str) -> str:
        """Pick the label to keep when *first* and *second* are merged."""
        if first.lower() == second.lower():
            if _starts_upper(first) and _starts_lower(second):
                return first
            if _starts_upper(second) and _starts_lower(first):
                return second

        first_standard = first in self._standard_terms
        second_standard = second in self._standard_terms
        if second_standard and not first_standard:
            return second
        return first

    def merge(self, first: DistributionValue, second: DistributionValue) -> DistributionValue:
        return DistributionValue(
            value=self.canonical_value(first.value, second.value),
            count=first.count + second.count,
            percentage=first.percentage + second.percentage,
            source=self.better_source(first.source, second.source),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def deduplicate(self, distribution: DistributionLike) -> Distribution:
        """Return *distribution* with duplicate entries merged.

        Raises
        ------
        InvalidDistributionShape
            If *distribution* has no ``values`` array.
        """
        dist = Distribution.coerce(distribution)
        if len(dist.values) <= 1:
            return dist

        buckets: List[_Bucket] = []
        for item in dist.values:
            for bucket in buckets:
                if self.are_duplicates(bucket.item.value, item.value):
                    bucket.item = self.merge(bucket.item, item)
                    bucket.labels.append(item.value)
                    break
            else:
                buckets.append(_Bucket(item=item, labels=[item.value]))

        if len(buckets) < len(dist.values):
            logger.debug(
                "Merged %d duplicate values (mode=%s)",
                len(dist.values) - len(buckets),
                dist.mode,
            )

        merged = redistribute_to_hundred([b.item for b in buckets])

        # Mode is kept, but re-pointed if its label was folded into another one.
        mode = dist.mode
        if mode and all(item.value != mode for item in merged):
            for bucket, item in zip(buckets, merged):
                if mode in bucket.labels:
                    mode = item.value
                    break

        return Distribution(
            mode=mode,
            values=merged,
            total_reports=dist.total_reports,
            data_source=dist.data_source,
        )


_default = Deduplicator()


def deduplicate_distribution_data(distribution: DistributionLike) -> Distribution:
    """Deduplicate *distribution* with the default equivalence table."""
    return _default.deduplicate(distribution)
