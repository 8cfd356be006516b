"""Percentage arithmetic shared by the aggregator, normalizer and deduplicator.

Every distribution that represents a partition of its reports must have
percentages summing to exactly 100.  Rounding each share independently
drifts from 100, so all call sites funnel through the helpers here.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import List, Sequence

from wwfm_fields.aggregation.models import DistributionValue

__all__ = [
    "round_half_up",
    "share_of",
    "largest_index",
    "absorb_remainder",
    "redistribute_to_hundred",
]

_TOLERANCE = 0.01


def round_half_up(number: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (62.5 -> 63)."""
    return int(math.floor(number + 0.5))


def share_of(count: int, total: int) -> int:
    """Return ``count / total`` as a rounded whole percentage (0 when *total* is 0)."""
    if total <= 0:
        return 0
    return round_half_up(count / total * 100)


def largest_index(values: Sequence[DistributionValue]) -> int:
    """Index of the entry with the largest percentage; first one wins ties."""
    best = 0
    for idx, item in enumerate(values):
        if item.percentage > values[best].percentage:
            best = idx
    return best


def absorb_remainder(values: Sequence[DistributionValue]) -> List[DistributionValue]:
    """Add ``100 - sum(percentages)`` to the largest entry in a single pass.

    Empty input is returned as an empty list.
    """
    adjusted = list(values)
    if not adjusted:
        return adjusted

    difference = 100 - sum(v.percentage for v in adjusted)
    if difference != 0:
        idx = largest_index(adjusted)
        adjusted[idx] = replace(
            adjusted[idx], percentage=adjusted[idx].percentage + difference
        )
    return adjusted


def redistribute_to_hundred(
    values: Sequence[DistributionValue],
) -> List[DistributionValue]:
    """Return *values* rescaled so their percentages sum to exactly 100.

    * sum already 100 (within 0.01): returned untouched
    * sum 0: 100 split evenly, remainder handed out one point at a time
      to the leading entries
    * otherwise: each share scaled by ``100 / sum`` and rounded, with any
      leftover absorbed by the largest entry
    """
    current = list(values)
    if not current:
        return current

    total = sum(v.percentage for v in current)
    if abs(total - 100) < _TOLERANCE:
        return current

    if total == 0:
        equal, remainder = divmod(100, len(current))
        return [
            replace(item, percentage=equal + 1 if idx < remainder else equal)
            for idx, item in enumerate(current)
        ]

    factor = 100 / total
    scaled = [
        replace(item, percentage=round_half_up(item.percentage * factor))
        for item in current
    ]
    return absorb_remainder(scaled)
