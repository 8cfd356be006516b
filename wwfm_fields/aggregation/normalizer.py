"""Fill default provenance and close percentage drift on a distribution."""

from __future__ import annotations

from dataclasses import replace

from wwfm_fields.aggregation import config
from wwfm_fields.aggregation.models import Distribution, DistributionLike
from wwfm_fields.aggregation.percentages import absorb_remainder

__all__ = ["normalize_distribution_data"]


def normalize_distribution_data(distribution: DistributionLike) -> Distribution:
    """Return a corrected copy of *distribution*; the input is never mutated.

    Missing ``dataSource`` / per-value ``source`` default to
    ``ai_training_data`` and a non-positive ``totalReports`` becomes 100.
    If the percentages do not sum to 100 the difference is added to the
    largest entry in one pass.
    """
    dist = Distribution.coerce(distribution)

    total_reports = dist.total_reports
    if not isinstance(total_reports, (int, float)) or total_reports <= 0:
        total_reports = config.DEFAULT_TOTAL_REPORTS

    values = [
        item if item.source else replace(item, source=config.DEFAULT_DATA_SOURCE)
        for item in dist.values
    ]

    return Distribution(
        mode=dist.mode,
        values=absorb_remainder(values),
        total_reports=total_reports,
        data_source=dist.data_source or config.DEFAULT_DATA_SOURCE,
    )
