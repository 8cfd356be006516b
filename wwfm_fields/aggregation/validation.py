"""Strict checks for distributions before they are persisted.

Errors make a distribution unusable (bad percentages, dangling mode, unknown
sources).  Warnings flag data that is valid but suspicious, most notably the
too-regular splits that AI generation tends to produce.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from wwfm_fields.aggregation import config
from wwfm_fields.aggregation.models import Distribution, DistributionValue
from wwfm_fields.exceptions import InvalidDistributionShape

__all__ = [
    "VALID_SOURCES",
    "ValidationResult",
    "validate_field_data",
    "needs_regeneration",
    "get_validation_summary",
]

VALID_SOURCES: FrozenSet[str] = frozenset(
    {
        "research",
        "studies",
        "clinical_trials",
        "medical_literature",
        "user_reviews",
        "beauty_experts",
        "consumer_reports",
        "community_feedback",
        "fitness_communities",
        "trainer_recommendations",
        "user_experiences",
        "financial_advisors",
        "user_reports",
        "case_studies",
        "expert_analysis",
        "app_reviews",
        "user_ratings",
        "tech_reviews",
        "hobbyist_communities",
        "enthusiast_forums",
        "instructor_recommendations",
        "participant_feedback",
        "habit_formation_forums",
        "behavior_change_studies",
        "routine_optimization_blogs",
    }
)

_MIN_DIVERSITY = 4


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating one field of one category."""

    is_valid: bool
    field_name: str
    category: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _mechanistic_patterns(values: Sequence[DistributionValue]) -> List[str]:
    issues: List[str] = []
    if not values:
        issues.append("No values in distribution")
        return issues

    percentages = sorted(v.percentage for v in values)

    if len(set(percentages)) == 1 and len(values) > 2:
        issues.append(f"Equal split pattern detected: all values at {percentages[0]}%")
    if len(values) == 4 and all(p == 25 for p in percentages):
        issues.append("Perfect 25% split - appears mechanistic")
    if len(values) == 5 and all(p == 20 for p in percentages):
        issues.append("Perfect 20% split - appears mechanistic")

    if len(values) >= 3:
        step = percentages[1] - percentages[0]
        arithmetic = all(
            abs(percentages[i] - percentages[i - 1] - step) <= 1
            for i in range(1, len(percentages))
        )
        if arithmetic and step > 0:
            issues.append(f"Arithmetic sequence pattern detected ({step}% intervals)")

    return issues


def _allowed_value_errors(
    values: Sequence[DistributionValue], field_name: str, allowed: Sequence[str]
) -> List[str]:
    errors: List[str] = []
    by_lower = {opt.lower(): opt for opt in allowed}
    for item in values:
        if item.value in allowed:
            continue
        match = by_lower.get(item.value.lower())
        if match is not None:
            errors.append(f'Case mismatch for "{item.value}" - should be "{match}"')
        else:
            preview = ", ".join(allowed[:3])
            errors.append(
                f'Invalid value "{item.value}" for {field_name}. Valid options: {preview}...'
            )
    return errors


def _mode_errors(dist: Distribution) -> List[str]:
    if not dist.mode:
        return ["Missing mode value"]
    if any(v.value == dist.mode for v in dist.values):
        return []
    for item in dist.values:
        if item.value.lower() == dist.mode.lower():
            return [f'Mode case mismatch: "{dist.mode}" should be "{item.value}"']
    return [f'Mode "{dist.mode}" is not in values list']


def _percentage_errors(values: Sequence[DistributionValue]) -> List[str]:
    errors: List[str] = []
    total = sum(v.percentage for v in values)
    if total != 100:
        errors.append(f"Percentages must sum to 100 (received {total})")
    for item in values:
        if item.percentage <= 0:
            errors.append(f'Invalid percentage for "{item.value}": {item.percentage}')
    return errors


def _source_errors(values: Sequence[DistributionValue]) -> List[str]:
    return [
        f'Invalid source "{item.source}" for "{item.value}"'
        for item in values
        if item.source not in VALID_SOURCES
    ]


def validate_field_data(
    data: Any,
    field_name: str,
    category: str,
    *,
    allowed_values: Optional[Sequence[str]] = None,
) -> ValidationResult:
    """Validate *data* (a ``Distribution`` or its JSON shape) for one field.

    *allowed_values* enables exact dropdown compliance checks.
    """
    if isinstance(data, Distribution):
        dist = data
    elif isinstance(data, Mapping):
        try:
            dist = Distribution.from_dict(data)
        except InvalidDistributionShape:
            return ValidationResult(False, field_name, category, ["Missing values array"])
    else:
        return ValidationResult(
            False, field_name, category, ["Field data missing or not an object"]
        )

    errors: List[str] = []
    warnings: List[str] = []

    if len(dist.values) < _MIN_DIVERSITY:
        warnings.append(f"Low diversity distribution ({len(dist.values)} values)")

    if allowed_values is not None:
        errors.extend(_allowed_value_errors(dist.values, field_name, list(allowed_values)))
    errors.extend(_mode_errors(dist))
    errors.extend(_percentage_errors(dist.values))
    errors.extend(_source_errors(dist.values))
    warnings.extend(_mechanistic_patterns(dist.values))

    if dist.total_reports <= 0:
        warnings.append("totalReports should be a positive number (default 100 recommended)")
    if dist.data_source != config.DEFAULT_DATA_SOURCE:
        warnings.append(
            f'Unexpected dataSource "{dist.data_source}" (expected "{config.DEFAULT_DATA_SOURCE}")'
        )

    return ValidationResult(
        is_valid=not errors,
        field_name=field_name,
        category=category,
        errors=errors,
        warnings=warnings,
    )


def needs_regeneration(
    data: Any,
    field_name: str,
    category: str,
    *,
    allowed_values: Optional[Sequence[str]] = None,
) -> bool:
    """Return *True* when *data* is absent, malformed or fails validation."""
    if not isinstance(data, (Distribution, Mapping)):
        return True
    if isinstance(data, Mapping) and (
        not data.get("mode") or not isinstance(data.get("values"), list)
    ):
        return True
    result = validate_field_data(
        data, field_name, category, allowed_values=allowed_values
    )
    return not result.is_valid


def get_validation_summary(results: Iterable[ValidationResult]) -> Dict[str, Dict[str, Any]]:
    """Group validation outcomes per category."""
    summary: Dict[str, Dict[str, Any]] = {}
    for result in results:
        entry = summary.setdefault(
            result.category,
            {"fields_validated": 0, "valid": 0, "invalid": 0, "warnings": 0, "errors": []},
        )
        entry["fields_validated"] += 1
        if result.is_valid:
            entry["valid"] += 1
        else:
            entry["invalid"] += 1
            entry["errors"].append({"field": result.field_name, "errors": result.errors})
        entry["warnings"] += len(result.warnings)
    return summary
