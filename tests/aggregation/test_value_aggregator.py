"""Unit tests for aggregation.aggregator (scalar, array and boolean fields)."""

from __future__ import annotations

from wwfm_fields.aggregation.aggregator import (
    aggregate_array_field,
    aggregate_boolean_field,
    aggregate_value_field,
)
from wwfm_fields.aggregation.models import Distribution, RatingReport


def _rows(field: str, values: list) -> list[dict]:
    return [{"solution_fields": {field: v}} for v in values]


def test_value_field_mode_and_percentages():
    ratings = _rows("dosage_amount", ["1000", "1000", "2000", "1000"])

    result = aggregate_value_field(ratings, "dosage_amount")

    assert result.to_dict() == {
        "mode": "1000",
        "values": [
            {"value": "1000", "count": 3, "percentage": 75},
            {"value": "2000", "count": 1, "percentage": 25},
        ],
        "totalReports": 4,
    }


def test_value_field_missing_fields_excluded_from_denominator():
    ratings = [
        {"solution_fields": {"dosage_amount": "1000"}},
        {"solution_fields": {}},
        {"solution_fields": {"dosage_amount": None}},
        {"solution_fields": {"dosage_amount": "  "}},
        {},
        {"solution_fields": {"dosage_amount": "2000"}},
    ]

    result = aggregate_value_field(ratings, "dosage_amount")

    assert result.total_reports == 2
    assert result.mode == "1000"  # tie -> first encountered
    assert [(v.value, v.count, v.percentage) for v in result.values] == [
        ("1000", 1, 50),
        ("2000", 1, 50),
    ]


def test_value_field_zero_reports_is_empty_distribution():
    result = aggregate_value_field([], "cost")

    assert result == Distribution.empty()
    assert result.to_dict() == {"mode": "", "values": [], "totalReports": 0}


def test_value_field_percentages_close_to_hundred():
    ratings = _rows("format", ["Online", "In-person", "Hybrid"])

    result = aggregate_value_field(ratings, "format")

    assert sum(v.percentage for v in result.values) == 100
    assert [v.percentage for v in result.values] == [34, 33, 33]


def test_value_field_conserves_mass_and_mode_is_max_count():
    labels = ["Weekly"] * 4 + ["Monthly"] * 2 + ["Daily"] * 5 + ["As needed"]
    result = aggregate_value_field(_rows("meeting_frequency", labels), "meeting_frequency")

    assert sum(v.count for v in result.values) == result.total_reports == len(labels)
    assert result.mode == max(result.values, key=lambda v: v.count).value == "Daily"
    assert sum(v.percentage for v in result.values) == 100


def test_value_field_no_case_folding_and_numbers_stringified():
    ratings = _rows("effectiveness", [4, 4.0, 4.5, "4"])
    result = aggregate_value_field(ratings, "effectiveness")
    assert {v.value: v.count for v in result.values} == {"4": 3, "4.5": 1}

    cased = aggregate_value_field(_rows("platform", ["iOS", "ios"]), "platform")
    assert [v.value for v in cased.values] == ["iOS", "ios"]


def test_value_field_accepts_report_objects():
    reports = [
        RatingReport(solution_fields={"group_size": "5-10 people"}),
        RatingReport(solution_fields={"group_size": "10-20 people"}),
        RatingReport(solution_fields={"group_size": "5-10 people"}),
    ]

    assert aggregate_value_field(reports, "group_size").mode == "5-10 people"


def test_array_field_rates_are_independent():
    ratings = _rows(
        "time_of_day",
        [["Morning", "Evening"], ["Morning"], ["Morning", "Afternoon"]],
    )

    result = aggregate_array_field(ratings, "time_of_day")

    assert result.to_dict() == {
        "mode": "Morning",
        "values": [
            {"value": "Morning", "count": 3, "percentage": 100},
            {"value": "Evening", "count": 1, "percentage": 33},
            {"value": "Afternoon", "count": 1, "percentage": 33},
        ],
        "totalReports": 3,
    }
    # Co-occurrence rates, not a partition.
    assert sum(v.percentage for v in result.values) != 100


def test_array_field_skips_empty_and_non_list_values():
    ratings = [
        {"solution_fields": {"side_effects": []}},
        {"solution_fields": {"side_effects": "None"}},
        {"solution_fields": {"side_effects": ["Nausea", ""]}},
        {"solution_fields": {"side_effects": ["Headache", "Nausea"]}},
    ]

    result = aggregate_array_field(ratings, "side_effects")

    assert result.total_reports == 2
    assert result.mode == "Nausea"
    assert {v.value: v.percentage for v in result.values} == {"Nausea": 100, "Headache": 50}


def test_array_field_zero_reports():
    assert aggregate_array_field(_rows("challenges", [[], None]), "challenges") == Distribution.empty()


def test_boolean_field_yes_no_labels():
    ratings = _rows("would_recommend", [True, True, False])

    result = aggregate_boolean_field(ratings, "would_recommend")

    assert result.to_dict() == {
        "mode": "Yes",
        "values": [
            {"value": "Yes", "count": 2, "percentage": 67},
            {"value": "No", "count": 1, "percentage": 33},
        ],
        "totalReports": 3,
    }


def test_boolean_field_majority_no_and_string_spellings():
    ratings = _rows("still_following", [False, "false", True, None, "maybe"])

    result = aggregate_boolean_field(ratings, "still_following")

    assert result.mode == "No"
    assert result.total_reports == 3
    assert [(v.value, v.count, v.percentage) for v in result.values] == [
        ("No", 2, 67),
        ("Yes", 1, 33),
    ]


def test_boolean_field_four_reports():
    ratings = _rows("would_recommend", [True, True, False, True])

    result = aggregate_boolean_field(ratings, "would_recommend")

    assert [(v.value, v.percentage) for v in result.values] == [("Yes", 75), ("No", 25)]
    assert sum(v.count for v in result.values) == result.total_reports
