"""Unit tests for Markdown field report rendering."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from wwfm_fields.aggregation.pipeline import compute_aggregates
from wwfm_fields.reporting import context as report_context
from wwfm_fields.reporting.render import render_field_report


@pytest.fixture()
def aggregated():
    reports = [
        {"user_id": "u1", "solution_fields": {"frequency": "Daily", "time_of_day": ["Morning"]}},
        {"user_id": "u2", "solution_fields": {"frequency": "Daily", "time_of_day": ["Evening"]}},
        {"user_id": "u3", "solution_fields": {"frequency": "Weekly"}},
    ]
    return compute_aggregates(reports)


def test_render_field_report_basic(aggregated):
    out = render_field_report(aggregated, title="Vitamin D for better sleep")

    assert out.startswith("# Vitamin D for better sleep")
    assert "3 ratings (user, medium confidence)" in out
    assert "## Frequency" in out
    assert "Most common: **Daily** · 3 reports" in out
    assert "67% Daily (2)" in out
    assert "33% Weekly (1)" in out
    assert "## Time of day" in out
    assert "50% Morning (1)" in out


def test_render_does_not_escape_apostrophes():
    aggregated = compute_aggregates([{"solution_fields": {"notes": "Don't skip it"}}])

    out = render_field_report(aggregated)

    assert "Don't skip it" in out
    assert "&#39;" not in out


def test_render_empty_map():
    out = render_field_report({}, title="Nothing yet")

    assert "No aggregated fields yet." in out


def test_render_uses_context_builder(aggregated):
    with patch(
        "wwfm_fields.reporting.render.build_field_report_context",
        wraps=report_context.build_field_report_context,
    ) as builder:
        render_field_report(aggregated, title="T")

    builder.assert_called_once_with(aggregated, title="T")
