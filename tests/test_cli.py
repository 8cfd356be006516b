"""Tests for the wwfm-fields command-line entry point."""
from __future__ import annotations

import json

import pytest

from wwfm_fields.main import build_parser, main

REPORTS = [
    {"user_id": "u1", "solution_fields": {"frequency": "Once daily", "startup_cost": "Free", "ongoing_cost": "$10/month"}},
    {"user_id": "u2", "solution_fields": {"frequency": "1x daily", "startup_cost": "Free", "ongoing_cost": "$10/month"}},
]


@pytest.fixture()
def reports_file(tmp_path):
    path = tmp_path / "reports.json"
    path.write_text(json.dumps(REPORTS), encoding="utf-8")
    return path


def test_json_output(reports_file, capsys):
    assert main([str(reports_file)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["frequency"]["values"] == [
        {"value": "Once daily", "count": 2, "percentage": 100}
    ]
    assert payload["_metadata"]["total_ratings"] == 2
    assert "cost_type" not in payload


def test_category_and_no_dedupe(reports_file, capsys):
    assert main([str(reports_file), "--category", "meditation_mindfulness", "--no-dedupe"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["cost_type"]["mode"] == "recurring"
    assert [v["value"] for v in payload["frequency"]["values"]] == ["Once daily", "1x daily"]


def test_markdown_output_and_wrapped_ratings(tmp_path, capsys):
    path = tmp_path / "wrapped.json"
    path.write_text(json.dumps({"ratings": REPORTS}), encoding="utf-8")

    assert main([str(path), "--format", "markdown", "--title", "Meditation"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("# Meditation")
    assert "## Frequency" in out


def test_unreadable_input_returns_error(tmp_path):
    assert main([str(tmp_path / "missing.json")]) == 1

    bad = tmp_path / "bad.json"
    bad.write_text('{"not": "a list"}', encoding="utf-8")
    assert main([str(bad)]) == 1


def test_parser_defaults():
    args = build_parser().parse_args(["reports.json"])

    assert args.format == "json"
    assert args.category is None
    assert args.no_dedupe is False
