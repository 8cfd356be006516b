"""Tests for AI seed distribution generation."""
from __future__ import annotations

import json

import pytest

import wwfm_fields.analysis.generation as generation
from wwfm_fields.exceptions import DistributionGenerationError

OPTIONS = ["Daily", "Weekly", "Monthly", "As needed", "Once daily"]

GOOD_PAYLOAD = {
    "mode": "Daily",
    "values": [
        {"value": "Daily", "count": 40, "percentage": 40, "source": "user_experiences"},
        {"value": "Weekly", "count": 25, "percentage": 25, "source": "studies"},
        {"value": "Monthly", "count": 20, "percentage": 20, "source": "community_feedback"},
        {"value": "As needed", "count": 15, "percentage": 15, "source": "expert_analysis"},
    ],
    "totalReports": 100,
    "dataSource": "ai_training_data",
}


class _ScriptedChat:
    """Return the queued contents in order and record every prompt."""

    def __init__(self, *contents):
        self.contents = list(contents)
        self.prompts = []

    def __call__(self, messages, **kwargs):
        self.prompts.append(messages[-1]["content"])
        return self.contents.pop(0)


def test_build_field_prompt_is_goal_aware():
    prompt = generation.build_field_prompt(
        "frequency", "Vitamin D", "supplements_vitamins", "Improve mood", OPTIONS
    )

    assert '"Vitamin D" specifically for "Improve mood"' in prompt
    assert '1. "Daily"' in prompt
    assert "consumer_reports" in prompt
    assert "how often people typically use this solution" in prompt


def test_build_field_prompt_requires_options():
    with pytest.raises(ValueError, match="No dropdown options"):
        generation.build_field_prompt("frequency", "X", "sleep", "Sleep better", [])


def test_source_attribution_and_hints_have_defaults():
    assert generation.get_source_attribution("unknown_category") == [
        "user_experiences",
        "community_feedback",
        "expert_analysis",
        "case_studies",
    ]
    assert "Sleep better" in generation.get_field_context_hint("brand", "Sleep better")


def test_generate_valid_distribution(monkeypatch):
    chat = _ScriptedChat("Here you go:\n" + json.dumps(GOOD_PAYLOAD) + "\nThanks!")
    monkeypatch.setattr(generation, "json_completion", chat)

    dist = generation.generate_field_distribution(
        "frequency", "Vitamin D", "supplements_vitamins", "Improve mood", OPTIONS
    )

    assert dist.mode == "Daily"
    assert dist.percentage_total() == 100
    assert dist.data_source == "ai_training_data"
    assert len(chat.prompts) == 1


def test_generated_duplicates_are_merged(monkeypatch):
    payload = json.loads(json.dumps(GOOD_PAYLOAD))
    payload["values"][0]["percentage"] = 30
    payload["values"].append(
        {"value": "Once daily", "count": 10, "percentage": 10, "source": "research"}
    )
    monkeypatch.setattr(generation, "json_completion", _ScriptedChat(json.dumps(payload)))

    dist = generation.generate_field_distribution(
        "frequency", "Vitamin D", "supplements_vitamins", "Improve mood", OPTIONS
    )

    assert [v.value for v in dist.values] == ["Daily", "Weekly", "Monthly", "As needed"]
    assert dist.values[0].percentage == 40
    assert dist.values[0].source == "research"


def test_retry_with_fallback_prompt(monkeypatch):
    chat = _ScriptedChat("not json at all", json.dumps(GOOD_PAYLOAD))
    monkeypatch.setattr(generation, "json_completion", chat)

    dist = generation.generate_field_distribution(
        "frequency", "Vitamin D", "supplements_vitamins", "Improve mood", OPTIONS
    )

    assert dist.mode == "Daily"
    assert len(chat.prompts) == 2
    assert chat.prompts[1].startswith("The previous generation failed with error:")


def test_invalid_sources_trigger_retry_then_error(monkeypatch):
    payload = json.loads(json.dumps(GOOD_PAYLOAD))
    payload["values"][1]["source"] = "made_up_source"
    chat = _ScriptedChat(json.dumps(payload), json.dumps(payload))
    monkeypatch.setattr(generation, "json_completion", chat)

    with pytest.raises(DistributionGenerationError, match='Invalid source "made_up_source"'):
        generation.generate_field_distribution(
            "frequency", "Vitamin D", "supplements_vitamins", "Improve mood", OPTIONS
        )
    assert len(chat.prompts) == 2


def test_missing_values_array_is_a_generation_error(monkeypatch):
    chat = _ScriptedChat('{"mode": "Daily"}', '{"mode": "Daily"}')
    monkeypatch.setattr(generation, "json_completion", chat)

    with pytest.raises(DistributionGenerationError):
        generation.generate_field_distribution(
            "frequency", "Vitamin D", "sleep", "Sleep better", OPTIONS
        )


def test_free_text_answers_are_mapped_onto_options(monkeypatch):
    options = [
        "Free/No startup cost",
        "Under $50",
        "$50-$99.99",
        "$100-$249.99",
        "$1000+",
    ]
    payload = {
        "mode": "$75",
        "values": [
            {"value": "$75", "count": 35, "percentage": 35, "source": "user_experiences"},
            {"value": "$50-$99.99", "count": 25, "percentage": 25, "source": "studies"},
            {"value": "free", "count": 20, "percentage": 20, "source": "community_feedback"},
            {"value": "$30", "count": 10, "percentage": 10, "source": "expert_analysis"},
            {"value": "$1500", "count": 10, "percentage": 10, "source": "case_studies"},
        ],
        "totalReports": 100,
        "dataSource": "ai_training_data",
    }
    chat = _ScriptedChat(json.dumps(payload))
    monkeypatch.setattr(generation, "json_completion", chat)

    dist = generation.generate_field_distribution(
        "startup_cost", "Yoga classes", "exercise_movement", "Reduce stress", options
    )

    assert dist.mode == "$50-$99.99"
    assert [(v.value, v.count, v.percentage) for v in dist.values] == [
        ("$50-$99.99", 60, 60),
        ("Free/No startup cost", 20, 20),
        ("Under $50", 10, 10),
        ("$1000+", 10, 10),
    ]
    assert len(chat.prompts) == 1
