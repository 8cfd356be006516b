"""OpenAI-backed generation of seed distributions for a solution field.

Before real users rate a solution, each field is seeded with a distribution
the model produces from its training data about how people use that solution
*for that specific goal*.  Free-text answers are mapped onto the allowed
options, then the result goes through the same normalize -> deduplicate ->
validate path as everything else, so the stored seed satisfies the usual
distribution invariants.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence

from wwfm_fields.aggregation.deduplicator import deduplicate_distribution_data
from wwfm_fields.aggregation.models import Distribution
from wwfm_fields.aggregation.normalizer import normalize_distribution_data
from wwfm_fields.aggregation.validation import validate_field_data
from wwfm_fields.analysis.value_mapping import map_distribution_values
from wwfm_fields.exceptions import DistributionGenerationError, InvalidDistributionShape
from wwfm_fields.openai_client import json_completion

_logger = logging.getLogger(__name__)

__all__ = [
    "get_source_attribution",
    "get_field_context_hint",
    "build_field_prompt",
    "build_fallback_prompt",
    "generate_field_distribution",
]

_SOURCE_ATTRIBUTION: Dict[str, List[str]] = {
    "medications": ["research", "studies", "clinical_trials", "medical_literature"],
    "supplements_vitamins": ["research", "studies", "consumer_reports", "user_reviews"],
    "natural_remedies": ["studies", "user_experiences", "community_feedback", "research"],
    "beauty_skincare": ["user_reviews", "beauty_experts", "consumer_reports", "community_feedback"],
    "meditation_mindfulness": ["user_experiences", "studies", "community_feedback", "expert_analysis"],
    "exercise_movement": ["fitness_communities", "trainer_recommendations", "user_experiences", "studies"],
    "habits_routines": ["user_experiences", "community_feedback", "expert_analysis", "case_studies"],
    "books_courses": ["user_reviews", "expert_analysis", "community_feedback", "case_studies"],
    "apps_software": ["app_reviews", "user_ratings", "tech_reviews", "community_feedback"],
    "diet_nutrition": ["user_experiences", "studies", "expert_analysis", "community_feedback"],
    "sleep": ["user_experiences", "studies", "community_feedback", "expert_analysis"],
    "products_devices": ["user_reviews", "consumer_reports", "tech_reviews", "community_feedback"],
    "hobbies_activities": ["community_feedback", "user_experiences", "expert_analysis", "enthusiast_forums"],
    "groups_communities": ["community_feedback", "user_experiences", "case_studies", "expert_analysis"],
    "financial_products": ["user_reports", "financial_advisors", "case_studies", "expert_analysis"],
    "therapists_counselors": ["user_experiences", "studies", "expert_analysis", "case_studies"],
    "coaches_mentors": ["user_experiences", "case_studies", "expert_analysis", "community_feedback"],
    "alternative_practitioners": ["user_experiences", "community_feedback", "case_studies", "studies"],
    "doctors_specialists": ["studies", "expert_analysis", "user_experiences", "medical_literature"],
    "medical_procedures": ["studies", "medical_literature", "user_experiences", "expert_analysis"],
    "crisis_resources": ["user_experiences", "case_studies", "expert_analysis", "studies"],
    "professional_services": ["user_experiences", "case_studies", "expert_analysis", "community_feedback"],
}
_DEFAULT_SOURCES = ["user_experiences", "community_feedback", "expert_analysis", "case_studies"]

_FIELD_HINTS: Dict[str, str] = {
    "frequency": (
        'Focus on how often people typically use this solution when specifically trying to achieve "{goal}". '
        "Consider whether daily use is common, or if people use it more sporadically."
    ),
    "time_to_results": (
        'Think about realistic timelines for seeing results with this solution for "{goal}". '
        "Some solutions work immediately, others take weeks or months."
    ),
    "cost": (
        'Consider the actual costs people report for this solution when using it for "{goal}". '
        "Include any ongoing costs, not just initial purchase."
    ),
    "side_effects": (
        'Focus on side effects that people actually experience when using this solution for "{goal}". '
        "Many people may report no side effects."
    ),
    "length_of_use": (
        'Think about how long people typically continue using this solution for "{goal}". '
        "Some are short-term, others become long-term habits."
    ),
    "practice_length": (
        'Consider typical session lengths that people find effective for "{goal}". '
        "Beginners often start shorter, experienced practitioners may go longer."
    ),
    "session_frequency": (
        'Think about realistic appointment or session frequencies for this type of service when addressing "{goal}".'
    ),
    "session_length": 'Consider typical session durations for this service when specifically addressing "{goal}".',
    "format": 'Think about which formats people prefer for this type of content when working on "{goal}".',
    "learning_difficulty": 'Consider how challenging people find this solution when specifically using it for "{goal}".',
    "usage_frequency": 'Think about how often people open/use this app when actively working on "{goal}".',
    "subscription_type": 'Consider which subscription model people typically choose for this type of solution for "{goal}".',
}
_DEFAULT_HINT = (
    'Consider how people typically experience this aspect of the solution when specifically using it for "{goal}".'
)

_PROMPT_SYSTEM = (
    "You generate realistic answer distributions for a solution-rating site. "
    "Respond ONLY with a single JSON object; no prose, no markdown."
)

_JSON_SHAPE = """{
  "mode": "most_common_value_from_dropdown_list",
  "values": [
    {"value": "exact_dropdown_value_1", "count": 40, "percentage": 40, "source": "appropriate_source"},
    {"value": "exact_dropdown_value_2", "count": 25, "percentage": 25, "source": "appropriate_source"},
    {"value": "exact_dropdown_value_3", "count": 20, "percentage": 20, "source": "appropriate_source"},
    {"value": "exact_dropdown_value_4", "count": 10, "percentage": 10, "source": "appropriate_source"},
    {"value": "exact_dropdown_value_5", "count": 5, "percentage": 5, "source": "appropriate_source"}
  ],
  "totalReports": 100,
  "dataSource": "ai_training_data"
}"""


def get_source_attribution(category: str) -> List[str]:
    """Return the source tags appropriate for *category*."""
    return list(_SOURCE_ATTRIBUTION.get(category, _DEFAULT_SOURCES))


def get_field_context_hint(field_name: str, goal_title: str) -> str:
    return _FIELD_HINTS.get(field_name, _DEFAULT_HINT).format(goal=goal_title)


def build_field_prompt(
    field_name: str,
    solution_name: str,
    category: str,
    goal_title: str,
    options: Sequence[str],
) -> str:
    """Return the goal-aware generation prompt for one field."""
    if not options:
        raise ValueError(f"No dropdown options found for {field_name} in category {category}")

    sources = get_source_attribution(category)
    source_lines = "\n".join(f"• {source}" for source in sources)
    option_lines = "\n".join(f'{idx}. "{opt}"' for idx, opt in enumerate(options, 1))

    return (
        f'Based on your training data about how people actually use "{solution_name}" '
        f'specifically for "{goal_title}", generate a realistic distribution for the '
        f"{field_name} field.\n\n"
        "CRITICAL CONTEXT:\n"
        f"- Solution: {solution_name}\n"
        f"- Category: {category}\n"
        f'- Goal: "{goal_title}" (THIS IS THE KEY CONTEXT - not general use!)\n\n'
        f"Draw from your knowledge of:\n{source_lines}\n\n"
        "You MUST use ONLY these exact values (preserve exact case and punctuation):\n"
        f"{option_lines}\n\n"
        f"{get_field_context_hint(field_name, goal_title)}\n\n"
        "Generate a distribution that feels authentic - like it came from aggregating "
        f'hundreds of real user reports about "{solution_name}" specifically for "{goal_title}".\n\n'
        "Requirements:\n"
        "- Use 5-8 options from the list above\n"
        "- Create varied percentages (NO equal splits like 20%, 20%, 20%)\n"
        "- The most common option should typically be 25-45%\n"
        "- Make the mode (most common value) reflect typical user experience\n\n"
        f"Return ONLY a JSON object in this exact format:\n{_JSON_SHAPE}\n\n"
        f"For source attribution, use sources appropriate for {category}: {', '.join(sources)}"
    )


def build_fallback_prompt(
    field_name: str,
    solution_name: str,
    goal_title: str,
    options: Sequence[str],
    previous_error: str,
) -> str:
    """Return the simpler retry prompt used after a failed generation."""
    return (
        f"The previous generation failed with error: {previous_error}\n\n"
        "Let's try again with a simpler approach. Based on general knowledge about "
        f'"{solution_name}" for "{goal_title}", create a realistic distribution for {field_name}.\n\n'
        "STRICT REQUIREMENTS:\n"
        f"- Use ONLY these exact values: {', '.join(options)}\n"
        "- Return valid JSON only\n"
        "- Include 4-6 options with varied percentages\n"
        "- Most common option should be 30-50%\n\n"
        f"JSON format:\n{_JSON_SHAPE}"
    )


def _parse_response(content: str) -> Distribution:
    """Extract a :class:`Distribution` from the model's raw string response."""

    start, end = content.find("{"), content.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("Model response did not contain a JSON object")

    try:
        payload: Any = json.loads(content[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError("Failed to parse JSON from model response") from exc

    try:
        return Distribution.from_dict(payload)
    except InvalidDistributionShape as exc:
        raise ValueError(str(exc)) from exc


def _attempt(
    prompt: str,
    field_name: str,
    category: str,
    options: Sequence[str],
    temperature: float,
) -> Distribution:
    messages = [
        {"role": "system", "content": _PROMPT_SYSTEM},
        {"role": "user", "content": prompt},
    ]
    content = json_completion(messages, temperature=temperature)

    mapped = map_distribution_values(_parse_response(content), field_name, options)
    distribution = deduplicate_distribution_data(normalize_distribution_data(mapped))
    result = validate_field_data(
        distribution, field_name, category, allowed_values=options
    )
    if not result.is_valid:
        raise ValueError("; ".join(result.errors))
    return distribution


def generate_field_distribution(
    field_name: str,
    solution_name: str,
    category: str,
    goal_title: str,
    options: Sequence[str],
    *,
    temperature: float = 0.7,
) -> Distribution:
    """Generate a validated seed distribution for *field_name*.

    One retry is made with the fallback prompt.

    Raises
    ------
    ValueError
        If *options* is empty.
    DistributionGenerationError
        If both attempts fail to produce a valid distribution.
    """

    prompt = build_field_prompt(field_name, solution_name, category, goal_title, options)
    try:
        return _attempt(prompt, field_name, category, options, temperature)
    except ValueError as exc:
        _logger.warning(
            "Generation for %s/%s failed, retrying with fallback prompt: %s",
            solution_name,
            field_name,
            exc,
        )
        first_error = str(exc)

    fallback = build_fallback_prompt(
        field_name, solution_name, goal_title, options, first_error
    )
    try:
        return _attempt(fallback, field_name, category, options, temperature)
    except ValueError as exc:
        raise DistributionGenerationError(
            f"Could not generate {field_name} for {solution_name}: {exc}"
        ) from exc
