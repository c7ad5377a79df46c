"""Pitch deck scoring result normalization and score categories.

Pure functions -- no side effects, no I/O.
"""
import math
from typing import Any

# Each ProofScore dimension is the sum of two scoring-API categories
DIMENSION_SOURCES: dict[str, tuple[str, str]] = {
    "desirability": ("problem", "market_opportunity"),
    "feasibility": ("solution", "product_technology"),
    "viability": ("business_model", "financials_projections_ask"),
    "traction": ("traction", "go_to_market_strategy"),
    "readiness": ("readiness", "team"),
}

SCORE_CATEGORIES: list[tuple[int, str]] = [
    (90, "Leader in Validation"),
    (80, "Investor Match Ready"),
    (70, "ProofScaler Candidate"),
]
DEFAULT_SCORE_CATEGORY = "Validation Journey"


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        number = float(value)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _category_score(output: dict, category: str) -> float:
    section = output.get(category)
    if isinstance(section, dict):
        return _number(section.get("score"))
    return 0.0


def _clean_score(value: float) -> int | float:
    return int(value) if float(value).is_integer() else round(value, 2)


def extract_output(raw: dict) -> dict:
    """Return the scoring payload, unwrapping the API's ``output`` envelope."""
    output = raw.get("output")
    if isinstance(output, dict):
        return output
    return raw


def extract_team(raw: dict) -> list[dict]:
    """Team members the analysis found in the deck, if any."""
    team = extract_output(raw).get("team")
    if isinstance(team, list):
        members = team
    elif isinstance(team, dict) and isinstance(team.get("members"), list):
        members = team["members"]
    else:
        return []
    return [m for m in members if isinstance(m, dict) and m.get("name")]


def normalize_scoring_result(raw: dict) -> dict:
    """Normalize a raw scoring API response to the persisted shape.

    Args:
        raw: JSON body returned by the scoring API

    Returns:
        {"total_score": number in [0, 100],
         "dimensions": {desirability, feasibility, viability, traction, readiness},
         "insights": {"overall_feedback": [...], "categories": {...}},
         "tags": [...]}

    Raises:
        ValueError: If the response carries no finite numeric total score
    """
    output = extract_output(raw)

    total = output.get("total_score", raw.get("total_score"))
    if isinstance(total, bool) or not isinstance(total, (int, float, str)):
        raise ValueError("Scoring response has no total_score")
    try:
        total_value = float(total)
    except ValueError as exc:
        raise ValueError(f"Scoring response total_score is not numeric: {total!r}") from exc
    if not math.isfinite(total_value):
        raise ValueError(f"Scoring response total_score is not finite: {total!r}")
    total_value = max(0.0, min(100.0, total_value))

    dimensions = {
        dimension: _clean_score(_category_score(output, first) + _category_score(output, second))
        for dimension, (first, second) in DIMENSION_SOURCES.items()
    }

    categories: dict[str, dict] = {}
    for first, second in DIMENSION_SOURCES.values():
        for category in (first, second):
            section = output.get(category)
            if isinstance(section, dict):
                categories[category] = {
                    key: value for key, value in section.items() if key != "members"
                }

    feedback = output.get("overall_feedback", [])
    if isinstance(feedback, str):
        feedback = [feedback]

    tags = output.get("tags", [])
    if not isinstance(tags, list):
        tags = []

    return {
        "total_score": _clean_score(total_value),
        "dimensions": dimensions,
        "insights": {"overall_feedback": list(feedback), "categories": categories},
        "tags": tags,
    }


def score_category(score: float) -> str:
    """Certificate category label for a ProofScore."""
    for threshold, label in SCORE_CATEGORIES:
        if score >= threshold:
            return label
    return DEFAULT_SCORE_CATEGORY
