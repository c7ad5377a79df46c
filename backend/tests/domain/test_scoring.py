"""Tests for scoring response normalization."""

import pytest

from secondchance.domain.scoring import (
    extract_team,
    normalize_scoring_result,
    score_category,
)
from secondchance.integrations.proof_api_fake import HAPPY_PATH_SCORE

pytestmark = pytest.mark.unit


def test_normalize_happy_path_response():
    result = normalize_scoring_result(HAPPY_PATH_SCORE)

    assert result["total_score"] == 72
    assert result["dimensions"] == {
        "desirability": 15,
        "feasibility": 14,
        "viability": 13,
        "traction": 12,
        "readiness": 8,
    }
    assert result["tags"] == ["Problem Hunter", "Target Locked"]
    assert result["insights"]["overall_feedback"] == ["Strong problem framing", "Traction evidence is thin"]
    assert result["insights"]["categories"]["traction"]["recommendation"] == "Show retention cohorts."


def test_normalize_accepts_unwrapped_response():
    result = normalize_scoring_result({"total_score": "55.5", "problem": {"score": 4}})

    assert result["total_score"] == 55.5
    assert result["dimensions"]["desirability"] == 4
    assert result["tags"] == []


@pytest.mark.parametrize("raw_total,expected", [(130, 100), (-4, 0)])
def test_total_score_clamped(raw_total, expected):
    assert normalize_scoring_result({"output": {"total_score": raw_total}})["total_score"] == expected


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"output": {"total_score": None}},
        {"output": {"total_score": True}},
        {"output": {"total_score": "high"}},
        {"output": {"total_score": "nan"}},
        {"output": {"total_score": "inf"}},
        {"output": {"total_score": float("-inf")}},
    ],
)
def test_missing_or_non_numeric_total_rejected(raw):
    with pytest.raises(ValueError):
        normalize_scoring_result(raw)


def test_string_feedback_becomes_list():
    result = normalize_scoring_result({"total_score": 10, "overall_feedback": "Needs traction"})
    assert result["insights"]["overall_feedback"] == ["Needs traction"]


def test_extract_team_list_and_members_shapes():
    assert [m["name"] for m in extract_team(HAPPY_PATH_SCORE)] == ["Ada Lovelace", "Grace Hopper"]

    nested = {"output": {"team": {"score": 6, "members": [{"name": "Lin"}, {"role": "CFO"}]}}}
    assert extract_team(nested) == [{"name": "Lin"}]

    assert extract_team({"output": {"team": {"score": 6}}}) == []


@pytest.mark.parametrize(
    "score,label",
    [
        (95, "Leader in Validation"),
        (90, "Leader in Validation"),
        (85, "Investor Match Ready"),
        (70, "ProofScaler Candidate"),
        (69.9, "Validation Journey"),
    ],
)
def test_score_category(score, label):
    assert score_category(score) == label


def test_non_finite_category_score_counts_as_zero():
    result = normalize_scoring_result(
        {"output": {"total_score": 40, "problem": {"score": "nan"}, "market_opportunity": {"score": 6}}}
    )
    assert result["dimensions"]["desirability"] == 6
