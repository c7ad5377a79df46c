"""Tests for the coach journey engine: step selection, completion notions, paths and messages."""

import pytest

from secondchance.domain import journey
from secondchance.domain.journey import (
    COACH_JOURNEY_STEPS,
    CoachGuidance,
    CompletionCriteria,
    JourneyStep,
)
from secondchance.domain.progress import ProgressSnapshot

pytestmark = pytest.mark.unit


def _step(step_id: int, page: str, criteria: CompletionCriteria | None = None) -> JourneyStep:
    return JourneyStep(
        id=step_id,
        title=f"Step {step_id}",
        description="",
        page=page,
        duration="1 min",
        action="Go",
        guidance=CoachGuidance(intro="", instruction=""),
        criteria=criteria,
    )


@pytest.fixture
def small_journey() -> list[JourneyStep]:
    return [_step(1, "dashboard"), _step(2, "dashboard"), _step(3, "other")]


class TestSelectCurrentStep:
    def test_first_uncompleted_page_step(self, small_journey):
        assert journey.select_current_step("dashboard", [1], fallback_step=0, steps=small_journey) == 2

    def test_all_completed_returns_last_page_step(self, small_journey):
        assert journey.select_current_step("dashboard", [1, 2], fallback_step=0, steps=small_journey) == 2

    def test_nothing_completed_returns_first_page_step(self, small_journey):
        assert journey.select_current_step("dashboard", [], fallback_step=0, steps=small_journey) == 1

    def test_page_without_steps_uses_fallback(self, small_journey):
        assert journey.select_current_step("deal-room", [1], fallback_step=7, steps=small_journey) == 7

    def test_default_configuration(self):
        assert journey.select_current_step("validation-map", [], fallback_step=0) == 3
        assert journey.select_current_step("validation-map", [3], fallback_step=0) == 4


class TestCompletionNotions:
    def test_numeric_criterion_boundary(self):
        steps = [_step(5, "dashboard", CompletionCriteria(check_field="vault_score", min_value=30))]

        assert journey.is_step_criteria_met(5, {"vault_score": 30}, steps=steps) is True
        assert journey.is_step_criteria_met(5, {"vault_score": 29}, steps=steps) is False

    def test_boolean_criterion_uses_truthiness(self):
        progress = ProgressSnapshot(has_deal_room_access=True)
        assert journey.is_step_criteria_met(8, progress) is True
        assert journey.is_step_criteria_met(8, ProgressSnapshot()) is False

    def test_step_without_criterion_never_met(self):
        assert journey.is_step_criteria_met(0, ProgressSnapshot(onboarding_complete=True)) is False

    def test_missing_progress_never_met(self):
        assert journey.is_step_criteria_met(7, None) is False

    def test_unknown_step_never_met(self):
        assert journey.is_step_criteria_met(42, {"proof_score": 100}) is False

    def test_declared_done_but_criterion_not_met(self):
        progress = ProgressSnapshot(proof_score=50)
        assert journey.is_step_completed([7], 7) is True
        assert journey.is_step_criteria_met(7, progress) is False

    def test_criterion_met_but_not_declared_done(self):
        progress = ProgressSnapshot(proof_score=85)
        assert journey.is_step_completed([], 7) is False
        assert journey.is_step_criteria_met(7, progress) is True


class TestPagesAndTutorials:
    @pytest.mark.parametrize(
        "path,page",
        [
            ("/", "landing"),
            ("", "landing"),
            ("/dashboard", "dashboard"),
            ("/dashboard/vault?tab=files", "dashboard"),
            ("/validation-map/", "validation-map"),
            ("/onboarding-flow/step-2", "onboarding"),
            ("/proofscaling", "proof-scaling"),
            ("/deal-room#pricing", "deal-room"),
            ("/settings/profile", "settings"),
        ],
    )
    def test_page_for_path(self, path, page):
        assert journey.page_for_path(path) == page

    def test_tutorials_sorted_by_order(self):
        tutorials = journey.get_tutorials_for_page("dashboard")
        assert len(tutorials) == 8
        assert [t.order for t in tutorials] == sorted(t.order for t in tutorials)
        assert len(journey.get_tutorials_for_page("validation-map")) == 6
        assert journey.get_tutorials_for_page("landing") == []

    def test_has_unseen_tutorial(self):
        assert journey.has_unseen_tutorial("dashboard", []) is True
        assert journey.has_unseen_tutorial("dashboard", ["dashboard"]) is False
        assert journey.has_unseen_tutorial("landing", []) is False


class TestJourneyConfiguration:
    def test_ten_steps_with_unique_ids(self):
        assert [s.id for s in COACH_JOURNEY_STEPS] == list(range(10))

    def test_get_journey_step_unknown(self):
        assert journey.get_journey_step(99) is None


class TestScoreMessage:
    def test_bands_for_review_step(self):
        step = journey.get_journey_step(2)
        assert "foundational" in journey.score_message(step, 10)
        assert "progress" in journey.score_message(step, 40)
        assert "Excellent" in journey.score_message(step, 70)

    def test_two_band_step(self):
        step = journey.get_journey_step(7)
        assert "Increase" in journey.score_message(step, 69)
        assert "Congratulations" in journey.score_message(step, 70)

    def test_step_without_thresholds(self):
        assert journey.score_message(journey.get_journey_step(0), 99) is None
