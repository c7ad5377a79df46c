"""Tests for CoachService: persisted coach state, overlay transitions and the per-page view."""

import uuid

import pytest
from sqlalchemy import select

from secondchance.core.exceptions import NotFound, PreconditionFailed, ValidationError
from secondchance.db.models.founder import Founder
from secondchance.db.models.user_activity import UserActivity
from secondchance.db.models.venture import Venture
from secondchance.domain.progress import CoachEvent
from secondchance.services.coach_progress_service import CoachProgressService
from secondchance.services.coach_service import CoachService, state_to_dict

pytestmark = pytest.mark.integration


@pytest.fixture
async def founder_id(session_factory) -> uuid.UUID:
    async with session_factory() as db:
        founder = Founder(email="view@example.com", full_name="View Test", position_role="CEO")
        db.add(founder)
        await db.commit()
        return founder.id


@pytest.fixture
async def venture_id(session_factory, founder_id) -> uuid.UUID:
    async with session_factory() as db:
        venture = Venture(
            founder_id=founder_id,
            name="Viewable",
            industry="FinTech",
            geography="UK",
            business_model="B2B",
            revenue_stage="Early Revenue",
            mvp_status="Launched",
        )
        db.add(venture)
        await db.commit()
        return venture.id


@pytest.fixture
def progress_service(session_factory, redis_client) -> CoachProgressService:
    return CoachProgressService(session_factory, redis=redis_client)


@pytest.fixture
def coach_service(session_factory, progress_service) -> CoachService:
    return CoachService(session_factory, progress=progress_service)


async def test_get_state_creates_initial_state(coach_service, founder_id):
    state = await coach_service.get_state(founder_id)

    view = state_to_dict(state)
    assert view["current_journey_step"] == 0
    assert view["completed_journey_steps"] == []
    assert view["is_minimized"] is False
    assert view["is_dismissed"] is False
    assert view["tutorial_completed_pages"] == []

    again = await coach_service.get_state(founder_id)
    assert again.id == state.id


async def test_complete_step_is_idempotent(coach_service, founder_id):
    await coach_service.complete_step(founder_id, 2)
    state = await coach_service.complete_step(founder_id, 2)

    assert state.completed_journey_steps == [2]
    assert state.current_journey_step == 3


async def test_complete_step_rejects_unknown_step(coach_service, founder_id):
    with pytest.raises(ValidationError):
        await coach_service.complete_step(founder_id, 10)


async def test_complete_tutorial_minimizes_and_records_event(coach_service, founder_id, venture_id, session_factory):
    await coach_service.complete_tutorial(founder_id, "dashboard")
    state = await coach_service.complete_tutorial(founder_id, "dashboard")

    assert state.tutorial_completed_pages == ["dashboard"]
    assert state.is_minimized is True
    assert state.is_dismissed is False

    async with session_factory() as db:
        actions = (
            await db.execute(select(UserActivity.action).where(UserActivity.founder_id == founder_id))
        ).scalars().all()
    assert actions.count(CoachEvent.DASHBOARD_TUTORIAL_COMPLETED.value) == 2


async def test_update_state_dedupes_lists_and_ignores_none(coach_service, founder_id):
    state = await coach_service.update_state(
        founder_id,
        {"completed_journey_steps": [1, 1, 0], "is_minimized": True, "is_dismissed": None},
    )

    assert state.completed_journey_steps == [1, 0]
    assert state.is_minimized is True
    assert state.is_dismissed is False


async def test_update_state_rejects_unknown_fields(coach_service, founder_id):
    with pytest.raises(ValidationError):
        await coach_service.update_state(founder_id, {"founder_id": uuid.uuid4()})


async def test_dismiss_then_reopen_is_minimized(coach_service, founder_id):
    await coach_service.dismiss(founder_id)
    state = await coach_service.reopen(founder_id)

    assert state.is_dismissed is False
    assert state.is_minimized is True


async def test_expand_lands_on_tutorial_or_journey(coach_service, founder_id):
    await coach_service.minimize(founder_id, "dashboard")
    await coach_service.expand(founder_id, "dashboard")
    view = await coach_service.get_view(founder_id, "dashboard")
    assert view["view"] == "tutorial_active"

    await coach_service.complete_tutorial(founder_id, "dashboard")
    await coach_service.expand(founder_id, "dashboard")
    view = await coach_service.get_view(founder_id, "dashboard")
    assert view["view"] == "journey_active"


async def test_illegal_overlay_transition_raises(coach_service, founder_id):
    with pytest.raises(PreconditionFailed):
        await coach_service.reopen(founder_id)

    await coach_service.dismiss(founder_id)
    with pytest.raises(PreconditionFailed):
        await coach_service.expand(founder_id, "dashboard")


async def test_complete_tutorial_keeps_dismissed_coach_hidden(coach_service, founder_id):
    await coach_service.dismiss(founder_id)

    state = await coach_service.complete_tutorial(founder_id, "validation-map")

    assert state.tutorial_completed_pages == ["validation-map"]
    assert state.is_dismissed is True
    assert state.is_minimized is False
    view = await coach_service.get_view(founder_id, "validation-map")
    assert view["view"] == "hidden"


async def test_reset_requires_existing_state(coach_service, founder_id):
    with pytest.raises(NotFound):
        await coach_service.reset(founder_id)


async def test_reset_restores_defaults(coach_service, founder_id):
    await coach_service.complete_step(founder_id, 4)
    await coach_service.complete_tutorial(founder_id, "validation-map")
    await coach_service.dismiss(founder_id)

    state = await coach_service.reset(founder_id)

    assert state.current_journey_step == 0
    assert state.completed_journey_steps == []
    assert state.tutorial_completed_pages == []
    assert state.is_dismissed is False
    assert state.is_minimized is False


async def test_view_keeps_completion_notions_separate(coach_service, progress_service, founder_id, venture_id):
    await progress_service.record_activity(founder_id, venture_id, CoachEvent.PROOFSCORE_RECEIVED, {"proofScore": 82})
    await coach_service.complete_step(founder_id, 2)

    view = await coach_service.get_view(founder_id, "dashboard")
    steps = {step["id"]: step for step in view["steps"]}

    assert set(steps) == {2, 5, 6, 7, 8, 9}
    assert steps[2]["is_completed"] is True
    assert steps[2]["is_criteria_met"] is False
    assert steps[7]["is_completed"] is False
    assert steps[7]["is_criteria_met"] is True
    assert "Congratulations" in steps[7]["score_message"]
    assert view["current_step_id"] == 5
    assert len(view["tutorials"]) == 8
    assert view["tutorial_completed"] is False


async def test_view_without_venture_has_no_criteria(coach_service, founder_id):
    view = await coach_service.get_view(founder_id, "validation-map")

    assert [step["id"] for step in view["steps"]] == [3, 4]
    assert all(step["is_criteria_met"] is False for step in view["steps"])
    assert view["current_step_id"] == 3


async def test_view_for_page_without_steps_uses_global_step(coach_service, founder_id):
    await coach_service.complete_step(founder_id, 5)

    view = await coach_service.get_view(founder_id, "settings")

    assert view["steps"] == []
    assert view["current_step_id"] == 6
    assert view["view"] == "journey_active"
