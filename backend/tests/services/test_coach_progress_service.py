"""Tests for CoachProgressService: activity recording, aggregation, Redis caching and persistence."""

import json
import uuid

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from secondchance.core.exceptions import NotFound, ValidationError
from secondchance.db.models.founder import Founder
from secondchance.db.models.venture import Venture
from secondchance.domain.progress import CoachEvent
from secondchance.services.coach_progress_service import CoachProgressService, merge_steps

pytestmark = pytest.mark.integration


@pytest.fixture
async def founder_with_venture(session_factory) -> tuple[uuid.UUID, uuid.UUID]:
    async with session_factory() as db:
        founder = Founder(email="coach@example.com", full_name="Coach Test", position_role="CEO")
        db.add(founder)
        await db.flush()
        venture = Venture(
            founder_id=founder.id,
            name="Coachable",
            industry="EdTech",
            geography="US",
            business_model="B2C",
            revenue_stage="None",
            mvp_status="Mockup",
        )
        db.add(venture)
        await db.commit()
        return founder.id, venture.id


@pytest.fixture
def progress_service(session_factory, redis_client) -> CoachProgressService:
    return CoachProgressService(session_factory, redis=redis_client, ttl_seconds=300)


async def test_record_activity_defaults_to_latest_venture(progress_service, founder_with_venture):
    founder_id, venture_id = founder_with_venture

    activity = await progress_service.record_activity(founder_id, None, "dashboard_visited", {"page": "dashboard"})

    assert activity.venture_id == venture_id
    assert activity.action == "dashboard_visited"
    assert activity.event_metadata == {"page": "dashboard"}


async def test_record_activity_rejects_unknown_action(progress_service, founder_with_venture):
    founder_id, _ = founder_with_venture
    with pytest.raises(ValidationError):
        await progress_service.record_activity(founder_id, None, "signed_up_for_newsletter")


async def test_calculate_progress_requires_a_venture(progress_service):
    with pytest.raises(NotFound):
        await progress_service.calculate_progress(uuid.uuid4())


async def test_calculate_progress_aggregates_events(progress_service, founder_with_venture):
    founder_id, venture_id = founder_with_venture
    await progress_service.record_activity(founder_id, venture_id, CoachEvent.ONBOARDING_COMPLETED)
    await progress_service.record_activity(founder_id, venture_id, CoachEvent.PROOFSCORE_RECEIVED, {"proofScore": 64})
    await progress_service.record_activity(founder_id, venture_id, CoachEvent.FIRST_EXPERIMENT_COMPLETED)

    progress = await progress_service.calculate_progress(founder_id)

    assert progress.onboarding_complete is True
    assert progress.proof_score == 64
    assert progress.has_completed_experiment is True
    assert progress.completed_steps == [1, 4]
    assert progress.last_activity_at is not None


async def test_calculate_progress_filters_by_venture(progress_service, founder_with_venture, session_factory):
    founder_id, venture_id = founder_with_venture
    await progress_service.record_activity(founder_id, venture_id, CoachEvent.ONBOARDING_COMPLETED)
    async with session_factory() as db:
        second = Venture(
            founder_id=founder_id,
            name="Second Try",
            industry="EdTech",
            geography="US",
            business_model="B2C",
            revenue_stage="None",
            mvp_status="Mockup",
        )
        db.add(second)
        await db.commit()
        second_id = second.id

    assert (await progress_service.calculate_progress(founder_id, venture_id)).onboarding_complete is True
    assert (await progress_service.calculate_progress(founder_id, second_id)).onboarding_complete is False


async def test_calculate_progress_rejects_unknown_venture(progress_service, founder_with_venture):
    founder_id, _ = founder_with_venture

    with pytest.raises(NotFound):
        await progress_service.calculate_progress(founder_id, uuid.uuid4())


async def test_calculate_progress_rejects_foreign_venture(progress_service, founder_with_venture, session_factory):
    _, venture_id = founder_with_venture
    async with session_factory() as db:
        other = Founder(email="other@example.com", full_name="Other Founder", position_role="CEO")
        db.add(other)
        await db.flush()
        db.add(
            Venture(
                founder_id=other.id,
                name="Elsewhere",
                industry="Fintech",
                geography="UK",
                business_model="B2B",
                revenue_stage="None",
                mvp_status="Mockup",
            )
        )
        await db.commit()
        other_id = other.id

    with pytest.raises(NotFound):
        await progress_service.calculate_progress(other_id, venture_id)


async def test_get_progress_caches_snapshot(progress_service, founder_with_venture, redis_client):
    founder_id, _ = founder_with_venture
    await progress_service.record_activity(founder_id, None, CoachEvent.ONBOARDING_COMPLETED)

    first = await progress_service.get_progress(founder_id)

    key = f"coach_progress:{founder_id}:all"
    cached = json.loads(await redis_client.get(key))
    assert cached["onboarding_complete"] is True
    assert 0 < await redis_client.ttl(key) <= 300

    # A cached entry is served as-is until invalidated
    await redis_client.set(key, json.dumps({**cached, "proof_score": 99}), ex=300)
    second = await progress_service.get_progress(founder_id)
    assert second.proof_score == 99
    assert first.proof_score == 0


async def test_recording_activity_invalidates_cache(progress_service, founder_with_venture, redis_client):
    founder_id, venture_id = founder_with_venture
    await progress_service.get_progress(founder_id)
    await progress_service.get_progress(founder_id, venture_id)
    assert await redis_client.exists(f"coach_progress:{founder_id}:all") == 1

    await progress_service.record_activity(founder_id, None, CoachEvent.DEAL_ROOM_PURCHASED)

    assert await redis_client.exists(f"coach_progress:{founder_id}:all") == 0
    assert await redis_client.exists(f"coach_progress:{founder_id}:{venture_id}") == 0
    progress = await progress_service.get_progress(founder_id)
    assert progress.has_deal_room_access is True


async def test_corrupt_cache_entry_is_recomputed(progress_service, founder_with_venture, redis_client):
    founder_id, _ = founder_with_venture
    await redis_client.set(f"coach_progress:{founder_id}:all", "{not json")

    progress = await progress_service.get_progress(founder_id)
    assert progress.onboarding_complete is False


class BrokenRedis:
    """Redis double whose every call fails."""

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("down")

    async def set(self, *args, **kwargs):
        raise RedisConnectionError("down")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("down")

    async def scan_iter(self, *args, **kwargs):
        raise RedisConnectionError("down")
        yield  # pragma: no cover


async def test_redis_failures_are_cache_misses(session_factory, founder_with_venture):
    founder_id, _ = founder_with_venture
    service = CoachProgressService(session_factory, redis=BrokenRedis())

    await service.record_activity(founder_id, None, CoachEvent.ONBOARDING_COMPLETED)
    progress = await service.get_progress(founder_id)

    assert progress.onboarding_complete is True


async def test_works_without_redis(session_factory, founder_with_venture):
    founder_id, _ = founder_with_venture
    service = CoachProgressService(session_factory)

    await service.record_activity(founder_id, None, CoachEvent.VAULT_FIRST_UPLOAD)
    assert (await service.get_progress(founder_id)).has_first_upload is True


async def test_recalculate_and_save_creates_coach_state(progress_service, founder_with_venture):
    founder_id, _ = founder_with_venture
    await progress_service.record_activity(founder_id, None, CoachEvent.ONBOARDING_STARTED)
    await progress_service.record_activity(founder_id, None, CoachEvent.ONBOARDING_COMPLETED)
    await progress_service.record_activity(founder_id, None, CoachEvent.DASHBOARD_TUTORIAL_COMPLETED)

    progress = await progress_service.recalculate_and_save(founder_id)
    state = await progress_service.save_progress(founder_id, progress)

    assert state.completed_journey_steps == [0, 1]
    assert state.current_journey_step == 2
    assert state.tutorial_completed_pages == ["dashboard"]


async def test_save_progress_merges_into_existing_steps(progress_service, founder_with_venture):
    founder_id, _ = founder_with_venture
    await progress_service.record_activity(founder_id, None, CoachEvent.VALIDATION_MAP_VIEWED)
    first = await progress_service.recalculate_and_save(founder_id)
    assert first.completed_steps == [3]

    await progress_service.record_activity(founder_id, None, CoachEvent.ONBOARDING_STARTED)
    progress = await progress_service.calculate_progress(founder_id)
    state = await progress_service.save_progress(founder_id, progress)

    assert state.completed_journey_steps == [3, 0]


def test_merge_steps_keeps_existing_order():
    assert merge_steps([5, 2], [0, 2, 9]) == [5, 2, 0, 9]
    assert merge_steps([], []) == []
