"""CoachProgressService — aggregates user_activity into coach progress.

Responsibilities:
- Append coach activity events (known event names only)
- Compute progress snapshots from activity (domain.progress.aggregate_progress)
- Cache snapshots in Redis for a short freshness window; recording an event
  drops the founder's cached snapshots
- Persist journey steps implied by activity into CoachState

Redis is optional: when it is unavailable every read is a cache miss.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from secondchance.core.config import get_settings
from secondchance.core.exceptions import NotFound, ValidationError
from secondchance.db.base import persistence_guard
from secondchance.db.models.coach_state import CoachState
from secondchance.db.models.user_activity import UserActivity
from secondchance.db.models.venture import Venture
from secondchance.domain.progress import (
    COACH_EVENT_NAMES,
    ActivityRecord,
    CoachEvent,
    ProgressSnapshot,
    aggregate_progress,
)

logger = structlog.get_logger(__name__)

CACHE_KEY_PREFIX = "coach_progress"


def _cache_key(founder_id: uuid.UUID, venture_id: uuid.UUID | None) -> str:
    return f"{CACHE_KEY_PREFIX}:{founder_id}:{venture_id or 'all'}"


def merge_steps(existing: list[int], implied: list[int]) -> list[int]:
    """Ordered union: existing order kept, new ids appended ascending."""
    seen = set(existing)
    return [*existing, *sorted(step for step in set(implied) if step not in seen)]


class CoachProgressService:
    """Service layer for coach progress aggregation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Redis | None = None,
        ttl_seconds: int | None = None,
    ):
        """Initialize with a session factory and optional Redis client.

        Args:
            session_factory: SQLAlchemy async session factory
            redis: Redis client for the snapshot cache (None disables caching)
            ttl_seconds: Snapshot freshness window (defaults to settings)
        """
        self.session_factory = session_factory
        self.redis = redis
        self.ttl_seconds = ttl_seconds or get_settings().progress_cache_ttl_seconds

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    async def record_activity(
        self,
        founder_id: uuid.UUID,
        venture_id: uuid.UUID | None,
        action: CoachEvent | str,
        metadata: dict[str, Any] | None = None,
    ) -> UserActivity:
        """Append one activity event and invalidate the founder's snapshots.

        When ``venture_id`` is omitted the founder's latest venture is used.

        Raises:
            ValidationError: If ``action`` is not a known coach event
        """
        action_name = action.value if isinstance(action, CoachEvent) else str(action)
        if action_name not in COACH_EVENT_NAMES:
            raise ValidationError([{"field": "action", "message": f"Unknown coach event: {action_name}"}])

        async with persistence_guard(self.session_factory, "record_activity") as db:
            if venture_id is None:
                venture_id = await self._latest_venture_id(db, founder_id)
            activity = UserActivity(
                founder_id=founder_id,
                venture_id=venture_id,
                action=action_name,
                event_metadata=metadata or {},
            )
            db.add(activity)
            await db.commit()
            await db.refresh(activity)

        logger.info(
            "coach_activity_recorded",
            founder_id=str(founder_id),
            venture_id=str(venture_id) if venture_id else None,
            action=action_name,
        )
        await self.invalidate(founder_id)
        return activity

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def calculate_progress(
        self, founder_id: uuid.UUID, venture_id: uuid.UUID | None = None
    ) -> ProgressSnapshot:
        """Aggregate the founder's activity into a fresh snapshot.

        Args:
            founder_id: Founder whose activity is aggregated
            venture_id: Restrict to one venture's events (default: all events)

        Raises:
            NotFound: If the founder owns no venture, or does not own ``venture_id``
        """
        async with persistence_guard(self.session_factory, "calculate_progress") as db:
            if venture_id is None:
                if await self._latest_venture_id(db, founder_id) is None:
                    raise NotFound(f"No venture found for founder {founder_id}")
            else:
                venture = await db.get(Venture, venture_id)
                if venture is None or venture.founder_id != founder_id:
                    raise NotFound(f"Venture {venture_id} not found for founder {founder_id}")

            query = select(UserActivity).where(UserActivity.founder_id == founder_id)
            if venture_id is not None:
                query = query.where(UserActivity.venture_id == venture_id)
            result = await db.execute(query.order_by(UserActivity.created_at.desc()))
            rows = result.scalars().all()

        activities = [
            ActivityRecord(action=row.action, created_at=row.created_at, metadata=row.event_metadata or {})
            for row in rows
        ]
        progress = aggregate_progress(activities)

        logger.info(
            "coach_progress_calculated",
            founder_id=str(founder_id),
            activities=len(activities),
            experiments=progress.completed_experiments_count,
            uploads=progress.vault_upload_count,
            completed_steps=len(progress.completed_steps),
        )
        return progress

    async def get_progress(
        self, founder_id: uuid.UUID, venture_id: uuid.UUID | None = None
    ) -> ProgressSnapshot:
        """Return the cached snapshot, recomputing when missing or expired."""
        key = _cache_key(founder_id, venture_id)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        progress = await self.calculate_progress(founder_id, venture_id)
        await self._cache_set(key, progress)
        return progress

    async def invalidate(self, founder_id: uuid.UUID) -> None:
        """Drop every cached snapshot for the founder."""
        if self.redis is None:
            return
        try:
            keys = [key async for key in self.redis.scan_iter(match=f"{CACHE_KEY_PREFIX}:{founder_id}:*")]
            if keys:
                await self.redis.delete(*keys)
        except RedisError as exc:
            logger.warning("progress_cache_invalidate_failed", founder_id=str(founder_id), error=str(exc))

    async def recalculate_and_save(
        self, founder_id: uuid.UUID, venture_id: uuid.UUID | None = None
    ) -> ProgressSnapshot:
        """Recompute, refresh the cache and persist implied steps into CoachState."""
        progress = await self.calculate_progress(founder_id, venture_id)
        await self._cache_set(_cache_key(founder_id, venture_id), progress)
        await self.save_progress(founder_id, progress)
        return progress

    async def save_progress(self, founder_id: uuid.UUID, progress: ProgressSnapshot) -> CoachState:
        """Merge implied journey steps into the founder's CoachState (created when absent)."""
        now = datetime.now(timezone.utc)
        async with persistence_guard(self.session_factory, "save_progress") as db:
            result = await db.execute(select(CoachState).where(CoachState.founder_id == founder_id))
            state = result.scalar_one_or_none()

            if state is None:
                state = CoachState(
                    founder_id=founder_id,
                    current_journey_step=len(progress.completed_steps),
                    completed_journey_steps=list(progress.completed_steps),
                    is_minimized=False,
                    is_dismissed=False,
                    tutorial_completed_pages=["dashboard"] if progress.dashboard_tutorial_completed else [],
                    last_interaction_at=progress.last_activity_at or now,
                )
                db.add(state)
                logger.info("coach_state_created_from_progress", founder_id=str(founder_id))
            else:
                state.completed_journey_steps = merge_steps(
                    list(state.completed_journey_steps or []), progress.completed_steps
                )
                flag_modified(state, "completed_journey_steps")
                state.last_interaction_at = progress.last_activity_at or now
                state.updated_at = now

            await db.commit()
            await db.refresh(state)
        return state

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _latest_venture_id(db: AsyncSession, founder_id: uuid.UUID) -> uuid.UUID | None:
        result = await db.execute(
            select(Venture.id)
            .where(Venture.founder_id == founder_id)
            .order_by(Venture.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _cache_get(self, key: str) -> ProgressSnapshot | None:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(key)
        except RedisError as exc:
            logger.warning("progress_cache_read_failed", key=key, error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return ProgressSnapshot.from_dict(json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("progress_cache_corrupt", key=key, error=str(exc))
            return None

    async def _cache_set(self, key: str, progress: ProgressSnapshot) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, json.dumps(progress.to_dict()), ex=self.ttl_seconds)
        except RedisError as exc:
            logger.warning("progress_cache_write_failed", key=key, error=str(exc))
