"""CoachService — persisted ProofCoach state and per-page coach view.

Two completion notions are kept apart on purpose in every response:
user-declared completion (coach_states.completed_journey_steps) and
criterion-derived completion (progress snapshot). They are never merged.

Writes are last-write-wins.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from secondchance.core.exceptions import NotFound, PreconditionFailed, ValidationError
from secondchance.db.base import persistence_guard
from secondchance.db.models.coach_state import CoachState
from secondchance.domain import journey
from secondchance.domain.coach_overlay import CoachAction, derive_view, transition, view_flags
from secondchance.domain.progress import CoachEvent, ProgressSnapshot
from secondchance.services.coach_progress_service import CoachProgressService

logger = structlog.get_logger(__name__)

_LIST_FIELDS = ("completed_journey_steps", "tutorial_completed_pages")
_UPDATABLE_FIELDS = {
    "current_journey_step",
    "completed_journey_steps",
    "is_minimized",
    "is_dismissed",
    "tutorial_completed_pages",
}


def _dedupe(values: list) -> list:
    return list(dict.fromkeys(values))


def _initial_state(founder_id: uuid.UUID) -> CoachState:
    return CoachState(
        founder_id=founder_id,
        current_journey_step=0,
        completed_journey_steps=[],
        is_minimized=False,
        is_dismissed=False,
        tutorial_completed_pages=[],
        last_interaction_at=datetime.now(timezone.utc),
    )


def state_to_dict(state: CoachState) -> dict[str, Any]:
    return {
        "founder_id": state.founder_id,
        "current_journey_step": state.current_journey_step,
        "completed_journey_steps": list(state.completed_journey_steps or []),
        "is_minimized": bool(state.is_minimized),
        "is_dismissed": bool(state.is_dismissed),
        "tutorial_completed_pages": list(state.tutorial_completed_pages or []),
        "last_interaction_at": state.last_interaction_at,
        "created_at": state.created_at,
        "updated_at": state.updated_at,
    }


class CoachService:
    """Service layer for ProofCoach state."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        progress: CoachProgressService | None = None,
    ):
        """Initialize with a session factory.

        Args:
            session_factory: SQLAlchemy async session factory
            progress: Progress service used by get_view and tutorial events
                (defaults to an uncached one)
        """
        self.session_factory = session_factory
        self.progress = progress or CoachProgressService(session_factory)

    async def _load(self, db: AsyncSession, founder_id: uuid.UUID) -> CoachState | None:
        result = await db.execute(select(CoachState).where(CoachState.founder_id == founder_id))
        return result.scalar_one_or_none()

    async def _load_or_create(self, db: AsyncSession, founder_id: uuid.UUID) -> CoachState:
        state = await self._load(db, founder_id)
        if state is None:
            state = _initial_state(founder_id)
            db.add(state)
            await db.flush()
            logger.info("coach_state_created", founder_id=str(founder_id))
        return state

    @staticmethod
    def _touch(state: CoachState) -> None:
        now = datetime.now(timezone.utc)
        state.last_interaction_at = now
        state.updated_at = now

    async def get_state(self, founder_id: uuid.UUID) -> CoachState:
        """Return the founder's coach state, creating the initial one if absent."""
        async with persistence_guard(self.session_factory, "get_coach_state") as db:
            state = await self._load_or_create(db, founder_id)
            await db.commit()
            await db.refresh(state)
        return state

    async def update_state(self, founder_id: uuid.UUID, changes: dict[str, Any]) -> CoachState:
        """Apply a partial update. ``None`` values are ignored; list fields are de-duplicated."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError([{"field": name, "message": "Field cannot be updated"} for name in sorted(unknown)])

        async with persistence_guard(self.session_factory, "update_coach_state") as db:
            state = await self._load_or_create(db, founder_id)
            for name, value in changes.items():
                if value is None:
                    continue
                if name in _LIST_FIELDS:
                    value = _dedupe(list(value))
                    setattr(state, name, value)
                    flag_modified(state, name)
                else:
                    setattr(state, name, value)
            self._touch(state)
            await db.commit()
            await db.refresh(state)

        logger.info(
            "coach_state_updated",
            founder_id=str(founder_id),
            fields=sorted(k for k, v in changes.items() if v is not None),
        )
        return state

    async def complete_step(self, founder_id: uuid.UUID, step_id: int) -> CoachState:
        """Mark a journey step completed (idempotent) and move past it.

        Raises:
            ValidationError: If ``step_id`` is not a journey step
        """
        if journey.get_journey_step(step_id) is None:
            raise ValidationError([{"field": "stepId", "message": f"Unknown journey step: {step_id}"}])

        async with persistence_guard(self.session_factory, "complete_coach_step") as db:
            state = await self._load_or_create(db, founder_id)
            completed = list(state.completed_journey_steps or [])
            if step_id not in completed:
                completed.append(step_id)
            state.completed_journey_steps = completed
            flag_modified(state, "completed_journey_steps")
            state.current_journey_step = step_id + 1
            self._touch(state)
            await db.commit()
            await db.refresh(state)

        logger.info("coach_step_completed", founder_id=str(founder_id), step_id=step_id)
        return state

    async def complete_tutorial(self, founder_id: uuid.UUID, page: str) -> CoachState:
        """Mark a page tutorial as seen (idempotent).

        A visible overlay minimizes; a dismissed one stays hidden until reopened.
        """
        async with persistence_guard(self.session_factory, "complete_coach_tutorial") as db:
            state = await self._load_or_create(db, founder_id)
            pages = list(state.tutorial_completed_pages or [])
            if page not in pages:
                pages.append(page)
            state.tutorial_completed_pages = pages
            flag_modified(state, "tutorial_completed_pages")

            current = derive_view(bool(state.is_dismissed), bool(state.is_minimized), has_unseen_tutorial=True)
            result = transition(current, CoachAction.FINISH_TUTORIAL)
            if result.new_view != current:
                for name, value in view_flags(result.new_view).items():
                    setattr(state, name, value)

            self._touch(state)
            await db.commit()
            await db.refresh(state)

        logger.info("coach_tutorial_completed", founder_id=str(founder_id), page=page)

        if page == "dashboard":
            try:
                await self.progress.record_activity(founder_id, None, CoachEvent.DASHBOARD_TUTORIAL_COMPLETED)
            except Exception as exc:
                logger.warning(
                    "coach_tutorial_event_failed",
                    founder_id=str(founder_id),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        return state

    async def _apply_overlay(self, founder_id: uuid.UUID, action: CoachAction, page: str | None = None) -> CoachState:
        async with persistence_guard(self.session_factory, f"coach_{action.value}") as db:
            state = await self._load_or_create(db, founder_id)
            unseen = journey.has_unseen_tutorial(page, state.tutorial_completed_pages or []) if page else False
            current = derive_view(bool(state.is_dismissed), bool(state.is_minimized), unseen)

            result = transition(current, action, has_unseen_tutorial=unseen)
            if not result.allowed:
                raise PreconditionFailed(result.reason, details={"view": current.value, "action": action.value})

            for name, value in view_flags(result.new_view).items():
                setattr(state, name, value)
            self._touch(state)
            await db.commit()
            await db.refresh(state)

        logger.info(
            "coach_overlay_transition",
            founder_id=str(founder_id),
            action=action.value,
            from_view=current.value,
            to_view=result.new_view.value,
        )
        return state

    async def minimize(self, founder_id: uuid.UUID, page: str | None = None) -> CoachState:
        return await self._apply_overlay(founder_id, CoachAction.MINIMIZE, page)

    async def expand(self, founder_id: uuid.UUID, page: str | None = None) -> CoachState:
        return await self._apply_overlay(founder_id, CoachAction.EXPAND, page)

    async def dismiss(self, founder_id: uuid.UUID) -> CoachState:
        return await self._apply_overlay(founder_id, CoachAction.DISMISS)

    async def reopen(self, founder_id: uuid.UUID) -> CoachState:
        return await self._apply_overlay(founder_id, CoachAction.REOPEN)

    async def reset(self, founder_id: uuid.UUID) -> CoachState:
        """Return every field to its initial default.

        Raises:
            NotFound: If the founder has no coach state
        """
        async with persistence_guard(self.session_factory, "reset_coach_state") as db:
            state = await self._load(db, founder_id)
            if state is None:
                raise NotFound(f"No coach state for founder {founder_id}")
            state.current_journey_step = 0
            state.completed_journey_steps = []
            state.is_minimized = False
            state.is_dismissed = False
            state.tutorial_completed_pages = []
            self._touch(state)
            await db.commit()
            await db.refresh(state)

        logger.info("coach_state_reset", founder_id=str(founder_id))
        return state

    async def get_view(self, founder_id: uuid.UUID, page: str) -> dict[str, Any]:
        """Overlay view for one page.

        Returns:
            Dict with page, view, current_step_id, steps (each with
            is_completed and is_criteria_met), tutorials, tutorial_completed
        """
        state = await self.get_state(founder_id)

        progress: ProgressSnapshot | None
        try:
            progress = await self.progress.get_progress(founder_id)
        except NotFound:
            progress = None

        completed = list(state.completed_journey_steps or [])
        tutorial_pages = list(state.tutorial_completed_pages or [])
        unseen = journey.has_unseen_tutorial(page, tutorial_pages)
        view = derive_view(bool(state.is_dismissed), bool(state.is_minimized), unseen)

        steps = []
        for step in journey.steps_for_page(page):
            message = None
            if progress is not None and step.score_thresholds is not None:
                message = journey.score_message(step, progress.proof_score)
            steps.append(
                {
                    "id": step.id,
                    "title": step.title,
                    "description": step.description,
                    "action": step.action,
                    "route": step.route,
                    "selector": step.selector,
                    "guidance": {
                        "intro": step.guidance.intro,
                        "instruction": step.guidance.instruction,
                        "tip": step.guidance.tip,
                        "next_step": step.guidance.next_step,
                    },
                    "is_completed": journey.is_step_completed(completed, step.id),
                    "is_criteria_met": journey.is_step_criteria_met(step.id, progress),
                    "score_message": message,
                }
            )

        tutorials = [
            {
                "id": t.id,
                "title": t.title,
                "description": t.description,
                "selector": t.selector,
                "location": t.location,
                "order": t.order,
                "tips": t.tips,
            }
            for t in journey.get_tutorials_for_page(page)
        ]

        return {
            "page": page,
            "view": view.value,
            "current_step_id": journey.select_current_step(page, completed, state.current_journey_step),
            "steps": steps,
            "tutorials": tutorials,
            "tutorial_completed": page in tutorial_pages,
        }
