"""SessionStore — persistence for onboarding sessions.

Responsibilities:
- Create sessions with initial state (founder step, empty step data)
- Replace one step's payload wholesale per submission
- Keep completed_steps an ordered set (a step is added at most once)
- JSON persistence with flag_modified tracking

Concurrent submissions for the same session are last-write-wins per step key.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from secondchance.core.exceptions import NotFound
from secondchance.db.base import persistence_guard
from secondchance.db.models.onboarding_session import OnboardingSession
from secondchance.domain import steps as step_rules
from secondchance.domain.steps import OnboardingStep

logger = structlog.get_logger(__name__)

_DENORMALISED_FIELDS = {"founder_id", "venture_id", "folder_structure", "is_complete", "completed_at"}


def _as_uuid(session_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(session_id, uuid.UUID):
        return session_id
    try:
        return uuid.UUID(str(session_id))
    except ValueError as exc:
        raise NotFound(f"Onboarding session {session_id} not found") from exc


class SessionStore:
    """Read/write access to OnboardingSession rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def initialize_session(self) -> OnboardingSession:
        """Create a session at the founder step with empty state."""
        async with persistence_guard(self.session_factory, "initialize_session") as db:
            record = OnboardingSession(
                current_step=OnboardingStep.FOUNDER.value,
                step_data={},
                completed_steps=[],
                is_complete=False,
            )
            db.add(record)
            await db.commit()
            await db.refresh(record)

        logger.info("onboarding_session_created", session_id=str(record.session_id))
        return record

    async def get_session(self, session_id: uuid.UUID | str) -> OnboardingSession:
        """Load a session.

        Raises:
            NotFound: If the id is unknown or malformed
        """
        sid = _as_uuid(session_id)
        async with persistence_guard(self.session_factory, "get_session") as db:
            record = await db.get(OnboardingSession, sid)
        if record is None:
            raise NotFound(f"Onboarding session {session_id} not found")
        return record

    async def find_session(self, session_id: uuid.UUID | str | None) -> OnboardingSession | None:
        """Like get_session, but returns None for a missing or unknown id."""
        if not session_id:
            return None
        try:
            return await self.get_session(session_id)
        except NotFound:
            return None

    async def update_session(
        self,
        session_id: uuid.UUID | str,
        step: OnboardingStep | str,
        data: dict[str, Any],
        mark_completed: bool,
        current_step: OnboardingStep | str | None = None,
        **fields: Any,
    ) -> OnboardingSession:
        """Replace ``step_data[step]`` and optionally mark the step completed.

        Args:
            session_id: Session to update
            step: Step whose payload is replaced
            data: New payload (JSON-serialisable)
            mark_completed: Add ``step`` to completed_steps when absent
            current_step: Move the wizard position forward to this step
            **fields: Denormalised columns to set (founder_id, venture_id,
                folder_structure, is_complete, completed_at)

        Returns:
            The updated session

        Raises:
            NotFound: If the session does not exist
            ValueError: If an unsupported column is passed in ``fields``
        """
        unknown = set(fields) - _DENORMALISED_FIELDS
        if unknown:
            raise ValueError(f"Unsupported session fields: {sorted(unknown)}")

        step_name = OnboardingStep(step).value
        sid = _as_uuid(session_id)

        async with persistence_guard(self.session_factory, "update_session") as db:
            result = await db.execute(select(OnboardingSession).where(OnboardingSession.session_id == sid))
            record = result.scalar_one_or_none()
            if record is None:
                raise NotFound(f"Onboarding session {session_id} not found")

            step_data = dict(record.step_data or {})
            step_data[step_name] = data
            record.step_data = step_data
            flag_modified(record, "step_data")

            if mark_completed:
                record.completed_steps = step_rules.mark_completed(record.completed_steps or [], step_name)
                flag_modified(record, "completed_steps")

            if current_step is not None:
                record.current_step = step_rules.advance_to(record.current_step, current_step).value

            for name, value in fields.items():
                setattr(record, name, value)
                if name == "folder_structure":
                    flag_modified(record, "folder_structure")

            record.updated_at = datetime.now(timezone.utc)
            await db.commit()
            await db.refresh(record)

        logger.info(
            "onboarding_session_updated",
            session_id=str(sid),
            step=step_name,
            current_step=record.current_step,
            completed_steps=record.completed_steps,
        )
        return record


def session_to_dict(record: OnboardingSession) -> dict[str, Any]:
    """Plain view of a session for API responses."""
    return {
        "session_id": record.session_id,
        "founder_id": record.founder_id,
        "venture_id": record.venture_id,
        "current_step": record.current_step,
        "completed_steps": list(record.completed_steps or []),
        "is_complete": bool(record.is_complete),
        "step_data": dict(record.step_data or {}),
        "folder_structure": record.folder_structure,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "completed_at": record.completed_at,
    }
