"""CoachState model: one persisted ProofCoach state per founder."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Uuid

from secondchance.db.base import Base


class CoachState(Base):
    __tablename__ = "coach_states"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    founder_id = Column(Uuid, ForeignKey("founders.id"), nullable=False, unique=True)

    current_journey_step = Column(Integer, nullable=False, default=0)
    completed_journey_steps = Column(JSON, nullable=False, default=list)  # ordered int set
    is_minimized = Column(Boolean, nullable=False, default=False)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    tutorial_completed_pages = Column(JSON, nullable=False, default=list)  # ordered str set
    last_interaction_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
