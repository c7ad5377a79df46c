"""OnboardingSession model: JSON step data keyed by step name."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Uuid

from secondchance.db.base import Base


class OnboardingSession(Base):
    __tablename__ = "onboarding_sessions"

    session_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    founder_id = Column(Uuid, ForeignKey("founders.id"), nullable=True, index=True)  # set once by the founder step

    current_step = Column(String(20), nullable=False, default="founder")  # founder, venture, team, upload, processing, complete
    step_data = Column(JSON, nullable=False, default=dict)  # {step_name: payload}
    completed_steps = Column(JSON, nullable=False, default=list)  # ordered, no duplicates
    is_complete = Column(Boolean, nullable=False, default=False)

    # Denormalised from step_data["venture"]
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=True)
    folder_structure = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
