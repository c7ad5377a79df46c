"""UserActivity model: append-only coach events, source of coach progress."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid

from secondchance.db.base import Base


class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    founder_id = Column(Uuid, ForeignKey("founders.id"), nullable=False, index=True)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=True, index=True)

    action = Column(String(64), nullable=False)  # one of domain.progress.COACH_EVENTS
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- events are immutable (append-only)
