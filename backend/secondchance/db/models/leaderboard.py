"""LeaderboardEntry model: best ProofScore per venture."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid

from secondchance.db.base import Base


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=False, unique=True)

    venture_name = Column(String(255), nullable=False)
    total_score = Column(Integer, nullable=False)
    dimension_scores = Column(JSON, nullable=False, default=dict)
    analysis_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
