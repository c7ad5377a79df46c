"""Evaluation model: ProofScore results per venture; latest is current."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid

from secondchance.db.base import Base


class Evaluation(Base):
    __tablename__ = "evaluations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=False, index=True)

    proofscore = Column(Integer, nullable=False)
    prooftags = Column(JSON, nullable=False, default=list)
    dimension_scores = Column(JSON, nullable=False, default=dict)  # desirability, feasibility, viability, traction, readiness
    full_api_response = Column(JSON, nullable=True)

    folder_id = Column(String(255), nullable=True)
    folder_url = Column(String(1000), nullable=True)
    is_current = Column(Boolean, nullable=False, default=True)

    evaluation_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
