"""Venture model: owned by a founder, carries the ProofVault folder map."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from secondchance.db.base import Base


class Venture(Base):
    __tablename__ = "ventures"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    founder_id = Column(Uuid, ForeignKey("founders.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    website = Column(String(500), nullable=True)
    industry = Column(String(255), nullable=False)
    geography = Column(String(255), nullable=False)
    business_model = Column(String(255), nullable=False)
    revenue_stage = Column(String(50), nullable=False)  # None, Pre-Revenue, Early Revenue, Scaling
    mvp_status = Column(String(50), nullable=False)  # Mockup, Prototype, Launched
    has_testimonials = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)

    linkedin_url = Column(String(500), nullable=True)
    twitter_url = Column(String(500), nullable=True)
    instagram_url = Column(String(500), nullable=True)

    folder_structure = Column(JSON, nullable=True)  # {folders: {category: folder_id}, ...}
    certificate_url = Column(String(1000), nullable=True)
    certificate_generated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
