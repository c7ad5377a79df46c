"""TeamMember model: members of a venture's team."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from secondchance.db.base import Base


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=False, index=True)

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(255), nullable=False)
    experience = Column(Text, nullable=True)
    background = Column(Text, nullable=True)
    linkedin_profile = Column(String(500), nullable=True)
    twitter_profile = Column(String(500), nullable=True)
    instagram_profile = Column(String(500), nullable=True)
    github_profile = Column(String(500), nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(50), nullable=True)
    is_cofounder = Column(Boolean, nullable=False, default=False)
    is_technical = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
