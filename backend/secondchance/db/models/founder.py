"""Founder model: one row per founder, looked up by exact email."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from secondchance.db.base import Base


class Founder(Base):
    __tablename__ = "founders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)  # exact, case-sensitive match

    full_name = Column(String(255), nullable=False)
    position_role = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    linkedin_profile = Column(String(500), nullable=True)
    gender = Column(String(50), nullable=True)
    residence = Column(String(255), nullable=True)
    is_technical = Column(Boolean, nullable=False, default=False)

    email_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255), nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
