"""DocumentUpload model: pitch deck files received during onboarding."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from secondchance.db.base import Base


class DocumentUpload(Base):
    __tablename__ = "document_uploads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("onboarding_sessions.session_id"), nullable=True, index=True)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=True, index=True)

    file_name = Column(String(500), nullable=False)
    original_name = Column(String(500), nullable=False)
    file_path = Column(String(1000), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(255), nullable=False)

    upload_status = Column(String(50), nullable=False, default="pending")  # pending, completed, uploaded_locally
    processing_status = Column(String(50), nullable=False, default="pending")  # pending, completed, failed

    external_file_id = Column(String(255), nullable=True)
    shared_url = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
