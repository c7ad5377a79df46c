"""ProofVaultEntry model: one external storage folder per venture category."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from secondchance.db.base import Base


class ProofVaultEntry(Base):
    __tablename__ = "proof_vault"
    __table_args__ = (UniqueConstraint("venture_id", "category", name="uq_proof_vault_venture_category"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    venture_id = Column(Uuid, ForeignKey("ventures.id"), nullable=False, index=True)

    category = Column(String(50), nullable=False)  # one of domain.steps.PROOF_VAULT_CATEGORIES
    folder_name = Column(String(255), nullable=False)
    folder_id = Column(String(255), nullable=False)
    parent_folder_id = Column(String(255), nullable=True)
    shared_url = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
