"""ProofCoach Pydantic schemas — coach state, overlay view and progress."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from secondchance.domain.progress import COACH_EVENT_NAMES
from secondchance.schemas.common import CamelModel


class CoachStateOut(CamelModel):
    founder_id: uuid.UUID
    current_journey_step: int
    completed_journey_steps: list[int]
    is_minimized: bool
    is_dismissed: bool
    tutorial_completed_pages: list[str]
    last_interaction_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CoachStateUpdate(CamelModel):
    """PATCH /coach body. Omitted fields are left unchanged."""

    current_journey_step: int | None = Field(default=None, ge=0)
    completed_journey_steps: list[int] | None = None
    is_minimized: bool | None = None
    is_dismissed: bool | None = None
    tutorial_completed_pages: list[str] | None = None


class CompleteStepRequest(CamelModel):
    step_id: int = Field(..., ge=0)


class CompleteTutorialRequest(CamelModel):
    page: str = Field(..., min_length=1)


class CoachEventRequest(CamelModel):
    action: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    venture_id: uuid.UUID | None = None

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        if v not in COACH_EVENT_NAMES:
            raise ValueError(f"Unknown coach event: {v}")
        return v


class CoachEventRecorded(CamelModel):
    activity_id: uuid.UUID
    action: str
    created_at: datetime


class JourneyStepView(CamelModel):
    """One page step with both completion notions, never merged."""

    id: int
    title: str
    description: str
    action: str
    route: str | None = None
    selector: str | None = None
    guidance: dict[str, Any]
    is_completed: bool
    is_criteria_met: bool
    score_message: str | None = None


class TutorialView(CamelModel):
    id: str
    title: str
    description: str
    selector: str
    location: str
    order: int
    tips: str | None = None


class CoachViewResponse(CamelModel):
    page: str
    view: str
    current_step_id: int
    steps: list[JourneyStepView]
    tutorials: list[TutorialView]
    tutorial_completed: bool


class ProgressOut(CamelModel):
    onboarding_complete: bool
    dashboard_tutorial_completed: bool
    completed_experiments_count: int
    has_completed_experiment: bool
    has_completed_3_experiments: bool
    first_experiment_completed_at: datetime | None = None
    vault_upload_count: int
    total_uploads: int
    distinct_artifact_types_count: int
    first_vault_upload_at: datetime | None = None
    has_first_upload: bool
    has_10_uploads: bool
    has_20_uploads: bool
    has_30_uploads: bool
    proof_score: float
    vault_score: float
    latest_proof_score_at: datetime | None = None
    validation_map_exported: bool
    validation_map_exported_at: datetime | None = None
    validation_map_uploaded_to_vault: bool
    validation_map_uploaded_at: datetime | None = None
    has_deal_room_access: bool
    deal_room_purchased_at: datetime | None = None
    has_accessed_community_or_downloads: bool
    completed_steps: list[int]
    last_activity_at: datetime | None = None
