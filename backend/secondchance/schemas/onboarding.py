"""Onboarding Pydantic schemas — step inputs, persisted step data and API contracts."""

import re
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from secondchance.domain.steps import ALLOWED_UPLOAD_MIME_TYPES
from secondchance.schemas.common import CamelModel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

RevenueStage = Literal["None", "Pre-Revenue", "Early Revenue", "Scaling"]
MvpStatus = Literal["Mockup", "Prototype", "Launched"]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value


# ---------------------------------------------------------------------------
# Step inputs
# ---------------------------------------------------------------------------


class FounderInput(CamelModel):
    """Founder step payload."""

    full_name: str = Field(..., min_length=1)
    email: str
    position_role: str = Field(..., min_length=1)
    age: int | None = Field(default=None, ge=0, le=150)
    linkedin_profile: str | None = None
    gender: str | None = None
    residence: str | None = None
    is_technical: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("full_name", "position_role")
    @classmethod
    def reject_whitespace_only(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("linkedin_profile", "gender", "residence", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class VentureInput(CamelModel):
    """Venture step payload."""

    name: str = Field(..., min_length=1)
    industry: str = Field(..., min_length=1)
    geography: str = Field(..., min_length=1)
    business_model: str = Field(..., min_length=1)
    revenue_stage: RevenueStage
    mvp_status: MvpStatus = Field(
        ...,
        validation_alias=AliasChoices("productStatus", "mvpStatus", "mvp_status"),
        serialization_alias="mvpStatus",
    )
    description: str = Field(..., min_length=1)
    has_testimonials: bool = False
    website: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None

    @field_validator("name", "industry", "geography", "business_model", "description")
    @classmethod
    def reject_whitespace_only(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("website", "linkedin_url", "twitter_url", "instagram_url", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class TeamMemberInput(CamelModel):
    """Team member payload for add."""

    full_name: str = Field(..., min_length=1)
    email: str
    role: str = Field(..., min_length=1)
    experience: str = Field(..., min_length=1)
    background: str | None = None
    linkedin_profile: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None
    github_url: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = None
    is_cofounder: bool = False
    is_technical: bool = False

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator(
        "background", "linkedin_profile", "twitter_url", "instagram_url", "github_url", "gender", "age",
        mode="before",
    )
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class TeamMemberUpdate(CamelModel):
    """Partial team member update; only provided fields change."""

    member_id: uuid.UUID
    full_name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    role: str | None = Field(default=None, min_length=1)
    experience: str | None = None
    background: str | None = None
    linkedin_profile: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None
    github_url: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = None
    is_cofounder: bool | None = None
    is_technical: bool | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _check_email(v) if v is not None else None


class DocumentUploadMeta(CamelModel):
    """Upload metadata checked before any bytes are written."""

    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., gt=0)
    mime_type: str

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        if v not in ALLOWED_UPLOAD_MIME_TYPES:
            raise ValueError("Only PDF, PPT and PPTX files are allowed")
        return v


# ---------------------------------------------------------------------------
# Persisted step data (OnboardingSession.step_data[step])
# ---------------------------------------------------------------------------


class FounderStepData(FounderInput):
    founder_id: uuid.UUID


class VentureStepData(VentureInput):
    venture_id: uuid.UUID
    folder_structure: dict[str, Any] | None = None


class TeamStepData(BaseModel):
    member_count: int = 0


class UploadStepData(BaseModel):
    upload_id: uuid.UUID
    file_name: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    upload_status: str
    external_file_id: str | None = None
    shared_url: str | None = None


class ScoringDimensions(BaseModel):
    desirability: float = 0
    feasibility: float = 0
    viability: float = 0
    traction: float = 0
    readiness: float = 0


class ScoringResult(BaseModel):
    """Normalized ProofScore, persisted unchanged in step_data.processing."""

    total_score: float = Field(..., ge=0, le=100)
    dimensions: ScoringDimensions
    insights: dict[str, Any] = Field(default_factory=dict)
    tags: list[Any] = Field(default_factory=list)


class ProcessingStepData(BaseModel):
    scoring_result: ScoringResult
    is_complete: bool = True


STEP_PAYLOAD_MODELS: dict[str, type[BaseModel]] = {
    "founder": FounderStepData,
    "venture": VentureStepData,
    "team": TeamStepData,
    "upload": UploadStepData,
    "processing": ProcessingStepData,
}


def parse_step_data(step_data: dict[str, Any]) -> dict[str, BaseModel]:
    """Type a raw step_data map through the step name -> payload model map.

    Unknown step keys are ignored.
    """
    return {
        step: STEP_PAYLOAD_MODELS[step].model_validate(payload)
        for step, payload in step_data.items()
        if step in STEP_PAYLOAD_MODELS
    }


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class SessionCreatedResponse(CamelModel):
    session_id: uuid.UUID
    current_step: str


class SessionView(CamelModel):
    session_id: uuid.UUID
    founder_id: uuid.UUID | None = None
    venture_id: uuid.UUID | None = None
    current_step: str
    completed_steps: list[str]
    is_complete: bool
    step_data: dict[str, Any]
    folder_structure: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None


class FounderStepResponse(CamelModel):
    session_id: uuid.UUID
    founder_id: uuid.UUID
    next_step: str


class VentureOut(CamelModel):
    venture_id: uuid.UUID
    founder_id: uuid.UUID
    name: str
    industry: str
    geography: str
    business_model: str
    revenue_stage: str
    mvp_status: str
    description: str | None = None
    website: str | None = None
    has_testimonials: bool = False


class VentureStepResponse(CamelModel):
    venture: VentureOut
    folder_structure: dict[str, Any] | None = None
    next_step: str


class TeamMemberOut(CamelModel):
    member_id: uuid.UUID
    venture_id: uuid.UUID
    full_name: str
    email: str | None = None
    role: str
    experience: str | None = None
    background: str | None = None
    linkedin_profile: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None
    github_url: str | None = None
    age: int | None = None
    gender: str | None = None
    is_cofounder: bool = False
    is_technical: bool = False


class TeamListResponse(CamelModel):
    members: list[TeamMemberOut]
    count: int


class TeamStepResponse(CamelModel):
    member_count: int
    next_step: str


class UploadOut(CamelModel):
    upload_id: uuid.UUID
    file_name: str
    original_name: str
    file_size: int
    mime_type: str
    upload_status: str
    external_file_id: str | None = None
    shared_url: str | None = None


class UploadStepResponse(CamelModel):
    upload: UploadOut
    next_step: str


class ScoringResponse(CamelModel):
    session_id: uuid.UUID
    scoring_result: ScoringResult
    is_complete: bool
