"""Onboarding API routes — wizard steps, team management, upload and scoring.

Every endpoint answers with the ``{success, status, data, error}`` envelope.
Step payloads are taken as raw JSON objects and validated by the service so
that every violated field is reported at once.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from secondchance.api.deps import get_onboarding_service
from secondchance.core.config import get_settings
from secondchance.core.exceptions import ValidationError
from secondchance.schemas.common import Envelope, ok
from secondchance.schemas.onboarding import (
    FounderStepResponse,
    ScoringResponse,
    SessionCreatedResponse,
    SessionView,
    TeamListResponse,
    TeamMemberOut,
    TeamStepResponse,
    UploadStepResponse,
    VentureStepResponse,
)
from secondchance.services.onboarding_service import OnboardingService
from secondchance.services.session_store import session_to_dict

router = APIRouter()


def _pop_session_id(payload: dict[str, Any], required: bool = True) -> str | None:
    """Remove and return the session id from a step payload."""
    session_id = payload.pop("sessionId", None) or payload.pop("session_id", None)
    if required and not session_id:
        raise ValidationError([{"field": "sessionId", "message": "Field required"}])
    return str(session_id) if session_id else None


@router.post("/session", response_model=Envelope[SessionCreatedResponse])
async def create_session(service: OnboardingService = Depends(get_onboarding_service)):
    """Start an anonymous onboarding session at the founder step."""
    record = await service.initialize_session()
    return ok({"session_id": record.session_id, "current_step": record.current_step})


@router.get("/session/{session_id}", response_model=Envelope[SessionView])
async def get_session(session_id: str, service: OnboardingService = Depends(get_onboarding_service)):
    """Return the full session state.

    Raises:
        NotFound(404): If the session does not exist
    """
    record = await service.get_session(session_id)
    return ok(session_to_dict(record))


@router.post("/founder", response_model=Envelope[FounderStepResponse])
async def submit_founder(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Founder step. ``sessionId`` is optional; a new session is started without one."""
    session_id = _pop_session_id(payload, required=False)
    return ok(await service.complete_founder_step(session_id, payload))


@router.post("/venture", response_model=Envelope[VentureStepResponse])
async def submit_venture(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Venture step. Requires the founder step.

    Raises:
        PreconditionFailed(409): If the founder step has not been completed
    """
    session_id = _pop_session_id(payload)
    return ok(await service.complete_venture_step(session_id, payload))


@router.post("/team/add", response_model=Envelope[TeamMemberOut])
async def add_team_member(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    session_id = _pop_session_id(payload)
    return ok(await service.add_team_member(session_id, payload))


@router.post("/team/update", response_model=Envelope[TeamMemberOut])
async def update_team_member(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    session_id = _pop_session_id(payload)
    return ok(await service.update_team_member(session_id, payload))


@router.post("/team/delete", response_model=Envelope[dict])
async def delete_team_member(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    session_id = _pop_session_id(payload)
    member_id = payload.get("memberId") or payload.get("member_id")
    if not member_id:
        raise ValidationError([{"field": "memberId", "message": "Field required"}])
    await service.delete_team_member(session_id, member_id)
    return ok({"deleted": True, "memberId": str(member_id)})


@router.post("/team/complete", response_model=Envelope[TeamStepResponse])
async def complete_team(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Finish the team step. Zero members is allowed."""
    session_id = _pop_session_id(payload)
    return ok(await service.complete_team_step(session_id))


@router.get("/team/{session_id}", response_model=Envelope[TeamListResponse])
async def list_team_members(session_id: str, service: OnboardingService = Depends(get_onboarding_service)):
    members = await service.get_team_members(session_id)
    return ok({"members": members, "count": len(members)})


@router.post("/upload", response_model=Envelope[UploadStepResponse])
async def upload_pitch_deck(
    session_id: str = Form(..., alias="sessionId"),
    file: UploadFile = File(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Upload the pitch deck (PDF, PPT or PPTX).

    Never buffers more than ``max_upload_bytes + 1`` bytes of the request file.
    """
    limit = get_settings().max_upload_bytes
    too_large = [{"field": "fileSize", "message": f"File exceeds {limit} bytes"}]
    if file.size is not None and file.size > limit:
        raise ValidationError(too_large)
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise ValidationError(too_large)
    result = await service.handle_document_upload(
        session_id,
        file.filename or "",
        content,
        file.content_type or "",
    )
    return ok(result)


@router.post("/submit-for-scoring", response_model=Envelope[ScoringResponse])
async def submit_for_scoring(
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Score the uploaded deck and complete onboarding.

    Raises:
        PreconditionFailed(409): If there is no upload or venture
        ExternalServiceError(502): If scoring fails or times out
    """
    session_id = _pop_session_id(payload)
    return ok(await service.submit_for_scoring(session_id))
