"""ProofCoach API routes — coach state, overlay transitions, view and progress.

All endpoints require an authenticated founder.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from secondchance.api.deps import get_coach_service, get_progress_service
from secondchance.core.auth import FounderPrincipal, require_founder
from secondchance.schemas.coach import (
    CoachEventRecorded,
    CoachEventRequest,
    CoachStateOut,
    CoachStateUpdate,
    CoachViewResponse,
    CompleteStepRequest,
    CompleteTutorialRequest,
    ProgressOut,
)
from secondchance.schemas.common import Envelope, ok
from secondchance.services.coach_progress_service import CoachProgressService
from secondchance.services.coach_service import CoachService, state_to_dict

router = APIRouter()


@router.get("", response_model=Envelope[CoachStateOut])
async def get_coach_state(
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    """Return the coach state, creating the initial one on first access."""
    state = await service.get_state(principal.founder_uuid)
    return ok(state_to_dict(state))


@router.patch("", response_model=Envelope[CoachStateOut])
async def update_coach_state(
    request: CoachStateUpdate,
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    changes = request.model_dump(exclude_none=True)
    state = await service.update_state(principal.founder_uuid, changes)
    return ok(state_to_dict(state))


@router.post("/complete-step", response_model=Envelope[CoachStateOut])
async def complete_step(
    request: CompleteStepRequest,
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    state = await service.complete_step(principal.founder_uuid, request.step_id)
    return ok(state_to_dict(state))


@router.post("/complete-tutorial", response_model=Envelope[CoachStateOut])
async def complete_tutorial(
    request: CompleteTutorialRequest,
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    state = await service.complete_tutorial(principal.founder_uuid, request.page)
    return ok(state_to_dict(state))


@router.post("/reset", response_model=Envelope[CoachStateOut])
async def reset_coach(
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    """Reset every coach field to its default.

    Raises:
        NotFound(404): If the founder has no coach state yet
    """
    state = await service.reset(principal.founder_uuid)
    return ok(state_to_dict(state))


@router.post("/minimize", response_model=Envelope[CoachStateOut])
async def minimize_coach(
    page: str | None = Query(default=None),
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    state = await service.minimize(principal.founder_uuid, page)
    return ok(state_to_dict(state))


@router.post("/expand", response_model=Envelope[CoachStateOut])
async def expand_coach(
    page: str | None = Query(default=None),
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    """Expand a minimized overlay into the tutorial (unseen page) or journey panel.

    Raises:
        PreconditionFailed(409): If the overlay is not minimized
    """
    state = await service.expand(principal.founder_uuid, page)
    return ok(state_to_dict(state))


@router.post("/dismiss", response_model=Envelope[CoachStateOut])
async def dismiss_coach(
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    state = await service.dismiss(principal.founder_uuid)
    return ok(state_to_dict(state))


@router.post("/reopen", response_model=Envelope[CoachStateOut])
async def reopen_coach(
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    state = await service.reopen(principal.founder_uuid)
    return ok(state_to_dict(state))


@router.get("/view", response_model=Envelope[CoachViewResponse])
async def get_coach_view(
    page: str = Query(..., min_length=1),
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachService = Depends(get_coach_service),
):
    """Overlay view for a page: visible state, steps and tutorials."""
    return ok(await service.get_view(principal.founder_uuid, page))


@router.get("/progress", response_model=Envelope[ProgressOut])
async def get_progress(
    venture_id: uuid.UUID | None = Query(default=None, alias="ventureId"),
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachProgressService = Depends(get_progress_service),
):
    """Cached progress snapshot.

    Raises:
        NotFound(404): If the founder owns no venture
    """
    progress = await service.get_progress(principal.founder_uuid, venture_id)
    return ok(progress.to_dict())


@router.post("/progress/recalculate", response_model=Envelope[ProgressOut])
async def recalculate_progress(
    venture_id: uuid.UUID | None = Query(default=None, alias="ventureId"),
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachProgressService = Depends(get_progress_service),
):
    """Recompute the snapshot and merge implied journey steps into coach state."""
    progress = await service.recalculate_and_save(principal.founder_uuid, venture_id)
    return ok(progress.to_dict())


@router.post("/events", response_model=Envelope[CoachEventRecorded], status_code=201)
async def record_event(
    request: CoachEventRequest,
    principal: FounderPrincipal = Depends(require_founder),
    service: CoachProgressService = Depends(get_progress_service),
):
    activity = await service.record_activity(
        principal.founder_uuid,
        request.venture_id,
        request.action,
        request.metadata,
    )
    return ok({"activity_id": activity.id, "action": activity.action, "created_at": activity.created_at})
