"""FastAPI dependencies shared by the route modules.

Tests override ``get_proof_api`` (and ``require_founder``) via
app.dependency_overrides.
"""

from fastapi import Depends

from secondchance.core.config import get_settings
from secondchance.db.base import get_session_factory
from secondchance.db.redis import get_redis_or_none
from secondchance.integrations.proof_api import ProofApi
from secondchance.services.background import get_dispatcher
from secondchance.services.coach_progress_service import CoachProgressService
from secondchance.services.coach_service import CoachService
from secondchance.services.onboarding_service import OnboardingService


def get_proof_api() -> ProofApi:
    """Dependency that provides the ProofApi collaborator.

    Returns ProofApiReal when PROOF_API_BASE_URL is set. Falls back to
    ProofApiFake for local dev without the external API.
    """
    settings = get_settings()

    if settings.proof_api_base_url:
        from secondchance.integrations.proof_api_real import ProofApiReal

        return ProofApiReal(settings)
    else:
        from secondchance.integrations.proof_api_fake import ProofApiFake

        return ProofApiFake()


def get_onboarding_service(proof_api: ProofApi = Depends(get_proof_api)) -> OnboardingService:
    return OnboardingService(
        proof_api,
        get_session_factory(),
        get_dispatcher(),
        redis=get_redis_or_none(),
    )


def get_progress_service() -> CoachProgressService:
    return CoachProgressService(get_session_factory(), redis=get_redis_or_none())


def get_coach_service(progress: CoachProgressService = Depends(get_progress_service)) -> CoachService:
    return CoachService(get_session_factory(), progress=progress)
