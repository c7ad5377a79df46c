from fastapi import APIRouter

from secondchance.api.routes import coach, health, onboarding

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
api_router.include_router(coach.router, prefix="/coach", tags=["coach"])
