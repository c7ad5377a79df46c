import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

from secondchance.db.base import get_session_factory
from secondchance.db.redis import get_redis_or_none

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE_NAME = "secondchance-backend"


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for load balancer.

    Returns 503 during graceful shutdown so the balancer stops routing traffic.
    """
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": SERVICE_NAME},
        )
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    """Readiness check.

    Only the database gates readiness. Redis is reported but optional: without
    it progress snapshots are simply recomputed on every read.
    """
    checks = {"database": False, "redis": False}

    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = True
    except (RuntimeError, SQLAlchemyError, OSError) as e:
        logger.error("database_health_check_failed", error=str(e))

    redis_client = get_redis_or_none()
    if redis_client is not None:
        try:
            await redis_client.ping()
            checks["redis"] = True
        except (RedisError, OSError) as e:
            logger.warning("redis_health_check_failed", error=str(e))

    ready = checks["database"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "unavailable", "checks": checks},
    )
