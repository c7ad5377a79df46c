"""Second Chance Backend: FastAPI application entry point."""

import uuid
from contextlib import asynccontextmanager

# configure_structlog must run before the other imports below; structlog caches
# the processor chain on first use.
from secondchance.core.logging import configure_structlog
from secondchance.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException

from secondchance.api.routes import api_router
from secondchance.core.config import get_settings
from secondchance.core.exceptions import SecondChanceError
from secondchance.db import close_db, close_redis, init_db, init_redis
from secondchance.middleware.correlation import get_correlation_id, setup_correlation_middleware
from secondchance.schemas.common import failure
from secondchance.services.background import get_dispatcher

logger = structlog.get_logger(__name__)

SHUTDOWN_DRAIN_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # /health answers 503 once shutdown begins
    app.state.shutting_down = False

    settings = get_settings()
    logger.info(
        "startup_begin",
        app_name=settings.app_name,
        debug=settings.debug,
        public_base_url=settings.public_base_url,
    )

    await init_db()
    logger.info("db_initialized")

    # Redis only backs the progress cache; run uncached without it
    try:
        await init_redis()
        logger.info("redis_initialized")
    except (RedisError, OSError) as e:
        await close_redis()
        logger.warning("redis_unavailable", error=str(e), error_type=type(e).__name__)

    yield

    app.state.shutting_down = True
    logger.info("shutdown_begin")
    await get_dispatcher().drain(timeout=SHUTDOWN_DRAIN_SECONDS)
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


def _log_context(request: Request, debug_id: str) -> dict:
    return {
        "debug_id": debug_id,
        "correlation_id": get_correlation_id(),
        "path": request.url.path,
        "method": request.method,
        "founder_id": getattr(request.state, "founder_id", None),
    }


async def domain_exception_handler(request: Request, exc: SecondChanceError) -> JSONResponse:
    """Map the domain error hierarchy onto the response envelope."""
    debug_id = str(uuid.uuid4())
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "domain_error",
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
        **_log_context(request, debug_id),
    )

    content = failure(exc.code, exc.message, exc.details)
    content["debug_id"] = debug_id
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report every violated field at once, in the same shape the services use."""
    debug_id = str(uuid.uuid4())
    violations = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.warning("request_validation_failed", violations=violations, **_log_context(request, debug_id))

    content = failure("validation_error", "Invalid input", violations)
    content["debug_id"] = debug_id
    return JSONResponse(status_code=422, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTPException (auth failures, unknown routes) in the envelope shape."""
    debug_id = str(uuid.uuid4())
    logger.warning("http_exception", status_code=exc.status_code, detail=exc.detail, **_log_context(request, debug_id))

    content = failure("http_error", str(exc.detail))
    content["debug_id"] = debug_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors: full traceback in the log, generic 500 to the client."""
    debug_id = str(uuid.uuid4())
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
        **_log_context(request, debug_id),
    )

    content = failure("internal_error", "Internal server error")
    content["debug_id"] = debug_id
    return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Founder onboarding wizard and ProofCoach guidance",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.allowed_origins])),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_correlation_middleware(app)

    app.exception_handler(SecondChanceError)(domain_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "secondchance.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
