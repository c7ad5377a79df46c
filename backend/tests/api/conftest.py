"""API-specific test fixtures."""

import uuid
from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from secondchance.core.auth import FounderPrincipal


@pytest.fixture
def api_proof_api():
    """ProofApiFake shared by the app under test and the assertions."""
    from secondchance.integrations.proof_api_fake import ProofApiFake

    return ProofApiFake()


@pytest.fixture
def api_client(tmp_path, monkeypatch, api_proof_api):
    """FastAPI test client backed by a temp SQLite database.

    The database is initialized inside the TestClient's own event loop so
    route handlers can use get_session_factory(). ProofApi is replaced by the
    shared fake; Redis is left uninitialized (progress reads are uncached).
    """
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException

    from secondchance.api.deps import get_proof_api
    from secondchance.api.routes import api_router
    from secondchance.core.config import get_settings
    from secondchance.core.exceptions import SecondChanceError
    from secondchance.db import close_db, init_db
    from secondchance.main import (
        domain_exception_handler,
        generic_exception_handler,
        http_exception_handler,
        request_validation_handler,
    )
    from secondchance.middleware.correlation import setup_correlation_middleware
    from secondchance.services.background import get_dispatcher

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("PROOF_API_BASE_URL", "")
    get_settings.cache_clear()

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        import secondchance.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(db_url)
        yield
        await get_dispatcher().drain(timeout=5)
        await close_db()

    app = FastAPI(title="Second Chance - Test Client", lifespan=test_lifespan)
    setup_correlation_middleware(app)
    app.exception_handler(SecondChanceError)(domain_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)
    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[get_proof_api] = lambda: api_proof_api

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    get_settings.cache_clear()


def override_founder(founder_id: uuid.UUID | str):
    """Create a require_founder override for a specific founder."""

    async def _override():
        return FounderPrincipal(founder_id=str(founder_id), claims={"founderId": str(founder_id)})

    return _override


@pytest.fixture
def as_founder(api_client):
    """Authenticate coach requests as the given founder id."""
    from secondchance.core.auth import require_founder

    def _login(founder_id: uuid.UUID | str) -> None:
        api_client.app.dependency_overrides[require_founder] = override_founder(founder_id)

    return _login
