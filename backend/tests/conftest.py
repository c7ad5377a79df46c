"""Shared test fixtures for all test groups."""

import fakeredis.aioredis
import pytest

from secondchance.core.config import Settings
from secondchance.integrations.proof_api_fake import ProofApiFake
from secondchance.services.background import BackgroundDispatcher
from secondchance.services.onboarding_service import OnboardingService

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << /Root 1 0 R >>\n%%EOF\n"


@pytest.fixture
def database_url(tmp_path) -> str:
    """Temp-file SQLite database, one per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'secondchance.db'}"


@pytest.fixture
async def session_factory(database_url):
    """Initialize the global engine against the temp database and yield its factory."""
    import secondchance.db.base as db_mod

    db_mod._engine = None
    db_mod._session_factory = None
    await db_mod.init_db(database_url)

    yield db_mod.get_session_factory()

    await db_mod.close_db()


@pytest.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def settings(tmp_path, database_url) -> Settings:
    return Settings(
        database_url=database_url,
        upload_dir=str(tmp_path / "uploads"),
        scoring_timeout_seconds=5.0,
        proof_api_base_url="",
    )


@pytest.fixture
def proof_api():
    """Fresh ProofApiFake with happy_path scenario (default)."""
    return ProofApiFake(scenario="happy_path")


@pytest.fixture
async def dispatcher(session_factory):
    """Dispatcher drained before the database is closed."""
    dispatcher = BackgroundDispatcher()
    yield dispatcher
    await dispatcher.drain(timeout=5)


@pytest.fixture
def make_onboarding_service(session_factory, dispatcher, redis_client, settings):
    """Factory for OnboardingService bound to the test database and a given ProofApi."""

    def _make(proof_api) -> OnboardingService:
        return OnboardingService(proof_api, session_factory, dispatcher, redis=redis_client, settings=settings)

    return _make


@pytest.fixture
def onboarding_service(make_onboarding_service, proof_api) -> OnboardingService:
    return make_onboarding_service(proof_api)


@pytest.fixture
def founder_payload() -> dict:
    return {
        "fullName": "Jane Founder",
        "email": "jane@example.com",
        "positionRole": "CEO",
        "age": 34,
        "residence": "Lisbon",
        "isTechnical": False,
    }


@pytest.fixture
def venture_payload() -> dict:
    return {
        "name": "Acme Analytics",
        "industry": "B2B SaaS",
        "geography": "Europe",
        "businessModel": "Subscription",
        "revenueStage": "Pre-Revenue",
        "productStatus": "Prototype",
        "description": "Analytics for small logistics operators.",
        "website": "https://acme.example.com",
    }


@pytest.fixture
def team_member_payload() -> dict:
    return {
        "fullName": "Sam Builder",
        "email": "sam@example.com",
        "role": "Lead Engineer",
        "experience": "8 years building data platforms",
        "isTechnical": True,
    }


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES
