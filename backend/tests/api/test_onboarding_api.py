"""Integration tests for the onboarding API endpoints.

Tests cover:
- Session creation and lookup (envelope shape, camelCase payloads)
- Founder -> venture -> team -> upload -> scoring through HTTP
- Error envelopes: validation (422), precondition (409), not found (404),
  scoring failure (502)
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from secondchance.integrations.proof_api_fake import ProofApiFake

pytestmark = pytest.mark.integration

PDF_MIME = "application/pdf"


def _founder(client: TestClient, payload: dict, session_id: str | None = None) -> dict:
    body = dict(payload)
    if session_id:
        body["sessionId"] = session_id
    response = client.post("/api/onboarding/founder", json=body)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _through_team(client: TestClient, founder_payload: dict, venture_payload: dict) -> str:
    session_id = _founder(client, founder_payload)["sessionId"]
    venture = client.post("/api/onboarding/venture", json={"sessionId": session_id, **venture_payload})
    assert venture.status_code == 200, venture.text
    team = client.post("/api/onboarding/team/complete", json={"sessionId": session_id})
    assert team.status_code == 200, team.text
    return session_id


def _upload(client: TestClient, session_id: str, content: bytes, name: str = "deck.pdf", mime: str = PDF_MIME):
    return client.post(
        "/api/onboarding/upload",
        data={"sessionId": session_id},
        files={"file": (name, content, mime)},
    )


def test_create_and_get_session(api_client: TestClient):
    response = api_client.post("/api/onboarding/session")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "success"
    assert body["data"]["currentStep"] == "founder"

    session_id = body["data"]["sessionId"]
    view = api_client.get(f"/api/onboarding/session/{session_id}").json()["data"]
    assert view["sessionId"] == session_id
    assert view["completedSteps"] == []
    assert view["isComplete"] is False
    assert "X-Request-ID" in response.headers


def test_unknown_session_is_404_envelope(api_client: TestClient):
    response = api_client.get(f"/api/onboarding/session/{uuid.uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["status"] == "error"
    assert body["error"]["code"] == "not_found"
    assert "debug_id" in body


def test_founder_step_returns_next_step(api_client: TestClient, founder_payload):
    data = _founder(api_client, founder_payload)

    assert data["nextStep"] == "venture"
    assert uuid.UUID(data["founderId"])
    assert uuid.UUID(data["sessionId"])


def test_founder_validation_error_lists_fields(api_client: TestClient):
    response = api_client.post("/api/onboarding/founder", json={"email": "bad"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "validation_error"
    fields = {v["field"] for v in body["error"]["details"]}
    assert {"fullName", "email", "positionRole"} <= fields


def test_venture_requires_session_id(api_client: TestClient, venture_payload):
    response = api_client.post("/api/onboarding/venture", json=venture_payload)

    assert response.status_code == 422
    assert response.json()["error"]["details"] == [{"field": "sessionId", "message": "Field required"}]


def test_venture_before_founder_is_409(api_client: TestClient, venture_payload):
    session_id = api_client.post("/api/onboarding/session").json()["data"]["sessionId"]

    response = api_client.post("/api/onboarding/venture", json={"sessionId": session_id, **venture_payload})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "precondition_failed"


def test_venture_step_response(api_client: TestClient, founder_payload, venture_payload):
    session_id = _founder(api_client, founder_payload)["sessionId"]

    response = api_client.post("/api/onboarding/venture", json={"sessionId": session_id, **venture_payload})

    data = response.json()["data"]
    assert data["nextStep"] == "team"
    assert data["venture"]["name"] == "Acme Analytics"
    assert data["venture"]["mvpStatus"] == "Prototype"
    assert len(data["folderStructure"]["folders"]) == 7


def test_team_member_lifecycle(api_client: TestClient, founder_payload, venture_payload, team_member_payload):
    session_id = _founder(api_client, founder_payload)["sessionId"]
    api_client.post("/api/onboarding/venture", json={"sessionId": session_id, **venture_payload})

    added = api_client.post("/api/onboarding/team/add", json={"sessionId": session_id, **team_member_payload})
    assert added.status_code == 200, added.text
    member_id = added.json()["data"]["memberId"]

    updated = api_client.post(
        "/api/onboarding/team/update", json={"sessionId": session_id, "memberId": member_id, "role": "CTO"}
    )
    assert updated.json()["data"]["role"] == "CTO"

    listing = api_client.get(f"/api/onboarding/team/{session_id}").json()["data"]
    assert listing["count"] == 1
    assert listing["members"][0]["fullName"] == "Sam Builder"

    deleted = api_client.post("/api/onboarding/team/delete", json={"sessionId": session_id, "memberId": member_id})
    assert deleted.json()["data"] == {"deleted": True, "memberId": member_id}
    assert api_client.get(f"/api/onboarding/team/{session_id}").json()["data"]["count"] == 0


def test_team_delete_requires_member_id(api_client: TestClient, founder_payload, venture_payload):
    session_id = _through_team(api_client, founder_payload, venture_payload)

    response = api_client.post("/api/onboarding/team/delete", json={"sessionId": session_id})

    assert response.status_code == 422


def test_upload_rejects_unsupported_type(api_client: TestClient, founder_payload, venture_payload):
    session_id = _through_team(api_client, founder_payload, venture_payload)

    response = _upload(api_client, session_id, b"hello", name="notes.txt", mime="text/plain")

    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["field"] == "mimeType"


def test_upload_over_size_limit_is_422(
    api_client: TestClient, api_proof_api, monkeypatch, founder_payload, venture_payload
):
    from secondchance.core.config import get_settings

    session_id = _through_team(api_client, founder_payload, venture_payload)
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
    get_settings.cache_clear()

    response = _upload(api_client, session_id, b"%PDF-1.4\n" + b"0" * 64)

    assert response.status_code == 422
    details = response.json()["error"]["details"]
    assert details == [{"field": "fileSize", "message": "File exceeds 16 bytes"}]
    assert api_proof_api.uploads == []
    view = api_client.get(f"/api/onboarding/session/{session_id}").json()["data"]
    assert "upload" not in view["completedSteps"]


def test_upload_without_file_is_422(api_client: TestClient):
    response = api_client.post("/api/onboarding/upload", data={"sessionId": str(uuid.uuid4())})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_full_onboarding_flow(api_client: TestClient, api_proof_api, founder_payload, venture_payload, pdf_bytes):
    session_id = _through_team(api_client, founder_payload, venture_payload)

    upload = _upload(api_client, session_id, pdf_bytes)
    assert upload.status_code == 200, upload.text
    assert upload.json()["data"]["upload"]["uploadStatus"] == "completed"
    assert upload.json()["data"]["nextStep"] == "processing"

    scored = api_client.post("/api/onboarding/submit-for-scoring", json={"sessionId": session_id})
    assert scored.status_code == 200, scored.text
    data = scored.json()["data"]
    assert data["isComplete"] is True
    assert data["scoringResult"]["total_score"] == 72
    assert set(data["scoringResult"]["dimensions"]) == {
        "desirability",
        "feasibility",
        "viability",
        "traction",
        "readiness",
    }

    view = api_client.get(f"/api/onboarding/session/{session_id}").json()["data"]
    assert view["isComplete"] is True
    assert view["currentStep"] == "complete"
    assert view["completedSteps"] == ["founder", "venture", "team", "upload"]
    assert view["stepData"]["processing"]["scoring_result"]["total_score"] == 72
    assert len(api_proof_api.scoring_calls) == 1


def test_scoring_without_upload_is_409(api_client: TestClient, founder_payload, venture_payload):
    session_id = _through_team(api_client, founder_payload, venture_payload)

    response = api_client.post("/api/onboarding/submit-for-scoring", json={"sessionId": session_id})

    assert response.status_code == 409


def test_scoring_failure_is_502_and_session_stays_open(
    api_client: TestClient, founder_payload, venture_payload, pdf_bytes
):
    from secondchance.api.deps import get_proof_api

    api_client.app.dependency_overrides[get_proof_api] = lambda: ProofApiFake(scenario="scoring_failure")
    session_id = _through_team(api_client, founder_payload, venture_payload)
    _upload(api_client, session_id, pdf_bytes)

    response = api_client.post("/api/onboarding/submit-for-scoring", json={"sessionId": session_id})

    assert response.status_code == 502
    body = response.json()
    assert body["error"]["code"] == "external_service_error"
    assert body["error"]["details"] == {"service": "scoring"}
    view = api_client.get(f"/api/onboarding/session/{session_id}").json()["data"]
    assert view["isComplete"] is False
