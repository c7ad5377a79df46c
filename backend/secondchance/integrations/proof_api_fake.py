"""ProofApiFake: Scenario-based test double for the ProofApi protocol.

Scenarios:
- happy_path: every call succeeds with realistic content
- scoring_failure: scoring returns an error status
- scoring_timeout: scoring exceeds its deadline
- storage_failure: folder provisioning and uploads fail
- partial_folders: two categories come back without a folder id
- notification_failure: notifications fail, everything else succeeds

All scenarios return instantly and record every call for assertions.
"""

import uuid

from secondchance.core.exceptions import ExternalServiceError
from secondchance.domain.steps import PROOF_VAULT_CATEGORIES
from secondchance.integrations.proof_api import FolderStructure, UploadedFile

HAPPY_PATH_SCORE = {
    "output": {
        "total_score": 72,
        "problem": {"score": 8, "justification": "Clear, validated pain point."},
        "market_opportunity": {"score": 7, "justification": "Large addressable market."},
        "solution": {"score": 8},
        "product_technology": {"score": 6},
        "business_model": {"score": 7},
        "financials_projections_ask": {"score": 6},
        "traction": {"score": 5, "recommendation": "Show retention cohorts."},
        "go_to_market_strategy": {"score": 7},
        "readiness": {"score": 8},
        "team": [
            {"name": "Ada Lovelace", "role": "CTO", "background": "Analytical engines"},
            {"name": "Grace Hopper", "role": "Co-founder & CEO", "experience": "Compilers"},
        ],
        "tags": ["Problem Hunter", "Target Locked"],
        "overall_feedback": ["Strong problem framing", "Traction evidence is thin"],
    }
}


class ProofApiFake:
    """Scenario-based test double for ProofApi."""

    VALID_SCENARIOS = {
        "happy_path",
        "scoring_failure",
        "scoring_timeout",
        "storage_failure",
        "partial_folders",
        "notification_failure",
    }

    MISSING_IN_PARTIAL = ("3_Demand_Proof", "5_Commercial_Proof")

    def __init__(self, scenario: str = "happy_path", score: dict | None = None):
        """Initialize ProofApiFake with a named scenario.

        Args:
            scenario: One of VALID_SCENARIOS
            score: Optional raw scoring response overriding HAPPY_PATH_SCORE

        Raises:
            ValueError: If scenario is not recognized
        """
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(
                f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}"
            )
        self.scenario = scenario
        self.score = score if score is not None else HAPPY_PATH_SCORE

        self.folder_calls: list[str] = []
        self.uploads: list[dict] = []
        self.scoring_calls: list[dict] = []
        self.slack_messages: list[dict] = []
        self.emails: list[dict] = []

    async def create_folder_structure(self, folder_name: str) -> FolderStructure:
        self.folder_calls.append(folder_name)
        if self.scenario == "storage_failure":
            raise ExternalServiceError("storage", "HTTP 503")

        root_id = f"folder-{uuid.uuid4().hex[:8]}"
        folders = {
            category: f"{root_id}-{index}"
            for index, category in enumerate(PROOF_VAULT_CATEGORIES)
            if not (self.scenario == "partial_folders" and category in self.MISSING_IN_PARTIAL)
        }
        return FolderStructure(id=root_id, url=f"https://storage.example.com/folder/{root_id}", folders=folders)

    async def upload_file(self, content: bytes, file_name: str, folder_id: str) -> UploadedFile:
        if self.scenario == "storage_failure":
            raise ExternalServiceError("storage", "HTTP 503")

        file_id = f"file-{uuid.uuid4().hex[:8]}"
        self.uploads.append({"file_name": file_name, "folder_id": folder_id, "size": len(content), "id": file_id})
        return UploadedFile(
            id=file_id,
            name=file_name,
            url=f"https://storage.example.com/s/{file_id}",
            download_url=f"https://storage.example.com/d/{file_id}",
        )

    async def score_pitch_deck(self, content: bytes, file_name: str) -> dict:
        self.scoring_calls.append({"file_name": file_name, "size": len(content)})
        if self.scenario == "scoring_failure":
            raise ExternalServiceError("scoring", "HTTP 500")
        if self.scenario == "scoring_timeout":
            raise ExternalServiceError("scoring", "timed out after 60s")
        return self.score

    async def send_slack_notification(self, message: str, channel: str, unique_id: str) -> None:
        if self.scenario == "notification_failure":
            raise ExternalServiceError("notification", "HTTP 502")
        self.slack_messages.append({"message": message, "channel": channel, "unique_id": unique_id})

    async def send_email(self, to: str, subject: str, html: str) -> None:
        if self.scenario == "notification_failure":
            raise ExternalServiceError("notification", "HTTP 502")
        self.emails.append({"to": to, "subject": subject, "html": html})
