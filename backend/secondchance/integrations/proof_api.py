"""ProofApi Protocol: the external storage, scoring and notification collaborator.

One HTTP service backs four concerns:
- create_folder_structure: provision the seven ProofVault folders for a venture
- upload_file: store a file in one of those folders
- score_pitch_deck: score a pitch deck (the only call that blocks a response)
- send_slack_notification / send_email: fire-and-forget notifications

Implementations: ProofApiReal (httpx) and ProofApiFake (scenario-based test double).
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass
class FolderStructure:
    """Folders created for one venture. ``folders`` maps category -> folder id."""

    id: str
    url: str | None = None
    folders: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"id": self.id, "url": self.url, "folders": dict(self.folders)}


@dataclass
class UploadedFile:
    id: str
    name: str
    url: str | None = None
    download_url: str | None = None


@runtime_checkable
class ProofApi(Protocol):
    """Protocol for every call to the external proof API.

    All methods raise ExternalServiceError on transport errors, timeouts and
    non-2xx responses.
    """

    async def create_folder_structure(self, folder_name: str) -> FolderStructure:
        """Create the venture's root folder and its seven category folders.

        Args:
            folder_name: Root folder name (venture name)

        Returns:
            FolderStructure; categories the API failed to create are absent
        """
        ...

    async def upload_file(self, content: bytes, file_name: str, folder_id: str) -> UploadedFile:
        """Upload raw bytes into an existing folder."""
        ...

    async def score_pitch_deck(self, content: bytes, file_name: str) -> dict:
        """Score a pitch deck.

        Args:
            content: Raw file bytes
            file_name: Original file name (the API infers the format from it)

        Returns:
            Raw scoring response (normalized by domain.scoring)
        """
        ...

    async def send_slack_notification(self, message: str, channel: str, unique_id: str) -> None:
        ...

    async def send_email(self, to: str, subject: str, html: str) -> None:
        ...
