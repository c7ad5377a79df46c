"""ProofApiReal: httpx implementation of the ProofApi protocol."""

import httpx
import structlog

from secondchance.core.config import Settings, get_settings
from secondchance.core.exceptions import ExternalServiceError
from secondchance.integrations.proof_api import FolderStructure, UploadedFile

logger = structlog.get_logger(__name__)


class ProofApiReal:
    """Talks to the proof API's ``/webhook/*`` endpoints.

    A fresh AsyncClient is opened per call; each concern has its own timeout.
    """

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the client.

        Args:
            settings: Settings instance (defaults to get_settings())
            transport: Optional httpx transport, used by tests to stub the network
        """
        self.settings = settings or get_settings()
        self._transport = transport

    def _endpoint(self, path: str) -> str:
        return f"{self.settings.proof_api_base_url.rstrip('/')}/webhook{path}"

    def _headers(self) -> dict[str, str]:
        if self.settings.proof_api_key:
            return {"Authorization": f"Bearer {self.settings.proof_api_key}"}
        return {}

    async def _post(self, service: str, path: str, timeout: float, **kwargs) -> httpx.Response:
        if not self.settings.proof_api_base_url:
            raise ExternalServiceError(service, "Proof API base URL not configured")

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint(path), headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("proof_api_timeout", service=service, path=path, timeout=timeout)
            raise ExternalServiceError(service, f"timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            logger.warning("proof_api_transport_error", service=service, path=path, error=str(exc))
            raise ExternalServiceError(service, str(exc)) from exc

        if response.status_code >= 400:
            logger.warning(
                "proof_api_error_status",
                service=service,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ExternalServiceError(service, f"HTTP {response.status_code}")

        return response

    @staticmethod
    def _json(service: str, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError(service, "response is not JSON") from exc
        if isinstance(data, list) and data and isinstance(data[0], dict):
            data = data[0]
        if not isinstance(data, dict):
            raise ExternalServiceError(service, "unexpected response shape")
        return data

    async def create_folder_structure(self, folder_name: str) -> FolderStructure:
        response = await self._post(
            "storage",
            "/vault/folder/create-structure",
            self.settings.storage_timeout_seconds,
            data={"folderName": folder_name},
        )
        data = self._json("storage", response)
        if not data.get("id"):
            raise ExternalServiceError("storage", "folder structure response has no id")

        folders = {
            str(category): str(folder_id)
            for category, folder_id in (data.get("folders") or {}).items()
            if folder_id
        }
        return FolderStructure(id=str(data["id"]), url=data.get("url"), folders=folders)

    async def upload_file(self, content: bytes, file_name: str, folder_id: str) -> UploadedFile:
        response = await self._post(
            "storage",
            "/vault/file/upload",
            self.settings.storage_timeout_seconds,
            data={"folder_id": folder_id},
            files={"data": (file_name, content)},
        )
        data = self._json("storage", response)
        if not data.get("id"):
            raise ExternalServiceError("storage", "upload response has no file id")
        return UploadedFile(
            id=str(data["id"]),
            name=data.get("name") or file_name,
            url=data.get("url"),
            download_url=data.get("download_url"),
        )

    async def score_pitch_deck(self, content: bytes, file_name: str) -> dict:
        response = await self._post(
            "scoring",
            "/score/pitch-deck",
            self.settings.scoring_timeout_seconds,
            files={"data": (file_name, content)},
        )
        return self._json("scoring", response)

    async def send_slack_notification(self, message: str, channel: str, unique_id: str) -> None:
        await self._post(
            "notification",
            "/notification/slack",
            self.settings.notification_timeout_seconds,
            json={"message": message, "channel": channel, "uniqueId": unique_id},
        )

    async def send_email(self, to: str, subject: str, html: str) -> None:
        await self._post(
            "notification",
            "/notification/email",
            self.settings.notification_timeout_seconds,
            json={"to": to, "subject": subject, "html": html},
        )
