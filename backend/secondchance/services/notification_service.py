"""NotificationService — best-effort Slack and email notifications.

Sends are scheduled on the BackgroundDispatcher and return immediately.
Delivery failures are logged, never raised. Email bodies are rendered from
Jinja2 templates.
"""

from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader

from secondchance.core.config import get_settings
from secondchance.integrations.proof_api import ProofApi
from secondchance.services.background import BackgroundDispatcher

logger = structlog.get_logger(__name__)

EMAIL_TEMPLATE_DIR = Path(__file__).parent / "templates"


class NotificationService:
    def __init__(self, proof_api: ProofApi, dispatcher: BackgroundDispatcher, channel: str | None = None):
        self.proof_api = proof_api
        self.dispatcher = dispatcher
        self.channel = channel or get_settings().notification_channel
        self.env = Environment(
            loader=FileSystemLoader(str(EMAIL_TEMPLATE_DIR)),
            autoescape=True,
        )

    def notify(self, session_id: str, message: str) -> None:
        """Post ``message`` to the team channel, tagged with the session id."""
        text = f"`Onboarding Id : {session_id}`\n{message}"
        self.dispatcher.dispatch(self._send_slack(session_id, text), name=f"slack:{session_id}")

    def email(self, to: str, subject: str, html: str) -> None:
        self.dispatcher.dispatch(self._send_email(to, subject, html), name=f"email:{to}")

    def render_welcome_email(
        self,
        first_name: str,
        venture_name: str,
        certificate_url: str,
        verification_url: str,
        expires_in_hours: int,
    ) -> str:
        """Render the post-scoring welcome email (HTML, autoescaped)."""
        template = self.env.get_template("welcome_email.html.j2")
        return template.render(
            app_name=get_settings().app_name,
            first_name=first_name,
            venture_name=venture_name,
            certificate_url=certificate_url,
            verification_url=verification_url,
            expires_in_hours=expires_in_hours,
        )

    async def _send_slack(self, session_id: str, text: str) -> None:
        try:
            await self.proof_api.send_slack_notification(text, self.channel, session_id)
        except Exception as exc:
            logger.warning(
                "notification_failed",
                channel=self.channel,
                session_id=session_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _send_email(self, to: str, subject: str, html: str) -> None:
        try:
            await self.proof_api.send_email(to, subject, html)
        except Exception as exc:
            logger.warning(
                "email_notification_failed",
                subject=subject,
                error=str(exc),
                error_type=type(exc).__name__,
            )
