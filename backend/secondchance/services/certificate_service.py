"""CertificateService — renders and stores the ProofScore certificate.

Runs as a detached background task after scoring. The certificate is a
Markdown document rendered with Jinja2 and uploaded to the venture's
Investor Pack folder (Overview when the Investor Pack folder is missing).
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secondchance.core.exceptions import NotFound
from secondchance.db.base import persistence_guard
from secondchance.db.models.evaluation import Evaluation
from secondchance.db.models.founder import Founder
from secondchance.db.models.proof_vault import ProofVaultEntry
from secondchance.db.models.venture import Venture
from secondchance.domain.scoring import score_category
from secondchance.domain.steps import INVESTOR_PACK_FOLDER, OVERVIEW_FOLDER
from secondchance.integrations.proof_api import ProofApi

logger = structlog.get_logger(__name__)

CERTIFICATE_TEMPLATE_DIR = Path(__file__).parent / "templates"


class CertificateService:
    def __init__(self, proof_api: ProofApi, session_factory: async_sessionmaker[AsyncSession]):
        self.proof_api = proof_api
        self.session_factory = session_factory
        self.env = Environment(
            loader=FileSystemLoader(str(CERTIFICATE_TEMPLATE_DIR)),
            autoescape=False,  # Markdown should NOT be escaped
            keep_trailing_newline=True,
        )

    def render(
        self,
        venture_name: str,
        founder_name: str,
        score: float,
        dimensions: dict,
        tags: list,
        issued_on: str,
        certificate_id: str,
    ) -> str:
        """Render the certificate Markdown."""
        template = self.env.get_template("certificate.md.j2")
        return template.render(
            venture_name=venture_name,
            founder_name=founder_name,
            score=score,
            score_category=score_category(score),
            dimensions=dimensions,
            tags=tags,
            issued_on=issued_on,
            certificate_id=certificate_id,
        )

    async def generate_for_venture(self, venture_id: uuid.UUID) -> str | None:
        """Render the certificate for the venture's current evaluation and upload it.

        Args:
            venture_id: Venture to certify

        Returns:
            The stored certificate URL, or None when there is nothing to certify
            or no folder to store it in

        Raises:
            NotFound: If the venture does not exist
            ExternalServiceError: If the upload fails
        """
        async with persistence_guard(self.session_factory, "load_certificate_inputs") as db:
            venture = await db.get(Venture, venture_id)
            if venture is None:
                raise NotFound(f"Venture {venture_id} not found")
            founder = await db.get(Founder, venture.founder_id)

            result = await db.execute(
                select(Evaluation)
                .where(Evaluation.venture_id == venture_id, Evaluation.is_current.is_(True))
                .order_by(Evaluation.created_at.desc())
                .limit(1)
            )
            evaluation = result.scalar_one_or_none()

            folders = await db.execute(
                select(ProofVaultEntry).where(
                    ProofVaultEntry.venture_id == venture_id,
                    ProofVaultEntry.category.in_([INVESTOR_PACK_FOLDER, OVERVIEW_FOLDER]),
                )
            )
            folder_ids = {entry.category: entry.folder_id for entry in folders.scalars().all()}

        if evaluation is None:
            logger.warning("certificate_skipped_no_evaluation", venture_id=str(venture_id))
            return None

        folder_id = folder_ids.get(INVESTOR_PACK_FOLDER) or folder_ids.get(OVERVIEW_FOLDER)
        if folder_id is None:
            logger.warning("certificate_skipped_no_folder", venture_id=str(venture_id))
            return None

        now = datetime.now(timezone.utc)
        markdown = self.render(
            venture_name=venture.name,
            founder_name=founder.full_name if founder else "Founder",
            score=evaluation.proofscore,
            dimensions=evaluation.dimension_scores or {},
            tags=evaluation.prooftags or [],
            issued_on=now.strftime("%Y-%m-%d"),
            certificate_id=str(evaluation.id),
        )

        file_name = f"{venture.name}_ProofScore_Certificate_{int(now.timestamp())}.md"
        uploaded = await self.proof_api.upload_file(markdown.encode("utf-8"), file_name, folder_id)
        certificate_url = uploaded.download_url or uploaded.url

        async with persistence_guard(self.session_factory, "save_certificate_url") as db:
            venture = await db.get(Venture, venture_id)
            venture.certificate_url = certificate_url
            venture.certificate_generated_at = now
            await db.commit()

        logger.info(
            "certificate_generated",
            venture_id=str(venture_id),
            score=evaluation.proofscore,
            category=score_category(evaluation.proofscore),
        )
        return certificate_url
