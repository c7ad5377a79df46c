"""OnboardingService — the onboarding step-progression state machine.

Responsibilities:
- Founder and venture steps (look-up-then-create, never duplicates)
- ProofVault folder provisioning (degrades per category)
- Team member CRUD scoped to the session's venture
- Pitch deck upload with best-effort mirroring to external storage
- Scoring: the only collaborator failure that is surfaced to the founder
- Post-scoring side effects (evaluation, leaderboard, activity, notification,
  certificate and welcome email), each best-effort

Structural preconditions raise client-correctable errors before anything is
written. A session is never marked complete without a scoring result.
"""

import asyncio
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secondchance.core.config import Settings, get_settings
from secondchance.core.exceptions import ExternalServiceError, NotFound, PreconditionFailed, ValidationError
from secondchance.db.base import persistence_guard
from secondchance.db.models.document_upload import DocumentUpload
from secondchance.db.models.evaluation import Evaluation
from secondchance.db.models.founder import Founder
from secondchance.db.models.leaderboard import LeaderboardEntry
from secondchance.db.models.onboarding_session import OnboardingSession
from secondchance.db.models.proof_vault import ProofVaultEntry
from secondchance.db.models.team_member import TeamMember
from secondchance.db.models.venture import Venture
from secondchance.domain.progress import CoachEvent
from secondchance.domain.scoring import extract_team, normalize_scoring_result
from secondchance.domain.steps import OVERVIEW_FOLDER, PROOF_VAULT_CATEGORIES, OnboardingStep
from secondchance.integrations.proof_api import ProofApi
from secondchance.schemas.onboarding import (
    DocumentUploadMeta,
    FounderInput,
    FounderStepData,
    ProcessingStepData,
    TeamMemberInput,
    TeamMemberUpdate,
    TeamStepData,
    UploadStepData,
    VentureInput,
    VentureStepData,
    parse_step_data,
)
from secondchance.services.background import BackgroundDispatcher
from secondchance.services.certificate_service import CertificateService
from secondchance.services.coach_progress_service import CoachProgressService
from secondchance.services.notification_service import NotificationService
from secondchance.services.session_store import SessionStore
from secondchance.services.step_validation import validate_step

logger = structlog.get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

_TEAM_MEMBER_COLUMNS = {
    "twitter_url": "twitter_profile",
    "instagram_url": "instagram_profile",
    "github_url": "github_profile",
}


def venture_to_dict(venture: Venture) -> dict[str, Any]:
    return {
        "venture_id": venture.id,
        "founder_id": venture.founder_id,
        "name": venture.name,
        "industry": venture.industry,
        "geography": venture.geography,
        "business_model": venture.business_model,
        "revenue_stage": venture.revenue_stage,
        "mvp_status": venture.mvp_status,
        "description": venture.description,
        "website": venture.website,
        "has_testimonials": bool(venture.has_testimonials),
    }


def team_member_to_dict(member: TeamMember) -> dict[str, Any]:
    return {
        "member_id": member.id,
        "venture_id": member.venture_id,
        "full_name": member.full_name,
        "email": member.email,
        "role": member.role,
        "experience": member.experience,
        "background": member.background,
        "linkedin_profile": member.linkedin_profile,
        "twitter_url": member.twitter_profile,
        "instagram_url": member.instagram_profile,
        "github_url": member.github_profile,
        "age": member.age,
        "gender": member.gender,
        "is_cofounder": bool(member.is_cofounder),
        "is_technical": bool(member.is_technical),
    }


def upload_to_dict(upload: DocumentUpload) -> dict[str, Any]:
    return {
        "upload_id": upload.id,
        "file_name": upload.file_name,
        "original_name": upload.original_name,
        "file_size": upload.file_size,
        "mime_type": upload.mime_type,
        "upload_status": upload.upload_status,
        "external_file_id": upload.external_file_id,
        "shared_url": upload.shared_url,
    }


def _upload_step_data(upload: DocumentUpload) -> UploadStepData:
    return UploadStepData(
        upload_id=upload.id,
        file_name=upload.file_name,
        original_name=upload.original_name,
        file_path=upload.file_path,
        file_size=upload.file_size,
        mime_type=upload.mime_type,
        upload_status=upload.upload_status,
        external_file_id=upload.external_file_id,
        shared_url=upload.shared_url,
    )


def _team_member_columns(values: dict[str, Any]) -> dict[str, Any]:
    return {_TEAM_MEMBER_COLUMNS.get(name, name): value for name, value in values.items()}


class OnboardingService:
    """Service layer for the onboarding wizard."""

    def __init__(
        self,
        proof_api: ProofApi,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: BackgroundDispatcher,
        redis: Redis | None = None,
        settings: Settings | None = None,
    ):
        """Initialize with the external collaborator and persistence handles.

        Args:
            proof_api: ProofApi implementation (ProofApiFake for tests, ProofApiReal for production)
            session_factory: SQLAlchemy async session factory for database access
            dispatcher: Background dispatcher for detached side effects
            redis: Optional Redis client; recorded activity invalidates cached progress
            settings: Settings instance (defaults to get_settings())
        """
        self.proof_api = proof_api
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.store = SessionStore(session_factory)
        self.notifications = NotificationService(proof_api, dispatcher, self.settings.notification_channel)
        self.certificates = CertificateService(proof_api, session_factory)
        self.progress = CoachProgressService(session_factory, redis=redis)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def initialize_session(self) -> OnboardingSession:
        """Create an anonymous session at the founder step."""
        record = await self.store.initialize_session()
        self.notifications.notify(str(record.session_id), "New onboarding session started")
        return record

    async def get_session(self, session_id: uuid.UUID | str) -> OnboardingSession:
        return await self.store.get_session(session_id)

    # ------------------------------------------------------------------
    # Founder
    # ------------------------------------------------------------------

    async def complete_founder_step(self, session_id: uuid.UUID | str | None, data: dict[str, Any]) -> dict[str, Any]:
        """Validate and persist the founder, then advance to the venture step.

        A missing or unknown session id starts a new session. The session's
        founder is set once: a later submission with a different email updates
        the original founder's profile and keeps its email.

        Returns:
            {"session_id", "founder_id", "next_step"}

        Raises:
            ValidationError: If the founder payload is invalid
        """
        founder_in = validate_step(FounderInput, data)

        record = await self.store.find_session(session_id)
        if record is None:
            record = await self.initialize_session()

        profile = founder_in.model_dump(exclude={"email"})

        async with persistence_guard(self.session_factory, "save_founder") as db:
            founder = None
            if record.founder_id is not None:
                founder = await db.get(Founder, record.founder_id)
                if founder is not None and founder.email != founder_in.email:
                    logger.warning(
                        "founder_email_mismatch",
                        session_id=str(record.session_id),
                        founder_id=str(founder.id),
                    )

            if founder is None:
                result = await db.execute(select(Founder).where(Founder.email == founder_in.email))
                founder = result.scalar_one_or_none()

            if founder is None:
                founder = Founder(email=founder_in.email, **profile)
                db.add(founder)
                created = True
            else:
                for name, value in profile.items():
                    setattr(founder, name, value)
                created = False

            await db.commit()
            await db.refresh(founder)

        logger.info(
            "founder_saved",
            session_id=str(record.session_id),
            founder_id=str(founder.id),
            created=created,
        )

        payload = FounderStepData(
            **{**founder_in.model_dump(), "email": founder.email},
            founder_id=founder.id,
        ).model_dump(mode="json")

        fields: dict[str, Any] = {}
        if record.founder_id is None:
            fields["founder_id"] = founder.id

        record = await self.store.update_session(
            record.session_id,
            OnboardingStep.FOUNDER,
            payload,
            True,
            current_step=OnboardingStep.VENTURE,
            **fields,
        )

        self.notifications.notify(str(record.session_id), f"Founder step completed - {founder.full_name}")
        await self._best_effort(
            "record_onboarding_started",
            self.progress.record_activity(
                record.founder_id, None, CoachEvent.ONBOARDING_STARTED, {"sessionId": str(record.session_id)}
            ),
        )

        return {
            "session_id": record.session_id,
            "founder_id": record.founder_id,
            "next_step": OnboardingStep.VENTURE.value,
        }

    # ------------------------------------------------------------------
    # Venture
    # ------------------------------------------------------------------

    async def complete_venture_step(self, session_id: uuid.UUID | str, data: dict[str, Any]) -> dict[str, Any]:
        """Validate and persist the venture, provision ProofVault folders, advance to team.

        Resubmission updates the session's venture instead of creating another
        one, and reuses its folders.

        Returns:
            {"venture", "folder_structure", "next_step"}

        Raises:
            NotFound: If the session does not exist
            PreconditionFailed: If the founder step has not been completed
            ValidationError: If the venture payload is invalid
        """
        record = await self.store.get_session(session_id)
        if record.founder_id is None:
            raise PreconditionFailed("Complete the founder step before the venture step")

        venture_in = validate_step(VentureInput, data)
        columns = venture_in.model_dump()

        async with persistence_guard(self.session_factory, "save_venture") as db:
            venture = await db.get(Venture, record.venture_id) if record.venture_id else None
            if venture is None:
                venture = Venture(founder_id=record.founder_id, **columns)
                db.add(venture)
                created = True
            else:
                for name, value in columns.items():
                    setattr(venture, name, value)
                created = False
            await db.commit()
            await db.refresh(venture)

        logger.info(
            "venture_saved",
            session_id=str(record.session_id),
            venture_id=str(venture.id),
            created=created,
        )

        folder_structure = venture.folder_structure
        if not folder_structure:
            folder_structure = await self._provision_folders(record.session_id, venture)

        payload = VentureStepData(
            **columns,
            venture_id=venture.id,
            folder_structure=folder_structure,
        ).model_dump(mode="json")

        record = await self.store.update_session(
            record.session_id,
            OnboardingStep.VENTURE,
            payload,
            True,
            current_step=OnboardingStep.TEAM,
            venture_id=venture.id,
            folder_structure=folder_structure,
        )

        self.notifications.notify(str(record.session_id), f"Venture step completed - {venture.name}")

        return {
            "venture": venture_to_dict(venture),
            "folder_structure": folder_structure,
            "next_step": OnboardingStep.TEAM.value,
        }

    async def _provision_folders(self, session_id: uuid.UUID, venture: Venture) -> dict[str, Any] | None:
        """Create the seven category folders once and record one ProofVault row per folder.

        Categories that come back without an id are skipped; a wholesale
        failure leaves the venture without folders. Neither fails the step.
        """
        try:
            structure = await self.proof_api.create_folder_structure(venture.name)
        except ExternalServiceError as exc:
            logger.warning(
                "folder_provisioning_failed",
                session_id=str(session_id),
                venture_id=str(venture.id),
                error=str(exc),
            )
            return None

        async with persistence_guard(self.session_factory, "save_proof_vault") as db:
            existing = await db.execute(
                select(ProofVaultEntry.category).where(ProofVaultEntry.venture_id == venture.id)
            )
            known = set(existing.scalars().all())

            for category in PROOF_VAULT_CATEGORIES:
                folder_id = structure.folders.get(category)
                if not folder_id:
                    logger.warning(
                        "folder_provisioning_skipped",
                        venture_id=str(venture.id),
                        category=category,
                        error="no folder id returned",
                    )
                    continue
                if category in known:
                    continue
                db.add(
                    ProofVaultEntry(
                        venture_id=venture.id,
                        category=category,
                        folder_name=category,
                        folder_id=folder_id,
                        parent_folder_id=structure.id,
                        shared_url=structure.url,
                    )
                )

            stored = await db.get(Venture, venture.id)
            stored.folder_structure = structure.to_dict()
            await db.commit()

        logger.info(
            "folders_provisioned",
            venture_id=str(venture.id),
            folders=len(structure.folders),
        )
        return structure.to_dict()

    # ------------------------------------------------------------------
    # Team
    # ------------------------------------------------------------------

    async def _resolve_venture_id(self, db: AsyncSession, record: OnboardingSession) -> uuid.UUID | None:
        """Session venture, else the most recent venture owned by the session's founder."""
        if record.venture_id is not None:
            return record.venture_id
        if record.founder_id is None:
            return None
        result = await db.execute(
            select(Venture.id)
            .where(Venture.founder_id == record.founder_id)
            .order_by(Venture.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _require_venture_id(self, db: AsyncSession, record: OnboardingSession) -> uuid.UUID:
        venture_id = await self._resolve_venture_id(db, record)
        if venture_id is None:
            raise PreconditionFailed("Complete the venture step before managing the team")
        return venture_id

    async def add_team_member(self, session_id: uuid.UUID | str, data: dict[str, Any]) -> dict[str, Any]:
        """Add a team member to the session's venture.

        Raises:
            NotFound: If the session does not exist
            PreconditionFailed: If no venture is associated
            ValidationError: If the member payload is invalid
        """
        record = await self.store.get_session(session_id)
        member_in = validate_step(TeamMemberInput, data)

        async with persistence_guard(self.session_factory, "add_team_member") as db:
            venture_id = await self._require_venture_id(db, record)
            member = TeamMember(venture_id=venture_id, **_team_member_columns(member_in.model_dump()))
            db.add(member)
            await db.commit()
            await db.refresh(member)

        logger.info("team_member_added", session_id=str(record.session_id), member_id=str(member.id))
        self.notifications.notify(str(record.session_id), f"Team member added - {member.full_name} ({member.role})")
        return team_member_to_dict(member)

    async def get_team_members(self, session_id: uuid.UUID | str) -> list[dict[str, Any]]:
        """Team members of the session's venture; empty when there is no venture."""
        record = await self.store.get_session(session_id)
        async with persistence_guard(self.session_factory, "get_team_members") as db:
            venture_id = await self._resolve_venture_id(db, record)
            if venture_id is None:
                return []
            result = await db.execute(
                select(TeamMember).where(TeamMember.venture_id == venture_id).order_by(TeamMember.created_at)
            )
            members = result.scalars().all()
        return [team_member_to_dict(member) for member in members]

    async def update_team_member(self, session_id: uuid.UUID | str, data: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update to one of the venture's team members.

        Raises:
            NotFound: If the session or member does not exist
            PreconditionFailed: If no venture is associated
            ValidationError: If the payload is invalid
        """
        record = await self.store.get_session(session_id)
        update = validate_step(TeamMemberUpdate, data)
        changes = update.model_dump(exclude={"member_id"}, exclude_unset=True)

        async with persistence_guard(self.session_factory, "update_team_member") as db:
            venture_id = await self._require_venture_id(db, record)
            member = await db.get(TeamMember, update.member_id)
            if member is None or member.venture_id != venture_id:
                raise NotFound(f"Team member {update.member_id} not found")
            for name, value in _team_member_columns(changes).items():
                setattr(member, name, value)
            await db.commit()
            await db.refresh(member)

        logger.info("team_member_updated", session_id=str(record.session_id), member_id=str(member.id))
        return team_member_to_dict(member)

    async def delete_team_member(self, session_id: uuid.UUID | str, member_id: uuid.UUID | str) -> None:
        """Remove one of the venture's team members.

        Raises:
            NotFound: If the session or member does not exist
            PreconditionFailed: If no venture is associated
        """
        record = await self.store.get_session(session_id)
        try:
            mid = member_id if isinstance(member_id, uuid.UUID) else uuid.UUID(str(member_id))
        except ValueError as exc:
            raise ValidationError([{"field": "memberId", "message": "Invalid member id"}]) from exc

        async with persistence_guard(self.session_factory, "delete_team_member") as db:
            venture_id = await self._require_venture_id(db, record)
            member = await db.get(TeamMember, mid)
            if member is None or member.venture_id != venture_id:
                raise NotFound(f"Team member {member_id} not found")
            await db.delete(member)
            await db.commit()

        logger.info("team_member_deleted", session_id=str(record.session_id), member_id=str(mid))

    async def complete_team_step(self, session_id: uuid.UUID | str) -> dict[str, Any]:
        """Mark the team step completed. A team of zero members is accepted.

        Raises:
            NotFound: If the session does not exist
            PreconditionFailed: If no venture is associated
        """
        record = await self.store.get_session(session_id)
        async with persistence_guard(self.session_factory, "complete_team_step") as db:
            venture_id = await self._require_venture_id(db, record)
            result = await db.execute(select(TeamMember.id).where(TeamMember.venture_id == venture_id))
            member_count = len(result.scalars().all())

        await self.store.update_session(
            record.session_id,
            OnboardingStep.TEAM,
            TeamStepData(member_count=member_count).model_dump(mode="json"),
            True,
            current_step=OnboardingStep.UPLOAD,
        )
        self.notifications.notify(str(record.session_id), f"Team step completed - {member_count} member(s)")
        return {"member_count": member_count, "next_step": OnboardingStep.UPLOAD.value}

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def _overview_folder_id(self, record: OnboardingSession) -> str | None:
        if record.venture_id is not None:
            async with persistence_guard(self.session_factory, "find_overview_folder") as db:
                result = await db.execute(
                    select(ProofVaultEntry.folder_id).where(
                        ProofVaultEntry.venture_id == record.venture_id,
                        ProofVaultEntry.category == OVERVIEW_FOLDER,
                    )
                )
                folder_id = result.scalar_one_or_none()
            if folder_id:
                return folder_id
        folders = (record.folder_structure or {}).get("folders") or {}
        return folders.get(OVERVIEW_FOLDER)

    async def _mirror_upload(
        self, record: OnboardingSession, upload_id: uuid.UUID, content: bytes, file_name: str
    ) -> DocumentUpload:
        """Copy the file to the Overview folder. Failure degrades to ``uploaded_locally``."""
        folder_id = await self._overview_folder_id(record)
        external_id = shared_url = None
        status = "uploaded_locally"

        if folder_id is None:
            logger.warning("upload_mirror_skipped", session_id=str(record.session_id), reason="no overview folder")
        else:
            try:
                uploaded = await self.proof_api.upload_file(content, file_name, folder_id)
                external_id = uploaded.id
                shared_url = uploaded.url or uploaded.download_url
                status = "completed"
            except ExternalServiceError as exc:
                logger.warning("upload_mirror_failed", session_id=str(record.session_id), error=str(exc))

        async with persistence_guard(self.session_factory, "save_upload_mirror") as db:
            upload = await db.get(DocumentUpload, upload_id)
            upload.upload_status = status
            upload.external_file_id = external_id
            upload.shared_url = shared_url
            await db.commit()
            await db.refresh(upload)
        return upload

    def _write_file(self, stored_name: str, content: bytes) -> Path:
        directory = Path(self.settings.upload_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / stored_name
        path.write_bytes(content)
        return path

    async def handle_document_upload(
        self,
        session_id: uuid.UUID | str,
        file_name: str,
        content: bytes,
        mime_type: str,
    ) -> dict[str, Any]:
        """Store the pitch deck, mirror it to external storage, advance to processing.

        Returns:
            {"upload", "next_step"}

        Raises:
            NotFound: If the session does not exist
            ValidationError: If the name, size or mime type is not acceptable
        """
        record = await self.store.get_session(session_id)
        meta = validate_step(
            DocumentUploadMeta,
            {"fileName": file_name or "", "fileSize": len(content), "mimeType": mime_type or ""},
        )
        if meta.file_size > self.settings.max_upload_bytes:
            raise ValidationError(
                [{"field": "fileSize", "message": f"File exceeds {self.settings.max_upload_bytes} bytes"}]
            )

        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", Path(meta.file_name).name) or "upload"
        stored_name = f"{uuid.uuid4().hex}_{safe_name}"
        path = await asyncio.to_thread(self._write_file, stored_name, content)

        async with persistence_guard(self.session_factory, "save_upload") as db:
            upload = DocumentUpload(
                session_id=record.session_id,
                venture_id=record.venture_id,
                file_name=stored_name,
                original_name=meta.file_name,
                file_path=str(path),
                file_size=meta.file_size,
                mime_type=meta.mime_type,
                upload_status="pending",
                processing_status="pending",
            )
            db.add(upload)
            await db.commit()
            await db.refresh(upload)

        upload = await self._mirror_upload(record, upload.id, content, meta.file_name)

        await self.store.update_session(
            record.session_id,
            OnboardingStep.UPLOAD,
            _upload_step_data(upload).model_dump(mode="json"),
            True,
            current_step=OnboardingStep.PROCESSING,
        )

        logger.info(
            "pitch_deck_uploaded",
            session_id=str(record.session_id),
            upload_id=str(upload.id),
            upload_status=upload.upload_status,
            file_size=upload.file_size,
        )
        self.notifications.notify(str(record.session_id), f"Pitch deck uploaded - {meta.file_name}")
        return {"upload": upload_to_dict(upload), "next_step": OnboardingStep.PROCESSING.value}

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def submit_for_scoring(self, session_id: uuid.UUID | str) -> dict[str, Any]:
        """Score the uploaded pitch deck and complete onboarding.

        Resubmitting a scored session returns the stored result without
        calling the scoring API again.

        Returns:
            {"session_id", "scoring_result", "is_complete"}

        Raises:
            NotFound: If the session does not exist
            PreconditionFailed: If there is no upload or no venture
            ExternalServiceError: If scoring fails, times out or returns garbage;
                the session stays incomplete
        """
        record = await self.store.get_session(session_id)
        step_data = parse_step_data(record.step_data or {})

        processing = step_data.get("processing")
        if record.is_complete and processing is not None:
            logger.info("scoring_result_reused", session_id=str(record.session_id))
            existing = processing.scoring_result.model_dump(mode="json")
            return {"session_id": record.session_id, "scoring_result": existing, "is_complete": True}

        upload = step_data.get("upload")
        if upload is None:
            raise PreconditionFailed("Upload a pitch deck before submitting for scoring")
        if record.venture_id is None:
            raise PreconditionFailed("Complete the venture step before submitting for scoring")

        try:
            content = await asyncio.to_thread(Path(upload.file_path).read_bytes)
        except FileNotFoundError as exc:
            raise PreconditionFailed("The uploaded pitch deck is no longer available; upload it again") from exc

        upload_id = upload.upload_id
        if not upload.external_file_id:
            await self._best_effort("mirror_before_scoring", self._mirror_before_scoring(record, upload, content))

        try:
            raw = await asyncio.wait_for(
                self.proof_api.score_pitch_deck(content, upload.original_name),
                timeout=self.settings.scoring_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("scoring_timeout", session_id=str(record.session_id))
            await self._best_effort("mark_upload_failed", self._set_processing_status(upload_id, "failed"))
            raise ExternalServiceError(
                "scoring", f"timed out after {self.settings.scoring_timeout_seconds:g}s"
            ) from exc
        except ExternalServiceError as exc:
            logger.error("scoring_failed", session_id=str(record.session_id), error=str(exc))
            await self._best_effort("mark_upload_failed", self._set_processing_status(upload_id, "failed"))
            raise

        try:
            scoring_result = normalize_scoring_result(raw)
            processing = ProcessingStepData(scoring_result=scoring_result, is_complete=True)
        except ValueError as exc:
            logger.error("scoring_response_malformed", session_id=str(record.session_id), error=str(exc))
            raise ExternalServiceError("scoring", "malformed scoring response") from exc

        record = await self.store.update_session(
            record.session_id,
            OnboardingStep.PROCESSING,
            processing.model_dump(mode="json"),
            False,
            current_step=OnboardingStep.COMPLETE,
            is_complete=True,
            completed_at=datetime.now(timezone.utc),
        )

        logger.info(
            "onboarding_scored",
            session_id=str(record.session_id),
            venture_id=str(record.venture_id),
            total_score=scoring_result["total_score"],
        )

        await self._after_scoring(record, upload_id, raw, scoring_result)
        return {"session_id": record.session_id, "scoring_result": scoring_result, "is_complete": True}

    async def _after_scoring(
        self,
        record: OnboardingSession,
        upload_id: uuid.UUID,
        raw: dict,
        scoring_result: dict[str, Any],
    ) -> None:
        """Best-effort side effects. Nothing here can fail a scored session."""
        venture_id = record.venture_id
        total = scoring_result["total_score"]

        await self._best_effort("mark_upload_processed", self._set_processing_status(upload_id, "completed"))
        await self._best_effort("add_team_from_analysis", self._add_team_from_analysis(record, extract_team(raw)))
        await self._best_effort("save_evaluation", self._save_evaluation(record, raw, scoring_result))
        await self._best_effort("upsert_leaderboard", self._upsert_leaderboard(venture_id, scoring_result))
        await self._best_effort(
            "record_onboarding_completed",
            self.progress.record_activity(
                record.founder_id, venture_id, CoachEvent.ONBOARDING_COMPLETED, {"sessionId": str(record.session_id)}
            ),
        )
        await self._best_effort(
            "record_proofscore_received",
            self.progress.record_activity(
                record.founder_id, venture_id, CoachEvent.PROOFSCORE_RECEIVED, {"proofScore": total}
            ),
        )

        self.notifications.notify(str(record.session_id), f"ProofScore analysis complete - Total Score: {total}/100")
        self.dispatcher.dispatch(self._certify_and_welcome(record, venture_id), name=f"certificate:{venture_id}")

    async def _certify_and_welcome(self, record: OnboardingSession, venture_id: uuid.UUID) -> None:
        """Background task: certificate first, then the founder welcome email linking it."""
        certificate_url = await self.certificates.generate_for_venture(venture_id)
        if certificate_url is None:
            logger.info("welcome_email_skipped", venture_id=str(venture_id), reason="no certificate")
            return
        await self._send_welcome_email(record, venture_id, certificate_url)

    async def _send_welcome_email(
        self, record: OnboardingSession, venture_id: uuid.UUID, certificate_url: str
    ) -> None:
        """Issue a fresh email verification token and email it with the certificate link."""
        token = secrets.token_hex(32)
        ttl_hours = self.settings.verification_token_ttl_hours
        expires_at = datetime.now(timezone.utc) + timedelta(hours=ttl_hours)

        async with persistence_guard(self.session_factory, "issue_verification_token") as db:
            founder = await db.get(Founder, record.founder_id)
            venture = await db.get(Venture, venture_id)
            if founder is None or venture is None:
                logger.warning("welcome_email_skipped", venture_id=str(venture_id), reason="founder or venture missing")
                return
            founder.verification_token = token
            founder.token_expires_at = expires_at
            email, full_name, venture_name = founder.email, founder.full_name, venture.name
            await db.commit()

        first_name = full_name.split()[0] if full_name and full_name.split() else "Founder"
        verification_url = f"{self.settings.public_base_url.rstrip('/')}/api/auth/verify-email/{token}"
        html = self.notifications.render_welcome_email(
            first_name=first_name,
            venture_name=venture_name,
            certificate_url=certificate_url,
            verification_url=verification_url,
            expires_in_hours=ttl_hours,
        )
        self.notifications.email(email, f"Your ProofScore certificate for {venture_name}", html)
        self.notifications.notify(
            str(record.session_id), f"Welcome email sent to {first_name} ({email}) - {venture_name}"
        )
        logger.info("welcome_email_queued", venture_id=str(venture_id), founder_id=str(record.founder_id))

    async def _mirror_before_scoring(self, record: OnboardingSession, upload: UploadStepData, content: bytes) -> None:
        """Retry the storage copy and keep the session's upload payload in step with the row."""
        mirrored = await self._mirror_upload(record, upload.upload_id, content, upload.original_name)
        if mirrored.external_file_id:
            await self.store.update_session(
                record.session_id,
                OnboardingStep.UPLOAD,
                _upload_step_data(mirrored).model_dump(mode="json"),
                True,
            )

    async def _best_effort(self, step: str, coro) -> None:
        try:
            await coro
        except Exception as exc:
            logger.warning(
                "best_effort_step_failed",
                step=step,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _set_processing_status(self, upload_id: uuid.UUID, status: str) -> None:
        async with persistence_guard(self.session_factory, "set_processing_status") as db:
            upload = await db.get(DocumentUpload, upload_id)
            if upload is not None:
                upload.processing_status = status
                await db.commit()

    async def _add_team_from_analysis(self, record: OnboardingSession, members: list[dict]) -> None:
        """Add members named by the analysis, skipping names already on the team (case-insensitive)."""
        if not members:
            return
        async with persistence_guard(self.session_factory, "add_team_from_analysis") as db:
            result = await db.execute(select(TeamMember.full_name).where(TeamMember.venture_id == record.venture_id))
            known = {name.lower() for name in result.scalars().all()}

            added = []
            for entry in members:
                name = str(entry["name"]).strip()
                if not name or name.lower() in known:
                    continue
                role = str(entry.get("role") or "Team Member")
                role_lower = role.lower()
                db.add(
                    TeamMember(
                        venture_id=record.venture_id,
                        full_name=name,
                        role=role,
                        experience=entry.get("experience") or entry.get("background") or "",
                        background=entry.get("background") or "",
                        is_technical="cto" in role_lower or "tech" in role_lower,
                        is_cofounder="founder" in role_lower or "ceo" in role_lower,
                    )
                )
                known.add(name.lower())
                added.append(name)
            await db.commit()

        if added:
            logger.info("team_members_added_from_analysis", venture_id=str(record.venture_id), count=len(added))

    async def _save_evaluation(self, record: OnboardingSession, raw: dict, scoring_result: dict[str, Any]) -> None:
        folder_structure = record.folder_structure or {}
        async with persistence_guard(self.session_factory, "save_evaluation") as db:
            previous = await db.execute(
                select(Evaluation).where(Evaluation.venture_id == record.venture_id, Evaluation.is_current.is_(True))
            )
            for evaluation in previous.scalars().all():
                evaluation.is_current = False

            db.add(
                Evaluation(
                    venture_id=record.venture_id,
                    proofscore=int(round(scoring_result["total_score"])),
                    prooftags=list(scoring_result["tags"]),
                    dimension_scores=dict(scoring_result["dimensions"]),
                    full_api_response=raw,
                    folder_id=folder_structure.get("id"),
                    folder_url=folder_structure.get("url"),
                    is_current=True,
                )
            )
            await db.commit()

    async def _upsert_leaderboard(self, venture_id: uuid.UUID, scoring_result: dict[str, Any]) -> None:
        """Create the venture's entry, or raise it when the new score is higher."""
        total = int(round(scoring_result["total_score"]))
        async with persistence_guard(self.session_factory, "upsert_leaderboard") as db:
            venture = await db.get(Venture, venture_id)
            if venture is None:
                raise NotFound(f"Venture {venture_id} not found")

            result = await db.execute(select(LeaderboardEntry).where(LeaderboardEntry.venture_id == venture_id))
            entry = result.scalar_one_or_none()
            if entry is None:
                db.add(
                    LeaderboardEntry(
                        venture_id=venture_id,
                        venture_name=venture.name,
                        total_score=total,
                        dimension_scores=dict(scoring_result["dimensions"]),
                    )
                )
            elif total > entry.total_score:
                entry.total_score = total
                entry.dimension_scores = dict(scoring_result["dimensions"])
                entry.analysis_date = datetime.now(timezone.utc)
            else:
                return
            await db.commit()
