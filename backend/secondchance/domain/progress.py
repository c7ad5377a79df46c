"""Coach progress aggregation over user activity events.

Pure functions with no external dependencies.
"""
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any


class CoachEvent(str, Enum):
    """Activity event names recorded in user_activity."""

    ONBOARDING_STARTED = "onboarding_started"
    ONBOARDING_COMPLETED = "onboarding_completed"

    DASHBOARD_VISITED = "dashboard_visited"
    DASHBOARD_TUTORIAL_COMPLETED = "dashboard_tutorial_completed"

    VAULT_FILE_UPLOADED = "vault_file_uploaded"
    VAULT_FIRST_UPLOAD = "vault_first_upload"
    VAULT_10_FILES_UPLOADED = "vault_10_files_uploaded"
    VAULT_20_FILES_UPLOADED = "vault_20_files_uploaded"
    VAULT_30_FILES_UPLOADED = "vault_30_files_uploaded"
    VAULT_SCORE_UPDATED = "vault_score_updated"

    VALIDATION_MAP_VIEWED = "validation_map_viewed"
    VALIDATION_MAP_EXPORTED = "validation_map_exported"
    VALIDATION_CSV_UPLOADED = "validation_csv_uploaded"
    EXPERIMENT_CREATED = "experiment_created"
    EXPERIMENT_STARTED = "experiment_started"
    EXPERIMENT_UPDATED = "experiment_updated"
    EXPERIMENT_COMPLETED = "experiment_completed"
    FIRST_EXPERIMENT_COMPLETED = "first_experiment_completed"
    THREE_EXPERIMENTS_COMPLETED = "three_experiments_completed"
    FIVE_EXPERIMENTS_COMPLETED = "five_experiments_completed"

    PROOFSCORE_RECEIVED = "proofscore_received"
    PROOFSCORE_VIEWED = "proofscore_viewed"
    SCORE_IMPROVED = "score_improved"

    DEAL_ROOM_VIEWED = "deal_room_viewed"
    DEAL_ROOM_PURCHASED = "deal_room_purchased"
    PATHWAY_VIEWED = "pathway_viewed"

    COMMUNITY_ACCESSED = "community_accessed"
    REPORT_DOWNLOADED = "report_downloaded"
    FILE_DOWNLOADED = "file_downloaded"


COACH_EVENT_NAMES: frozenset[str] = frozenset(event.value for event in CoachEvent)

# Journey step id -> events that imply it
JOURNEY_STEP_COMPLETION_EVENTS: dict[int, tuple[CoachEvent, ...]] = {
    0: (CoachEvent.ONBOARDING_STARTED,),
    1: (CoachEvent.ONBOARDING_COMPLETED,),
    2: (CoachEvent.PROOFSCORE_VIEWED, CoachEvent.DASHBOARD_VISITED),
    3: (CoachEvent.VALIDATION_MAP_VIEWED,),
    4: (CoachEvent.FIRST_EXPERIMENT_COMPLETED,),
    5: (CoachEvent.THREE_EXPERIMENTS_COMPLETED,),
    6: (CoachEvent.VAULT_FIRST_UPLOAD,),
    7: (CoachEvent.PROOFSCORE_VIEWED,),
    8: (CoachEvent.VAULT_10_FILES_UPLOADED,),
    9: (CoachEvent.VALIDATION_MAP_EXPORTED,),
}

_COMMUNITY_EVENTS = frozenset(
    {
        CoachEvent.COMMUNITY_ACCESSED.value,
        CoachEvent.REPORT_DOWNLOADED.value,
        CoachEvent.FILE_DOWNLOADED.value,
    }
)

_DATETIME_FIELDS = (
    "first_experiment_completed_at",
    "first_vault_upload_at",
    "latest_proof_score_at",
    "validation_map_exported_at",
    "validation_map_uploaded_at",
    "deal_room_purchased_at",
    "last_activity_at",
)


@dataclass
class ActivityRecord:
    """One user_activity row, decoupled from the ORM."""

    action: str
    created_at: datetime
    metadata: dict = field(default_factory=dict)


@dataclass
class ProgressSnapshot:
    """Server-computed coach progress for one founder."""

    onboarding_complete: bool = False
    dashboard_tutorial_completed: bool = False

    completed_experiments_count: int = 0
    has_completed_experiment: bool = False
    has_completed_3_experiments: bool = False
    first_experiment_completed_at: datetime | None = None

    vault_upload_count: int = 0
    total_uploads: int = 0
    distinct_artifact_types_count: int = 0
    first_vault_upload_at: datetime | None = None
    has_first_upload: bool = False
    has_10_uploads: bool = False
    has_20_uploads: bool = False
    has_30_uploads: bool = False

    proof_score: float = 0
    vault_score: float = 0
    latest_proof_score_at: datetime | None = None

    validation_map_exported: bool = False
    validation_map_exported_at: datetime | None = None
    validation_map_uploaded_to_vault: bool = False
    validation_map_uploaded_at: datetime | None = None

    has_deal_room_access: bool = False
    deal_room_purchased_at: datetime | None = None

    has_accessed_community_or_downloads: bool = False

    completed_steps: list[int] = field(default_factory=list)
    last_activity_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict (datetimes as ISO strings)."""
        data = asdict(self)
        for name in _DATETIME_FIELDS:
            value = data[name]
            data[name] = value.isoformat() if value is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressSnapshot":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        for name in _DATETIME_FIELDS:
            raw = values.get(name)
            if isinstance(raw, str):
                values[name] = datetime.fromisoformat(raw)
        return cls(**values)


def _metric(metadata: dict, key: str) -> float | None:
    value = metadata.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def implied_journey_steps(actions: Iterable[str]) -> list[int]:
    """Journey step ids implied by the recorded actions, ascending."""
    seen = set(actions)
    return sorted(
        step_id
        for step_id, events in JOURNEY_STEP_COMPLETION_EVENTS.items()
        if any(event.value in seen for event in events)
    )


def aggregate_progress(activities: list[ActivityRecord]) -> ProgressSnapshot:
    """Fold activity events into a progress snapshot.

    Args:
        activities: Activity records, newest first

    Returns:
        ProgressSnapshot. Scores come from the newest event carrying them;
        "first ... at" timestamps from the oldest.

    Pure function -- deterministic, no side effects.
    """
    progress = ProgressSnapshot()
    artifact_types: set[str] = set()
    vault_score_seen = False

    if activities:
        progress.last_activity_at = activities[0].created_at

    for activity in activities:
        action = activity.action
        metadata = activity.metadata or {}
        at = activity.created_at

        if action == CoachEvent.ONBOARDING_COMPLETED:
            progress.onboarding_complete = True
        elif action == CoachEvent.DASHBOARD_TUTORIAL_COMPLETED:
            progress.dashboard_tutorial_completed = True

        elif action == CoachEvent.EXPERIMENT_COMPLETED:
            progress.completed_experiments_count += 1
            progress.has_completed_experiment = True
            progress.first_experiment_completed_at = at
        elif action == CoachEvent.FIRST_EXPERIMENT_COMPLETED:
            progress.has_completed_experiment = True
            progress.first_experiment_completed_at = at
        elif action == CoachEvent.THREE_EXPERIMENTS_COMPLETED:
            progress.has_completed_3_experiments = True

        elif action == CoachEvent.VAULT_FILE_UPLOADED:
            progress.vault_upload_count += 1
            progress.total_uploads += 1
            artifact_type = metadata.get("artifactType") or metadata.get("artifact_type")
            if artifact_type:
                artifact_types.add(str(artifact_type))
            progress.first_vault_upload_at = at
        elif action == CoachEvent.VAULT_FIRST_UPLOAD:
            progress.has_first_upload = True
            progress.first_vault_upload_at = at
        elif action == CoachEvent.VAULT_10_FILES_UPLOADED:
            progress.has_10_uploads = True
        elif action == CoachEvent.VAULT_20_FILES_UPLOADED:
            progress.has_20_uploads = True
        elif action == CoachEvent.VAULT_30_FILES_UPLOADED:
            progress.has_30_uploads = True

        elif action == CoachEvent.PROOFSCORE_RECEIVED:
            score = _metric(metadata, "proofScore")
            if score is not None and progress.latest_proof_score_at is None:
                progress.proof_score = score
                progress.latest_proof_score_at = at
        elif action == CoachEvent.VAULT_SCORE_UPDATED:
            score = _metric(metadata, "vaultScore")
            if score is not None and not vault_score_seen:
                progress.vault_score = score
                vault_score_seen = True

        elif action == CoachEvent.VALIDATION_MAP_EXPORTED:
            progress.validation_map_exported = True
            if progress.validation_map_exported_at is None:
                progress.validation_map_exported_at = at
        elif action == CoachEvent.VALIDATION_CSV_UPLOADED:
            progress.validation_map_uploaded_to_vault = True
            if progress.validation_map_uploaded_at is None:
                progress.validation_map_uploaded_at = at

        elif action == CoachEvent.DEAL_ROOM_PURCHASED:
            progress.has_deal_room_access = True
            if progress.deal_room_purchased_at is None:
                progress.deal_room_purchased_at = at

        elif action in _COMMUNITY_EVENTS:
            progress.has_accessed_community_or_downloads = True

    progress.distinct_artifact_types_count = len(artifact_types)
    progress.completed_steps = implied_journey_steps(a.action for a in activities)
    return progress
