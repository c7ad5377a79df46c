"""Re-export all models so Base.metadata sees them."""

from secondchance.db.models.coach_state import CoachState
from secondchance.db.models.document_upload import DocumentUpload
from secondchance.db.models.evaluation import Evaluation
from secondchance.db.models.founder import Founder
from secondchance.db.models.leaderboard import LeaderboardEntry
from secondchance.db.models.onboarding_session import OnboardingSession
from secondchance.db.models.proof_vault import ProofVaultEntry
from secondchance.db.models.team_member import TeamMember
from secondchance.db.models.user_activity import UserActivity
from secondchance.db.models.venture import Venture

__all__ = [
    "CoachState",
    "DocumentUpload",
    "Evaluation",
    "Founder",
    "LeaderboardEntry",
    "OnboardingSession",
    "ProofVaultEntry",
    "TeamMember",
    "UserActivity",
    "Venture",
]
