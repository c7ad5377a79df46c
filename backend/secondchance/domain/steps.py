"""Onboarding step order and ProofVault folder categories.

Pure domain logic with no external dependencies.
"""
from enum import Enum


class OnboardingStep(str, Enum):
    """Onboarding wizard steps in their fixed order."""

    FOUNDER = "founder"
    VENTURE = "venture"
    TEAM = "team"
    UPLOAD = "upload"
    PROCESSING = "processing"
    COMPLETE = "complete"


STEP_ORDER: list[OnboardingStep] = list(OnboardingStep)

# Storage folder keys created for every venture, in display order
PROOF_VAULT_CATEGORIES: tuple[str, ...] = (
    "0_Overview",
    "1_Problem_Proof",
    "2_Solution_Proof",
    "3_Demand_Proof",
    "4_Credibility_Proof",
    "5_Commercial_Proof",
    "6_Investor_Pack",
)

OVERVIEW_FOLDER = "0_Overview"
INVESTOR_PACK_FOLDER = "6_Investor_Pack"

ALLOWED_UPLOAD_MIME_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    }
)


def step_index(step: OnboardingStep | str) -> int:
    """Ordinal position of a step in the wizard."""
    return STEP_ORDER.index(OnboardingStep(step))


def advance_to(current: OnboardingStep | str, target: OnboardingStep | str) -> OnboardingStep:
    """Move the wizard position forward to ``target``.

    The position never moves backwards: re-submitting an earlier step keeps
    the session where it was.
    """
    if step_index(target) > step_index(current):
        return OnboardingStep(target)
    return OnboardingStep(current)


def mark_completed(completed: list[str], step: OnboardingStep | str) -> list[str]:
    """Return ``completed`` with ``step`` appended when absent.

    Always returns a new list so JSON columns register the change.
    """
    name = OnboardingStep(step).value
    if name in completed:
        return list(completed)
    return [*completed, name]
