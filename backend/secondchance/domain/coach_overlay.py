"""ProofCoach overlay view state machine.

Pure domain logic with no external dependencies.
"""
from dataclasses import dataclass
from enum import Enum


class CoachView(str, Enum):
    HIDDEN = "hidden"
    MINIMIZED = "minimized"
    TUTORIAL_ACTIVE = "tutorial_active"
    JOURNEY_ACTIVE = "journey_active"


class CoachAction(str, Enum):
    EXPAND = "expand"
    MINIMIZE = "minimize"
    DISMISS = "dismiss"
    REOPEN = "reopen"
    FINISH_TUTORIAL = "finish_tutorial"  # finished or skipped


ACTIVE_VIEWS = frozenset({CoachView.TUTORIAL_ACTIVE, CoachView.JOURNEY_ACTIVE})


@dataclass
class OverlayTransition:
    """Result of an overlay transition attempt."""

    allowed: bool
    reason: str = ""
    new_view: CoachView | None = None


def derive_view(is_dismissed: bool, is_minimized: bool, has_unseen_tutorial: bool) -> CoachView:
    """Overlay view implied by persisted coach flags on a page."""
    if is_dismissed:
        return CoachView.HIDDEN
    if is_minimized:
        return CoachView.MINIMIZED
    if has_unseen_tutorial:
        return CoachView.TUTORIAL_ACTIVE
    return CoachView.JOURNEY_ACTIVE


def view_flags(view: CoachView) -> dict[str, bool]:
    """Persisted ``is_dismissed``/``is_minimized`` flags for a view."""
    return {
        "is_dismissed": view == CoachView.HIDDEN,
        "is_minimized": view == CoachView.MINIMIZED,
    }


def transition(current: CoachView, action: CoachAction, has_unseen_tutorial: bool = False) -> OverlayTransition:
    """Apply an overlay action.

    Args:
        current: View the overlay is in
        action: Requested action
        has_unseen_tutorial: Whether the current page has a tutorial the
            founder has not completed (decides where ``expand`` lands)

    Returns:
        OverlayTransition with allowed flag, reason, and new_view if allowed

    Rules:
        - expand: minimized -> tutorial_active or journey_active
        - minimize: tutorial_active/journey_active -> minimized
        - dismiss: any -> hidden
        - reopen: hidden -> minimized
        - finish_tutorial: visible -> minimized; hidden stays hidden
    """
    if action == CoachAction.DISMISS:
        return OverlayTransition(True, new_view=CoachView.HIDDEN)

    if action == CoachAction.REOPEN:
        if current != CoachView.HIDDEN:
            return OverlayTransition(False, f"Cannot reopen from {current.value}")
        return OverlayTransition(True, new_view=CoachView.MINIMIZED)

    if action == CoachAction.EXPAND:
        if current != CoachView.MINIMIZED:
            return OverlayTransition(False, f"Cannot expand from {current.value}")
        target = CoachView.TUTORIAL_ACTIVE if has_unseen_tutorial else CoachView.JOURNEY_ACTIVE
        return OverlayTransition(True, new_view=target)

    if action == CoachAction.MINIMIZE:
        if current not in ACTIVE_VIEWS:
            return OverlayTransition(False, f"Cannot minimize from {current.value}")
        return OverlayTransition(True, new_view=CoachView.MINIMIZED)

    if action == CoachAction.FINISH_TUTORIAL:
        # only reopen leaves hidden
        if current == CoachView.HIDDEN:
            return OverlayTransition(True, new_view=CoachView.HIDDEN)
        return OverlayTransition(True, new_view=CoachView.MINIMIZED)

    return OverlayTransition(False, f"Unknown action {action}")
