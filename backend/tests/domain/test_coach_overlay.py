"""Tests for the coach overlay view state machine."""

import pytest

from secondchance.domain.coach_overlay import (
    CoachAction,
    CoachView,
    derive_view,
    transition,
    view_flags,
)

pytestmark = pytest.mark.unit


def test_dismiss_then_reopen_lands_minimized():
    dismissed = transition(CoachView.JOURNEY_ACTIVE, CoachAction.DISMISS)
    assert dismissed.allowed
    assert dismissed.new_view == CoachView.HIDDEN

    reopened = transition(dismissed.new_view, CoachAction.REOPEN)
    assert reopened.allowed
    assert reopened.new_view == CoachView.MINIMIZED


@pytest.mark.parametrize("view", list(CoachView))
def test_dismiss_allowed_from_any_view(view):
    assert transition(view, CoachAction.DISMISS).new_view == CoachView.HIDDEN


@pytest.mark.parametrize("view", [CoachView.MINIMIZED, CoachView.TUTORIAL_ACTIVE, CoachView.JOURNEY_ACTIVE])
def test_finish_tutorial_minimizes_visible_overlay(view):
    result = transition(view, CoachAction.FINISH_TUTORIAL)
    assert result.allowed
    assert result.new_view == CoachView.MINIMIZED


def test_finish_tutorial_keeps_dismissed_overlay_hidden():
    result = transition(CoachView.HIDDEN, CoachAction.FINISH_TUTORIAL)
    assert result.allowed
    assert result.new_view == CoachView.HIDDEN


def test_expand_goes_to_tutorial_when_page_has_unseen_tutorial():
    result = transition(CoachView.MINIMIZED, CoachAction.EXPAND, has_unseen_tutorial=True)
    assert result.new_view == CoachView.TUTORIAL_ACTIVE


def test_expand_goes_to_journey_otherwise():
    result = transition(CoachView.MINIMIZED, CoachAction.EXPAND, has_unseen_tutorial=False)
    assert result.new_view == CoachView.JOURNEY_ACTIVE


@pytest.mark.parametrize("view", [CoachView.TUTORIAL_ACTIVE, CoachView.JOURNEY_ACTIVE])
def test_minimize_from_active_views(view):
    assert transition(view, CoachAction.MINIMIZE).new_view == CoachView.MINIMIZED


@pytest.mark.parametrize(
    "view,action",
    [
        (CoachView.HIDDEN, CoachAction.EXPAND),
        (CoachView.JOURNEY_ACTIVE, CoachAction.EXPAND),
        (CoachView.HIDDEN, CoachAction.MINIMIZE),
        (CoachView.MINIMIZED, CoachAction.MINIMIZE),
        (CoachView.MINIMIZED, CoachAction.REOPEN),
        (CoachView.TUTORIAL_ACTIVE, CoachAction.REOPEN),
    ],
)
def test_illegal_transitions_rejected(view, action):
    result = transition(view, action)
    assert result.allowed is False
    assert result.new_view is None
    assert view.value in result.reason


def test_derive_view_precedence():
    assert derive_view(is_dismissed=True, is_minimized=True, has_unseen_tutorial=True) == CoachView.HIDDEN
    assert derive_view(False, True, True) == CoachView.MINIMIZED
    assert derive_view(False, False, True) == CoachView.TUTORIAL_ACTIVE
    assert derive_view(False, False, False) == CoachView.JOURNEY_ACTIVE


def test_view_flags_round_trip_through_derive_view():
    for view in (CoachView.HIDDEN, CoachView.MINIMIZED):
        flags = view_flags(view)
        assert derive_view(flags["is_dismissed"], flags["is_minimized"], False) == view
