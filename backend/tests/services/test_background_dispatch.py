"""Tests for BackgroundDispatcher and the best-effort NotificationService built on it."""

import asyncio

import pytest

from secondchance.integrations.proof_api_fake import ProofApiFake
from secondchance.services.background import BackgroundDispatcher, get_dispatcher
from secondchance.services.notification_service import NotificationService

pytestmark = pytest.mark.unit


async def test_dispatch_runs_detached_task():
    dispatcher = BackgroundDispatcher()
    done = asyncio.Event()

    async def work():
        done.set()

    dispatcher.dispatch(work(), name="work")
    await asyncio.wait_for(done.wait(), timeout=1)
    await dispatcher.drain(timeout=1)

    assert dispatcher.pending == 0


async def test_failing_task_is_logged_not_raised():
    dispatcher = BackgroundDispatcher()

    async def boom():
        raise RuntimeError("collaborator down")

    task = dispatcher.dispatch(boom(), name="boom")
    await dispatcher.drain(timeout=1)

    assert task.done()
    assert task.exception() is None


async def test_drain_cancels_tasks_past_timeout():
    dispatcher = BackgroundDispatcher()

    async def slow():
        await asyncio.sleep(10)

    task = dispatcher.dispatch(slow(), name="slow")
    await dispatcher.drain(timeout=0.01)

    assert task.cancelled()
    assert dispatcher.pending == 0


async def test_drain_with_nothing_pending():
    await BackgroundDispatcher().drain(timeout=0.01)


def test_get_dispatcher_is_process_wide():
    assert get_dispatcher() is get_dispatcher()


async def test_notify_posts_tagged_message():
    proof_api = ProofApiFake()
    dispatcher = BackgroundDispatcher()
    notifications = NotificationService(proof_api, dispatcher, channel="#onboarding")

    notifications.notify("session-1", "Founder step completed - Jane")
    await dispatcher.drain(timeout=1)

    assert proof_api.slack_messages == [
        {
            "message": "`Onboarding Id : session-1`\nFounder step completed - Jane",
            "channel": "#onboarding",
            "unique_id": "session-1",
        }
    ]


async def test_notification_failure_is_swallowed():
    proof_api = ProofApiFake(scenario="notification_failure")
    dispatcher = BackgroundDispatcher()
    notifications = NotificationService(proof_api, dispatcher, channel="#onboarding")

    notifications.notify("session-1", "hello")
    notifications.email("jane@example.com", "Welcome", "<p>Hi</p>")
    await dispatcher.drain(timeout=1)

    assert proof_api.slack_messages == []
    assert proof_api.emails == []


async def test_email_is_sent():
    proof_api = ProofApiFake()
    dispatcher = BackgroundDispatcher()

    NotificationService(proof_api, dispatcher, channel="#x").email("jane@example.com", "Welcome", "<p>Hi</p>")
    await dispatcher.drain(timeout=1)

    assert proof_api.emails == [{"to": "jane@example.com", "subject": "Welcome", "html": "<p>Hi</p>"}]
