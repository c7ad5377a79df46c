"""BackgroundDispatcher — detached asyncio tasks that never fail the request.

Notifications and certificate generation run after the response is sent.
The dispatcher keeps a strong reference to every task until it finishes (the
event loop only holds weak ones) and logs failures instead of propagating them.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundDispatcher:
    """Fire-and-forget task runner.

    Public API:
        dispatch(coro, name) -> asyncio.Task
        drain(timeout) -> None
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule ``coro`` as a detached task.

        Never raises for failures inside ``coro``; they are logged with ``name``.
        """
        task = asyncio.create_task(self._run(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.info("background_task_cancelled", task=name)
            raise
        except Exception as exc:
            logger.error(
                "background_task_failed",
                task=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight tasks; cancel whatever is left after ``timeout``."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("background_tasks_cancelled_on_drain", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)


_dispatcher: BackgroundDispatcher | None = None


def get_dispatcher() -> BackgroundDispatcher:
    """Process-wide dispatcher (FastAPI dependency)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = BackgroundDispatcher()
    return _dispatcher
