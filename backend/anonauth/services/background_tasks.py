"""Fire-and-forget background tasks.

Issuance persists its record and dispatches its message without waiting for
either: the response can reach the caller first. Each job runs at most once
and is best-effort; a failure is logged, never retried, and never reaches
the caller.

The runner keeps a strong reference to every in-flight task (the event loop
only keeps weak ones) and lets the application drain them on shutdown.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Tracks fire-and-forget asyncio tasks.

    Lifecycle:
    - spawn() schedules a coroutine and returns immediately.
    - drain() waits for every in-flight task (shutdown, tests).
    - cancel_all() cancels whatever is still running.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending_count(self) -> int:
        """Number of tasks not yet finished."""
        return sum(1 for task in self._tasks if not task.done())

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Schedule *coro* without awaiting it.

        Must be called from an async context (running event loop).

        Args:
            coro: Coroutine to run.
            name: Task name, used in failure logs.

        Returns:
            The created task.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed",
                task.get_name(),
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self) -> None:
        """Wait until every in-flight task has finished.

        Failures were already logged by the done callback and are not
        re-raised here.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel every in-flight task and wait for the cancellations."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
