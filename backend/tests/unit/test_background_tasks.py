"""Tests for the fire-and-forget background task runner."""

import asyncio
import logging

from anonauth.services.background_tasks import BackgroundTaskRunner


class TestBackgroundTaskRunner:
    async def test_spawn_returns_before_task_completes(self):
        runner = BackgroundTaskRunner()
        gate = asyncio.Event()
        done: list[str] = []

        async def job() -> None:
            await gate.wait()
            done.append("job")

        runner.spawn(job(), name="job")
        assert done == []
        assert runner.pending_count == 1

        gate.set()
        await runner.drain()
        assert done == ["job"]
        assert runner.pending_count == 0

    async def test_failure_is_logged_not_raised(self, caplog):
        runner = BackgroundTaskRunner()

        async def boom() -> None:
            raise RuntimeError("store unavailable")

        with caplog.at_level(logging.ERROR, logger="anonauth.services.background_tasks"):
            runner.spawn(boom(), name="persist")
            await runner.drain()
            # Let the done callback run
            await asyncio.sleep(0)

        assert "Background task persist failed" in caplog.text
        assert runner.pending_count == 0

    async def test_drain_waits_for_tasks_spawned_by_tasks(self):
        runner = BackgroundTaskRunner()
        done: list[str] = []

        async def child() -> None:
            done.append("child")

        async def parent() -> None:
            runner.spawn(child(), name="child")
            done.append("parent")

        runner.spawn(parent(), name="parent")
        await runner.drain()
        assert done == ["parent", "child"]

    async def test_cancel_all(self):
        runner = BackgroundTaskRunner()

        async def forever() -> None:
            await asyncio.Event().wait()

        task = runner.spawn(forever(), name="forever")
        await asyncio.sleep(0)
        await runner.cancel_all()
        assert task.cancelled()
        assert runner.pending_count == 0

    async def test_drain_with_nothing_pending(self):
        await BackgroundTaskRunner().drain()
