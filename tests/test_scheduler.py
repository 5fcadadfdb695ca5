# SettingSync Periodic Sync Tests

import asyncio

import pytest
from conftest import StaticStore

from settingsync.errors import ConfigurationError
from settingsync.sync.scheduler import SyncScheduler


class TestSyncScheduler:
    """Tests for SyncScheduler."""

    @pytest.mark.asyncio
    async def test_runs_repeatedly(self):
        runs = []

        async def run():
            runs.append(1)

        scheduler = SyncScheduler(StaticStore(sync_interval=0.02), run, lambda: True)
        scheduler.start()
        await asyncio.sleep(0.2)
        await scheduler.stop()

        assert len(runs) >= 2
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_timer(self):
        scheduler = SyncScheduler(StaticStore(sync_interval=10), AsyncMockRun(), lambda: True)
        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_disabled_ends_the_loop(self):
        run = AsyncMockRun()
        scheduler = SyncScheduler(StaticStore(sync_interval=0.02), run, lambda: False)
        scheduler.start()
        await asyncio.sleep(0.1)

        assert run.calls == 0
        assert scheduler.running is False
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_failed_run_rearms(self):
        run = AsyncMockRun(error=RuntimeError("remote unreachable"))
        scheduler = SyncScheduler(StaticStore(sync_interval=0.02), run, lambda: True)
        scheduler.start()
        await asyncio.sleep(0.2)
        await scheduler.stop()

        assert run.calls >= 2

    @pytest.mark.asyncio
    async def test_stop_lets_running_sync_finish(self):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def run():
            started.set()
            await release.wait()
            finished.append(1)

        scheduler = SyncScheduler(StaticStore(sync_interval=0.01), run, lambda: True)
        scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=2)

        stop_task = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0.05)
        assert not stop_task.done()

        release.set()
        await asyncio.wait_for(stop_task, timeout=2)
        assert finished == [1]

    @pytest.mark.asyncio
    async def test_unreadable_config_keeps_previous_interval(self):
        run = AsyncMockRun()
        store = StaticStore(sync_interval=0.02)
        scheduler = SyncScheduler(store, run, lambda: True)
        scheduler.start()
        await asyncio.sleep(0.05)

        store.error = ConfigurationError("Invalid configuration")
        calls = run.calls
        await asyncio.sleep(0.15)
        await scheduler.stop()

        assert run.calls > calls
        assert scheduler._interval == 0.02

    @pytest.mark.asyncio
    async def test_request_stop_then_start_rearms(self):
        """A restart before the stopped loop exits arms a fresh loop."""
        scheduler = SyncScheduler(StaticStore(sync_interval=10), AsyncMockRun(), lambda: True)
        scheduler.start()
        old_task = scheduler._task

        scheduler.request_stop()
        scheduler.start()

        assert scheduler._task is not old_task
        await asyncio.wait_for(old_task, timeout=1)
        assert scheduler.running is True
        await scheduler.stop()
        assert scheduler.running is False


class AsyncMockRun:
    """Counting sync callable that can be told to fail."""

    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
