# SettingSync Periodic Sync
# Self-re-arming timer that runs a sync every sync_interval seconds

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Optional

from settingsync.config.loader import ConfigStore
from settingsync.errors import ConfigurationError
from settingsync.logger import get_logger

logger = get_logger(__name__)


class SyncScheduler:
    """
    Runs ``run`` every ``sync_interval`` seconds while ``is_enabled()``.

    The next wait is armed only after a run completes, so runs never
    overlap and the interval is measured from completion.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        run: Callable[[], Awaitable[None]],
        is_enabled: Callable[[], bool],
    ):
        self.config_store = config_store
        self.run = run
        self.is_enabled = is_enabled
        self._task: Optional[asyncio.Task[None]] = None
        self._interval: float = 300
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Arm the timer; does nothing if it is already armed."""
        if self.running and not self._stop_event.is_set():
            return
        # A loop that was asked to stop keeps its own event and winds down alone
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event))
        logger.debug("Periodic sync started")

    def request_stop(self) -> None:
        """Prevent the next run without waiting for the loop to exit."""
        self._stop_event.set()

    async def stop(self) -> None:
        """Prevent the next run; a run in progress is allowed to finish."""
        if self._task is None:
            return
        self.request_stop()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Periodic sync stopped")

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while True:
            try:
                interval = self.config_store.get().sync_interval
            except ConfigurationError as e:
                logger.warning("Cannot read sync interval, keeping the previous one", error=str(e))
                interval = self._interval
            self._interval = interval

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
                return
            except asyncio.TimeoutError:
                pass

            if not self.is_enabled():
                logger.debug("Sync disabled, periodic sync ends")
                return

            logger.debug("Periodic sync")
            try:
                await self.run()
            except Exception as e:
                logger.error("Periodic sync failed", error=str(e))
