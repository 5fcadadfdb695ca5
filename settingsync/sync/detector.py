# SettingSync Change Detection
# Watches live files and turns bursts of events into one debounced trigger

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Set as AbstractSet
import contextlib
import time
from pathlib import Path

from watchfiles import Change

from settingsync.config.loader import ConfigStore
from settingsync.errors import ConfigurationError
from settingsync.logger import get_logger
from settingsync.sync.state import SyncState
from settingsync.utils.paths import ensure_dir, get_relative_path, matches_any_pattern
from settingsync.utils.watcher import FileWatcher

logger = get_logger(__name__)

# Repeats for the same path inside this window are the same write
DEDUP_WINDOW = 0.1
QUEUE_SIZE = 256


class ChangeDetector:
    """
    Debounced change detection for the live side.

    Watches the settings directory (filtered by the include and exclude
    patterns) and every external file. Events pass through a bounded
    queue into a single consumer, which fires ``on_settled`` once
    ``debounce_delay`` seconds have passed since the last event.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        settings_dir: Path,
        on_settled: Callable[[], Awaitable[None]],
        accepting: Callable[[], bool],
        state: SyncState,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the detector.

        Args:
            config_store: Source of patterns, external files and the debounce delay.
            settings_dir: Live settings directory.
            on_settled: Awaited once per settled burst of events.
            accepting: Whether events may currently start a sync.
            state: Holds the per-path last-event map.
            clock: Monotonic time source.
        """
        self.config_store = config_store
        self.settings_dir = settings_dir
        self.on_settled = on_settled
        self.accepting = accepting
        self.state = state
        self.clock = clock
        self._queue: asyncio.Queue[Path] = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._watchers: list[FileWatcher] = []
        self._consumer: asyncio.Task[None] | None = None
        self._firing = False
        self._stopping = False
        self._delay: float = 5

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending_events(self) -> int:
        return self._queue.qsize()

    def notify(self, path: Path) -> bool:
        """
        Offer one file event to the pipeline.

        Returns:
            True if the event was queued.
        """
        if not self.accepting():
            return False
        if not self.state.record_event(path, self.clock(), DEDUP_WINDOW):
            return False
        try:
            self._queue.put_nowait(path)
        except asyncio.QueueFull:
            # A full queue already guarantees a trigger
            logger.debug("Event queue full, dropping event", path=str(path))
            return False
        logger.debug("File change detected", path=str(path))
        return True

    async def _on_changes(self, changes: AbstractSet[tuple[Change, str]]) -> None:
        for _change, path in changes:
            self.notify(Path(path))

    def _settings_filter(self) -> Callable[[Change, str], bool]:
        files = self.config_store.get().files
        patterns = list(files.patterns)
        exclude = list(files.exclude_patterns)
        settings_dir = self.settings_dir

        def accept(_change: Change, path: str) -> bool:
            rel = get_relative_path(Path(path), settings_dir)
            if rel is None:
                return False
            return matches_any_pattern(rel, patterns) and not matches_any_pattern(rel, exclude)

        return accept

    def _build_watchers(self) -> list[FileWatcher]:
        config = self.config_store.get()
        watchers = [
            FileWatcher(
                paths=[self.settings_dir],
                callback=self._on_changes,
                watch_filter=self._settings_filter(),
                recursive=True,
            )
        ]

        for external in config.files.external_files:
            source = external.source_path
            ensure_dir(source.parent)
            name = source.name
            watchers.append(
                FileWatcher(
                    paths=[source.parent],
                    callback=self._on_changes,
                    watch_filter=lambda _change, path, name=name: Path(path).name == name,
                    recursive=False,
                )
            )
            if source.exists():
                watchers.append(FileWatcher(paths=[source], callback=self._on_changes, recursive=False))

        return watchers

    def _debounce_delay(self) -> float:
        try:
            self._delay = self.config_store.get().debounce_delay
        except ConfigurationError as e:
            logger.warning("Cannot read debounce delay, keeping the previous one", error=str(e))
        return self._delay

    async def _debounce_loop(self) -> None:
        while True:
            await self._queue.get()
            delay = self._debounce_delay()
            while True:
                try:
                    await asyncio.wait_for(self._queue.get(), timeout=delay)
                except asyncio.TimeoutError:
                    break

            if not self.accepting():
                logger.debug("Changes settled while sync is paused, ignoring")
                continue

            self._firing = True
            try:
                await self.on_settled()
            except Exception:
                logger.exception("Handling local changes failed")
            finally:
                self._firing = False
            if self._stopping:
                return

    async def start(self) -> None:
        """Create the watchers and start the debounce consumer."""
        if self.running:
            return
        self._stopping = False
        self._watchers = self._build_watchers()
        for watcher in self._watchers:
            await watcher.start()
        self._consumer = asyncio.create_task(self._debounce_loop())
        logger.info("Watching for changes", settings_dir=str(self.settings_dir), watchers=len(self._watchers))

    async def stop(self) -> None:
        """Stop the watchers and the consumer; a trigger that is already running completes."""
        for watcher in self._watchers:
            await watcher.stop()
        self._watchers = []

        if self._consumer is None:
            return
        self._stopping = True
        if not self._firing:
            self._consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._consumer
        self._consumer = None

        while not self._queue.empty():
            self._queue.get_nowait()
        logger.debug("Change detection stopped")

    async def restart(self) -> None:
        """Recreate all watchers from the current configuration."""
        await self.stop()
        await self.start()
