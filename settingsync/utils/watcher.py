# SettingSync File Watcher
# Async file system watching on top of watchfiles

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Set as AbstractSet
import contextlib
from dataclasses import dataclass, field
from pathlib import Path

from watchfiles import Change, awatch

from settingsync.logger import get_logger

logger = get_logger(__name__)

# Callback type for file change notifications
FileChangeCallback = Callable[[AbstractSet[tuple[Change, str]]], Awaitable[None]]
WatchFilter = Callable[[Change, str], bool]


@dataclass
class FileWatcher:
    """Async file watcher using watchfiles.

    Watches the given paths and awaits ``callback`` with each batch of
    changes. Paths that do not exist when the watcher starts are skipped.

    Example:
        ```python
        async def on_change(changes):
            for change_type, path in changes:
                print(f"{change_type}: {path}")

        async with FileWatcher(paths=[settings_dir], callback=on_change):
            await asyncio.sleep(60)
        ```
    """

    paths: list[str | Path]
    """Paths to watch (files or directories)."""

    callback: FileChangeCallback
    """Async callback invoked when changes are detected."""

    watch_filter: WatchFilter | None = None
    """Optional filter deciding which changes reach the callback."""

    recursive: bool = True
    """Watch directories recursively."""

    debounce: int = 50
    """Time in milliseconds watchfiles groups raw events over."""

    _task: asyncio.Task[None] | None = field(default=None, repr=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start watching for file changes."""
        if self._task is not None:
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._watch_loop())

    async def stop(self) -> None:
        """Stop watching for file changes."""
        if self._task is None:
            return

        self._stop_event.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _watch_loop(self) -> None:
        existing_paths = [str(p) for p in self.paths if Path(p).exists()]
        if not existing_paths:
            logger.debug("No existing paths to watch", paths=[str(p) for p in self.paths])
            return

        async for changes in awatch(
            *existing_paths,
            watch_filter=self.watch_filter,
            debounce=self.debounce,
            recursive=self.recursive,
            stop_event=self._stop_event,
        ):
            try:
                await self.callback(changes)
            except Exception:
                # A failing callback must not end the watch loop
                logger.exception("File change callback failed", paths=existing_paths)

    async def __aenter__(self) -> FileWatcher:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()
