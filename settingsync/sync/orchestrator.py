# SettingSync Orchestrator
# Coordinates mirroring, git and extension reconciliation under the sync guards

from __future__ import annotations

import asyncio
from collections.abc import Callable, Set as AbstractSet
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from watchfiles import Change

from settingsync.config.loader import ConfigStore
from settingsync.config.schema import FilesConfig, SyncConfig
from settingsync.errors import NotInitializedError, SettingSyncError
from settingsync.git.client import GitClient
from settingsync.git.operations import GitError
from settingsync.logger import get_logger
from settingsync.sync.detector import ChangeDetector
from settingsync.sync.extension_host import EditorCliHost
from settingsync.sync.extensions import ExtensionHost, ExtensionReconciler, ReconcileResult
from settingsync.sync.files import FileMirror
from settingsync.sync.scheduler import SyncScheduler
from settingsync.sync.state import StateSnapshot, SyncState, SyncStatus
from settingsync.utils.watcher import FileWatcher

if TYPE_CHECKING:
    from settingsync.output.notifier import Notifier

logger = get_logger(__name__)

# Failures a sync step can end with; anything else is a bug and propagates
SYNC_ERRORS = (SettingSyncError, GitError, OSError, ValueError)


class SyncAction(str, Enum):
    """What a sync cycle ended up doing."""

    SKIPPED = "skipped"
    PUSHED = "pushed"
    PULLED = "pulled"
    UP_TO_DATE = "up-to-date"


@dataclass
class SyncResult:
    """Outcome of one sync cycle."""

    action: SyncAction
    extensions: Optional[ReconcileResult] = None


class SyncOrchestrator:
    """
    The sync state machine.

    File events, the periodic timer and the configuration and extension
    watchers all funnel into ``sync()``. ``syncing`` makes overlapping
    syncs drop instead of queueing; ``applying_remote`` keeps the writes of
    a remote apply from looking like local edits. Both guards are released
    with a delay so that file events caused by the operation itself land
    while they are still held.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        git: GitClient,
        reconciler: ExtensionReconciler,
        notifier: Notifier,
        mirror: FileMirror,
        *,
        settle_delay: float = 1.0,
        remote_grace: float = 1.0,
    ):
        """
        Initialize the orchestrator.

        Args:
            config_store: Source of the current configuration.
            git: Client owning the working tree.
            reconciler: Extension list reconciler.
            notifier: Surface for user-facing failures.
            mirror: Copies files between the live side and the working tree.
            settle_delay: Seconds ``syncing`` stays held after an operation.
            remote_grace: Seconds ``applying_remote`` stays held after a remote apply.
        """
        self.config_store = config_store
        self.git = git
        self.reconciler = reconciler
        self.notifier = notifier
        self.mirror = mirror
        self.settle_delay = settle_delay
        self.remote_grace = remote_grace

        self.state = SyncState()
        self._lock = asyncio.Lock()
        self._releases: dict[asyncio.TimerHandle, Callable[[], None]] = {}
        self._files_config: Optional[FilesConfig] = None
        self._config_watcher: Optional[FileWatcher] = None
        self._extension_watcher: Optional[FileWatcher] = None

        self.scheduler = SyncScheduler(config_store, self.sync, lambda: self.state.enabled)
        self.detector = ChangeDetector(
            config_store,
            mirror.settings_dir,
            self._on_local_change,
            self.state.accepts_local_changes,
            self.state,
        )

    @property
    def status(self) -> SyncStatus:
        return self.state.status

    def snapshot(self) -> StateSnapshot:
        return self.state.snapshot()

    # Guard releases

    def _release_later(self, release: Callable[[], None], delay: float) -> None:
        """Run ``release`` after ``delay`` seconds; immediately when delay is 0."""
        if delay <= 0:
            release()
            return

        def fire() -> None:
            self._releases.pop(handle, None)
            release()

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._releases[handle] = release

    def _flush_releases(self) -> None:
        for handle, release in list(self._releases.items()):
            handle.cancel()
            release()
        self._releases.clear()

    # Lifecycle

    async def initialize(self, watch: bool = True, pull_on_launch: Optional[bool] = None) -> None:
        """
        Set up the repository, apply remote changes once, and start the event sources.

        Args:
            watch: Start the file, configuration and extension watchers.
            pull_on_launch: Override of the configured launch pull.
        """
        logger.info("Initializing sync service")
        await self.git.initialize()
        config = self.config_store.get()

        if pull_on_launch is None:
            pull_on_launch = config.pull_on_launch
        if pull_on_launch:
            try:
                logger.info("Performing initial pull of settings")
                if await self.git.pull():
                    await self._apply_remote(config)
                else:
                    logger.info("No remote changes to apply during initialization")
            except SYNC_ERRORS as e:
                logger.warning("Initial pull failed, continuing", error=str(e))
        else:
            logger.info("Skipping initial pull (disabled by configuration)")

        self._files_config = config.files
        if watch:
            await self.detector.start()
            await self._start_config_watcher()
            await self._start_extension_watcher()

        self.enable()
        logger.info("Sync service initialized")

    def enable(self) -> None:
        logger.info("Enabling sync service")
        self.state.enable()
        if self.config_store.get().auto_sync:
            self.scheduler.start()

    def disable(self) -> None:
        logger.info("Disabling sync service")
        self.state.disable()
        self.scheduler.request_stop()

    def toggle_enabled(self) -> bool:
        """Flip between enabled and disabled; returns the new value."""
        if self.state.enabled:
            self.disable()
        else:
            self.enable()
        return self.state.enabled

    async def dispose(self) -> None:
        """Stop every event source and release all guards."""
        logger.info("Disposing sync service")
        self.state.disable()
        await self.scheduler.stop()
        await self.detector.stop()
        for watcher in (self._config_watcher, self._extension_watcher):
            if watcher is not None:
                await watcher.stop()
        self._config_watcher = None
        self._extension_watcher = None
        self._flush_releases()

    # Operations

    async def _apply_remote(self, config: SyncConfig) -> ReconcileResult:
        """Copy the working tree to the live side and converge extensions."""
        self.state.begin_apply()
        try:
            logger.info("Remote changes detected, copying to settings directory")
            self.mirror.to_live(config)
            return await self.reconciler.pull()
        finally:
            self._release_later(self.state.end_apply, self.remote_grace)

    async def collect_local_changes(self) -> bool:
        """
        Mirror live files and the extension list into the working tree.

        Returns:
            True if the working tree now differs from HEAD.
        """
        if not self.git.is_initialized():
            raise NotInitializedError()
        self.mirror.to_working_tree(self.config_store.get())
        await self.reconciler.push()
        return await self.git.has_changes()

    async def sync(self) -> SyncResult:
        """
        Run one sync cycle: push local changes, or pull and apply remote ones.

        Does nothing while disabled or while another operation holds the
        sync guard.

        Raises:
            NotInitializedError: If the repository was never initialized.
        """
        if not self.state.enabled:
            logger.debug("Sync is disabled")
            return SyncResult(SyncAction.SKIPPED)
        if not self.git.is_initialized():
            raise NotInitializedError()
        if not self.state.try_begin_sync():
            logger.debug("Sync already in progress, skipping")
            return SyncResult(SyncAction.SKIPPED)

        try:
            async with self._lock:
                return await self._sync_once()
        finally:
            self._release_later(self.state.end_sync, self.settle_delay)

    async def _sync_once(self) -> SyncResult:
        config = self.config_store.get()

        if await self.git.has_changes():
            logger.info("Local changes detected, pushing")
            self.mirror.to_working_tree(config)
            await self.reconciler.push()
            await self.git.push()
            logger.info("Sync completed", action=SyncAction.PUSHED.value)
            return SyncResult(SyncAction.PUSHED)

        logger.info("No local changes, pulling from remote")
        if await self.git.pull():
            extensions = await self._apply_remote(config)
            logger.info("Sync completed", action=SyncAction.PULLED.value)
            return SyncResult(SyncAction.PULLED, extensions)

        logger.info("No remote changes to apply")
        return SyncResult(SyncAction.UP_TO_DATE)

    async def force_push(self) -> None:
        """Overwrite the remote with the live state, waiting for any running operation."""
        if not self.git.is_initialized():
            raise NotInitializedError()

        self.state.force_begin_sync()
        try:
            async with self._lock:
                logger.info("Starting force push")
                config = self.config_store.get()
                self.mirror.to_working_tree(config)
                await self.reconciler.push()
                await self.git.force_push()
                logger.info("Force push completed")
        except SYNC_ERRORS as e:
            logger.error("Force push failed", error=str(e))
            await self.notifier.error(f"Force push failed: {e}")
            raise
        finally:
            self._release_later(self.state.end_sync, self.settle_delay)

    async def force_pull(self) -> ReconcileResult:
        """Overwrite the live state with the remote, waiting for any running operation."""
        if not self.git.is_initialized():
            raise NotInitializedError()

        self.state.force_begin_sync()
        try:
            async with self._lock:
                logger.info("Starting force pull")
                await self.git.force_pull()
                result = await self._apply_remote(self.config_store.get())
                logger.info("Force pull completed")
                return result
        except SYNC_ERRORS as e:
            logger.error("Force pull failed", error=str(e))
            await self.notifier.error(f"Force pull failed: {e}")
            raise
        finally:
            self._release_later(self.state.end_sync, self.settle_delay)

    # Event sources

    async def _on_local_change(self) -> None:
        """Debounced file change: mirror, then sync if the tree moved."""
        logger.info("Changes settled, copying files")
        self.mirror.to_working_tree(self.config_store.get())
        if await self.git.has_changes():
            logger.info("Changes detected, syncing")
            await self.sync()
        else:
            logger.info("No changes detected after copying files")

    async def _start_config_watcher(self) -> None:
        config_path = self.config_store.path
        name = config_path.name
        self._config_watcher = FileWatcher(
            paths=[config_path.parent],
            callback=self._on_config_changes,
            watch_filter=lambda _change, path: Path(path).name == name,
            recursive=False,
        )
        await self._config_watcher.start()

    async def _on_config_changes(self, changes: AbstractSet[tuple[Change, str]]) -> None:
        try:
            config = self.config_store.get()
        except SettingSyncError as e:
            logger.warning("Ignoring unreadable configuration", error=str(e))
            return

        if config.files == self._files_config:
            return
        self._files_config = config.files
        logger.info("File configuration changed, updating watchers")

        try:
            await self.detector.stop()
            # Wait out an in-flight operation so just-pulled files are not overwritten
            async with self._lock:
                self.mirror.to_working_tree(config)
            await self.detector.start()
            if await self.git.has_changes():
                logger.info("New files detected, syncing")
                await self.sync()
            else:
                logger.info("No changes to push after configuration update")
        except SYNC_ERRORS as e:
            logger.error("Error handling configuration change", error=str(e))
            await self.notifier.error(f"Failed to handle configuration change: {e}")

    async def _start_extension_watcher(self) -> None:
        watch_paths = self.reconciler.host.watch_paths()
        if not watch_paths:
            return
        names = {p.name for p in watch_paths}
        self._extension_watcher = FileWatcher(
            paths=sorted({p.parent for p in watch_paths}),
            callback=self._on_extension_changes,
            watch_filter=lambda _change, path: Path(path).name in names,
            recursive=False,
        )
        await self._extension_watcher.start()

    async def _on_extension_changes(self, changes: AbstractSet[tuple[Change, str]]) -> None:
        if not self.state.accepts_local_changes():
            logger.debug("Ignoring extension change", status=self.state.status.value)
            return

        try:
            logger.info("Extension change detected, updating sync file")
            if await self.reconciler.push() and await self.git.has_changes():
                await self.sync()
        except SYNC_ERRORS as e:
            logger.error("Error handling extension change", error=str(e))


def create_orchestrator(
    config_store: ConfigStore,
    notifier: Notifier,
    *,
    host: Optional[ExtensionHost] = None,
    settle_delay: float = 1.0,
    remote_grace: float = 1.0,
) -> SyncOrchestrator:
    """Wire an orchestrator and its collaborators from the current configuration."""
    config = config_store.get()
    working_dir = config.get_working_dir()
    git = GitClient(config_store, notifier, working_dir)
    reconciler = ExtensionReconciler(config_store, host or EditorCliHost(config.editor), working_dir)
    mirror = FileMirror(config.get_settings_dir(), working_dir)
    return SyncOrchestrator(
        config_store,
        git,
        reconciler,
        notifier,
        mirror,
        settle_delay=settle_delay,
        remote_grace=remote_grace,
    )
