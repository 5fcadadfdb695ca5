# SettingSync Sync State
# Guarded state machine shared by the orchestrator and its event sources

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SyncStatus(str, Enum):
    """Coarse orchestrator state."""

    DISABLED = "disabled"
    IDLE = "idle"
    SYNCING = "syncing"


@dataclass(frozen=True)
class StateSnapshot:
    """Point-in-time view of the guards, for status output and tests."""

    status: SyncStatus
    enabled: bool
    syncing: bool
    applying_remote: bool


@dataclass
class SyncState:
    """
    In-memory synchronization state.

    ``syncing`` and ``applying_remote`` are hold counters rather than plain
    flags: a delayed release from one operation can never clear a guard
    another operation has taken since. Lives for the process lifetime and is
    never persisted.
    """

    enabled: bool = False
    _sync_holds: int = 0
    _apply_holds: int = 0
    last_event: dict[Path, float] = field(default_factory=dict)

    @property
    def syncing(self) -> bool:
        return self._sync_holds > 0

    @property
    def applying_remote(self) -> bool:
        return self._apply_holds > 0

    @property
    def status(self) -> SyncStatus:
        if not self.enabled:
            return SyncStatus.DISABLED
        if self.syncing:
            return SyncStatus.SYNCING
        return SyncStatus.IDLE

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            status=self.status,
            enabled=self.enabled,
            syncing=self.syncing,
            applying_remote=self.applying_remote,
        )

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def try_begin_sync(self) -> bool:
        """Take the sync guard if nobody holds it; returns False otherwise."""
        if self._sync_holds > 0:
            return False
        self._sync_holds = 1
        return True

    def force_begin_sync(self) -> None:
        """Take the sync guard even if it is already held (force operations)."""
        self._sync_holds += 1

    def end_sync(self) -> None:
        if self._sync_holds > 0:
            self._sync_holds -= 1

    def begin_apply(self) -> None:
        self._apply_holds += 1

    def end_apply(self) -> None:
        if self._apply_holds > 0:
            self._apply_holds -= 1

    def accepts_local_changes(self) -> bool:
        """Whether a file or extension event may start the sync pipeline."""
        return self.enabled and not self.syncing and not self.applying_remote

    def record_event(self, path: Path, now: float, threshold: float) -> bool:
        """
        Record a file event, deduplicating bursts for the same path.

        Args:
            path: Path the event is for.
            now: Current monotonic time in seconds.
            threshold: Window in seconds within which repeats are dropped.

        Returns:
            True if the event is new, False if it repeats a recent one.
        """
        last = self.last_event.get(path)
        if last is not None and now - last < threshold:
            return False
        self.last_event[path] = now
        return True
