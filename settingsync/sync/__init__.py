# SettingSync Sync Module
# Change detection, scheduling, mirroring and the orchestrator tying them together

from settingsync.sync.detector import ChangeDetector
from settingsync.sync.extension_host import EditorCliHost
from settingsync.sync.extensions import (
    ExtensionHost,
    ExtensionRecord,
    ExtensionReconciler,
    InstalledExtension,
    ReconcileResult,
)
from settingsync.sync.files import FileKind, FileMirror, MirrorResult, TrackedFile
from settingsync.sync.orchestrator import SyncAction, SyncOrchestrator, SyncResult, create_orchestrator
from settingsync.sync.scheduler import SyncScheduler
from settingsync.sync.state import StateSnapshot, SyncState, SyncStatus

__all__ = [
    # Files
    "FileKind",
    "FileMirror",
    "MirrorResult",
    "TrackedFile",
    # Extensions
    "ExtensionHost",
    "ExtensionRecord",
    "ExtensionReconciler",
    "InstalledExtension",
    "ReconcileResult",
    "EditorCliHost",
    # State
    "SyncState",
    "SyncStatus",
    "StateSnapshot",
    # Event sources
    "ChangeDetector",
    "SyncScheduler",
    # Orchestrator
    "SyncOrchestrator",
    "SyncAction",
    "SyncResult",
    "create_orchestrator",
]
