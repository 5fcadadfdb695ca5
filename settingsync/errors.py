# SettingSync Errors
# Exception taxonomy for synchronization operations

from pathlib import Path
from typing import Optional


class SettingSyncError(Exception):
    """Base exception for all settingsync failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(SettingSyncError):
    """Raised when the configuration is missing a required value or is invalid."""


class NotInitializedError(SettingSyncError):
    """Raised when an operation needs a repository that was never initialized."""

    def __init__(self, message: str = "Git service not initialized"):
        super().__init__(message)


class PushConflictError(SettingSyncError):
    """
    Raised when a rejected push could not be reconciled by the automatic retry.

    The local commit has already been rolled back; the user has to resolve
    the divergence by hand inside ``working_dir``.
    """

    def __init__(self, working_dir: Path, message: Optional[str] = None):
        self.working_dir = working_dir
        super().__init__(message or f"Failed to reconcile changes. Repository location: {working_dir}")


class FileIOError(SettingSyncError):
    """Raised when copying an existing file between live and working tree fails."""

    def __init__(self, source: Path, target: Path, reason: str):
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Failed to copy file {source} to {target}: {reason}")


class ExtensionOperationError(SettingSyncError):
    """Raised when installing or uninstalling a single extension fails."""

    def __init__(self, extension_id: Optional[str], operation: str, reason: str = ""):
        self.extension_id = extension_id
        self.operation = operation
        self.reason = reason
        subject = f"extension {extension_id}" if extension_id else "extensions"
        message = f"Failed to {operation} {subject}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExtensionListError(SettingSyncError):
    """Raised when the synced extension list cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid extension list {path}: {reason}")
