"""settingsync - keep editor settings, dotfiles and extensions in sync through git.

Mirrors the editor's user settings, configured external files and the
installed extension list into a git working tree, and reconciles that tree
with a remote repository in both directions.
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "SyncConfig",
    "ConfigStore",
    "GitClient",
    "SyncOrchestrator",
    "SyncState",
    "SyncStatus",
    "create_orchestrator",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("SyncConfig", "ConfigStore"):
        from settingsync import config

        return getattr(config, name)
    if name == "GitClient":
        from settingsync.git.client import GitClient

        return GitClient
    if name in ("SyncOrchestrator", "create_orchestrator"):
        from settingsync.sync import orchestrator

        return getattr(orchestrator, name)
    if name in ("SyncState", "SyncStatus"):
        from settingsync.sync import state

        return getattr(state, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
