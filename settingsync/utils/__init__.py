# SettingSync Utilities Module
# Helper functions for paths, platform lookups and file watching

from settingsync.utils.paths import (
    atomic_write,
    ensure_dir,
    expand_path,
    find_files,
    get_relative_path,
    matches_any_pattern,
    matches_pattern,
    safe_copy,
    safe_delete,
)
from settingsync.utils.platform import (
    get_current_platform,
    get_editor_executable,
    get_extensions_registry,
    get_user_settings_dir,
)

__all__ = [
    # Platform
    "get_current_platform",
    "get_user_settings_dir",
    "get_editor_executable",
    "get_extensions_registry",
    # Paths
    "expand_path",
    "safe_copy",
    "safe_delete",
    "ensure_dir",
    "atomic_write",
    "get_relative_path",
    "matches_pattern",
    "matches_any_pattern",
    "find_files",
]
