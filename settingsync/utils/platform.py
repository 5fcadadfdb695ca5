# SettingSync Platform Utilities
# Per-platform locations of editor settings and extension registries

import os
import platform
from pathlib import Path

# Platform name mapping: system name -> settingsync platform name
_PLATFORM_MAP: dict[str, str] = {
    "Darwin": "macos",
    "Linux": "linux",
    "Windows": "windows",
}

# editor key -> (product directory name, CLI executable, extensions home)
EDITORS: dict[str, tuple[str, str, str]] = {
    "code": ("Code", "code", ".vscode"),
    "code-insiders": ("Code - Insiders", "code-insiders", ".vscode-insiders"),
    "cursor": ("Cursor", "cursor", ".cursor"),
    "codium": ("VSCodium", "codium", ".vscode-oss"),
}


def get_current_platform() -> str:
    """
    Get the current platform identifier.

    Returns:
        Platform string: "macos", "linux", or "windows".
    """
    system = platform.system()
    return _PLATFORM_MAP.get(system, system.lower())


def _editor_entry(editor: str) -> tuple[str, str, str]:
    try:
        return EDITORS[editor]
    except KeyError:
        raise ValueError(f"Unknown editor '{editor}'. Expected one of: {', '.join(EDITORS)}") from None


def get_user_settings_dir(editor: str = "code") -> Path:
    """
    Get the editor's user settings directory for the current platform.

    Args:
        editor: Editor key (code, code-insiders, cursor, codium).

    Returns:
        Path to the ``User`` directory holding settings.json.
    """
    product, _, _ = _editor_entry(editor)
    current = get_current_platform()

    if current == "windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif current == "macos":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    return base / product / "User"


def get_editor_executable(editor: str = "code") -> str:
    """Get the command line executable name for an editor."""
    return _editor_entry(editor)[1]


def get_extensions_registry(editor: str = "code") -> Path:
    """Get the file the editor rewrites whenever extensions are installed or removed."""
    return Path.home() / _editor_entry(editor)[2] / "extensions" / "extensions.json"
