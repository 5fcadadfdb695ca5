# SettingSync Platform Detection Tests

from pathlib import Path
from unittest.mock import patch

import pytest

from settingsync.utils.platform import (
    EDITORS,
    get_current_platform,
    get_editor_executable,
    get_extensions_registry,
    get_user_settings_dir,
)


class TestGetCurrentPlatform:
    """Tests for get_current_platform()."""

    def test_returns_known_value(self):
        """Current platform should be a known value."""
        result = get_current_platform()
        assert result in ("macos", "linux", "windows")

    @patch("settingsync.utils.platform.platform.system", return_value="Darwin")
    def test_darwin_maps_to_macos(self, mock_system):
        assert get_current_platform() == "macos"

    @patch("settingsync.utils.platform.platform.system", return_value="Windows")
    def test_windows_maps_to_windows(self, mock_system):
        assert get_current_platform() == "windows"

    @patch("settingsync.utils.platform.platform.system", return_value="FreeBSD")
    def test_unknown_lowercased(self, mock_system):
        assert get_current_platform() == "freebsd"


class TestGetUserSettingsDir:
    """Tests for get_user_settings_dir()."""

    @patch("settingsync.utils.platform.get_current_platform", return_value="linux")
    def test_linux_default(self, mock_platform, temp_home: Path):
        assert get_user_settings_dir("code") == temp_home / ".config" / "Code" / "User"

    @patch("settingsync.utils.platform.get_current_platform", return_value="linux")
    def test_linux_xdg(self, mock_platform, temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "xdg"))
        assert get_user_settings_dir("cursor") == temp_dir / "xdg" / "Cursor" / "User"

    @patch("settingsync.utils.platform.get_current_platform", return_value="macos")
    def test_macos(self, mock_platform, temp_home: Path):
        expected = temp_home / "Library" / "Application Support" / "Code - Insiders" / "User"
        assert get_user_settings_dir("code-insiders") == expected

    @patch("settingsync.utils.platform.get_current_platform", return_value="windows")
    def test_windows_appdata(self, mock_platform, temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("APPDATA", str(temp_dir / "Roaming"))
        assert get_user_settings_dir("codium") == temp_dir / "Roaming" / "VSCodium" / "User"

    def test_unknown_editor(self):
        with pytest.raises(ValueError, match="Unknown editor"):
            get_user_settings_dir("notepad")


class TestEditorLookups:
    """Tests for executable and extension registry lookups."""

    def test_every_editor_has_an_executable(self):
        for editor in EDITORS:
            assert get_editor_executable(editor)

    def test_code_executable(self):
        assert get_editor_executable("code") == "code"

    def test_extensions_registry(self, temp_home: Path):
        assert get_extensions_registry("code") == temp_home / ".vscode" / "extensions" / "extensions.json"
        assert get_extensions_registry("cursor") == temp_home / ".cursor" / "extensions" / "extensions.json"
