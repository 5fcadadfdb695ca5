# SettingSync Test Fixtures
# Pytest fixtures for settingsync tests

import shutil
import subprocess
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml

from settingsync.config.schema import SyncConfig
from settingsync.errors import ExtensionOperationError
from settingsync.sync.extensions import InstalledExtension

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def run_git(*args: str, cwd: Optional[Path] = None) -> str:
    """Run a git command synchronously and return stdout."""
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def write_config(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False)
    return path


class StaticStore:
    """ConfigStore double serving an in-memory configuration."""

    def __init__(self, config: Optional[SyncConfig] = None, **overrides: Any):
        self.config = config or SyncConfig.model_validate(overrides)
        self.error: Optional[Exception] = None
        self.path = Path("config.yaml")

    def get(self) -> SyncConfig:
        if self.error is not None:
            raise self.error
        return self.config


class FakeHost:
    """In-memory extension host."""

    def __init__(self, *installed: InstalledExtension, failing: Optional[set[str]] = None, listable: bool = True):
        self.installed = list(installed)
        self.failing = failing or set()
        self.listable = listable
        self.install_calls: list[str] = []
        self.uninstall_calls: list[str] = []

    async def list_installed(self) -> list[InstalledExtension]:
        if not self.listable:
            raise ExtensionOperationError(None, "list", "Cannot run code")
        return list(self.installed)

    async def install(self, extension_id: str) -> None:
        self.install_calls.append(extension_id)
        if extension_id in self.failing:
            raise ExtensionOperationError(extension_id, "install", "marketplace unreachable")
        self.installed.append(InstalledExtension(extension_id))

    async def uninstall(self, extension_id: str) -> None:
        self.uninstall_calls.append(extension_id)
        if extension_id in self.failing:
            raise ExtensionOperationError(extension_id, "uninstall")
        self.installed = [ext for ext in self.installed if ext.id != extension_id]

    def watch_paths(self) -> list[Path]:
        return []


class RecordingNotifier:
    """Notifier double that records messages and answers prompts from a script."""

    def __init__(self, *answers: Optional[str]):
        self.answers = list(answers)
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[tuple[str, tuple[str, ...]]] = []
        self.opened: list[Path] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    async def error(self, message: str, *actions: str) -> Optional[str]:
        self.errors.append((message, actions))
        if actions and self.answers:
            return self.answers.pop(0)
        return None

    def open_folder(self, path: Path) -> None:
        self.opened.append(path)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("SETTINGSYNC_CONFIG", raising=False)
    return home


@pytest.fixture
def git_identity(temp_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git a committer identity independent of the machine's config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Sync Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "sync@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Sync Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "sync@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture
def bare_remote(temp_dir: Path, git_identity: None) -> Path:
    """Create an empty bare repository acting as the remote."""
    remote = temp_dir / "remote.git"
    run_git("init", "--bare", str(remote))
    return remote


@pytest.fixture
def settings_dir(temp_home: Path) -> Path:
    """Create a live settings directory with typical editor files."""
    settings = temp_home / "settings"
    (settings / "snippets").mkdir(parents=True)
    (settings / "settings.json").write_text('{"editor.fontSize": 14}\n', encoding="utf-8")
    (settings / "keybindings.json").write_text("[]\n", encoding="utf-8")
    (settings / "snippets" / "python.json").write_text("{}\n", encoding="utf-8")
    return settings


@pytest.fixture
def sample_config(temp_dir: Path, settings_dir: Path) -> dict[str, Any]:
    """Create sample configuration dict."""
    return {
        "git": {
            "repository_url": str(temp_dir / "remote.git"),
            "branch": "main",
            "pull_before_push": True,
        },
        "sync_interval": 300,
        "auto_sync": False,
        "pull_on_launch": True,
        "debounce_delay": 0.05,
        "settings_dir": str(settings_dir),
        "working_dir": str(temp_dir / "work"),
        "files": {
            "patterns": ["settings.json", "keybindings.json", "snippets/**"],
            "exclude_patterns": [],
            "external_files": [],
        },
        "extensions": {"sync": False, "auto_remove": False},
    }


@pytest.fixture
def config_file(temp_home: Path, sample_config: dict[str, Any]) -> Path:
    """Create a configuration file."""
    return write_config(temp_home / ".config" / "settingsync" / "config.yaml", sample_config)
