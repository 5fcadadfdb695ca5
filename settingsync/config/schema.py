# SettingSync Configuration Schema
# Pydantic models for YAML configuration validation

from pathlib import Path, PurePosixPath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from settingsync.utils.paths import expand_path
from settingsync.utils.platform import EDITORS, get_user_settings_dir

DEFAULT_PATTERNS = ["settings.json", "keybindings.json", "snippets/**"]
DEFAULT_WORKING_DIR = "~/.config/settingsync/repository"


class _ConfigModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GitConfig(_ConfigModel):
    """Remote repository settings."""

    repository_url: str = Field(default="", description="Remote repository URL")
    branch: str = Field(default="main", description="Branch holding the synced settings")
    remote: str = Field(default="origin", description="Name of the git remote")
    pull_before_push: bool = Field(default=True, description="Rebase-pull before every push")
    pull_before_force_push: bool = Field(default=False, description="Pull before a force push")
    commit_message: str = Field(default="Update settings", description="Message for sync commits")
    force_commit_message: str = Field(default="Force update settings", description="Message for force-push commits")

    @field_validator("branch")
    @classmethod
    def branch_not_empty(cls, v: str) -> str:
        """Fall back to main for a blank branch."""
        return v.strip() or "main"


class ExternalFile(_ConfigModel):
    """A file outside the settings directory and where it lives in the repository."""

    source: str = Field(description="Live path of the file (supports ~)")
    target: str = Field(description="Path inside the repository, relative to its root")

    @field_validator("target")
    @classmethod
    def target_is_relative(cls, v: str) -> str:
        """Reject targets escaping the working tree or touching git metadata."""
        target = PurePosixPath(v.replace("\\", "/"))
        if target.is_absolute() or ".." in target.parts:
            raise ValueError(f"target must be a relative path inside the repository: {v}")
        if not target.parts or target.parts[0] == ".git":
            raise ValueError(f"target must not be empty or inside .git: {v}")
        return target.as_posix()

    @property
    def source_path(self) -> Path:
        return expand_path(self.source)


class FilesConfig(_ConfigModel):
    """Which files are mirrored into the repository."""

    patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PATTERNS),
        description="Glob patterns relative to the settings directory",
    )
    exclude_patterns: list[str] = Field(default_factory=list, description="Glob patterns to skip")
    external_files: list[ExternalFile] = Field(default_factory=list, description="External file mappings")

    @field_validator("patterns", "exclude_patterns")
    @classmethod
    def drop_blank_patterns(cls, v: list[str]) -> list[str]:
        """Ignore empty pattern entries."""
        return [p.strip() for p in v if p.strip()]


class ExtensionsConfig(_ConfigModel):
    """Extension list reconciliation settings."""

    sync: bool = Field(default=True, description="Sync the installed extension list")
    auto_remove: bool = Field(default=False, description="Uninstall extensions missing from the synced list")


class LoggingConfig(_ConfigModel):
    """Logging settings for the CLI and the watch daemon."""

    level: str = Field(default="INFO", description="Log level")
    json_format: bool = Field(default=False, description="Emit JSON log lines")
    file: Optional[str] = Field(default=None, description="Optional log file")

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case and validate the level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("file")
    @classmethod
    def expand_file(cls, v: Optional[str]) -> Optional[str]:
        """Expand ~ in the log file path."""
        if v is None:
            return None
        return str(expand_path(v))


class SyncConfig(_ConfigModel):
    """Root configuration model."""

    git: GitConfig = Field(default_factory=GitConfig, description="Remote repository settings")
    sync_interval: float = Field(default=300, gt=0, description="Seconds between periodic syncs")
    auto_sync: bool = Field(default=True, description="Run the periodic sync")
    pull_on_launch: bool = Field(default=True, description="Pull once when the service starts")
    debounce_delay: float = Field(default=5, ge=0, description="Seconds of quiet before a file change syncs")
    editor: str = Field(default="code", description="Editor whose settings are synced")
    settings_dir: Optional[str] = Field(default=None, description="Override of the editor settings directory")
    working_dir: str = Field(default=DEFAULT_WORKING_DIR, description="Local repository clone")
    files: FilesConfig = Field(default_factory=FilesConfig, description="Mirrored files")
    extensions: ExtensionsConfig = Field(default_factory=ExtensionsConfig, description="Extension sync")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")

    @field_validator("editor")
    @classmethod
    def known_editor(cls, v: str) -> str:
        """Only editors with a known settings layout are accepted."""
        editor = v.lower()
        if editor not in EDITORS:
            raise ValueError(f"Unknown editor '{v}'. Expected one of: {', '.join(EDITORS)}")
        return editor

    def get_settings_dir(self) -> Path:
        """Live settings directory, honouring the override."""
        if self.settings_dir:
            return expand_path(self.settings_dir)
        return get_user_settings_dir(self.editor)

    def get_working_dir(self) -> Path:
        """Working tree location."""
        return expand_path(self.working_dir)
