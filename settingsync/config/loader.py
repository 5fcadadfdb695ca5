# SettingSync Configuration Loader
# Load, save, and validate YAML configuration files

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from settingsync.config.defaults import generate_default_config
from settingsync.config.schema import SyncConfig
from settingsync.errors import ConfigurationError


def get_config_dir() -> Path:
    """Get the settingsync configuration directory."""
    return Path.home() / ".config" / "settingsync"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    env_path = os.environ.get("SETTINGSYNC_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / "config.yaml"


def get_pid_path() -> Path:
    """Get the path the watch daemon records its process id in."""
    return get_config_dir() / "daemon.pid"


def load_config(config_path: Optional[Path] = None) -> SyncConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        SyncConfig: Validated configuration object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config file is invalid.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\nRun 'settingsync config init' to create one."
        )

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    return SyncConfig.model_validate(data)


def ensure_config_exists(config_path: Optional[Path] = None, repository_url: str = "") -> tuple[Path, bool]:
    """
    Ensure configuration file exists, creating default if needed.

    Returns:
        Tuple of (config_path, was_created).
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        return config_path, False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_default_config(repository_url), encoding="utf-8")
    return config_path, True


def validate_config_file(config_path: Optional[Path] = None) -> tuple[bool, list[str]]:
    """
    Validate a configuration file without loading it into the system.

    Args:
        config_path: Path to config file to validate.

    Returns:
        Tuple of (is_valid, error_messages).
    """
    if config_path is None:
        config_path = get_config_path()

    errors: list[str] = []

    if not config_path.exists():
        return False, [f"Configuration file not found: {config_path}"]

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return False, [f"Invalid YAML syntax: {e}"]

    if data is None:
        return False, ["Configuration file is empty"]

    try:
        config = SyncConfig.model_validate(data)
    except ValidationError as e:
        for error in e.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")
        return False, errors

    if not config.git.repository_url:
        errors.append("git.repository_url is not set")

    if not config.files.patterns and not config.files.external_files:
        errors.append("No files configured for sync")

    return len(errors) == 0, errors


class ConfigStore:
    """
    Source of the current configuration.

    Every ``get()`` re-reads the file, so edits take effect on the next
    sync cycle without restarting the daemon.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.path = config_path or get_config_path()

    def get(self) -> SyncConfig:
        """
        Load the current configuration.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid.
        """
        try:
            return load_config(self.path)
        except FileNotFoundError as e:
            raise ConfigurationError(str(e)) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.path}: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {self.path}: {e}") from e
