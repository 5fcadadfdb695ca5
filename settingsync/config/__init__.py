# SettingSync Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from settingsync.config.defaults import DEFAULT_CONFIG, generate_default_config
from settingsync.config.loader import (
    ConfigStore,
    ensure_config_exists,
    get_config_path,
    get_pid_path,
    load_config,
    validate_config_file,
)
from settingsync.config.schema import (
    ExtensionsConfig,
    ExternalFile,
    FilesConfig,
    GitConfig,
    LoggingConfig,
    SyncConfig,
)

__all__ = [
    # Schema
    "SyncConfig",
    "GitConfig",
    "FilesConfig",
    "ExternalFile",
    "ExtensionsConfig",
    "LoggingConfig",
    # Loader
    "ConfigStore",
    "load_config",
    "get_config_path",
    "get_pid_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
]
