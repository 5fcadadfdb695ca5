# SettingSync Default Configuration
# Full default configuration as Python dict and YAML generator

from typing import Any

import yaml

from settingsync.config.schema import DEFAULT_PATTERNS, DEFAULT_WORKING_DIR

DEFAULT_CONFIG: dict[str, Any] = {
    "git": {
        "repository_url": "",
        "branch": "main",
        "remote": "origin",
        "pull_before_push": True,
        "pull_before_force_push": False,
        "commit_message": "Update settings",
        "force_commit_message": "Force update settings",
    },
    "sync_interval": 300,
    "auto_sync": True,
    "pull_on_launch": True,
    "debounce_delay": 5,
    "editor": "code",
    "working_dir": DEFAULT_WORKING_DIR,
    "files": {
        "patterns": list(DEFAULT_PATTERNS),
        "exclude_patterns": [],
        # Example: {"source": "~/.bashrc", "target": "shell/bashrc"}
        "external_files": [],
    },
    "extensions": {
        "sync": True,
        "auto_remove": False,
    },
    "logging": {
        "level": "INFO",
        "json_format": False,
    },
}


def generate_default_config(repository_url: str = "") -> str:
    """
    Generate the default configuration file content with explanatory header.

    Args:
        repository_url: Optional remote URL to pre-fill.

    Returns:
        YAML text.
    """
    header = """# settingsync configuration
#
# Mirrors editor settings, external files and the installed extension list
# into a git repository and keeps every machine in step with it.
#
# git.repository_url must be set before 'settingsync init'.
#
# files.patterns are globs relative to the editor's User directory
# (override with settings_dir). files.external_files map any file on disk
# to a path inside the repository:
#
#   external_files:
#     - source: ~/.bashrc
#       target: shell/bashrc
#
# Intervals and delays are in seconds.

"""
    data = {**DEFAULT_CONFIG, "git": {**DEFAULT_CONFIG["git"], "repository_url": repository_url}}
    return header + yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
