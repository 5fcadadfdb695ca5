# SettingSync Git Module
# Git operations and the repository client used by the sync orchestrator

from settingsync.git.client import GitClient
from settingsync.git.operations import (
    GitError,
    commit,
    fetch,
    get_current_branch,
    has_uncommitted_changes,
    is_git_repo,
    pull,
    push,
    stage_all,
)

__all__ = [
    "GitClient",
    "GitError",
    "is_git_repo",
    "stage_all",
    "commit",
    "push",
    "pull",
    "fetch",
    "get_current_branch",
    "has_uncommitted_changes",
]
