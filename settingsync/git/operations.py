# SettingSync Git Operations
# Async git command execution and repository primitives

import asyncio
import os
import subprocess
from pathlib import Path
from typing import Optional

from settingsync.logger import get_logger

logger = get_logger(__name__)


class GitError(Exception):
    """Exception raised for git operation errors."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ""):
        self.message = message
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}: {self.stderr}"
        return self.message


async def _run_git(
    *args: str,
    cwd: Optional[Path] = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """
    Run a git command.

    Args:
        *args: Git command arguments.
        cwd: Working directory.
        check: Whether to raise on non-zero exit.

    Returns:
        CompletedProcess with result.

    Raises:
        GitError: If command fails and check is True.
    """
    cmd = ["git", *args]
    # Never block on a credential prompt from a background process
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise GitError("git command not found. Is git installed?") from None

    stdout, stderr = await proc.communicate()
    result = subprocess.CompletedProcess(
        args=cmd,
        returncode=proc.returncode if proc.returncode is not None else 1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.debug("git", args=list(args), returncode=result.returncode)

    if check and result.returncode != 0:
        raise GitError(
            f"Git command failed: {' '.join(cmd)}",
            returncode=result.returncode,
            stderr=result.stderr.strip(),
        )
    return result


def is_git_repo(path: Path) -> bool:
    """Check whether path holds its own repository metadata."""
    return (path / ".git").exists()


async def init_repo(path: Path) -> None:
    """Initialize a new repository, creating the directory if needed."""
    path.mkdir(parents=True, exist_ok=True)
    await _run_git("init", cwd=path)


async def get_remote_url(path: Path, remote: str = "origin") -> Optional[str]:
    """Get the URL of a remote, or None if it isn't configured."""
    result = await _run_git("remote", "get-url", remote, cwd=path, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


async def set_remote(path: Path, url: str, remote: str = "origin") -> None:
    """Add the remote, or repoint it if it exists with another URL."""
    current = await get_remote_url(path, remote)
    if current is None:
        await _run_git("remote", "add", remote, url, cwd=path)
    elif current != url:
        await _run_git("remote", "set-url", remote, url, cwd=path)


async def fetch(path: Path, remote: str = "origin") -> None:
    """Fetch remote changes without merging."""
    await _run_git("fetch", remote, cwd=path)


async def checkout(path: Path, branch: str, *, create: bool = False) -> None:
    """Check out a branch, optionally creating it."""
    if create:
        await _run_git("checkout", "-b", branch, cwd=path)
    else:
        await _run_git("checkout", branch, cwd=path)


async def rev_parse(path: Path, ref: str) -> Optional[str]:
    """Resolve a ref to a commit hash, or None if it doesn't exist."""
    result = await _run_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", cwd=path, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


async def remote_branch_exists(path: Path, branch: str, remote: str = "origin") -> bool:
    """Check whether the last fetch saw the branch on the remote."""
    return await rev_parse(path, f"refs/remotes/{remote}/{branch}") is not None


async def get_current_branch(path: Path) -> Optional[str]:
    """
    Get current branch name.

    Returns:
        Branch name or None if detached.
    """
    result = await _run_git("symbolic-ref", "--short", "-q", "HEAD", cwd=path, check=False)
    branch = result.stdout.strip()
    return branch or None


# Porcelain XY codes of unmerged paths
_UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class MergeConflictError(GitError):
    """Raised when a pull leaves unmerged paths or an interrupted rebase behind."""


def rebase_in_progress(path: Path) -> bool:
    """Check whether a rebase was interrupted and is waiting for resolution."""
    git_dir = path / ".git"
    return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()


async def has_conflicts(path: Path) -> bool:
    """Check for unmerged paths in the working tree."""
    status = await git_status(path)
    return any(line[:2] in _UNMERGED_CODES for line in status.splitlines())


async def abort_rebase(path: Path) -> None:
    """Abort an interrupted rebase, if there is one."""
    if rebase_in_progress(path):
        await _run_git("rebase", "--abort", cwd=path, check=False)


async def pull(
    path: Path,
    remote: str = "origin",
    branch: Optional[str] = None,
    *,
    rebase: bool = True,
) -> None:
    """
    Pull changes from remote.

    Rebase pulls autostash uncommitted work so a dirty tree doesn't block
    them. A pull that leaves conflicts behind, including a conflicting
    autostash reapply, raises MergeConflictError with the tree untouched
    for inspection.

    Args:
        path: Repository path.
        remote: Remote name.
        branch: Branch to pull (uses upstream if not specified).
        rebase: Use rebase instead of merge.

    Raises:
        MergeConflictError: If the pull left unmerged paths.
        GitError: If the pull failed for any other reason.
    """
    args = ["pull"]
    if rebase:
        args.extend(["--rebase", "--autostash"])
    else:
        args.append("--no-rebase")
    args.append(remote)
    if branch:
        args.append(branch)

    result = await _run_git(*args, cwd=path, check=False)
    if rebase_in_progress(path) or await has_conflicts(path):
        raise MergeConflictError(
            f"Pull from {remote} produced conflicts",
            returncode=result.returncode,
            stderr=result.stderr.strip(),
        )
    if result.returncode != 0:
        raise GitError(
            f"Git command failed: git {' '.join(args)}",
            returncode=result.returncode,
            stderr=result.stderr.strip(),
        )


async def git_status(path: Path) -> str:
    """Get machine-readable status output."""
    result = await _run_git("status", "--porcelain", cwd=path)
    return result.stdout


async def has_uncommitted_changes(path: Path) -> bool:
    """Check for modified, staged, deleted or untracked paths."""
    status = await git_status(path)
    return len(status.strip()) > 0


async def has_staged_changes(path: Path) -> bool:
    """Check whether the index differs from HEAD."""
    status = await git_status(path)
    for line in status.splitlines():
        # Format: XY filename, X = index status
        if line and line[0] not in (" ", "?"):
            return True
    return False


async def stage_all(path: Path) -> None:
    """Stage all changes, including deletions and untracked files."""
    await _run_git("add", "-A", cwd=path)


async def commit(path: Path, message: str) -> str:
    """
    Create a commit.

    Returns:
        Hash of the new commit.
    """
    await _run_git("commit", "-m", message, cwd=path)
    result = await _run_git("rev-parse", "HEAD", cwd=path)
    return result.stdout.strip()


async def push(
    path: Path,
    remote: str = "origin",
    branch: Optional[str] = None,
    *,
    force: bool = False,
    set_upstream: bool = True,
) -> None:
    """
    Push commits to remote.

    Args:
        path: Repository path.
        remote: Remote name.
        branch: Branch name (uses current if not specified).
        force: Overwrite the remote branch unconditionally.
        set_upstream: Set upstream tracking.
    """
    args = ["push"]
    if force:
        args.append("--force")
    if set_upstream:
        args.append("-u")
    args.append(remote)
    if branch:
        args.append(branch)
    await _run_git(*args, cwd=path)


async def reset(path: Path, ref: str, *, hard: bool = False) -> None:
    """Move the current branch to ref, discarding (hard) or keeping (mixed) the tree."""
    await _run_git("reset", "--hard" if hard else "--mixed", ref, cwd=path)


async def unset_head(path: Path) -> None:
    """Drop every commit from the current branch, leaving it unborn."""
    await _run_git("update-ref", "-d", "HEAD", cwd=path)


async def clean(path: Path) -> None:
    """Remove untracked files and directories."""
    await _run_git("clean", "-fd", cwd=path)
