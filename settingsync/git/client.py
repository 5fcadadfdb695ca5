# SettingSync Git Client
# Repository lifecycle, push/pull with conflict recovery, and force overrides

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from settingsync.config.loader import ConfigStore
from settingsync.errors import ConfigurationError, NotInitializedError, PushConflictError
from settingsync.git import operations as ops
from settingsync.git.operations import GitError, MergeConflictError
from settingsync.logger import get_logger
from settingsync.utils.paths import ensure_dir, safe_delete

if TYPE_CHECKING:
    from settingsync.output.notifier import Notifier

logger = get_logger(__name__)

RETRY_ACTION = "Pull and Retry"
CANCEL_ACTION = "Cancel"
OPEN_REPOSITORY_ACTION = "Open Repository"


class GitClient:
    """
    Owns the working tree and every git operation performed on it.

    Configuration is re-read from the store on each operation, so the
    remote, branch and pull flags always reflect the current file.
    """

    def __init__(self, config_store: ConfigStore, notifier: "Notifier", working_dir: Optional[Path] = None):
        """
        Initialize the client.

        Args:
            config_store: Source of the current configuration.
            notifier: Surface for push-conflict prompts.
            working_dir: Working tree location (defaults to the configured one).
        """
        self.config_store = config_store
        self.notifier = notifier
        self.working_dir = working_dir or config_store.get().get_working_dir()
        self._initialized = False
        logger.debug("Git client created", working_dir=str(self.working_dir))

    def is_initialized(self) -> bool:
        return self._initialized

    def get_working_directory(self) -> Path:
        return self.working_dir

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError()

    async def initialize(self) -> None:
        """
        Create or open the working tree and check out the configured branch.

        Raises:
            ConfigurationError: If no repository URL is configured.
            GitError: If the repository cannot be set up.
        """
        git = self.config_store.get().git
        if not git.repository_url:
            raise ConfigurationError("Git repository URL is not configured")

        logger.info("Initializing repository", url=git.repository_url, branch=git.branch)
        ensure_dir(self.working_dir)

        try:
            if not ops.is_git_repo(self.working_dir):
                logger.info("Creating new repository", path=str(self.working_dir))
                await ops.init_repo(self.working_dir)
            await ops.set_remote(self.working_dir, git.repository_url, git.remote)

            await ops.fetch(self.working_dir, git.remote)

            try:
                await ops.checkout(self.working_dir, git.branch)
            except GitError:
                logger.info("Branch not found, creating it", branch=git.branch)
                await ops.checkout(self.working_dir, git.branch, create=True)
                try:
                    await ops.pull(self.working_dir, git.remote, git.branch)
                except GitError as e:
                    # The branch may not exist on the remote yet
                    logger.info("Initial pull failed, branch may be new", branch=git.branch, error=str(e))
        except GitError as e:
            raise GitError(f"Failed to initialize git: {e.message}", returncode=e.returncode, stderr=e.stderr) from e

        self._initialized = True
        logger.info("Repository initialized", path=str(self.working_dir))

    async def _pull_rebase(self) -> bool:
        """Fetch and rebase onto the remote branch; returns whether HEAD moved."""
        git = self.config_store.get().git

        await ops.fetch(self.working_dir, git.remote)
        if not await ops.remote_branch_exists(self.working_dir, git.branch, git.remote):
            logger.info("Branch does not exist on remote yet, nothing to pull", branch=git.branch)
            return False

        before = await ops.rev_parse(self.working_dir, "HEAD")
        await ops.pull(self.working_dir, git.remote, git.branch, rebase=True)
        after = await ops.rev_parse(self.working_dir, "HEAD")
        return before != after

    async def _restore_clean_tree(self) -> None:
        """Abort an interrupted rebase and discard conflict markers."""
        await ops.abort_rebase(self.working_dir)
        if await ops.rev_parse(self.working_dir, "HEAD") is not None:
            await ops.reset(self.working_dir, "HEAD", hard=True)

    async def _report_conflict(self, cause: Exception) -> PushConflictError:
        """Tell the user manual resolution is needed and build the terminal error."""
        selection = await self.notifier.error(
            "Failed to push changes automatically. Please resolve conflicts manually in the repository.",
            OPEN_REPOSITORY_ACTION,
        )
        if selection == OPEN_REPOSITORY_ACTION:
            await self.open_repository()
        logger.error("Push conflict needs manual resolution", path=str(self.working_dir), error=str(cause))
        return PushConflictError(self.working_dir)

    async def pull(self) -> bool:
        """
        Rebase-pull the configured branch.

        Returns:
            True if the pull moved HEAD, i.e. brought in remote changes.
        """
        self._require_initialized()
        try:
            changed = await self._pull_rebase()
        except MergeConflictError:
            await self._restore_clean_tree()
            raise
        except GitError as e:
            raise GitError(f"Failed to pull changes: {e.message}", returncode=e.returncode, stderr=e.stderr) from e
        logger.info("Pull completed", changed=changed)
        return changed

    async def _commit_all(self, message: str) -> Optional[str]:
        """Stage everything and commit; returns None when nothing was staged."""
        await ops.stage_all(self.working_dir)
        if not await ops.has_staged_changes(self.working_dir):
            return None
        return await ops.commit(self.working_dir, message)

    async def _drop_commit(self, base: Optional[str], *, hard: bool) -> None:
        """Move the branch back to base, discarding the commits made on top of it."""
        if base is None:
            await ops.unset_head(self.working_dir)
        else:
            await ops.reset(self.working_dir, base, hard=hard)

    async def push(self) -> None:
        """
        Commit the working tree and push it.

        A rejected push drops the new commit (keeping its changes) and asks
        whether to pull and retry once. A failed retry rolls the tree back
        hard to the remote tip and raises PushConflictError.

        Raises:
            PushConflictError: If local and remote changes could not be reconciled.
            GitError: If the push was rejected and not retried, or git failed.
        """
        self._require_initialized()
        git = self.config_store.get().git

        if git.pull_before_push:
            logger.info("Pulling latest changes before push")
            try:
                await self._pull_rebase()
            except MergeConflictError as e:
                await self._restore_clean_tree()
                raise await self._report_conflict(e) from e

        base = await ops.rev_parse(self.working_dir, "HEAD")
        commit_hash = await self._commit_all(git.commit_message)

        try:
            await ops.push(self.working_dir, git.remote, git.branch)
            logger.info("Push successful", commit=commit_hash)
            return
        except GitError as e:
            logger.warning("Push rejected", error=str(e))
            push_error = e

        if commit_hash is not None:
            logger.info("Dropping unpushed commit", commit=commit_hash)
            await self._drop_commit(base, hard=False)

        choice = await self.notifier.error(
            f"Failed to push to {git.repository_url} ({git.branch})", RETRY_ACTION, CANCEL_ACTION
        )
        if choice != RETRY_ACTION:
            raise GitError(
                f"Push failed to {git.repository_url} ({git.branch})",
                returncode=push_error.returncode,
                stderr=push_error.stderr,
            ) from push_error

        logger.info("Pulling and retrying push")
        retry_base: Optional[str] = None
        retry_commit: Optional[str] = None
        try:
            await self._pull_rebase()
            retry_base = await ops.rev_parse(self.working_dir, "HEAD")
            retry_commit = await self._commit_all(git.commit_message)
            await ops.push(self.working_dir, git.remote, git.branch)
        except GitError as e:
            logger.error("Retry failed", error=str(e))
            if retry_commit is not None:
                await self._drop_commit(retry_base, hard=True)
            else:
                await self._restore_clean_tree()
            raise await self._report_conflict(e) from e
        logger.info("Push successful after pull and retry", commit=retry_commit)

    async def force_push(self) -> None:
        """Commit the working tree and overwrite the remote branch with it."""
        self._require_initialized()
        git = self.config_store.get().git

        try:
            if git.pull_before_force_push:
                await ops.fetch(self.working_dir, git.remote)
                if await ops.remote_branch_exists(self.working_dir, git.branch, git.remote):
                    logger.info("Pulling latest changes before force push")
                    await ops.pull(self.working_dir, git.remote, git.branch, rebase=False)

            await self._commit_all(git.force_commit_message)
            await ops.push(self.working_dir, git.remote, git.branch, force=True)
        except GitError as e:
            raise GitError(f"Failed to force push changes: {e.message}", returncode=e.returncode, stderr=e.stderr) from e
        logger.info("Force push successful")

    async def force_pull(self) -> None:
        """Reset the working tree to the remote tip, discarding all local divergence."""
        self._require_initialized()
        git = self.config_store.get().git

        try:
            await ops.fetch(self.working_dir, git.remote)
            await ops.abort_rebase(self.working_dir)
            branch = await ops.get_current_branch(self.working_dir) or git.branch
            await ops.reset(self.working_dir, f"{git.remote}/{branch}", hard=True)
            # Untracked leftovers would survive the reset and be pushed later
            await ops.clean(self.working_dir)
        except GitError as e:
            raise GitError(f"Failed to force pull changes: {e.message}", returncode=e.returncode, stderr=e.stderr) from e
        logger.info("Force pull completed", branch=branch)

    async def has_changes(self) -> bool:
        """Report whether the working tree has modified, untracked or deleted paths."""
        if not self._initialized:
            logger.debug("Repository not initialized, reporting no changes")
            return False
        changed = await ops.has_uncommitted_changes(self.working_dir)
        logger.debug("Checked for changes", changed=changed)
        return changed

    async def open_repository(self) -> None:
        """Open the working tree for manual inspection."""
        self._require_initialized()
        self.notifier.open_folder(self.working_dir)

    async def reinitialize(self) -> None:
        """Delete the working tree and set it up again from the remote."""
        logger.info("Reinitializing repository", path=str(self.working_dir))
        safe_delete(self.working_dir, missing_ok=True)
        self._initialized = False
        await self.initialize()
        logger.info("Repository reinitialized")
