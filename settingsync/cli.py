"""Click-based CLI for settingsync."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn, Optional, TypeVar

import click
import yaml

from settingsync import __version__
from settingsync.config import (
    ConfigStore,
    ensure_config_exists,
    get_config_path,
    get_pid_path,
    load_config,
    validate_config_file,
)
from settingsync.errors import SettingSyncError
from settingsync.git.client import RETRY_ACTION
from settingsync.git.operations import GitError, has_uncommitted_changes, is_git_repo
from settingsync.logger import configure_logging, get_logger
from settingsync.output import Console, create_console
from settingsync.sync.orchestrator import SyncAction, SyncOrchestrator, create_orchestrator

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CliContext:
    """Options shared by every command."""

    config_path: Path
    verbose: bool = False
    console: Console = field(default_factory=create_console)


def _fail(console: Console, message: str) -> NoReturn:
    console.print_error(message)
    sys.exit(1)


def _load_store(state: CliContext) -> ConfigStore:
    """Load the configuration once to validate it and set up logging."""
    try:
        config = load_config(state.config_path)
    except FileNotFoundError as e:
        _fail(state.console, f"{e}. Run 'settingsync config init' first.")
    except (yaml.YAMLError, ValueError) as e:
        _fail(state.console, f"Invalid configuration: {e}")

    configure_logging(
        level="DEBUG" if state.verbose else config.logging.level,
        json_format=config.logging.json_format,
        log_file=config.logging.file,
    )
    return ConfigStore(state.config_path)


def _run_with_orchestrator(
    state: CliContext,
    operation: Callable[[SyncOrchestrator], Awaitable[T]],
    *,
    pull_on_launch: Optional[bool] = False,
) -> T:
    """Initialize an orchestrator without watchers, run one operation, and dispose it."""
    store = _load_store(state)

    async def runner() -> T:
        orchestrator = create_orchestrator(store, state.console)
        try:
            await orchestrator.initialize(watch=False, pull_on_launch=pull_on_launch)
            return await operation(orchestrator)
        finally:
            await orchestrator.dispose()

    try:
        return asyncio.run(runner())
    except (SettingSyncError, GitError, OSError) as e:
        _fail(state.console, str(e))


def _read_pid(pid_path: Path) -> Optional[int]:
    try:
        return int(pid_path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


async def _report_ready(orchestrator: SyncOrchestrator) -> None:
    logger.debug("Repository ready", path=str(orchestrator.git.get_working_directory()))


@click.group()
@click.version_option(version=__version__, prog_name="settingsync")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: ~/.config/settingsync/config.yaml or $SETTINGSYNC_CONFIG)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """settingsync - Editor settings, dotfiles and extensions synced through git.

    \b
    Live settings  <->  working tree  <->  remote repository
    """
    ctx.obj = CliContext(
        config_path=config_path or get_config_path(),
        verbose=verbose,
        console=create_console(verbose=verbose),
    )


@cli.command()
@click.pass_obj
def init(state: CliContext) -> None:
    """Set up the local repository and apply remote changes once.

    Clones or opens the working tree, checks out the configured branch
    and, with pull_on_launch, copies remote changes to the live side.
    """
    _run_with_orchestrator(state, _report_ready, pull_on_launch=None)
    state.console.print_success("Repository initialized")
    state.console.print("[dim]Run 'settingsync sync' to publish local settings or 'settingsync watch' to keep them in sync.[/dim]")


@cli.command()
@click.pass_obj
def sync(state: CliContext) -> None:
    """Synchronize once.

    \b
    Local changes:    copied into the working tree and pushed
    Remote changes:   pulled and applied to the live side
    """

    async def operation(orchestrator: SyncOrchestrator):
        await orchestrator.collect_local_changes()
        return await orchestrator.sync()

    result = _run_with_orchestrator(state, operation)

    if result.action is SyncAction.PUSHED:
        state.console.print_success("Local changes pushed")
    elif result.action is SyncAction.PULLED:
        state.console.print_success("Remote changes applied")
        if result.extensions is not None:
            state.console.print_reconcile_result(result.extensions)
    elif result.action is SyncAction.UP_TO_DATE:
        state.console.print_success("Everything is in sync!")
    else:
        state.console.print_warning("Sync skipped")


@cli.command("force-push")
@click.pass_obj
def force_push(state: CliContext) -> None:
    """Overwrite the remote with the local settings."""
    _run_with_orchestrator(state, lambda orchestrator: orchestrator.force_push())
    state.console.print_success("Force push completed")


@cli.command("force-pull")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def force_pull(state: CliContext, yes: bool) -> None:
    """Overwrite the local settings with the remote.

    Local changes that were not pushed are discarded.
    """
    if not yes and not state.console.confirm("Discard local changes and apply the remote settings?"):
        state.console.print_info("Aborted")
        return

    result = _run_with_orchestrator(state, lambda orchestrator: orchestrator.force_pull())
    state.console.print_success("Force pull completed")
    state.console.print_reconcile_result(result)


@cli.command()
@click.pass_obj
def toggle(state: CliContext) -> None:
    """Pause or resume the running watch daemon."""
    pid_path = get_pid_path()
    pid = _read_pid(pid_path)
    if pid is None:
        _fail(state.console, "No running watch daemon found")

    toggle_signal = getattr(signal, "SIGUSR1", None)
    if toggle_signal is None:
        _fail(state.console, "Toggling the daemon is not supported on this platform")

    try:
        os.kill(pid, toggle_signal)
    except ProcessLookupError:
        pid_path.unlink(missing_ok=True)
        _fail(state.console, f"Watch daemon (pid {pid}) is not running")
    state.console.print_success(f"Toggled watch daemon (pid {pid})")


@cli.command("open")
@click.pass_obj
def open_repository(state: CliContext) -> None:
    """Open the local repository for manual inspection."""

    async def operation(orchestrator: SyncOrchestrator) -> None:
        await orchestrator.git.open_repository()

    _run_with_orchestrator(state, operation)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def reinit(state: CliContext, yes: bool) -> None:
    """Delete and set up the local repository again."""
    if not yes and not state.console.confirm("This will delete and reinitialize the local repository. Are you sure?"):
        state.console.print_info("Aborted")
        return

    store = _load_store(state)

    async def runner() -> None:
        orchestrator = create_orchestrator(store, state.console)
        await orchestrator.git.reinitialize()

    try:
        asyncio.run(runner())
    except (SettingSyncError, GitError, OSError) as e:
        _fail(state.console, f"Failed to reinitialize: {e}")
    state.console.print_success("Repository reinitialized successfully")


@cli.command()
@click.pass_obj
def watch(state: CliContext) -> None:
    """Run in the foreground and keep settings in sync.

    Watches the live files, the extension registry and the configuration,
    and syncs periodically. Send SIGUSR1 (or run 'settingsync toggle') to
    pause and resume.
    """
    store = _load_store(state)
    console = create_console(verbose=state.verbose, interactive=False, auto_actions=[RETRY_ACTION])
    pid_path = get_pid_path()

    async def daemon() -> None:
        orchestrator = create_orchestrator(store, console)
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()

        def on_toggle() -> None:
            enabled = orchestrator.toggle_enabled()
            console.print_info("Sync enabled" if enabled else "Sync paused")

        handlers: list[int] = []
        for name, handler in (("SIGINT", stop.set), ("SIGTERM", stop.set), ("SIGUSR1", on_toggle)):
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(signum, handler)
                handlers.append(signum)

        try:
            await orchestrator.initialize(watch=True)
            pid_path.parent.mkdir(parents=True, exist_ok=True)
            pid_path.write_text(str(os.getpid()), encoding="utf-8")
            console.print_success(f"Watching for changes (pid {os.getpid()}), press Ctrl+C to stop")
            await stop.wait()
        finally:
            for signum in handlers:
                loop.remove_signal_handler(signum)
            await orchestrator.dispose()
            pid_path.unlink(missing_ok=True)

    try:
        asyncio.run(daemon())
    except (SettingSyncError, GitError, OSError) as e:
        _fail(console, str(e))
    console.print_info("Stopped")


@cli.command()
@click.pass_obj
def status(state: CliContext) -> None:
    """Show configuration and repository status without making changes."""
    store = _load_store(state)
    config = store.get()
    working_dir = config.get_working_dir()

    initialized = is_git_repo(working_dir)
    dirty = False
    if initialized:
        try:
            dirty = asyncio.run(has_uncommitted_changes(working_dir))
        except GitError as e:
            state.console.print_warning(f"Cannot read repository status: {e}")

    state.console.print_status(config, initialized=initialized, dirty=dirty)

    pid = _read_pid(get_pid_path())
    if pid is not None:
        state.console.print_info(f"Watch daemon pid: {pid}")


# ============================================================================
# Configuration Commands
# ============================================================================


@cli.group()
def config() -> None:
    """Configuration file commands.

    \b
    Default location: ~/.config/settingsync/config.yaml
    Override with --config or the SETTINGSYNC_CONFIG environment variable.
    """
    pass


@config.command("init")
@click.option("--repository-url", "-r", default="", help="Remote repository URL")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing configuration")
@click.pass_obj
def config_init(state: CliContext, repository_url: str, force: bool) -> None:
    """Create a configuration file with the defaults."""
    if force:
        state.config_path.unlink(missing_ok=True)

    path, created = ensure_config_exists(state.config_path, repository_url)
    if created:
        state.console.print_success(f"Created configuration: {path}")
    else:
        state.console.print_warning(f"Configuration already exists: {path} (use --force to overwrite)")


@config.command("show")
@click.pass_obj
def config_show(state: CliContext) -> None:
    """Show the effective configuration, defaults included."""
    try:
        config_model = load_config(state.config_path)
    except FileNotFoundError as e:
        _fail(state.console, str(e))
    except (yaml.YAMLError, ValueError) as e:
        _fail(state.console, f"Invalid configuration: {e}")

    data: dict[str, Any] = config_model.model_dump(mode="json")
    state.console.print(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True).rstrip())


@config.command("path")
@click.pass_obj
def show_config_path(state: CliContext) -> None:
    """Print the configuration file location."""
    state.console.print(str(state.config_path))


@config.command("validate")
@click.pass_obj
def config_validate(state: CliContext) -> None:
    """Check the configuration file for errors."""
    valid, errors = validate_config_file(state.config_path)
    if valid:
        state.console.print_success(f"Configuration is valid: {state.config_path}")
        return

    for error in errors:
        state.console.print_error(error)
    sys.exit(1)


if __name__ == "__main__":
    cli()
