# SettingSync Console Output
# Rich-based console output and the interactive notifier

import asyncio
from pathlib import Path
from typing import Iterable, Optional

import click
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from settingsync.config.schema import SyncConfig
from settingsync.sync.extensions import ReconcileResult
from settingsync.sync.state import SyncStatus


class Console:
    """
    Console output manager using Rich.

    Doubles as the notifier for the sync services. When not interactive,
    error prompts resolve to the first offered action listed in
    ``auto_actions`` instead of asking.
    """

    def __init__(
        self,
        *,
        verbose: bool = False,
        colored: bool = True,
        interactive: bool = True,
        auto_actions: Iterable[str] = (),
    ):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
            interactive: Whether prompts may wait for keyboard input.
            auto_actions: Actions picked without asking when not interactive.
        """
        self.verbose = verbose
        self.interactive = interactive
        self.auto_actions = frozenset(auto_actions)
        self._console = RichConsole(no_color=not colored, highlight=False)

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self._console.print(f"[blue]{message}[/blue]")

    # Notifier protocol

    def info(self, message: str) -> None:
        self.print_info(message)

    def warning(self, message: str) -> None:
        self.print_warning(message)

    async def error(self, message: str, *actions: str) -> Optional[str]:
        """Show an error and, if actions are offered, let the user pick one."""
        self.print_error(message)
        if not actions:
            return None

        if not self.interactive:
            for action in actions:
                if action in self.auto_actions:
                    self.print_info(f"Choosing '{action}'")
                    return action
            return None

        choices = [str(i) for i in range(1, len(actions) + 1)]
        for number, action in zip(choices, actions):
            self._console.print(f"  [cyan]{number}[/cyan] - {action}")
        answer = await asyncio.to_thread(
            Prompt.ask, "Your choice", console=self._console, choices=choices, default=choices[-1]
        )
        return actions[int(answer) - 1]

    def open_folder(self, path: Path) -> None:
        """Open a folder in the system file manager or default editor."""
        self.print_info(f"Opening {path}")
        click.launch(str(path), locate=False)

    # Reports

    def print_status(self, config: SyncConfig, *, initialized: bool, dirty: bool, status: Optional[SyncStatus] = None) -> None:
        """Print configuration and working tree status."""
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="bold")
        table.add_column("Value")

        table.add_row("Remote", config.git.repository_url or "[red]not configured[/red]")
        table.add_row("Branch", config.git.branch)
        table.add_row("Settings", str(config.get_settings_dir()))
        table.add_row("Working tree", str(config.get_working_dir()))
        table.add_row("Initialized", "[green]yes[/green]" if initialized else "[yellow]no[/yellow]")
        table.add_row("Local changes", "[yellow]yes[/yellow]" if dirty else "[green]none[/green]")
        if status is not None:
            table.add_row("Service", status.value)
        table.add_row("Patterns", ", ".join(config.files.patterns) or "[dim]none[/dim]")
        if config.files.external_files:
            table.add_row(
                "External",
                "\n".join(f"{f.source} → {f.target}" for f in config.files.external_files),
            )
        extensions = "on" if config.extensions.sync else "off"
        if config.extensions.sync and config.extensions.auto_remove:
            extensions += " (auto-remove)"
        table.add_row("Extensions", extensions)
        interval = f"every {config.sync_interval:g}s" if config.auto_sync else "off"
        table.add_row("Periodic sync", interval)

        self._console.print(Panel(table, title="settingsync", border_style="blue"))

    def print_reconcile_result(self, result: ReconcileResult) -> None:
        """Print what an extension reconciliation changed."""
        for extension_id in result.installed:
            self._console.print(f"  [green]+[/green] {extension_id}")
        for extension_id in result.removed:
            self._console.print(f"  [red]-[/red] {extension_id}")
        for extension_id in result.failed:
            self._console.print(f"  [red]✗[/red] {extension_id}")
        if self.verbose and not result.changed:
            self._console.print("  [dim]Extensions already match[/dim]")

    def confirm(self, message: str, default: bool = False) -> bool:
        """
        Ask for confirmation.

        Args:
            message: Confirmation message.
            default: Default value if user just presses enter.

        Returns:
            True if confirmed.
        """
        suffix = " [Y/n]" if default else " [y/N]"
        response = self._console.input(f"{message}{suffix}: ").strip().lower()

        if not response:
            return default

        return response in ("y", "yes")


def create_console(
    *, verbose: bool = False, colored: bool = True, interactive: bool = True, auto_actions: Iterable[str] = ()
) -> Console:
    """Create a console instance."""
    return Console(verbose=verbose, colored=colored, interactive=interactive, auto_actions=auto_actions)
