# Tests for settingsync.output.console
# Rich-based console output and the notifier surface

from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console as RichConsole

from settingsync.config.schema import SyncConfig
from settingsync.git.client import OPEN_REPOSITORY_ACTION, RETRY_ACTION
from settingsync.output.console import Console, create_console
from settingsync.sync.extensions import ReconcileResult
from settingsync.sync.state import SyncStatus


def _make_console(verbose: bool = False, **kwargs) -> Console:
    """Create a console with captured output."""
    console = Console(verbose=verbose, colored=False, **kwargs)
    console._console = RichConsole(file=StringIO(), no_color=True, width=120)
    return console


def _get_output(console: Console) -> str:
    """Get captured output from console."""
    console._console.file.seek(0)
    return console._console.file.read()


class TestConsoleBasic:
    """Tests for basic console methods."""

    def test_print_error(self):
        c = _make_console()
        c.print_error("something failed")
        output = _get_output(c)
        assert "Error:" in output
        assert "something failed" in output

    def test_print_warning(self):
        c = _make_console()
        c.warning("careful")
        assert "Warning: careful" in _get_output(c)

    def test_info(self):
        c = _make_console()
        c.info("Sync paused")
        assert "Sync paused" in _get_output(c)

    def test_create_console(self):
        console = create_console(verbose=True, interactive=False, auto_actions=[RETRY_ACTION])
        assert console.verbose is True
        assert console.interactive is False
        assert console.auto_actions == frozenset({RETRY_ACTION})


class TestNotifierError:
    """Tests for error prompts."""

    @pytest.mark.asyncio
    async def test_without_actions(self):
        c = _make_console()
        assert await c.error("Push failed") is None
        assert "Push failed" in _get_output(c)

    @pytest.mark.asyncio
    async def test_non_interactive_picks_auto_action(self):
        c = _make_console(interactive=False, auto_actions=[RETRY_ACTION])

        choice = await c.error("Push rejected", RETRY_ACTION, "Cancel")

        assert choice == RETRY_ACTION
        assert f"Choosing '{RETRY_ACTION}'" in _get_output(c)

    @pytest.mark.asyncio
    async def test_non_interactive_without_auto_action(self):
        c = _make_console(interactive=False)
        assert await c.error("Conflict", OPEN_REPOSITORY_ACTION) is None

    @pytest.mark.asyncio
    async def test_interactive_prompt(self):
        c = _make_console()
        with patch("settingsync.output.console.Prompt.ask", return_value="1"):
            choice = await c.error("Push rejected", RETRY_ACTION, "Cancel")
        assert choice == RETRY_ACTION

    def test_open_folder(self, temp_dir: Path):
        c = _make_console()
        with patch("settingsync.output.console.click.launch") as mock_launch:
            c.open_folder(temp_dir)
        mock_launch.assert_called_once_with(str(temp_dir), locate=False)


class TestReports:
    """Tests for status and reconciliation output."""

    def test_print_status(self, temp_home: Path):
        c = _make_console()
        config = SyncConfig.model_validate(
            {
                "git": {"repository_url": "https://example.com/s.git"},
                "files": {"external_files": [{"source": "~/.zshrc", "target": "shell/zshrc"}]},
                "extensions": {"auto_remove": True},
            }
        )

        c.print_status(config, initialized=True, dirty=False, status=SyncStatus.IDLE)

        output = _get_output(c)
        assert "https://example.com/s.git" in output
        assert "shell/zshrc" in output
        assert "auto-remove" in output
        assert "every 300s" in output
        assert "idle" in output

    def test_print_status_unconfigured(self, temp_home: Path):
        c = _make_console()
        c.print_status(SyncConfig(auto_sync=False), initialized=False, dirty=False)
        output = _get_output(c)
        assert "not configured" in output
        assert "Periodic sync" in output

    def test_print_reconcile_result(self):
        c = _make_console()
        c.print_reconcile_result(ReconcileResult(installed=["a.b"], removed=["c.d"], failed=["e.f"]))
        output = _get_output(c)
        assert "+ a.b" in output
        assert "- c.d" in output
        assert "e.f" in output

    def test_unchanged_extensions_only_verbose(self):
        quiet = _make_console()
        quiet.print_reconcile_result(ReconcileResult())
        assert _get_output(quiet) == ""

        verbose = _make_console(verbose=True)
        verbose.print_reconcile_result(ReconcileResult())
        assert "already match" in _get_output(verbose)


class TestConfirm:
    """Tests for confirmation prompts."""

    @pytest.mark.parametrize(
        ("answer", "default", "expected"),
        [("y", False, True), ("yes", False, True), ("n", True, False), ("", True, True), ("", False, False)],
    )
    def test_confirm(self, answer: str, default: bool, expected: bool):
        c = _make_console()
        with patch.object(c._console, "input", return_value=answer):
            assert c.confirm("Continue?", default=default) is expected
