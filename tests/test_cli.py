# Tests for settingsync.cli
# CLI commands using Click testing

import signal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from settingsync.cli import cli
from settingsync.errors import ExtensionListError, PushConflictError
from settingsync.sync.extensions import ReconcileResult
from settingsync.sync.orchestrator import SyncAction, SyncResult


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch):
    """Keep CLI runs from pointing the root logger at CliRunner's streams."""
    monkeypatch.setattr("settingsync.cli.configure_logging", lambda **kwargs: None)


def mock_orchestrator(**results) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.initialize = AsyncMock()
    orchestrator.dispose = AsyncMock()
    orchestrator.collect_local_changes = AsyncMock(return_value=True)
    orchestrator.sync = AsyncMock(return_value=results.get("sync", SyncResult(SyncAction.UP_TO_DATE)))
    orchestrator.force_push = AsyncMock()
    orchestrator.force_pull = AsyncMock(return_value=results.get("force_pull", ReconcileResult()))
    orchestrator.git.reinitialize = AsyncMock()
    orchestrator.git.open_repository = AsyncMock()
    return orchestrator


class TestCliGroup:
    """Tests for main CLI group."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "settingsync" in result.output
        assert "force-push" in result.output
        assert "watch" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "settingsync" in result.output
        assert "1.0.0" in result.output


class TestSyncCommand:
    """Tests for sync command."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["sync", "--help"])
        assert result.exit_code == 0
        assert "Synchronize once" in result.output

    def test_missing_config(self, temp_dir: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(temp_dir / "missing.yaml"), "sync"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_config(self, temp_dir: Path):
        path = temp_dir / "config.yaml"
        path.write_text("sync_interval: -1\n", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(path), "sync"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    @patch("settingsync.cli.create_orchestrator")
    def test_push(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator(sync=SyncResult(SyncAction.PUSHED))
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "sync"])

        assert result.exit_code == 0
        assert "Local changes pushed" in result.output
        orchestrator.initialize.assert_awaited_once_with(watch=False, pull_on_launch=False)
        orchestrator.collect_local_changes.assert_awaited_once()
        orchestrator.dispose.assert_awaited_once()

    @patch("settingsync.cli.create_orchestrator")
    def test_pull_reports_extensions(self, mock_create, config_file: Path):
        extensions = ReconcileResult(installed=["ms-python.python"])
        mock_create.return_value = mock_orchestrator(sync=SyncResult(SyncAction.PULLED, extensions))

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "sync"])

        assert result.exit_code == 0
        assert "Remote changes applied" in result.output
        assert "ms-python.python" in result.output

    @patch("settingsync.cli.create_orchestrator")
    def test_up_to_date(self, mock_create, config_file: Path):
        mock_create.return_value = mock_orchestrator()

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "sync"])

        assert result.exit_code == 0
        assert "Everything is in sync!" in result.output

    @patch("settingsync.cli.create_orchestrator")
    def test_push_conflict(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator()
        orchestrator.sync.side_effect = PushConflictError(Path("/tmp/work"))
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "sync"])

        assert result.exit_code == 1
        assert "Failed to reconcile" in result.output
        orchestrator.dispose.assert_awaited_once()

    @patch("settingsync.cli.create_orchestrator")
    def test_malformed_extension_list(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator()
        orchestrator.sync.side_effect = ExtensionListError(Path("/tmp/work/extensions.json"), "entry 0 has no extension id")
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "sync"])

        assert result.exit_code == 1
        assert "Invalid extension list" in result.output
        assert not isinstance(result.exception, ExtensionListError)


class TestForceCommands:
    """Tests for force-push and force-pull."""

    @patch("settingsync.cli.create_orchestrator")
    def test_force_push(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator()
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "force-push"])

        assert result.exit_code == 0
        assert "Force push completed" in result.output
        orchestrator.force_push.assert_awaited_once()

    @patch("settingsync.cli.create_orchestrator")
    def test_force_pull_declined(self, mock_create, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "force-pull"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        mock_create.assert_not_called()

    @patch("settingsync.cli.create_orchestrator")
    def test_force_pull_confirmed(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator(force_pull=ReconcileResult(removed=["old.extension"]))
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "force-pull", "--yes"])

        assert result.exit_code == 0
        assert "Force pull completed" in result.output
        assert "old.extension" in result.output


class TestToggleCommand:
    """Tests for toggle command."""

    def test_no_daemon(self, temp_home: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["toggle"])
        assert result.exit_code == 1
        assert "No running watch daemon" in result.output

    @pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="SIGUSR1 not available")
    @patch("settingsync.cli.os.kill")
    def test_signals_daemon(self, mock_kill, temp_home: Path):
        pid_path = temp_home / ".config" / "settingsync" / "daemon.pid"
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text("4242", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["toggle"])

        assert result.exit_code == 0
        mock_kill.assert_called_once_with(4242, signal.SIGUSR1)

    @pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="SIGUSR1 not available")
    @patch("settingsync.cli.os.kill", side_effect=ProcessLookupError)
    def test_stale_pid_file_removed(self, mock_kill, temp_home: Path):
        pid_path = temp_home / ".config" / "settingsync" / "daemon.pid"
        pid_path.parent.mkdir(parents=True)
        pid_path.write_text("4242", encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["toggle"])

        assert result.exit_code == 1
        assert not pid_path.exists()


class TestRepositoryCommands:
    """Tests for open, reinit and status."""

    @patch("settingsync.cli.create_orchestrator")
    def test_open(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator()
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "open"])

        assert result.exit_code == 0
        orchestrator.git.open_repository.assert_awaited_once()

    @patch("settingsync.cli.create_orchestrator")
    def test_reinit(self, mock_create, config_file: Path):
        orchestrator = mock_orchestrator()
        mock_create.return_value = orchestrator

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "reinit", "--yes"])

        assert result.exit_code == 0
        assert "reinitialized" in result.output
        orchestrator.git.reinitialize.assert_awaited_once()

    def test_status_uninitialized(self, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "status"])

        assert result.exit_code == 0
        assert "Initialized" in result.output
        assert "no" in result.output


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_init_creates_file(self, temp_dir: Path):
        path = temp_dir / "config.yaml"

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(path), "config", "init", "-r", "https://example.com/s.git"])

        assert result.exit_code == 0
        assert "Created configuration" in result.output
        assert "https://example.com/s.git" in path.read_text(encoding="utf-8")

    def test_init_keeps_existing(self, config_file: Path):
        before = config_file.read_text(encoding="utf-8")

        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "config", "init"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert config_file.read_text(encoding="utf-8") == before

    def test_init_force(self, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "config", "init", "--force"])

        assert result.exit_code == 0
        assert "Created configuration" in result.output

    def test_path(self, temp_dir: Path):
        path = temp_dir / "c.yaml"
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(path), "config", "path"])
        assert result.exit_code == 0
        assert result.output.replace("\n", "") == str(path)

    def test_show(self, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == 0
        assert "repository_url" in result.output
        assert "debounce_delay: 0.05" in result.output

    def test_validate_valid(self, config_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(config_file), "config", "validate"])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_validate_missing_repository(self, temp_dir: Path):
        path = temp_dir / "config.yaml"
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(path), "config", "init"])

        result = runner.invoke(cli, ["--config", str(path), "config", "validate"])

        assert result.exit_code == 1
        assert "repository_url" in result.output
