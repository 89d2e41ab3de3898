"""Unit tests for the sync command.

The reconciliation engine is mocked; these tests cover how the command
reports plans and results and which exit code it returns.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from gistsync.cli.main import app
from gistsync.core.errors import (
    AuthenticationRequiredError,
    NotConfiguredError,
    RemoteAccessError,
)
from gistsync.core.reconcile import ReconciliationEngine, SyncPlan
from gistsync.models.package import PackageRecord, PackageSet
from gistsync.models.sync import SyncResult
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def plan() -> SyncPlan:
    """Plan installing PowerToys and removing Firefox."""
    desired = PackageSet(
        [
            PackageRecord(id="Microsoft.PowerToys"),
            PackageRecord(id="Git.Git", version="2.45.1"),
            PackageRecord(id="Mozilla.Firefox", uninstall=True),
        ]
    )
    actual = PackageSet([PackageRecord(id="Git.Git"), PackageRecord(id="Mozilla.Firefox")])
    return ReconciliationEngine(MagicMock()).plan(desired, actual)


@pytest.fixture
def engine(plan: SyncPlan) -> MagicMock:
    mock = MagicMock()
    mock.prepare.return_value = plan
    mock.sync.return_value = SyncResult(
        installed=["Microsoft.PowerToys"], uninstalled=["Mozilla.Firefox"]
    )
    return mock


class TestSyncHelp:
    """Tests for sync command help."""

    def test_sync_help(self) -> None:
        result = runner.invoke(app, ["sync", "--help"])
        assert result.exit_code == 0
        assert "--dry-run" in result.stdout
        assert "--file" in result.stdout
        assert "--url" in result.stdout


class TestSync:
    """Tests for applied syncs."""

    def test_applies_plan(self, engine: MagicMock, plan: SyncPlan) -> None:
        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        engine.prepare.assert_called_once_with(None)
        engine.sync.assert_called_once_with(plan.desired, plan.actual)
        assert "Microsoft.PowerToys" in result.stdout
        assert "Sync complete: 2 change(s) applied." in result.stdout

    def test_failure_sets_exit_code(self, engine: MagicMock) -> None:
        """Any failed package makes the command exit non-zero."""
        engine.sync.return_value = SyncResult(
            uninstalled=["Mozilla.Firefox"],
            failed=["Microsoft.PowerToys"],
            errors=["Failed to install Microsoft.PowerToys: installer failed"],
            exit_code=1,
        )

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        assert "1 failed" in result.stdout
        assert "FAIL" in result.stdout

    def test_reboot_warning(self, engine: MagicMock) -> None:
        engine.sync.return_value = SyncResult(
            installed=["Microsoft.PowerToys"], reboot_required=True
        )

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "reboot is required" in result.output

    def test_not_configured(self, engine: MagicMock) -> None:
        """Precondition errors stop the command before anything is applied."""
        engine.prepare.side_effect = NotConfiguredError("No Gist configured")

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        engine.sync.assert_not_called()
        assert "No Gist configured" in result.output

    def test_not_logged_in(self, engine: MagicMock) -> None:
        engine.prepare.side_effect = AuthenticationRequiredError("Not logged in")

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        engine.sync.assert_not_called()

    def test_already_in_place(self, engine: MagicMock) -> None:
        desired = PackageSet([PackageRecord(id="Git.Git")])
        engine.prepare.return_value = ReconciliationEngine(MagicMock()).plan(desired, desired)
        engine.sync.return_value = SyncResult()

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "already in place" in result.stdout


class TestDryRun:
    """Tests for sync --dry-run."""

    def test_dry_run_applies_nothing(self, engine: MagicMock) -> None:
        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync", "--dry-run"])

        assert result.exit_code == 0
        engine.sync.assert_not_called()
        assert "Dry Run" in result.stdout
        assert "-uninstall" in result.stdout
        assert "+install" in result.stdout
        assert "no changes were made" in result.stdout


class TestLocalFile:
    """Tests for sync --file."""

    def test_uses_local_file(self, engine: MagicMock, tmp_path: Path, sample_yaml: str) -> None:
        path = tmp_path / "packages.yml"
        path.write_text(sample_yaml, encoding="utf-8")

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync", "--file", str(path), "--dry-run"])

        assert result.exit_code == 0
        desired = engine.prepare.call_args[0][0]
        assert desired.ids() == ["Git.Git", "Microsoft.PowerToys", "Mozilla.Firefox"]

    def test_invalid_file(self, engine: MagicMock, tmp_path: Path) -> None:
        path = tmp_path / "packages.yml"
        path.write_text("- not a mapping\n", encoding="utf-8")

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync", "--file", str(path)])

        assert result.exit_code == 1
        engine.prepare.assert_not_called()

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["sync", "--file", str(tmp_path / "missing.yml")])
        assert result.exit_code == 2


class TestUrl:
    """Tests for sync --url."""

    URL = "https://gist.githubusercontent.com/octocat/abc/raw/GistGet.yaml"

    def test_uses_url(self, engine: MagicMock) -> None:
        desired_store = MagicMock()
        desired_store.fetch_url.return_value = PackageSet([PackageRecord(id="Git.Git")])

        with (
            patch("gistsync.cli.commands.sync.get_engine", return_value=engine),
            patch("gistsync.cli.commands.sync.get_desired_store", return_value=desired_store),
        ):
            result = runner.invoke(app, ["sync", "--url", self.URL, "--dry-run"])

        assert result.exit_code == 0
        desired_store.fetch_url.assert_called_once_with(self.URL)
        assert engine.prepare.call_args[0][0].ids() == ["Git.Git"]

    def test_unreachable_url(self, engine: MagicMock) -> None:
        desired_store = MagicMock()
        desired_store.fetch_url.side_effect = RemoteAccessError("GitHub request failed")

        with (
            patch("gistsync.cli.commands.sync.get_engine", return_value=engine),
            patch("gistsync.cli.commands.sync.get_desired_store", return_value=desired_store),
        ):
            result = runner.invoke(app, ["sync", "--url", self.URL])

        assert result.exit_code == 1
        assert "GitHub request failed" in result.output
        engine.prepare.assert_not_called()

    def test_file_and_url_conflict(self, engine: MagicMock, tmp_path: Path) -> None:
        path = tmp_path / "packages.yml"
        path.write_text("Git.Git:\n", encoding="utf-8")

        with patch("gistsync.cli.commands.sync.get_engine", return_value=engine):
            result = runner.invoke(app, ["sync", "--file", str(path), "--url", self.URL])

        assert result.exit_code == 1
        assert "either --file or --url" in result.output
        engine.prepare.assert_not_called()
