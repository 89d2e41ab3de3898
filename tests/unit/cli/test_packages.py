"""Unit tests for the single-package commands."""

from unittest.mock import MagicMock, patch

import pytest
from gistsync.cli.main import app
from gistsync.core.errors import NotConfiguredError, PackageActionError
from gistsync.managers.base import ActionOutcome
from gistsync.models.package import Architecture, Scope
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def actions() -> MagicMock:
    mock = MagicMock()
    for name in ("install", "uninstall", "upgrade", "pin_add", "pin_remove"):
        getattr(mock, name).return_value = ActionOutcome("Git.Git", success=True)
    return mock


class TestInstall:
    """Tests for 'install'."""

    def test_install_with_options(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(
                app,
                ["install", "Git.Git", "--version", "2.45.1", "--scope", "machine", "-a", "x64"],
            )

        assert result.exit_code == 0
        record = actions.install.call_args[0][0]
        assert record.id == "Git.Git"
        assert record.version == "2.45.1"
        assert record.scope is Scope.MACHINE
        assert record.architecture is Architecture.X64
        assert "Installed Git.Git" in result.stdout

    def test_invalid_scope(self, actions: MagicMock) -> None:
        """Invalid option values are rejected before anything runs."""
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["install", "Git.Git", "--scope", "everyone"])

        assert result.exit_code == 1
        actions.install.assert_not_called()

    def test_install_failure(self, actions: MagicMock) -> None:
        actions.install.side_effect = PackageActionError("Git.Git", "installer failed")

        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["install", "Git.Git"])

        assert result.exit_code == 1
        assert "installer failed" in result.output

    def test_reboot_warning(self, actions: MagicMock) -> None:
        actions.install.return_value = ActionOutcome(
            "Docker.DockerDesktop", success=True, reboot_required=True
        )

        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["install", "Docker.DockerDesktop"])

        assert result.exit_code == 0
        assert "reboot is required" in result.output


class TestOtherCommands:
    """Tests for uninstall, upgrade and pin."""

    def test_uninstall(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["uninstall", "Git.Git"])

        assert result.exit_code == 0
        actions.uninstall.assert_called_once_with("Git.Git")

    def test_upgrade_with_version(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["upgrade", "Git.Git", "--version", "2.46.0"])

        assert result.exit_code == 0
        actions.upgrade.assert_called_once_with("Git.Git", "2.46.0")

    def test_pin_add(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["pin", "add", "Git.Git", "2.45.1"])

        assert result.exit_code == 0
        actions.pin_add.assert_called_once_with("Git.Git", "2.45.1")
        assert "Pinned Git.Git to 2.45.1" in result.stdout

    def test_pin_remove(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["pin", "remove", "Git.Git"])

        assert result.exit_code == 0
        actions.pin_remove.assert_called_once_with("Git.Git")

    def test_not_configured(self, actions: MagicMock) -> None:
        actions.uninstall.side_effect = NotConfiguredError("Not logged in")

        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["uninstall", "Git.Git"])

        assert result.exit_code == 1

    def test_quiet_suppresses_success(self, actions: MagicMock) -> None:
        with patch("gistsync.cli.commands.packages.get_actions", return_value=actions):
            result = runner.invoke(app, ["--quiet", "uninstall", "Git.Git"])

        assert result.exit_code == 0
        assert "Uninstalled" not in result.stdout
