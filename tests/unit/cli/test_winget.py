"""Unit tests for the winget passthrough command."""

from unittest.mock import MagicMock, patch

from gistsync.cli.main import app
from gistsync.managers.base import PASSTHROUGH_LAUNCH_FAILED, PassthroughResult
from typer.testing import CliRunner

runner = CliRunner()


def test_passes_arguments_and_exit_code() -> None:
    """Unknown options reach winget untouched and its exit code is kept."""
    manager = MagicMock()
    manager.execute_passthrough.return_value = PassthroughResult(exit_code=-1978335212)

    with patch("gistsync.cli.commands.winget.get_manager", return_value=manager):
        result = runner.invoke(app, ["winget", "search", "powertoys", "--source", "winget"])

    manager.execute_passthrough.assert_called_once_with(
        ["search", "powertoys", "--source", "winget"]
    )
    assert result.exit_code == -1978335212


def test_success() -> None:
    manager = MagicMock()
    manager.execute_passthrough.return_value = PassthroughResult(exit_code=0)

    with patch("gistsync.cli.commands.winget.get_manager", return_value=manager):
        result = runner.invoke(app, ["winget", "--info"])

    manager.execute_passthrough.assert_called_once_with(["--info"])
    assert result.exit_code == 0


def test_launch_failure() -> None:
    manager = MagicMock()
    manager.execute_passthrough.return_value = PassthroughResult(
        exit_code=PASSTHROUGH_LAUNCH_FAILED, error="winget not found"
    )

    with patch("gistsync.cli.commands.winget.get_manager", return_value=manager):
        result = runner.invoke(app, ["winget", "list"])

    assert result.exit_code == PASSTHROUGH_LAUNCH_FAILED
    assert "Could not start winget: winget not found" in result.output
