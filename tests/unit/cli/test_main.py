"""Unit tests for the main CLI application."""

import logging

import pytest
from gistsync import __version__
from gistsync.cli.main import app, configure_logging
from typer.testing import CliRunner

runner = CliRunner()


class TestMainApp:
    """Tests for global options and help output."""

    def test_version(self) -> None:
        """--version prints the version and exits 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"gistsync version {__version__}" in result.stdout

    def test_short_version(self) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """Running without a command prints usage."""
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    @pytest.mark.parametrize(
        "command",
        ["auth", "gist", "sync", "pin", "install", "uninstall", "upgrade", "export", "import"],
    )
    def test_command_registered(self, command: str) -> None:
        """Every command shows its help."""
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0
        assert "Usage" in result.stdout

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("auth", "gist", "sync", "winget", "install"):
            assert command in result.stdout


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_default_is_warning(self) -> None:
        configure_logging(verbose=False)
        assert logging.getLogger().level == logging.WARNING

    def test_http_loggers_stay_quiet(self) -> None:
        """Request logging from the HTTP client never reaches debug output."""
        configure_logging(verbose=True)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
