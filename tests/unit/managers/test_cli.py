"""Unit tests for CommandLineAdapter.

Tests for the winget command-line adapter with run_command mocked out.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from gistsync.core.errors import PackageActionError
from gistsync.managers.base import PassthroughResult
from gistsync.managers.cli import (
    NO_INTERACTIVITY,
    PACKAGE_AGREEMENTS,
    SOURCE_AGREEMENTS,
    CommandLineAdapter,
    describe_exit_code,
    parse_export,
)
from gistsync.models.package import PackageRecord
from gistsync.utils.shell import CommandResult

OK = CommandResult(stdout="", stderr="", returncode=0)


def export_document(*package_ids: str) -> dict[str, object]:
    """Build a winget export document listing ``package_ids``."""
    return {
        "Sources": [
            {
                "SourceDetails": {"Name": "winget"},
                "Packages": [{"PackageIdentifier": package_id} for package_id in package_ids],
            }
        ]
    }


def fake_winget(*package_ids: str, action_result: CommandResult = OK) -> MagicMock:
    """run_command stand-in that answers export and package actions."""

    def run(command: list[str], **kwargs: object) -> CommandResult:
        if command[1] == "export":
            output = Path(command[command.index("--output") + 1])
            output.write_text(json.dumps(export_document(*package_ids)), encoding="utf-8-sig")
            return OK
        return action_result

    return MagicMock(side_effect=run)


class TestDescribeExitCode:
    """Tests for describe_exit_code function."""

    def test_signed_and_unsigned(self) -> None:
        """Negative HRESULTs map to the same entry as unsigned ones."""
        unsigned = describe_exit_code(0x8A150014)
        assert unsigned is not None
        assert describe_exit_code(0x8A150014 - 2**32) == unsigned

    def test_unknown(self) -> None:
        """Unknown codes have no description."""
        assert describe_exit_code(5) is None

    def test_reboot_codes(self) -> None:
        """Restart-required codes are flagged."""
        info = describe_exit_code(0x8A150109)
        assert info is not None
        assert info.reboot_required
        assert info.benign


class TestParseExport:
    """Tests for parse_export function."""

    def test_collects_ids_across_sources(self) -> None:
        """Packages from every source are returned."""
        data = export_document("Git.Git")
        data["Sources"].append(  # type: ignore[attr-defined]
            {"Packages": [{"PackageIdentifier": "9NBLGGH4NNS1"}]}
        )
        assert parse_export(data).ids() == ["9NBLGGH4NNS1", "Git.Git"]

    def test_skips_malformed_entries(self) -> None:
        """Entries without an identifier are ignored."""
        data = {"Sources": [{"Packages": [{}, "junk", {"PackageIdentifier": "Git.Git"}]}, "x"]}
        assert parse_export(data).ids() == ["Git.Git"]

    def test_empty_export(self) -> None:
        """An export without sources is an empty set."""
        assert len(parse_export({})) == 0

    def test_not_an_object(self) -> None:
        """A non-object document is an error."""
        with pytest.raises(PackageActionError, match="JSON object"):
            parse_export([])


class TestCommandLineAdapter:
    """Tests for CommandLineAdapter class."""

    @pytest.fixture
    def adapter(self) -> CommandLineAdapter:
        """Create an adapter with a fixed executable."""
        return CommandLineAdapter(executable="winget.exe")

    def test_resolves_executable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an explicit executable the override variable is honored."""
        monkeypatch.setenv("GISTSYNC_WINGET", r"D:\winget.exe")
        assert CommandLineAdapter().executable == r"D:\winget.exe"

    def test_install_success(self, adapter: CommandLineAdapter) -> None:
        """install runs winget install with agreements accepted."""
        with patch("gistsync.managers.cli.run_command", return_value=OK) as mock_run:
            outcome = adapter.install(PackageRecord(id="Git.Git", version="2.45.1"))

        assert outcome.success
        assert outcome.package_id == "Git.Git"
        command = mock_run.call_args[0][0]
        assert command[:5] == ["winget.exe", "install", "--id", "Git.Git", "--exact"]
        assert "--version" in command
        assert SOURCE_AGREEMENTS in command
        assert PACKAGE_AGREEMENTS in command
        assert NO_INTERACTIVITY in command

    def test_install_failure_uses_known_reason(self, adapter: CommandLineAdapter) -> None:
        """Known failure codes are described."""
        failed = CommandResult(stdout="", stderr="", returncode=0x8A150014)
        with patch("gistsync.managers.cli.run_command", return_value=failed):
            outcome = adapter.install(PackageRecord(id="Nope.Nope"))

        assert outcome.failed
        assert outcome.exit_code == 0x8A150014
        assert outcome.message is not None
        assert "No package found" in outcome.message

    def test_install_failure_uses_last_output_line(self, adapter: CommandLineAdapter) -> None:
        """Unknown failures report winget's last output line."""
        failed = CommandResult(stdout="Found Git\nInstaller failed\n", stderr="", returncode=7)
        with patch("gistsync.managers.cli.run_command", return_value=failed):
            outcome = adapter.install(PackageRecord(id="Git.Git"))

        assert outcome.message == "Installer failed (exit code 7)"

    def test_install_benign_code_is_success(self, adapter: CommandLineAdapter) -> None:
        """Already-installed exit codes count as success."""
        benign = CommandResult(stdout="", stderr="", returncode=0x8A150061)
        with patch("gistsync.managers.cli.run_command", return_value=benign):
            outcome = adapter.install(PackageRecord(id="Git.Git"))

        assert outcome.success

    def test_install_reboot_required(self, adapter: CommandLineAdapter) -> None:
        """Restart-to-finish codes succeed and request a reboot."""
        reboot = CommandResult(stdout="", stderr="", returncode=0x8A150109)
        with patch("gistsync.managers.cli.run_command", return_value=reboot):
            outcome = adapter.install(PackageRecord(id="Git.Git"))

        assert outcome.success
        assert outcome.reboot_required

    def test_missing_executable(self, adapter: CommandLineAdapter) -> None:
        """A missing winget is a failed outcome, not an exception."""
        with patch("gistsync.managers.cli.run_command", side_effect=FileNotFoundError()):
            outcome = adapter.install(PackageRecord(id="Git.Git"))

        assert outcome.failed
        assert outcome.message == "winget executable not found: winget.exe"

    def test_timeout(self, adapter: CommandLineAdapter) -> None:
        """A timed-out winget is a failed outcome."""
        timeout = subprocess.TimeoutExpired(cmd="winget", timeout=600)
        with patch("gistsync.managers.cli.run_command", side_effect=timeout):
            outcome = adapter.install(PackageRecord(id="Git.Git"))

        assert outcome.failed
        assert "timed out" in (outcome.message or "")

    def test_uninstall_resolves_installed_id(self, adapter: CommandLineAdapter) -> None:
        """uninstall targets the installed spelling of the id."""
        mock_run = fake_winget("Microsoft.PowerToys")
        with patch("gistsync.managers.cli.run_command", mock_run):
            outcome = adapter.uninstall("powertoys")

        assert outcome.success
        assert outcome.package_id == "Microsoft.PowerToys"
        command = mock_run.call_args[0][0]
        assert command[:4] == ["winget.exe", "uninstall", "--id", "Microsoft.PowerToys"]
        assert PACKAGE_AGREEMENTS not in command

    def test_uninstall_not_installed(self, adapter: CommandLineAdapter) -> None:
        """Uninstalling something that is not installed fails without running uninstall."""
        mock_run = fake_winget("Git.Git")
        with patch("gistsync.managers.cli.run_command", mock_run):
            outcome = adapter.uninstall("Vim.Vim")

        assert outcome.failed
        assert mock_run.call_count == 1

    def test_upgrade(self, adapter: CommandLineAdapter) -> None:
        """upgrade passes the requested version."""
        with patch("gistsync.managers.cli.run_command", return_value=OK) as mock_run:
            adapter.upgrade("Git.Git", "2.46.0")

        command = mock_run.call_args[0][0]
        assert command[1] == "upgrade"
        assert command[command.index("--version") + 1] == "2.46.0"

    def test_pin_forces(self, adapter: CommandLineAdapter) -> None:
        """pin replaces an existing pin."""
        with patch("gistsync.managers.cli.run_command", return_value=OK) as mock_run:
            adapter.pin("Git.Git", "2.45.1")

        command = mock_run.call_args[0][0]
        assert command[1:3] == ["pin", "add"]
        assert "--force" in command

    def test_unpin(self, adapter: CommandLineAdapter) -> None:
        """unpin runs pin remove."""
        with patch("gistsync.managers.cli.run_command", return_value=OK) as mock_run:
            adapter.unpin("Git.Git")

        assert mock_run.call_args[0][0][1:5] == ["pin", "remove", "--id", "Git.Git"]

    def test_list_installed(self, adapter: CommandLineAdapter) -> None:
        """list_installed reads the exported JSON."""
        with patch("gistsync.managers.cli.run_command", fake_winget("Git.Git", "Vim.Vim")):
            installed = adapter.list_installed()

        assert installed.ids() == ["Git.Git", "Vim.Vim"]

    def test_list_installed_export_failure(self, adapter: CommandLineAdapter) -> None:
        """A failed export raises PackageActionError."""
        failed = CommandResult(stdout="", stderr="boom", returncode=1)
        with (
            patch("gistsync.managers.cli.run_command", return_value=failed),
            pytest.raises(PackageActionError, match="winget export failed: boom"),
        ):
            adapter.list_installed()

    def test_list_installed_missing_winget(self, adapter: CommandLineAdapter) -> None:
        """A missing winget raises PackageActionError."""
        with (
            patch("gistsync.managers.cli.run_command", side_effect=FileNotFoundError("winget")),
            pytest.raises(PackageActionError, match="Cannot run winget"),
        ):
            adapter.list_installed()

    def test_list_installed_unreadable_export(self, adapter: CommandLineAdapter) -> None:
        """A missing export file raises PackageActionError."""
        with (
            patch("gistsync.managers.cli.run_command", return_value=OK),
            pytest.raises(PackageActionError, match="Cannot read winget export"),
        ):
            adapter.list_installed()

    def test_execute_passthrough(self, adapter: CommandLineAdapter) -> None:
        """Passthrough prepends the executable and leaves args untouched."""
        with patch(
            "gistsync.managers.cli.run_passthrough",
            return_value=PassthroughResult(exit_code=0),
        ) as mock_passthrough:
            result = adapter.execute_passthrough(["search", "--id", "Git.Git"])

        assert result.exit_code == 0
        mock_passthrough.assert_called_once_with(["winget.exe", "search", "--id", "Git.Git"])
