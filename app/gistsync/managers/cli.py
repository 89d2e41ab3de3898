"""Command-line winget adapter.

Executes package actions by running the winget executable and mapping its
exit codes to ActionOutcome.
"""

import json
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from gistsync.core.errors import PackageActionError
from gistsync.managers import arguments
from gistsync.managers.base import ActionOutcome, PackageManager, PassthroughResult
from gistsync.managers.passthrough import run_passthrough
from gistsync.models.package import PackageRecord, PackageSet
from gistsync.utils.shell import CommandResult, resolve_winget, run_command

logger = logging.getLogger(__name__)

SOURCE_AGREEMENTS = "--accept-source-agreements"
PACKAGE_AGREEMENTS = "--accept-package-agreements"
NO_INTERACTIVITY = "--disable-interactivity"


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    """Meaning of a known winget exit code.

    Attributes:
        reason: Human-readable description.
        reboot_required: True if the host must restart.
        benign: True if the desired end state was nevertheless reached.
    """

    reason: str
    reboot_required: bool = False
    benign: bool = False


# winget HRESULTs, keyed by their unsigned 32-bit value
KNOWN_EXIT_CODES: dict[int, ExitCodeInfo] = {
    0x8A150010: ExitCodeInfo("No applicable installer for this system"),
    0x8A150011: ExitCodeInfo("Installer hash does not match the manifest"),
    0x8A150014: ExitCodeInfo("No package found matching the criteria"),
    0x8A150016: ExitCodeInfo("Multiple packages found matching the criteria"),
    0x8A15002B: ExitCodeInfo("No applicable update found", benign=True),
    0x8A150061: ExitCodeInfo("Package is already installed", benign=True),
    0x8A150101: ExitCodeInfo("Application is currently running"),
    0x8A150102: ExitCodeInfo("Another installation is already in progress"),
    0x8A150105: ExitCodeInfo("Not enough disk space"),
    0x8A150107: ExitCodeInfo("No network connection"),
    0x8A150109: ExitCodeInfo("Restart required to finish", reboot_required=True, benign=True),
    0x8A15010A: ExitCodeInfo("Restart required before installing", reboot_required=True),
    0x8A15010B: ExitCodeInfo("Installer initiated a restart", reboot_required=True, benign=True),
    0x8A15010C: ExitCodeInfo("Installation cancelled by user"),
    0x8A15010D: ExitCodeInfo("Another version is already installed", benign=True),
    0x8A15010F: ExitCodeInfo("Blocked by organization policy"),
}


def describe_exit_code(returncode: int) -> ExitCodeInfo | None:
    """Look up a winget exit code, accepting signed or unsigned form."""
    return KNOWN_EXIT_CODES.get(returncode & 0xFFFFFFFF)


def parse_export(data: object) -> PackageSet:
    """Extract package ids from ``winget export`` JSON.

    Args:
        data: Decoded JSON document.

    Returns:
        PackageSet of ``Sources[].Packages[].PackageIdentifier``.

    Raises:
        PackageActionError: If the document does not have the export shape.
    """
    if not isinstance(data, dict):
        msg = "winget export did not produce a JSON object"
        raise PackageActionError("winget", msg)

    packages = PackageSet()
    for source in data.get("Sources") or []:
        if not isinstance(source, dict):
            continue
        for entry in source.get("Packages") or []:
            package_id = entry.get("PackageIdentifier") if isinstance(entry, dict) else None
            if package_id:
                packages.add(PackageRecord(id=package_id))
    return packages


class CommandLineAdapter(PackageManager):
    """PackageManager that drives the winget executable.

    Attributes:
        executable: winget path or command name.
    """

    # Installers can take a long time (10 minutes)
    _WINGET_TIMEOUT: float = 600.0

    def __init__(self, executable: str | None = None) -> None:
        """Initialize the adapter.

        Args:
            executable: winget to run. Defaults to :func:`resolve_winget`.
        """
        self._executable = executable or resolve_winget()

    @property
    def executable(self) -> str:
        """winget path or command name."""
        return self._executable

    def install(self, record: PackageRecord) -> ActionOutcome:
        """Install a package using winget install."""
        args = arguments.build_install_args(record)
        args.extend([SOURCE_AGREEMENTS, PACKAGE_AGREEMENTS, NO_INTERACTIVITY])
        return self._run_action(record.id, args)

    def uninstall(self, package_id: str) -> ActionOutcome:
        """Uninstall the installed package matching ``package_id``."""
        installed_id = self.resolve_installed_id(package_id)
        if installed_id is None:
            return ActionOutcome(
                package_id=package_id,
                success=False,
                exit_code=1,
                message="No installed package matches this id",
            )

        args = arguments.build_uninstall_args(installed_id)
        args.extend([SOURCE_AGREEMENTS, NO_INTERACTIVITY])
        return self._run_action(installed_id, args)

    def upgrade(self, package_id: str, version: str | None = None) -> ActionOutcome:
        """Upgrade a package using winget upgrade."""
        args = arguments.build_upgrade_args(package_id, version)
        args.extend([SOURCE_AGREEMENTS, PACKAGE_AGREEMENTS, NO_INTERACTIVITY])
        return self._run_action(package_id, args)

    def pin(self, package_id: str, version: str) -> ActionOutcome:
        """Pin a package, replacing any existing pin."""
        args = arguments.build_pin_add_args(package_id, version, force=True)
        args.extend([SOURCE_AGREEMENTS, NO_INTERACTIVITY])
        return self._run_action(package_id, args)

    def unpin(self, package_id: str) -> ActionOutcome:
        """Remove the pin from a package."""
        args = arguments.build_pin_remove_args(package_id)
        args.extend([SOURCE_AGREEMENTS, NO_INTERACTIVITY])
        return self._run_action(package_id, args)

    def list_installed(self) -> PackageSet:
        """List installed packages via ``winget export``.

        Raises:
            PackageActionError: If winget cannot run or the export is unreadable.
        """
        with tempfile.TemporaryDirectory(prefix="gistsync-") as tmp_dir:
            export_path = Path(tmp_dir) / "installed.json"
            args = arguments.build_export_args(str(export_path))
            args.extend([SOURCE_AGREEMENTS, NO_INTERACTIVITY])
            try:
                result = self._run([self._executable, *args])
            except (OSError, subprocess.TimeoutExpired) as e:
                msg = f"Cannot run winget: {e}"
                raise PackageActionError("winget", msg) from e

            if not result.success:
                msg = f"winget export failed: {self._failure_reason(result)}"
                raise PackageActionError("winget", msg)

            try:
                data = json.loads(export_path.read_text(encoding="utf-8-sig"))
            except (OSError, json.JSONDecodeError) as e:
                msg = f"Cannot read winget export: {e}"
                raise PackageActionError("winget", msg) from e

        packages = parse_export(data)
        logger.debug("winget reports %d installed packages", len(packages))
        return packages

    def execute_passthrough(self, args: list[str]) -> PassthroughResult:
        """Run winget with ``args`` unmodified, streaming its output."""
        return run_passthrough([self._executable, *args])

    def _run(self, command: list[str]) -> CommandResult:
        logger.debug("Running %s", " ".join(command))
        return run_command(command, timeout=self._WINGET_TIMEOUT)

    def _run_action(self, package_id: str, args: list[str]) -> ActionOutcome:
        logger.info("Executing winget %s for %s", args[0], package_id)
        try:
            result = self._run([self._executable, *args])
        except FileNotFoundError:
            return ActionOutcome(
                package_id=package_id,
                success=False,
                exit_code=1,
                message=f"winget executable not found: {self._executable}",
            )
        except subprocess.TimeoutExpired:
            return ActionOutcome(
                package_id=package_id,
                success=False,
                exit_code=1,
                message=f"winget timed out after {self._WINGET_TIMEOUT:.0f}s",
            )
        except OSError as e:
            return ActionOutcome(package_id=package_id, success=False, exit_code=1, message=str(e))

        if result.success:
            return ActionOutcome(package_id=package_id, success=True)

        info = describe_exit_code(result.returncode)
        if info is not None and info.benign:
            logger.info("winget reported %s for %s", info.reason, package_id)
            return ActionOutcome(
                package_id=package_id,
                success=True,
                exit_code=result.returncode,
                message=info.reason,
                reboot_required=info.reboot_required,
            )

        return ActionOutcome(
            package_id=package_id,
            success=False,
            exit_code=result.returncode,
            message=self._failure_reason(result),
            reboot_required=info.reboot_required if info is not None else False,
        )

    @staticmethod
    def _failure_reason(result: CommandResult) -> str:
        info = describe_exit_code(result.returncode)
        if info is not None:
            return f"{info.reason} (exit code {result.returncode})"
        output = (result.stderr or result.stdout).strip()
        last_line = output.splitlines()[-1] if output else ""
        if last_line:
            return f"{last_line} (exit code {result.returncode})"
        return f"exit code {result.returncode}"
