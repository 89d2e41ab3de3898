"""Catalog connector backed by the Microsoft.WinGet.Client PowerShell module.

The module wraps winget's COM API and returns objects instead of console
text. Each catalog call runs one PowerShell command whose result is
converted to JSON, so nothing parses winget's human-readable output.
"""

import json
import logging
import shutil
import subprocess
from collections.abc import Sequence
from typing import Any

from gistsync.core.errors import PackageActionError
from gistsync.managers.structured import (
    CatalogPackage,
    CatalogResult,
    CatalogStatus,
    PackageCatalog,
)
from gistsync.models.package import Architecture, PackageRecord, Scope
from gistsync.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

MODULE_NAME = "Microsoft.WinGet.Client"

_PRELUDE = (
    "$ErrorActionPreference = 'Stop'; $ProgressPreference = 'SilentlyContinue'; "
    f"Import-Module {MODULE_NAME}; "
)
_EXACT_SILENT = "-MatchOption EqualsCaseInsensitive -Mode Silent"
_PACKAGE_FIELDS = "Id,Name,InstalledVersion"
_RESULT_FIELDS = (
    "@{n='Status';e={\"$($_.Status)\"}},RebootRequired,"
    "@{n='Error';e={\"$($_.ExtendedErrorCode)\"}}"
)

_SCOPES = {Scope.USER: "User", Scope.MACHINE: "System"}
_ARCHITECTURES = {
    Architecture.X86: "X86",
    Architecture.X64: "X64",
    Architecture.ARM: "Arm",
    Architecture.ARM64: "Arm64",
}


def quote(value: str) -> str:
    """Quote ``value`` as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def resolve_powershell() -> str | None:
    """Locate PowerShell 7 (pwsh), then Windows PowerShell."""
    return shutil.which("pwsh") or shutil.which("powershell")


def build_install_script(package_id: str, record: PackageRecord) -> str:
    """Build the Install-WinGetPackage command for ``record``."""
    parts = ["Install-WinGetPackage", "-Id", quote(package_id), _EXACT_SILENT]
    if record.version:
        parts.extend(["-Version", quote(record.version)])
    if record.scope is not None:
        parts.extend(["-Scope", _SCOPES[record.scope]])
    if record.architecture is not None:
        parts.extend(["-Architecture", _ARCHITECTURES[record.architecture]])
    if record.source:
        parts.extend(["-Source", quote(record.source)])
    if record.custom:
        parts.extend(["-Custom", quote(record.custom)])
    return " ".join(parts)


def parse_catalog_packages(data: object) -> list[CatalogPackage]:
    """Turn ConvertTo-Json output of package objects into CatalogPackages."""
    items = data if isinstance(data, list) else [data] if isinstance(data, dict) else []
    packages: list[CatalogPackage] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("Id"):
            continue
        version = item.get("InstalledVersion")
        packages.append(
            CatalogPackage(
                id=str(item["Id"]),
                name=str(item.get("Name") or item["Id"]),
                installed_version=str(version) if version else None,
            )
        )
    return packages


def parse_result(data: object) -> CatalogResult:
    """Turn a ConvertTo-Json install/uninstall result into a CatalogResult."""
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        return CatalogResult(CatalogStatus.ERROR, error="no result from catalog")

    status = str(data.get("Status") or "")
    reboot = bool(data.get("RebootRequired"))
    if status.casefold() == "ok":
        return CatalogResult(CatalogStatus.OK, reboot_required=reboot)
    if status.casefold() == "nopackagesfound":
        return CatalogResult(CatalogStatus.NOT_FOUND, error=status)
    error = str(data.get("Error") or "").strip()
    reason = f"{status}: {error}" if error else status or "unknown status"
    return CatalogResult(CatalogStatus.ERROR, reboot_required=reboot, error=reason)


class PowerShellCatalog:
    """PackageCatalog that runs Microsoft.WinGet.Client cmdlets."""

    # Installers can take a long time (10 minutes)
    ACTION_TIMEOUT: float = 600.0
    QUERY_TIMEOUT: float = 120.0

    def __init__(self, executable: str) -> None:
        self._executable = executable

    def find_packages(self, query: str | None = None) -> Sequence[CatalogPackage]:
        """List installed packages, plus available ones matching ``query``."""
        installed_script = "Get-WinGetPackage"
        if query is not None:
            installed_script += f" -Query {quote(query)}"
        installed = parse_catalog_packages(
            self._query(f"{installed_script} | Select-Object {_PACKAGE_FIELDS}")
        )
        if query is None:
            return installed

        available = parse_catalog_packages(
            self._query(f"Find-WinGetPackage -Query {quote(query)} | Select-Object Id,Name")
        )
        seen = {package.id.casefold() for package in installed}
        return installed + [p for p in available if p.id.casefold() not in seen]

    def install(self, package: CatalogPackage, record: PackageRecord) -> CatalogResult:
        """Install ``package`` with the options of ``record``."""
        return self._act(build_install_script(package.id, record))

    def uninstall(self, package: CatalogPackage) -> CatalogResult:
        """Uninstall ``package``."""
        script = f"Uninstall-WinGetPackage -Id {quote(package.id)} {_EXACT_SILENT}"
        return self._act(script)

    def upgrade(self, package: CatalogPackage, version: str | None) -> CatalogResult:
        """Upgrade ``package`` to ``version`` or the latest available."""
        script = f"Update-WinGetPackage -Id {quote(package.id)} {_EXACT_SILENT}"
        if version:
            script += f" -Version {quote(version)}"
        return self._act(script)

    def _act(self, script: str) -> CatalogResult:
        data = self._run_json(f"{script} | Select-Object {_RESULT_FIELDS}", self.ACTION_TIMEOUT)
        return parse_result(data)

    def _query(self, script: str) -> Any:
        return self._run_json(f"@({script})", self.QUERY_TIMEOUT)

    def _run_json(self, script: str, timeout: float) -> Any:
        command = [
            self._executable,
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            f"{_PRELUDE}{script} | ConvertTo-Json -Compress -Depth 3",
        ]
        logger.debug("Running PowerShell: %s", script)
        result = self._run(command, timeout)
        if not result.success:
            output = (result.stderr or result.stdout).strip()
            last_line = output.splitlines()[-1] if output else f"exit code {result.returncode}"
            msg = f"PowerShell command failed: {last_line}"
            raise PackageActionError("winget", msg)

        text = result.stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"Unreadable PowerShell output: {e}"
            raise PackageActionError("winget", msg) from e

    @staticmethod
    def _run(command: list[str], timeout: float) -> CommandResult:
        try:
            return run_command(command, timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            msg = f"Cannot run PowerShell: {e}"
            raise PackageActionError("winget", msg) from e


class PowerShellCatalogConnector:
    """CatalogConnector for the Microsoft.WinGet.Client module.

    The module check runs once per connector; a missing PowerShell or
    module keeps failing fast so every call falls back without spawning
    another shell.
    """

    def __init__(self, executable: str | None = None) -> None:
        """Initialize the connector.

        Args:
            executable: PowerShell to run. Defaults to :func:`resolve_powershell`.
        """
        self._executable = executable
        self._catalog: PowerShellCatalog | None = None
        self._error: str | None = None

    def connect(self) -> PackageCatalog:
        """Return the catalog, checking PowerShell and the module on first use.

        Raises:
            PackageActionError: If PowerShell or the module is unavailable.
        """
        if self._catalog is not None:
            return self._catalog
        if self._error is not None:
            raise PackageActionError("winget", self._error)
        try:
            self._catalog = PowerShellCatalog(self._locate())
        except PackageActionError as e:
            self._error = e.reason
            raise
        return self._catalog

    def _locate(self) -> str:
        executable = self._executable or resolve_powershell()
        if executable is None:
            msg = "PowerShell is not available"
            raise PackageActionError("winget", msg)

        script = f"(Get-Module -ListAvailable {MODULE_NAME}).Name"
        try:
            result = run_command(
                [executable, "-NoProfile", "-NonInteractive", "-Command", script],
                timeout=PowerShellCatalog.QUERY_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            msg = f"Cannot run PowerShell: {e}"
            raise PackageActionError("winget", msg) from e
        if not result.success or MODULE_NAME.casefold() not in result.stdout.casefold():
            msg = f"PowerShell module {MODULE_NAME} is not installed"
            raise PackageActionError("winget", msg)

        logger.debug("Using %s through %s", MODULE_NAME, executable)
        return executable
