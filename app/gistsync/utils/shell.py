"""Shell execution utilities.

Provides subprocess execution with captured output for package-manager
actions, and resolution of the winget executable.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass

WINGET_ENV_VAR = "GISTSYNC_WINGET"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Execute a shell command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=check,
        timeout=timeout,
        cwd=cwd,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


def resolve_winget() -> str:
    """Locate the winget executable.

    Resolution order: the ``GISTSYNC_WINGET`` environment variable, winget on
    PATH, then the WindowsApps alias under ``%LOCALAPPDATA%``.

    Returns:
        Path or command name to launch. Falls back to plain ``winget`` so a
        missing executable surfaces as FileNotFoundError at launch time.
    """
    override = os.environ.get(WINGET_ENV_VAR)
    if override:
        return override

    found = shutil.which("winget")
    if found:
        return found

    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        candidate = os.path.join(local_app_data, "Microsoft", "WindowsApps", "winget.exe")
        if os.path.exists(candidate):
            return candidate

    return "winget"
