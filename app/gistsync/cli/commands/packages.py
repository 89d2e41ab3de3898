"""Single-package commands.

Install, uninstall, upgrade and pin one package with winget, then record
the change in the package list Gist.
"""

from collections.abc import Callable
from typing import Annotated

import typer

from gistsync.cli.services import get_actions
from gistsync.core.errors import GistSyncError
from gistsync.managers.base import ActionOutcome
from gistsync.models.package import PackageRecord
from gistsync.utils.formatting import print_error, print_success, print_warning

pin_app = typer.Typer(
    help="Pin packages to a version.",
    no_args_is_help=True,
)

PackageIdArg = Annotated[str, typer.Argument(help="winget package id (e.g., Git.Git).")]


def _run(action: Callable[[], ActionOutcome], done: str) -> None:
    """Run an action, report its outcome and exit non-zero on failure."""
    try:
        outcome = action()
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(done)
    if outcome.reboot_required:
        print_warning("A reboot is required to finish applying changes.")


def install(
    package_id: PackageIdArg,
    version: Annotated[
        str | None,
        typer.Option("--version", help="Install and pin this version."),
    ] = None,
    scope: Annotated[
        str | None,
        typer.Option("--scope", help="Installation scope: user or machine."),
    ] = None,
    architecture: Annotated[
        str | None,
        typer.Option("--architecture", "-a", help="Installer architecture (x86, x64, arm, arm64)."),
    ] = None,
    source: Annotated[
        str | None,
        typer.Option("--source", "-s", help="winget source name."),
    ] = None,
    custom: Annotated[
        str | None,
        typer.Option("--custom", help="Extra installer arguments."),
    ] = None,
) -> None:
    """Install a package and add it to the package list."""
    try:
        record = PackageRecord(
            id=package_id,
            version=version,
            scope=scope,  # type: ignore[arg-type]
            architecture=architecture,  # type: ignore[arg-type]
            source=source,
            custom=custom,
        )
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    _run(lambda: get_actions().install(record), f"Installed {record.id}")


def uninstall(package_id: PackageIdArg) -> None:
    """Uninstall a package and mark it for removal in the package list."""
    _run(lambda: get_actions().uninstall(package_id), f"Uninstalled {package_id}")


def upgrade(
    package_id: PackageIdArg,
    version: Annotated[
        str | None,
        typer.Option("--version", help="Upgrade to this version."),
    ] = None,
) -> None:
    """Upgrade a package. A pinned package keeps its pin at the new version."""
    _run(lambda: get_actions().upgrade(package_id, version), f"Upgraded {package_id}")


@pin_app.command("add")
def pin_add(
    package_id: PackageIdArg,
    version: Annotated[str, typer.Argument(help="Version to pin to.")],
) -> None:
    """Pin a package to a version."""
    _run(lambda: get_actions().pin_add(package_id, version), f"Pinned {package_id} to {version}")


@pin_app.command("remove")
def pin_remove(package_id: PackageIdArg) -> None:
    """Remove a package's pin."""
    _run(lambda: get_actions().pin_remove(package_id), f"Removed pin for {package_id}")
