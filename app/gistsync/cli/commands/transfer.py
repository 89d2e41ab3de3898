"""Export installed packages and import a local package list."""

import logging
from pathlib import Path
from typing import Annotated

import typer

from gistsync.cli.services import get_actions
from gistsync.core.document import parse_packages, serialize_packages
from gistsync.core.errors import GistSyncError
from gistsync.utils.formatting import console, print_error, print_success

logger = logging.getLogger(__name__)


def export(
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the package list to this file instead of stdout.",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Write the installed packages as a YAML package list."""
    try:
        packages = get_actions().export()
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    content = serialize_packages(packages)
    if output is None:
        console.print(content, end="", markup=False, highlight=False)
        return

    try:
        output.write_text(content, encoding="utf-8")
    except OSError as e:
        print_error(f"Cannot write {output}: {e}")
        raise typer.Exit(code=1) from e
    print_success(f"Exported {len(packages)} packages to {output}")


def import_(
    file: Annotated[
        Path,
        typer.Argument(
            help="YAML package list to upload.",
            exists=True,
            dir_okay=False,
        ),
    ],
) -> None:
    """Replace the package list in the Gist with a local file."""
    try:
        packages = parse_packages(file.read_text(encoding="utf-8"))
        get_actions().import_packages(packages)
    except OSError as e:
        print_error(f"Cannot read {file}: {e}")
        raise typer.Exit(code=1) from e
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    logger.debug("Imported %s", ", ".join(packages.ids()))
    print_success(f"Imported {len(packages)} packages from {file}")
