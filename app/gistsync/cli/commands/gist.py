"""Desired-state Gist configuration commands.

Choose which Gist holds the package list, show the current choice and its
contents, or forget it.
"""

from typing import Annotated

import typer

from gistsync.cli.services import get_desired_store
from gistsync.core.errors import GistSyncError
from gistsync.utils.formatting import (
    console,
    create_package_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Configure the Gist holding the package list.",
    no_args_is_help=True,
)


@app.command("set")
def set_gist(
    gist_id: Annotated[
        str | None,
        typer.Option(
            "--id",
            help="Gist id. Omit to discover the Gist by file name or description.",
        ),
    ] = None,
    file_name: Annotated[
        str | None,
        typer.Option(
            "--file",
            "-f",
            help="YAML file inside the Gist.",
        ),
    ] = None,
) -> None:
    """Point gistsync at a Gist."""
    desired = get_desired_store()

    try:
        if gist_id is None:
            found = desired.discover()
            if found is None:
                print_warning("No matching Gist found. One will be created on the first save.")
                return
            gist_id = found.document_id
            file_name = file_name or found.file_name
            print_info(f"Found Gist {gist_id}")

        document = desired.configure(gist_id, file_name)
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Using Gist {document.document_id} ({document.file_name})")


@app.command()
def show() -> None:
    """Show the configured Gist and its packages."""
    desired = get_desired_store()

    try:
        document = desired.pointer()
        if document is None:
            print_info("No Gist configured. Run 'gistsync gist set' first.")
            return
        packages = desired.fetch()
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    console.print(f"Gist: [bold]{document.document_id}[/bold]  File: {document.file_name}")
    if not packages:
        print_info("The package list is empty.")
        return
    console.print(create_package_table(packages))


@app.command()
def clear() -> None:
    """Forget the configured Gist. The Gist itself is not changed."""
    try:
        get_desired_store().clear()
    except OSError as e:
        print_error(f"Failed to clear configuration: {e}")
        raise typer.Exit(code=1) from e
    print_info("Gist configuration cleared")
