"""Sync command implementation.

Reconciles installed packages with the desired package list: uninstalls
packages marked for removal, installs missing ones, then enforces pins.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from gistsync.cli.display import (
    create_plan_table,
    create_results_table,
    print_plan_summary,
    print_result_summary,
)
from gistsync.cli.services import get_desired_store, get_engine
from gistsync.core.document import parse_packages
from gistsync.core.errors import GistSyncError
from gistsync.models.package import PackageSet
from gistsync.utils.formatting import console, print_error, print_info

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Synchronize installed packages with the Gist.",
    invoke_without_command=True,
)


def _read_local_file(path: Path) -> PackageSet:
    """Load a desired-state document from disk.

    Raises:
        typer.Exit: If the file cannot be read or parsed.
    """
    try:
        return parse_packages(path.read_text(encoding="utf-8"))
    except OSError as e:
        print_error(f"Cannot read {path}: {e}")
        raise typer.Exit(code=1) from e
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def _read_url(url: str) -> PackageSet:
    """Load a desired-state document published at ``url``.

    Raises:
        typer.Exit: If the URL cannot be fetched or parsed.
    """
    try:
        return get_desired_store().fetch_url(url)
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def sync(
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would change without applying it.",
        ),
    ] = False,
    file: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Use a local YAML package list instead of the Gist.",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option(
            "--url",
            "-u",
            help="Use a package list published at a URL (e.g. a raw Gist link).",
        ),
    ] = None,
) -> None:
    """Install and uninstall packages to match the package list."""
    if file is not None and url is not None:
        print_error("Use either --file or --url, not both.")
        raise typer.Exit(code=1)

    desired = _read_local_file(file) if file is not None else None
    if url is not None:
        desired = _read_url(url)
    engine = get_engine()

    try:
        plan = engine.prepare(desired)
    except GistSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if plan.is_empty:
        print_info("All desired packages are already in place.")
    else:
        console.print(create_plan_table(plan, dry_run=dry_run))
        print_plan_summary(plan)

    if dry_run:
        print_info("\nDry run: no changes were made.")
        return

    result = engine.sync(plan.desired, plan.actual)
    logger.debug("Sync result: %s", result.to_dict())

    if result.changed or result.failed:
        console.print()
        console.print(create_results_table(result))
    print_result_summary(result)

    if not result.success:
        raise typer.Exit(code=result.exit_code)