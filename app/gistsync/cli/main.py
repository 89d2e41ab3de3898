"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from typing import Annotated

import typer

from gistsync import __version__
from gistsync.cli.commands import auth, gist, packages, sync, transfer, winget
from gistsync.utils.formatting import set_quiet

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Create main Typer app
app = typer.Typer(
    name="gistsync",
    help="Keep winget packages in sync with a GitHub Gist.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"gistsync version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when verbose and WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )
    # httpx logs every request at INFO; keep it out of verbose output
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging on stderr.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """gistsync - Declarative winget packages stored in a GitHub Gist.

    Keep the package list in a Gist and reproduce it on any machine
    with [bold]gistsync sync[/bold].
    """
    configure_logging(verbose and not quiet)
    set_quiet(quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(auth.app, name="auth")
app.add_typer(gist.app, name="gist")
app.add_typer(sync.app, name="sync")
app.add_typer(packages.pin_app, name="pin")
app.command("install")(packages.install)
app.command("uninstall")(packages.uninstall)
app.command("upgrade")(packages.upgrade)
app.command("export")(transfer.export)
app.command("import")(transfer.import_)
app.command(
    "winget",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(winget.winget)


if __name__ == "__main__":
    app()
