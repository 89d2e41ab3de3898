"""Raw winget passthrough command."""

import typer

from gistsync.cli.services import get_manager
from gistsync.utils.formatting import print_error


def winget(ctx: typer.Context) -> None:
    """Run winget with the given arguments and exit with its exit code.

    Output is streamed as winget produces it. Arguments are passed through
    unmodified, e.g. ``gistsync winget search powertoys``.
    """
    result = get_manager().execute_passthrough(list(ctx.args))
    if not result.launched:
        print_error(f"Could not start winget: {result.error or 'unknown error'}")
    raise typer.Exit(code=result.exit_code)
