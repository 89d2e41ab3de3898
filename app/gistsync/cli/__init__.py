"""CLI package for gistsync.

This package contains the Typer application and all subcommands.
"""

from gistsync.cli.main import app

__all__ = ["app"]
