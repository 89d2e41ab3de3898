"""CLI commands for gistsync.

This package contains all subcommand implementations.
"""

from gistsync.cli.commands import auth, gist, packages, sync, transfer, winget

__all__ = ["auth", "gist", "packages", "sync", "transfer", "winget"]
