"""Utility modules for gistsync.

This module exports commonly used utility functions.
"""

from gistsync.utils.formatting import (
    console,
    create_package_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
    set_quiet,
)
from gistsync.utils.shell import CommandResult, command_exists, resolve_winget, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_package_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "resolve_winget",
    "run_command",
    "set_quiet",
]
